"""Tests for rule matching."""

from schedule4d.models import EntityInfo, LinkRule, RuleConfig, RuleType
from schedule4d.rules import matches

WALL = EntityInfo(global_id="g-wall", express_id=1, type="IfcWall", name="Basic Wall: Exterior 300mm")
DOOR = EntityInfo(global_id="g-door", express_id=2, type="IfcDoor", name="Single Flush Door")
UNNAMED = EntityInfo(global_id="g-slab", express_id=3, type="IfcSlab")


def test_type_filter() -> None:
    """Test type filters match on membership."""
    rule = LinkRule(task_id="1", rule_type=RuleType.TYPE_FILTER, rule_config=RuleConfig(ifc_types=["IfcWall", "IfcSlab"]))
    assert matches(WALL, rule)
    assert matches(UNNAMED, rule)
    assert not matches(DOOR, rule)


def test_type_filter_without_types() -> None:
    """Test a type filter without types matches nothing."""
    rule = LinkRule(task_id="1", rule_type=RuleType.TYPE_FILTER)
    assert not matches(WALL, rule)


def test_name_pattern_is_case_insensitive() -> None:
    """Test name patterns ignore case and match anywhere in the name."""
    rule = LinkRule(task_id="1", rule_type=RuleType.NAME_PATTERN, rule_config=RuleConfig(pattern="exterior"))
    assert matches(WALL, rule)
    assert not matches(DOOR, rule)


def test_name_pattern_without_name() -> None:
    """Test entities without a name never match a pattern."""
    rule = LinkRule(task_id="1", rule_type=RuleType.NAME_PATTERN, rule_config=RuleConfig(pattern=".*"))
    assert not matches(UNNAMED, rule)


def test_name_pattern_invalid_regex() -> None:
    """Test an invalid pattern matches nothing instead of raising."""
    rule = LinkRule(task_id="1", rule_type=RuleType.NAME_PATTERN, rule_config=RuleConfig(pattern="[unclosed"))
    assert not matches(WALL, rule)


def test_property_match_never_matches() -> None:
    """Test property rules are not evaluated."""
    rule = LinkRule(
        task_id="1",
        rule_type=RuleType.PROPERTY_MATCH,
        rule_config=RuleConfig(property_name="FireRating", property_value="60"),
    )
    assert not matches(WALL, rule)


def test_unknown_rule_type() -> None:
    """Test unknown rule types match nothing."""
    rule = LinkRule(task_id="1", rule_type="material_match", rule_config=RuleConfig(ifc_types=["IfcWall"]))
    assert not matches(WALL, rule)
