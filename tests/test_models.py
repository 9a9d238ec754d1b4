"""Tests for data models."""

from datetime import datetime

from schedule4d.models import (
    AttributeLeaf,
    LinkRule,
    LinkType,
    RelationCollection,
    RuleConfig,
    RuleType,
    ScheduleTask,
    TaskEntityLink,
    entity_from_item_data,
    flatten_tasks,
    parse_property_bag,
)


def test_task_creation() -> None:
    """Test task creation with defaults."""
    task = ScheduleTask(
        id="task_1",
        task_id="1",
        name="Excavation",
        start_date=datetime(2024, 1, 1),
        end_date=datetime(2024, 1, 5),
    )
    assert task.duration == 0
    assert task.percent_complete == 0
    assert task.predecessors == []
    assert task.resources == []
    assert task.outline_level == 1
    assert task.outline_number is None
    assert task.children == []


def test_task_record_round_trip() -> None:
    """Test tasks serialize to flat records without children."""
    child = ScheduleTask(
        id="task_2", task_id="2", name="Child", start_date=datetime(2024, 1, 2), end_date=datetime(2024, 1, 3)
    )
    task = ScheduleTask(
        id="task_1",
        task_id="1",
        name="Parent",
        start_date=datetime(2024, 1, 1, 8),
        end_date=datetime(2024, 1, 5, 17),
        duration=4.5,
        predecessors=["7"],
        outline_number="1",
        children=[child],
    )
    record = task.to_dict()
    assert "children" not in record
    assert record["start_date"] == "2024-01-01T08:00:00"

    restored = ScheduleTask.from_dict(record)
    assert restored.children == []
    restored.children.append(child)
    assert restored == task


def test_flatten_tasks_preorder() -> None:
    """Test flattening visits parents before children."""
    date = datetime(2024, 1, 1)
    leaf = ScheduleTask(id="task_3", task_id="3", name="Leaf", start_date=date, end_date=date)
    middle = ScheduleTask(id="task_2", task_id="2", name="Middle", start_date=date, end_date=date, children=[leaf])
    root = ScheduleTask(id="task_1", task_id="1", name="Root", start_date=date, end_date=date, children=[middle])
    other = ScheduleTask(id="task_4", task_id="4", name="Other", start_date=date, end_date=date)
    assert [task.task_id for task in flatten_tasks([root, other])] == ["1", "2", "3", "4"]


def test_link_record_round_trip() -> None:
    """Test link serialization."""
    link = TaskEntityLink(
        id="link_1_5_abc",
        task_id="1",
        entity_global_id="2O2Fr$t4X7Zf8NOew3FLOH",
        entity_express_id=5,
        entity_type="IfcWall",
        link_type=LinkType.RULE,
    )
    record = link.to_dict()
    assert record["link_type"] == "rule"
    assert TaskEntityLink.from_dict(record) == link


def test_rule_defaults() -> None:
    """Test rules get an ID and are active by default."""
    rule = LinkRule(task_id="1", rule_type=RuleType.TYPE_FILTER)
    assert rule.id.startswith("rule_")
    assert rule.is_active
    assert rule.rule_config == RuleConfig()


def test_rule_record_round_trip() -> None:
    """Test rule serialization keeps only configured fields."""
    rule = LinkRule(task_id="1", rule_type=RuleType.NAME_PATTERN, rule_config=RuleConfig(pattern="^Wall"))
    record = rule.to_dict()
    assert record["rule_config"] == {"pattern": "^Wall"}
    assert LinkRule.from_dict(record) == rule


def test_rule_unknown_type_round_trip() -> None:
    """Test unknown rule types survive serialization."""
    rule = LinkRule.from_dict({"id": "rule_x", "task_id": "1", "rule_type": "material_match", "rule_config": {}})
    assert rule.rule_type == "material_match"
    assert rule.to_dict()["rule_type"] == "material_match"


def test_parse_property_bag() -> None:
    """Test nested item data becomes attributes and relations."""
    bag = parse_property_bag(
        {
            "Name": {"value": "Wall 1", "type": "IFCLABEL"},
            "IsDefinedBy": [
                {"Name": {"value": "Pset_WallCommon"}, "HasProperties": [{"NominalValue": {"value": True}}]},
            ],
            "_internal": 12,
        }
    )
    assert bag["Name"] == AttributeLeaf(value="Wall 1", type="IFCLABEL")
    relation = bag["IsDefinedBy"]
    assert isinstance(relation, RelationCollection)
    assert relation.items[0]["Name"] == AttributeLeaf(value="Pset_WallCommon")
    nested = relation.items[0]["HasProperties"]
    assert isinstance(nested, RelationCollection)
    assert nested.items[0]["NominalValue"].value is True
    assert "_internal" not in bag


def test_entity_from_item_data() -> None:
    """Test entities are built from viewer item data."""
    entity = entity_from_item_data(
        42,
        {
            "_guid": {"value": "3cUkl32yn9qRSPvBJVyWYp"},
            "_category": {"value": "IFCWALLSTANDARDCASE"},
            "Name": {"value": "Basic Wall"},
        },
    )
    assert entity.global_id == "3cUkl32yn9qRSPvBJVyWYp"
    assert entity.express_id == 42
    assert entity.type == "IFCWALLSTANDARDCASE"
    assert entity.name == "Basic Wall"
    assert entity.properties is not None


def test_entity_from_missing_item_data() -> None:
    """Test entities without data get placeholder identity."""
    entity = entity_from_item_data(7, None)
    assert entity.global_id == "global_7"
    assert entity.type == "Unknown"
    assert entity.name is None
    assert entity.properties is None
