"""Rule matching for automatic task-entity linking."""

import re

import structlog

from schedule4d.models import EntityInfo, LinkRule, RuleType

logger = structlog.get_logger()


def matches(entity: EntityInfo, rule: LinkRule) -> bool:
    """Check whether an entity satisfies a link rule.

    Never raises: a rule with missing or invalid configuration matches nothing.
    ``property_match`` rules are not supported yet and never match.
    """
    config = rule.rule_config

    if rule.rule_type == RuleType.TYPE_FILTER:
        if not config.ifc_types:
            return False
        return entity.type in config.ifc_types

    if rule.rule_type == RuleType.NAME_PATTERN:
        if not entity.name or not config.pattern:
            return False
        try:
            regex = re.compile(config.pattern, re.IGNORECASE)
        except re.error as e:
            logger.debug("Invalid rule pattern", rule_id=rule.id, pattern=config.pattern, error=str(e))
            return False
        return regex.search(entity.name) is not None

    if rule.rule_type == RuleType.PROPERTY_MATCH:
        return False

    logger.debug("Unknown rule type", rule_id=rule.id, rule_type=str(rule.rule_type))
    return False
