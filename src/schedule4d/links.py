"""Task-entity link and link rule storage."""

import uuid
from collections.abc import Callable, Iterable

import structlog

from schedule4d.models import EntityInfo, LinkRule, LinkType, TaskEntityLink
from schedule4d.rules import matches

logger = structlog.get_logger()

LinksUpdatedCallback = Callable[[str, list[TaskEntityLink]], None]


class LinkStore:
    """Many-to-many links between schedule tasks and model entities, indexed by task.

    A task holds at most one link per entity express ID. Rules are kept per
    task, but rule IDs are unique across the whole store.
    """

    def __init__(self, on_links_updated: LinksUpdatedCallback | None = None) -> None:
        self._links: dict[str, list[TaskEntityLink]] = {}
        self._rules: dict[str, list[LinkRule]] = {}
        self.on_links_updated = on_links_updated

    def _notify(self, task_id: str) -> None:
        if self.on_links_updated is not None:
            self.on_links_updated(task_id, self.get_links(task_id))

    def link(self, task_id: str, entity: EntityInfo, link_type: LinkType = LinkType.MANUAL) -> bool:
        """Link an entity to a task.

        Returns:
            True if a new link was created, False if the entity was already linked.
        """
        links = self._links.setdefault(task_id, [])
        if any(link.entity_express_id == entity.express_id for link in links):
            logger.debug("Entity already linked", task_id=task_id, express_id=entity.express_id)
            return False

        links.append(
            TaskEntityLink(
                id=f"link_{task_id}_{entity.express_id}_{uuid.uuid4().hex[:8]}",
                task_id=task_id,
                entity_global_id=entity.global_id,
                entity_express_id=entity.express_id,
                entity_type=entity.type,
                entity_name=entity.name,
                link_type=link_type,
            )
        )
        logger.debug("Linked entity", task_id=task_id, express_id=entity.express_id, link_type=link_type.value)
        self._notify(task_id)
        return True

    def unlink(self, task_id: str, express_id: int) -> None:
        """Remove the link between a task and an entity, if any."""
        links = self._links.get(task_id, [])
        self._links[task_id] = [link for link in links if link.entity_express_id != express_id]
        logger.debug("Unlinked entity", task_id=task_id, express_id=express_id)
        self._notify(task_id)

    def get_links(self, task_id: str) -> list[TaskEntityLink]:
        """Get the links of a task."""
        return list(self._links.get(task_id, []))

    def all_links(self) -> dict[str, list[TaskEntityLink]]:
        """Get the links of every task."""
        return {task_id: list(links) for task_id, links in self._links.items()}

    def add_rule(self, rule: LinkRule) -> None:
        """Add a linking rule to its task."""
        self._rules.setdefault(rule.task_id, []).append(rule)
        logger.debug("Added link rule", rule_id=rule.id, task_id=rule.task_id, rule_type=str(rule.rule_type))

    def remove_rule(self, rule_id: str) -> bool:
        """Remove a rule from whichever task holds it.

        Returns:
            True if the rule was found.
        """
        for task_id, rules in self._rules.items():
            remaining = [rule for rule in rules if rule.id != rule_id]
            if len(remaining) != len(rules):
                self._rules[task_id] = remaining
                logger.debug("Removed link rule", rule_id=rule_id, task_id=task_id)
                return True
        logger.debug("Link rule not found", rule_id=rule_id)
        return False

    def get_rules_for_task(self, task_id: str) -> list[LinkRule]:
        """Get the rules of a task in insertion order."""
        return list(self._rules.get(task_id, []))

    def all_rules(self) -> list[LinkRule]:
        """Get every rule in the store."""
        return [rule for rules in self._rules.values() for rule in rules]

    def apply_rules(self, task_id: str, entities: list[EntityInfo]) -> int:
        """Link every entity matching any active rule of the task.

        Returns:
            Number of links created.
        """
        created = 0
        for rule in self.get_rules_for_task(task_id):
            if not rule.is_active:
                continue
            for entity in entities:
                if matches(entity, rule) and self.link(task_id, entity, LinkType.RULE):
                    created += 1
        logger.info("Applied link rules", task_id=task_id, entities=len(entities), created=created)
        return created

    def load_links(self, links: Iterable[TaskEntityLink]) -> None:
        """Replace all links with previously saved ones."""
        self._links = {}
        for link in links:
            task_links = self._links.setdefault(link.task_id, [])
            if any(existing.entity_express_id == link.entity_express_id for existing in task_links):
                continue
            task_links.append(link)
        for task_id in self._links:
            self._notify(task_id)

    def load_rules(self, rules: Iterable[LinkRule]) -> None:
        """Replace all rules with previously saved ones."""
        self._rules = {}
        for rule in rules:
            self.add_rule(rule)

    def rebind(self, entities: Iterable[EntityInfo]) -> list[TaskEntityLink]:
        """Point links at a new model version by matching global IDs.

        Express IDs are only valid within one model version, so after an
        upgrade each link takes the express ID of the entity sharing its
        global ID. Links whose global ID is missing from the new version are
        removed, since their old express ID may now belong to another entity.

        Returns:
            The removed links, unchanged.
        """
        by_global_id = {entity.global_id: entity for entity in entities}
        unmatched: list[TaskEntityLink] = []

        for task_id, links in self._links.items():
            rebound: list[TaskEntityLink] = []
            for link in links:
                entity = by_global_id.get(link.entity_global_id)
                if entity is None:
                    unmatched.append(link)
                    continue
                link.entity_express_id = entity.express_id
                if any(other.entity_express_id == link.entity_express_id for other in rebound):
                    logger.warning(
                        "Dropping duplicate link after rebind",
                        task_id=task_id,
                        link_id=link.id,
                        express_id=link.entity_express_id,
                    )
                    continue
                rebound.append(link)
            self._links[task_id] = rebound
            self._notify(task_id)

        if unmatched:
            logger.warning("Links not found in model version", count=len(unmatched))
        return unmatched

    def clear(self) -> None:
        """Remove all links and rules."""
        self._links.clear()
        self._rules.clear()
