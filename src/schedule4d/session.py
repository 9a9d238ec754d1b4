"""4D scheduling session tying the schedule, links, timeline and store together."""

import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import structlog

from schedule4d.collaborators import ModelCollaborator, resolve_entities
from schedule4d.links import LinkStore
from schedule4d.models import (
    EntityInfo,
    LinkRule,
    RuleConfig,
    RuleType,
    ScheduleProject,
    ScheduleTask,
    TaskEntityLink,
)
from schedule4d.parser import MSProjectParser, ParseError
from schedule4d.store import Store
from schedule4d.timeline import FrameScheduler, TimelineEngine

logger = structlog.get_logger()


class Scheduling4D:
    """A 4D scheduling session.

    Errors meant for the user (unreadable schedules, store failures) are
    recorded in ``error`` and reported by a False return value.
    """

    def __init__(
        self,
        model: ModelCollaborator | None = None,
        store: Store | None = None,
        scheduler: FrameScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.model = model
        self.store = store
        self.parser = MSProjectParser()
        self.links = LinkStore(on_links_updated=self._on_links_updated)
        self.timeline = TimelineEngine(self.links, renderer=model, scheduler=scheduler, clock=clock, now=now)
        self.project: ScheduleProject | None = None
        self.selected_task: ScheduleTask | None = None
        self.error: str | None = None
        self.on_links_updated: Callable[[str, list[TaskEntityLink]], None] | None = None

    def _on_links_updated(self, task_id: str, links: list[TaskEntityLink]) -> None:
        self.timeline.update_visualization()
        if self.on_links_updated is not None:
            self.on_links_updated(task_id, links)

    @property
    def tasks(self) -> list[ScheduleTask]:
        return self.timeline.get_tasks()

    def _load_project(self, load: Callable[[], ScheduleProject]) -> bool:
        self.error = None
        try:
            project = load()
        except ParseError as e:
            self.error = str(e)
            logger.error("Failed to load schedule", error=self.error)
            return False
        self.project = project
        self.selected_task = None
        self.timeline.load_tasks(project.tasks)
        return True

    def load_schedule_xml(self, content: str | bytes) -> bool:
        """Load a schedule from MS Project XML content."""
        return self._load_project(lambda: self.parser.parse_xml(content))

    def load_schedule_file(self, path: str | Path) -> bool:
        """Load a schedule from an MS Project XML file."""
        return self._load_project(lambda: self.parser.parse_file(path))

    def select_task(self, task_id: str) -> ScheduleTask | None:
        """Select a task by its task ID."""
        self.selected_task = self.timeline.get_task(task_id)
        return self.selected_task

    def link_entities(self, task_id: str, entities: list[EntityInfo]) -> int:
        """Manually link entities to a task.

        Returns:
            Number of links created.
        """
        return sum(1 for entity in entities if self.links.link(task_id, entity))

    def link_selection(self, task_id: str, model_id: str, express_ids: list[int]) -> int:
        """Link entities selected in the model viewer to a task."""
        return self.link_entities(task_id, resolve_entities(self.model, model_id, express_ids))

    def unlink_entity(self, task_id: str, express_id: int) -> None:
        """Unlink an entity from a task."""
        self.links.unlink(task_id, express_id)

    def add_link_rule(
        self,
        task_id: str,
        rule_type: RuleType,
        rule_config: RuleConfig,
        is_active: bool = True,
    ) -> LinkRule:
        """Create a link rule for a task."""
        rule = LinkRule(task_id=task_id, rule_type=rule_type, rule_config=rule_config, is_active=is_active)
        self.links.add_rule(rule)
        return rule

    def remove_link_rule(self, rule_id: str) -> bool:
        """Remove a link rule."""
        return self.links.remove_rule(rule_id)

    def apply_rules(self, task_id: str, entities: list[EntityInfo]) -> int:
        """Link the entities matching the task's active rules."""
        return self.links.apply_rules(task_id, entities)

    def save_to_store(self, project_id: str, model_id: str) -> bool:
        """Save tasks, links and rules of the session."""
        if self.store is None:
            raise ValueError("No store configured")

        self.error = None
        result = self.store.save_tasks(project_id, self.tasks)
        if not result.ok:
            self.error = f"Failed to save tasks: {result.error}"
            return False

        links = [link for task_links in self.links.all_links().values() for link in task_links]
        result = self.store.save_task_links(project_id, model_id, links)
        if not result.ok:
            self.error = f"Failed to save task links: {result.error}"
            return False

        rules = self.links.all_rules()
        result = self.store.save_link_rules(project_id, rules)
        if not result.ok:
            self.error = f"Failed to save link rules: {result.error}"
            return False

        logger.info("Session saved", project_id=project_id, links=len(links), rules=len(rules))
        return True

    def load_from_store(self, project_id: str) -> bool:
        """Replace the session's tasks, links and rules with saved ones."""
        if self.store is None:
            raise ValueError("No store configured")

        self.error = None
        tasks = self.store.get_tasks(project_id)
        if not tasks.ok:
            self.error = f"Failed to load tasks: {tasks.error}"
            return False
        self.timeline.load_tasks(tasks.data or [])

        links = self.store.get_task_links(project_id)
        if not links.ok:
            self.error = f"Failed to load task links: {links.error}"
            return False
        self.links.load_links(links.data or [])

        rules = self.store.get_link_rules(project_id)
        if not rules.ok:
            self.error = f"Failed to load link rules: {rules.error}"
            return False
        self.links.load_rules(rules.data or [])

        self.timeline.update_visualization()
        logger.info("Session loaded", project_id=project_id)
        return True

    def dispose(self) -> None:
        """Stop playback and clear all session state."""
        self.timeline.dispose()
        self.links.clear()
        self.project = None
        self.selected_task = None
