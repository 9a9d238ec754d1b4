"""MS Project XML schedule parser."""

import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path

import structlog

from schedule4d.models import ScheduleProject, ScheduleTask, flatten_tasks

logger = structlog.get_logger()

HOURS_PER_WORKDAY = 8


class ParseError(ValueError):
    """Raised when a schedule document cannot be parsed at all."""


def _local_name(tag: str) -> str:
    """Strip the XML namespace from a tag."""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    if element is None:
        return None
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _text(element: ET.Element | None, name: str) -> str | None:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def parse_date(value: str | None) -> datetime:
    """Parse an ISO-8601 timestamp, falling back to the current time.

    Timezone-aware values are normalized to naive UTC so that every date in a
    schedule compares against every other.
    """
    if not value:
        return datetime.now()

    try:
        date = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Invalid date format", value=value)
        return datetime.now()

    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc).replace(tzinfo=None)
    return date


def _extract_number(value: str, marker: str) -> float:
    match = re.search(rf"(\d+(?:\.\d+)?){marker}", value)
    return float(match.group(1)) if match else 0.0


def parse_duration(value: str | None) -> float:
    """Convert an MS Project duration to days.

    Durations are either ``PT#H#M#S`` or a plain number of hours; both are
    converted assuming an 8 hour workday.
    """
    if not value:
        return 0.0

    if value.startswith("PT"):
        hours = _extract_number(value, "H")
        minutes = _extract_number(value, "M")
        return (hours + minutes / 60) / HOURS_PER_WORKDAY

    if value.startswith("P"):
        logger.warning("Unsupported duration format", value=value)
        return 0.0

    try:
        return float(value) / HOURS_PER_WORKDAY
    except ValueError:
        logger.warning("Invalid duration format", value=value)
        return 0.0


def _parse_float(value: str | None, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(float(value))
    except ValueError:
        return default


def find_parent(task: ScheduleTask, tasks: list[ScheduleTask]) -> ScheduleTask | None:
    """Find the parent of a task from its outline level and outline number."""
    if task.outline_level <= 1 or not task.outline_number:
        return None

    for candidate in tasks:
        if (
            candidate.outline_level == task.outline_level - 1
            and candidate.outline_number
            and task.outline_number.startswith(candidate.outline_number + ".")
        ):
            return candidate
    return None


def build_hierarchy(tasks: list[ScheduleTask]) -> list[ScheduleTask]:
    """Attach each task to its parent and return the root tasks in order.

    Tasks without a matching parent become roots.
    """
    roots: list[ScheduleTask] = []
    for task in tasks:
        parent = find_parent(task, tasks)
        if parent is not None:
            parent.children.append(task)
        else:
            roots.append(task)
    logger.debug("Built task hierarchy", tasks=len(tasks), roots=len(roots))
    return roots


class MSProjectParser:
    """Parser for MS Project XML (MSPDI) documents."""

    flatten_tasks = staticmethod(flatten_tasks)

    def parse_xml(self, content: str | bytes) -> ScheduleProject:
        """Parse an MS Project XML document.

        Raises:
            ParseError: If the document is not well formed or has no Project root.
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            logger.error("Failed to parse MS Project XML", error=str(e))
            raise ParseError(f"Failed to parse MS Project XML: {e}") from e

        if _local_name(root.tag) != "Project":
            logger.error("Invalid MS Project XML", root=_local_name(root.tag))
            raise ParseError("Failed to parse MS Project XML: Missing Project element")

        assignments = self._parse_project_assignments(root)
        tasks = self._parse_tasks(_child(root, "Tasks"), assignments)

        project = ScheduleProject(
            name=_text(root, "Name") or "Untitled Project",
            start_date=parse_date(_text(root, "StartDate")),
            finish_date=parse_date(_text(root, "FinishDate")),
            tasks=tasks,
        )
        logger.info("Parsed MS Project XML", project=project.name, roots=len(tasks))
        return project

    def parse_file(self, path: str | Path) -> ScheduleProject:
        """Parse an MS Project XML file."""
        path = Path(path)
        logger.debug("Reading MS Project file", path=str(path))
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.error("Failed to read MS Project file", path=str(path), error=str(e))
            raise ParseError(f"Failed to read MS Project file {path}: {e}") from e
        return self.parse_xml(content)

    def _parse_tasks(self, tasks_element: ET.Element | None, assignments: dict[str, list[str]]) -> list[ScheduleTask]:
        """Parse task records, skipping those without a UID.

        UID 0, the project summary task, is kept and becomes a root.
        """
        if tasks_element is None:
            return []

        tasks: list[ScheduleTask] = []
        for element in _children(tasks_element, "Task"):
            uid = _text(element, "UID")
            if uid is None:
                logger.debug("Skipping task without UID", name=_text(element, "Name"))
                continue

            start_date = parse_date(_text(element, "Start"))
            end_date = parse_date(_text(element, "Finish"))
            if end_date < start_date:
                logger.warning("Task finishes before it starts", uid=uid)
                end_date = start_date

            resources = self._parse_task_resources(element)
            for resource in assignments.get(uid, []):
                if resource not in resources:
                    resources.append(resource)

            tasks.append(
                ScheduleTask(
                    id=f"task_{uid}",
                    task_id=uid,
                    name=_text(element, "Name") or "Unnamed Task",
                    start_date=start_date,
                    end_date=end_date,
                    duration=parse_duration(_text(element, "Duration")),
                    percent_complete=_parse_float(_text(element, "PercentComplete")),
                    predecessors=self._parse_predecessors(element),
                    resources=resources,
                    notes=_text(element, "Notes"),
                    outline_level=_parse_int(_text(element, "OutlineLevel"), 1),
                    outline_number=_text(element, "OutlineNumber"),
                )
            )

        return build_hierarchy(tasks)

    def _parse_predecessors(self, element: ET.Element) -> list[str]:
        predecessors = []
        for link in _children(element, "PredecessorLink"):
            uid = _text(link, "PredecessorUID")
            if uid is not None:
                predecessors.append(uid)
        return predecessors

    def _parse_task_resources(self, element: ET.Element) -> list[str]:
        resources: list[str] = []
        table = _child(element, "Assignments")
        if table is None:
            return resources

        for assignment in _children(table, "Assignment"):
            uid = _text(assignment, "ResourceUID")
            if uid is not None:
                resources.append(uid)
        return resources

    def _parse_project_assignments(self, root: ET.Element) -> dict[str, list[str]]:
        """Map task UIDs to resource UIDs from the project-level assignment table."""
        assignments: dict[str, list[str]] = {}
        table = _child(root, "Assignments")
        if table is None:
            return assignments

        for assignment in _children(table, "Assignment"):
            task_uid = _text(assignment, "TaskUID")
            resource_uid = _text(assignment, "ResourceUID")
            if task_uid is None or resource_uid is None:
                continue
            assignments.setdefault(task_uid, []).append(resource_uid)
        return assignments
