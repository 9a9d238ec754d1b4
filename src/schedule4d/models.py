"""Data models for 4D scheduling."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


@dataclass
class ScheduleTask:
    """Represents a schedule task and its nested subtasks."""

    id: str
    task_id: str
    name: str
    start_date: datetime
    end_date: datetime
    duration: float = 0.0
    percent_complete: float = 0.0
    predecessors: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    notes: str | None = None
    outline_level: int = 1
    outline_number: str | None = None
    children: list["ScheduleTask"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the task as a flat record (children are not included)."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "duration": self.duration,
            "percent_complete": self.percent_complete,
            "predecessors": list(self.predecessors),
            "resources": list(self.resources),
            "notes": self.notes,
            "outline_level": self.outline_level,
            "outline_number": self.outline_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleTask":
        """Build a task from a flat record produced by ``to_dict``."""
        task_id = str(data["task_id"])
        return cls(
            id=data.get("id") or f"task_{task_id}",
            task_id=task_id,
            name=data.get("name") or "Unnamed Task",
            start_date=_as_datetime(data["start_date"]),
            end_date=_as_datetime(data["end_date"]),
            duration=float(data.get("duration") or 0),
            percent_complete=float(data.get("percent_complete") or 0),
            predecessors=[str(p) for p in data.get("predecessors") or []],
            resources=[str(r) for r in data.get("resources") or []],
            notes=data.get("notes"),
            outline_level=int(data.get("outline_level") or 1),
            outline_number=data.get("outline_number"),
        )


@dataclass
class ScheduleProject:
    """A parsed project schedule."""

    name: str
    start_date: datetime
    finish_date: datetime
    tasks: list[ScheduleTask] = field(default_factory=list)


def flatten_tasks(tasks: list[ScheduleTask]) -> list[ScheduleTask]:
    """Flatten a task hierarchy depth-first, parents before their children."""
    result: list[ScheduleTask] = []
    stack = list(reversed(tasks))
    while stack:
        task = stack.pop()
        result.append(task)
        stack.extend(reversed(task.children))
    return result


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


# Property bags


@dataclass
class AttributeLeaf:
    """A single attribute value of a model entity."""

    value: str | int | float | bool | None
    type: str | None = None


@dataclass
class RelationCollection:
    """Related items of a model entity, each one a nested property bag."""

    items: list["PropertyBag"] = field(default_factory=list)


PropertyValue = Union[AttributeLeaf, RelationCollection]
PropertyBag = dict[str, PropertyValue]


def parse_property_bag(raw: dict[str, Any]) -> PropertyBag:
    """Convert untyped item data into a property bag.

    Attributes are mappings carrying a ``value`` key; relations are lists of
    nested item mappings. Anything else is ignored.
    """
    bag: PropertyBag = {}
    for key, value in raw.items():
        if isinstance(value, dict) and "value" in value:
            bag[key] = AttributeLeaf(value=value["value"], type=value.get("type"))
        elif isinstance(value, list):
            bag[key] = RelationCollection(items=[parse_property_bag(item) for item in value if isinstance(item, dict)])
    return bag


def _leaf_value(bag: PropertyBag, *keys: str) -> Any:
    for key in keys:
        prop = bag.get(key)
        if isinstance(prop, AttributeLeaf) and prop.value not in (None, ""):
            return prop.value
    return None


@dataclass
class EntityInfo:
    """A model entity that can be linked to a task."""

    global_id: str
    express_id: int
    type: str = "Unknown"
    name: str | None = None
    properties: PropertyBag | None = None


def entity_from_item_data(express_id: int, data: dict[str, Any] | None) -> EntityInfo:
    """Build an entity from model item data, tolerating missing attributes."""
    if not data:
        return EntityInfo(global_id=f"global_{express_id}", express_id=express_id)

    bag = parse_property_bag(data)
    global_id = _leaf_value(bag, "_guid", "GlobalId")
    entity_type = _leaf_value(bag, "_category", "Type")
    name = _leaf_value(bag, "Name")
    return EntityInfo(
        global_id=str(global_id) if global_id is not None else f"global_{express_id}",
        express_id=express_id,
        type=str(entity_type) if entity_type is not None else "Unknown",
        name=str(name) if name is not None else None,
        properties=bag,
    )


# Links and rules


class LinkType(str, Enum):
    """Provenance of a task-entity link."""

    MANUAL = "manual"
    RULE = "rule"


@dataclass
class TaskEntityLink:
    """Associates a schedule task with a model entity."""

    id: str
    task_id: str
    entity_global_id: str
    entity_express_id: int
    entity_type: str
    entity_name: str | None = None
    link_type: LinkType = LinkType.MANUAL

    def to_dict(self) -> dict[str, Any]:
        """Serialize the link."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "entity_global_id": self.entity_global_id,
            "entity_express_id": self.entity_express_id,
            "entity_type": self.entity_type,
            "entity_name": self.entity_name,
            "link_type": self.link_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskEntityLink":
        """Build a link from a serialized record."""
        return cls(
            id=data["id"],
            task_id=str(data["task_id"]),
            entity_global_id=data["entity_global_id"],
            entity_express_id=int(data["entity_express_id"]),
            entity_type=data.get("entity_type") or "Unknown",
            entity_name=data.get("entity_name"),
            link_type=LinkType(data.get("link_type") or LinkType.MANUAL.value),
        )


class RuleType(str, Enum):
    """Kinds of linking rules."""

    PROPERTY_MATCH = "property_match"
    NAME_PATTERN = "name_pattern"
    TYPE_FILTER = "type_filter"


@dataclass
class RuleConfig:
    """Rule settings; which fields apply depends on the rule type."""

    property_name: str | None = None
    property_value: str | None = None
    pattern: str | None = None
    ifc_types: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize only the fields that are set."""
        data: dict[str, Any] = {}
        if self.property_name is not None:
            data["property_name"] = self.property_name
        if self.property_value is not None:
            data["property_value"] = self.property_value
        if self.pattern is not None:
            data["pattern"] = self.pattern
        if self.ifc_types is not None:
            data["ifc_types"] = list(self.ifc_types)
        return data


def new_rule_id() -> str:
    """Generate a rule identifier."""
    return f"rule_{uuid.uuid4().hex[:12]}"


@dataclass
class LinkRule:
    """A rule deriving task-entity links automatically."""

    task_id: str
    rule_type: RuleType | str
    rule_config: RuleConfig = field(default_factory=RuleConfig)
    is_active: bool = True
    id: str = field(default_factory=new_rule_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the rule."""
        rule_type = self.rule_type.value if isinstance(self.rule_type, RuleType) else self.rule_type
        return {
            "id": self.id,
            "task_id": self.task_id,
            "rule_type": rule_type,
            "rule_config": self.rule_config.to_dict(),
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkRule":
        """Build a rule from a serialized record.

        Unknown rule types are kept as plain strings so they round-trip; they
        never match any entity.
        """
        raw_type = data["rule_type"]
        try:
            rule_type: RuleType | str = RuleType(raw_type)
        except ValueError:
            rule_type = raw_type
        config = data.get("rule_config") or {}
        return cls(
            id=data.get("id") or new_rule_id(),
            task_id=str(data["task_id"]),
            rule_type=rule_type,
            rule_config=RuleConfig(
                property_name=config.get("property_name"),
                property_value=config.get("property_value"),
                pattern=config.get("pattern"),
                ifc_types=config.get("ifc_types"),
            ),
            is_active=bool(data.get("is_active", True)),
        )


# Timeline


@dataclass
class TimelineState:
    """Playback state of the 4D timeline."""

    current_date: datetime
    start_date: datetime
    end_date: datetime
    is_playing: bool = False
    playback_speed: float = 1.0  # simulated days per real second


class TaskStatus(str, Enum):
    """Construction status of a task at the simulated date."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class VisualState:
    """How the entities linked to a task are drawn."""

    status: TaskStatus
    visible: bool
    opacity: float
    color: str
