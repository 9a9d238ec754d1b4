"""Persistence interface for schedules, links and rules."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from schedule4d.models import LinkRule, ScheduleTask, TaskEntityLink

T = TypeVar("T")


@dataclass
class StoreResult(Generic[T]):
    """Outcome of a store operation: data on success, the error otherwise."""

    data: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Store(ABC):
    """Abstract base class for persistence backends.

    Operations never raise; failures are returned in ``StoreResult.error``.
    """

    @abstractmethod
    def save_tasks(self, project_id: str, tasks: list[ScheduleTask]) -> StoreResult[None]:
        """Save the task tree of a project, replacing any previous one."""
        pass

    @abstractmethod
    def get_tasks(self, project_id: str) -> StoreResult[list[ScheduleTask]]:
        """Load the task tree of a project."""
        pass

    @abstractmethod
    def save_task_links(self, project_id: str, model_id: str, links: list[TaskEntityLink]) -> StoreResult[None]:
        """Save the task-entity links of a project against a model."""
        pass

    @abstractmethod
    def get_task_links(self, project_id: str) -> StoreResult[list[TaskEntityLink]]:
        """Load the task-entity links of a project."""
        pass

    @abstractmethod
    def save_link_rules(self, project_id: str, rules: list[LinkRule]) -> StoreResult[None]:
        """Save the link rules of a project."""
        pass

    @abstractmethod
    def get_link_rules(self, project_id: str) -> StoreResult[list[LinkRule]]:
        """Load the link rules of a project."""
        pass
