"""YAML file store implementation."""

from pathlib import Path
from typing import Any

import structlog
import yaml

from schedule4d.models import LinkRule, ScheduleTask, TaskEntityLink, flatten_tasks
from schedule4d.parser import build_hierarchy
from schedule4d.store import Store, StoreResult

logger = structlog.get_logger()

TASKS_FILE = "tasks.yaml"
LINKS_FILE = "links.yaml"
RULES_FILE = "rules.yaml"


class YamlStore(Store):
    """File-based store keeping one directory of YAML files per project."""

    def __init__(self, root: str | Path) -> None:
        """Initialize YAML store.

        Args:
            root: Directory holding the project directories
        """
        self.root = Path(root)
        logger.debug("Initializing YAML store", root=str(self.root))

    def _project_file(self, project_id: str, name: str) -> Path:
        return self.root / project_id / name

    def _read(self, project_id: str, name: str) -> list[dict[str, Any]]:
        path = self._project_file(project_id, name)
        if not path.exists():
            logger.debug("Store file does not exist", path=str(path))
            return []
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return data.get("records", [])

    def _write(self, project_id: str, name: str, records: list[dict[str, Any]], **extra: Any) -> None:
        path = self._project_file(project_id, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump({**extra, "records": records}, f, default_flow_style=False, sort_keys=False)
        logger.debug("Store file written", path=str(path), records=len(records))

    def save_tasks(self, project_id: str, tasks: list[ScheduleTask]) -> StoreResult[None]:
        """Save tasks as flat records in outline order."""
        logger.info("Saving tasks", project_id=project_id)
        try:
            records = [task.to_dict() for task in flatten_tasks(tasks)]
            self._write(project_id, TASKS_FILE, records)
        except Exception as e:
            logger.error("Failed to save tasks", project_id=project_id, error=str(e))
            return StoreResult(error=e)
        logger.info("Tasks saved", project_id=project_id, count=len(records))
        return StoreResult()

    def get_tasks(self, project_id: str) -> StoreResult[list[ScheduleTask]]:
        """Load tasks and rebuild their hierarchy from outline numbers."""
        logger.info("Loading tasks", project_id=project_id)
        try:
            tasks = [ScheduleTask.from_dict(record) for record in self._read(project_id, TASKS_FILE)]
        except Exception as e:
            logger.error("Failed to load tasks", project_id=project_id, error=str(e))
            return StoreResult(error=e)
        return StoreResult(data=build_hierarchy(tasks))

    def save_task_links(self, project_id: str, model_id: str, links: list[TaskEntityLink]) -> StoreResult[None]:
        """Save links along with the model they were made against."""
        logger.info("Saving task links", project_id=project_id, model_id=model_id)
        try:
            self._write(project_id, LINKS_FILE, [link.to_dict() for link in links], model_id=model_id)
        except Exception as e:
            logger.error("Failed to save task links", project_id=project_id, error=str(e))
            return StoreResult(error=e)
        logger.info("Task links saved", project_id=project_id, count=len(links))
        return StoreResult()

    def get_task_links(self, project_id: str) -> StoreResult[list[TaskEntityLink]]:
        """Load links."""
        logger.info("Loading task links", project_id=project_id)
        try:
            links = [TaskEntityLink.from_dict(record) for record in self._read(project_id, LINKS_FILE)]
        except Exception as e:
            logger.error("Failed to load task links", project_id=project_id, error=str(e))
            return StoreResult(error=e)
        return StoreResult(data=links)

    def save_link_rules(self, project_id: str, rules: list[LinkRule]) -> StoreResult[None]:
        """Save rules."""
        logger.info("Saving link rules", project_id=project_id)
        try:
            self._write(project_id, RULES_FILE, [rule.to_dict() for rule in rules])
        except Exception as e:
            logger.error("Failed to save link rules", project_id=project_id, error=str(e))
            return StoreResult(error=e)
        logger.info("Link rules saved", project_id=project_id, count=len(rules))
        return StoreResult()

    def get_link_rules(self, project_id: str) -> StoreResult[list[LinkRule]]:
        """Load rules."""
        logger.info("Loading link rules", project_id=project_id)
        try:
            rules = [LinkRule.from_dict(record) for record in self._read(project_id, RULES_FILE)]
        except Exception as e:
            logger.error("Failed to load link rules", project_id=project_id, error=str(e))
            return StoreResult(error=e)
        return StoreResult(data=rules)
