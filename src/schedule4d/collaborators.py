"""Interface to the 3D model viewer."""

from abc import ABC, abstractmethod
from typing import Any

import structlog

from schedule4d.models import EntityInfo, TaskEntityLink, entity_from_item_data

logger = structlog.get_logger()


class ModelCollaborator(ABC):
    """Abstract base class for the model viewer the scheduler drives."""

    @abstractmethod
    def get_entity_data(self, model_id: str, express_ids: list[int]) -> list[dict[str, Any]]:
        """Get the property data of entities, one mapping per requested ID."""
        pass

    @abstractmethod
    def apply_visual_state(
        self,
        entity_refs: list[TaskEntityLink],
        visible: bool,
        opacity: float,
        color: str,
    ) -> None:
        """Apply visibility, opacity and a color tint to linked entities."""
        pass


def resolve_entities(model: ModelCollaborator | None, model_id: str, express_ids: list[int]) -> list[EntityInfo]:
    """Build entity descriptions for selected express IDs.

    If the model cannot provide property data, the entities are still
    returned, without names and with placeholder global IDs.
    """
    if model is None:
        return [entity_from_item_data(express_id, None) for express_id in express_ids]

    try:
        items = model.get_entity_data(model_id, express_ids)
    except Exception as e:
        logger.warning("Failed to get entity data", model_id=model_id, count=len(express_ids), error=str(e))
        return [entity_from_item_data(express_id, None) for express_id in express_ids]

    entities = []
    for index, express_id in enumerate(express_ids):
        data = items[index] if index < len(items) else None
        entities.append(entity_from_item_data(express_id, data))
    logger.debug("Resolved entities", model_id=model_id, count=len(entities))
    return entities
