"""
The universe catalog: the registry of named entities, their display
metadata and the builtin trajectories and rotation models supplied by the
host application.
"""
import logging
from typing import Dict, List, Optional

from .entity import Entity
from .rotations import RotationModel
from .trajectories import Trajectory

logger = logging.getLogger(__name__)


class UniverseCatalog:
    """Name-keyed registry owned by a single loading session."""

    def __init__(self):
        self._entities: Dict[str, Entity] = {}
        self._body_info: Dict[str, object] = {}
        self._builtin_trajectories: Dict[str, Trajectory] = {}
        self._builtin_rotation_models: Dict[str, RotationModel] = {}

    # Entities

    def find(self, name: str) -> Optional[Entity]:
        return self._entities.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def names(self) -> List[str]:
        return list(self._entities)

    def add_entity(self, entity: Entity) -> None:
        """Register ``entity``, replacing any entity with the same name."""
        self._entities[entity.name] = entity

    def remove_entity(self, name: str) -> Optional[Entity]:
        """
        Unregister and return the named entity. Its body info goes with it and
        its geometry is released so cached meshes can be swept.
        """
        self._body_info.pop(name, None)
        entity = self._entities.pop(name, None)
        if entity is not None:
            entity.set_geometry(None)
        return entity

    # Display metadata

    def body_info(self, name: str):
        return self._body_info.get(name)

    def set_body_info(self, name: str, info) -> None:
        self._body_info[name] = info

    # Builtins

    def add_builtin_trajectory(self, name: str, trajectory: Trajectory) -> None:
        self._builtin_trajectories[name] = trajectory

    def remove_builtin_trajectory(self, name: str) -> None:
        self._builtin_trajectories.pop(name, None)

    def builtin_trajectory(self, name: str) -> Optional[Trajectory]:
        return self._builtin_trajectories.get(name)

    def add_builtin_rotation_model(self, name: str, rotation_model: RotationModel) -> None:
        self._builtin_rotation_models[name] = rotation_model

    def remove_builtin_rotation_model(self, name: str) -> None:
        self._builtin_rotation_models.pop(name, None)

    def builtin_rotation_model(self, name: str) -> Optional[RotationModel]:
        return self._builtin_rotation_models.get(name)
