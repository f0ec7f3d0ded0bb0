"""Load and save an ``InMemoryModel`` as a JSON file.

The CLI keeps its document in one of these files between invocations.
Undo history is not persisted.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from cabinet_rows.domain.value_objects import Point3D

from .memory_host import InMemoryModel

MODEL_FILE_VERSION = 1


class ModelFileError(Exception):
    """Raised when a model file cannot be read or written.

    Attributes:
        message: Human-readable error message.
        path: File involved.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class DefinitionRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    definition_id: str = Field(..., min_length=1)
    width_mm: float = Field(..., gt=0)
    depth_mm: float = Field(default=600.0, gt=0)
    height_mm: float = Field(default=720.0, gt=0)
    is_cabinet: bool = True
    name: str = ""


class EntityRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    persistent_id: int = Field(..., gt=0)
    definition_id: str
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    locked: bool = False
    attributes: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ModelFileSchema(BaseModel):
    """On-disk layout of a model file."""

    model_config = ConfigDict(extra="forbid")

    version: int = MODEL_FILE_VERSION
    definitions: list[DefinitionRecord] = Field(default_factory=list)
    entities: list[EntityRecord] = Field(default_factory=list)
    attributes: dict[str, dict[str, Any]] = Field(default_factory=dict)


def model_to_dict(model: InMemoryModel) -> dict[str, Any]:
    """Serialize live definitions, entities and model attributes."""
    definitions = [
        DefinitionRecord(
            definition_id=d.definition_id,
            width_mm=d.width_mm,
            depth_mm=d.depth_mm,
            height_mm=d.height_mm,
            is_cabinet=d.is_cabinet,
            name=d.name,
        )
        for d in model.definitions()
    ]
    entities = [
        EntityRecord(
            persistent_id=entity.persistent_id,
            definition_id=entity.definition_id,
            x=entity.origin.x,
            y=entity.origin.y,
            z=entity.origin.z,
            locked=entity.locked,
            attributes=entity.attribute_dictionaries(),
        )
        for entity in model.entities()
    ]
    schema = ModelFileSchema(
        definitions=definitions,
        entities=entities,
        attributes=model.attribute_dictionaries(),
    )
    return schema.model_dump(mode="json")


def model_from_dict(data: dict[str, Any]) -> InMemoryModel:
    """Rebuild a model from ``model_to_dict`` output.

    Raises:
        pydantic.ValidationError: If the data does not match the schema.
        ValueError: If entities reference unknown definitions.
    """
    schema = ModelFileSchema.model_validate(data)
    model = InMemoryModel()
    for d in schema.definitions:
        model.add_definition(
            d.width_mm,
            definition_id=d.definition_id,
            is_cabinet=d.is_cabinet,
            depth_mm=d.depth_mm,
            height_mm=d.height_mm,
            name=d.name,
        )
    for e in schema.entities:
        if e.definition_id not in {d.definition_id for d in schema.definitions}:
            raise ValueError(
                f"Entity {e.persistent_id} references unknown definition {e.definition_id!r}"
            )
        entity = model.place(
            e.definition_id, locked=e.locked, persistent_id=e.persistent_id
        )
        entity.move_to(Point3D(e.x, e.y, e.z))
        for dictionary, entries in e.attributes.items():
            for key, value in entries.items():
                entity.set_attribute(dictionary, key, value)
    for dictionary, entries in schema.attributes.items():
        for key, value in entries.items():
            model.set_attribute(dictionary, key, value)
    return model


def load_model(path: Path) -> InMemoryModel:
    """Read a model file.

    Raises:
        ModelFileError: If the file is missing, unreadable or malformed.
    """
    if not path.exists():
        raise ModelFileError(f"Model file not found: {path}", path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ModelFileError(f"Error reading model file: {path}: {e}", path)
    except json.JSONDecodeError as e:
        raise ModelFileError(
            f"Invalid JSON in model file: {path} (line {e.lineno}, column {e.colno}): {e.msg}",
            path,
        )
    try:
        return model_from_dict(data)
    except (PydanticValidationError, ValueError) as e:
        raise ModelFileError(f"Invalid model file: {path}: {e}", path)


def save_model(model: InMemoryModel, path: Path) -> None:
    """Write a model file, creating parent directories as needed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(model_to_dict(model), indent=2), encoding="utf-8")
    except OSError as e:
        raise ModelFileError(f"Error writing model file: {path}: {e}", path)
