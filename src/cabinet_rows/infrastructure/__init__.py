"""Infrastructure layer - in-memory host, persistence and formatters."""

from .formatters import (
    HighlightFormatter,
    RowDetailFormatter,
    RowDiagramFormatter,
    RowListFormatter,
)
from .highlight import RecordingHighlightProvider
from .memory_host import (
    CabinetDefinition,
    InMemoryModel,
    InMemorySelection,
    OperationError,
    PlacedCabinet,
)
from .model_file import ModelFileError, load_model, model_from_dict, model_to_dict, save_model
from .registry_store import JsonRegistryStore, RegistryDocument, RowRecord

__all__ = [
    "CabinetDefinition",
    "HighlightFormatter",
    "InMemoryModel",
    "InMemorySelection",
    "JsonRegistryStore",
    "ModelFileError",
    "OperationError",
    "PlacedCabinet",
    "RecordingHighlightProvider",
    "RegistryDocument",
    "RowDetailFormatter",
    "RowDiagramFormatter",
    "RowListFormatter",
    "RowRecord",
    "load_model",
    "model_from_dict",
    "model_to_dict",
    "save_model",
]
