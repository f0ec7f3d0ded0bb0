"""JSON registry document persisted on the host model.

The document lives in one model attribute and has the shape::

    {
        "schema_version": 1,
        "rows": {
            "<row_id>": {
                "row_id": "<row_id>",
                "member_ids": [12, 15, 9],
                "row_reveal_mm": 2.0,
                "lock_total_length": false,
                "total_length_mm": null,
                "created_at": "2026-01-01T00:00:00+00:00",
                "updated_at": "2026-01-01T00:00:00+00:00"
            }
        }
    }

Loading is forgiving: malformed values are sanitized with pydantic
validators, rows that cannot be salvaged are dropped, and the caller is
told whether the document needed repair.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from cabinet_rows.domain.entities import Row
from cabinet_rows.domain.value_objects import DEFAULT_ROW_REVEAL_MM

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import HostModelProtocol

logger = logging.getLogger(__name__)

REGISTRY_DICTIONARY = "cabinet_rows.registry"
REGISTRY_JSON_KEY = "json"
SCHEMA_VERSION = 1


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


class RowRecord(BaseModel):
    """Persisted form of one row.

    ``member_pids`` is accepted as a legacy name for ``member_ids``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    row_id: str | None = None
    member_ids: list[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("member_ids", "member_pids"),
    )
    row_reveal_mm: float = DEFAULT_ROW_REVEAL_MM
    lock_total_length: bool = False
    total_length_mm: float | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("member_ids", mode="before")
    @classmethod
    def sanitize_member_ids(cls, v: Any) -> list[int]:
        """Keep positive integer ids, first occurrence wins."""
        if not isinstance(v, list):
            return []
        seen: list[int] = []
        for item in v:
            number = _finite_number(item)
            if number is None or number != int(number):
                continue
            pid = int(number)
            if pid > 0 and pid not in seen:
                seen.append(pid)
        return seen

    @field_validator("row_reveal_mm", mode="before")
    @classmethod
    def sanitize_reveal(cls, v: Any) -> float:
        number = _finite_number(v)
        if number is None or number < 0:
            return DEFAULT_ROW_REVEAL_MM
        return number

    @field_validator("lock_total_length", mode="before")
    @classmethod
    def sanitize_lock(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("total_length_mm", mode="before")
    @classmethod
    def sanitize_total_length(cls, v: Any) -> float | None:
        number = _finite_number(v)
        if number is None or number <= 0:
            return None
        return number

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def sanitize_timestamp(cls, v: Any) -> str | None:
        if not isinstance(v, str) or not v:
            return None
        try:
            datetime.fromisoformat(v)
        except ValueError:
            return None
        return v

    def to_row(self, row_id: str) -> Row:
        return Row(
            row_id=row_id,
            member_ids=list(self.member_ids),
            row_reveal_mm=self.row_reveal_mm,
            lock_total_length=self.lock_total_length,
            total_length_mm=self.total_length_mm,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_row(cls, row: Row) -> RowRecord:
        return cls(
            row_id=row.row_id,
            member_ids=list(row.member_ids),
            row_reveal_mm=row.row_reveal_mm,
            lock_total_length=row.lock_total_length,
            total_length_mm=row.total_length_mm,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class RegistryDocument(BaseModel):
    """The whole persisted registry."""

    model_config = ConfigDict(extra="ignore")

    schema_version: int = SCHEMA_VERSION
    rows: dict[str, RowRecord] = Field(default_factory=dict)


def migrate(state: dict[str, Any]) -> bool:
    """Bring a raw document up to the current schema version in place.

    Returns:
        True if the document was modified.
    """
    version = state.get("schema_version")
    if isinstance(version, bool) or not isinstance(version, int):
        state["schema_version"] = SCHEMA_VERSION
        return True
    if version > SCHEMA_VERSION:
        logger.warning(
            f"Rows schema version {version} is newer than supported {SCHEMA_VERSION}"
        )
        return False
    if version < SCHEMA_VERSION:
        state["schema_version"] = SCHEMA_VERSION
        return True
    return False


class JsonRegistryStore:
    """Reads and writes the registry document on a host model attribute."""

    def __init__(
        self,
        dictionary: str = REGISTRY_DICTIONARY,
        key: str = REGISTRY_JSON_KEY,
    ) -> None:
        self.dictionary = dictionary
        self.key = key

    def read_state(self, model: HostModelProtocol) -> tuple[dict[str, Any], bool]:
        """Parse the raw document, falling back to an empty one."""
        raw = model.get_attribute(self.dictionary, self.key)
        if raw is None:
            return self._empty_state(), False
        if not isinstance(raw, str) or not raw:
            logger.warning("Rows registry document is not a JSON string; resetting")
            return self._empty_state(), True
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Rows registry document is not valid JSON ({e.msg}); resetting")
            return self._empty_state(), True
        if not isinstance(parsed, dict):
            logger.warning("Rows registry document is not a JSON object; resetting")
            return self._empty_state(), True
        return parsed, False

    def load(self, model: HostModelProtocol) -> tuple[dict[str, Row], bool]:
        state, changed = self.read_state(model)
        changed |= migrate(state)

        raw_rows = state.get("rows")
        if not isinstance(raw_rows, dict):
            changed |= raw_rows is not None
            raw_rows = {}

        rows: dict[str, Row] = {}
        for row_id, payload in raw_rows.items():
            if not isinstance(row_id, str) or not row_id or not isinstance(payload, dict):
                changed = True
                continue
            try:
                record = RowRecord.model_validate(payload)
            except ValidationError as e:
                logger.warning(f"Dropping unreadable row {row_id}: {e.error_count()} error(s)")
                changed = True
                continue
            if record.row_id != row_id:
                record.row_id = row_id
            if record.model_dump(mode="json") != payload:
                changed = True
            rows[row_id] = record.to_row(row_id)

        return rows, changed

    def save(self, model: HostModelProtocol, rows: dict[str, Row]) -> None:
        document = RegistryDocument(
            schema_version=SCHEMA_VERSION,
            rows={row_id: RowRecord.from_row(row) for row_id, row in rows.items()},
        )
        model.set_attribute(
            self.dictionary, self.key, json.dumps(document.model_dump(mode="json"))
        )

    def dump(self, model: HostModelProtocol) -> dict[str, Any]:
        """Raw parsed document, for inspection and tests."""
        state, _ = self.read_state(model)
        return state

    @staticmethod
    def _empty_state() -> dict[str, Any]:
        return {"schema_version": SCHEMA_VERSION, "rows": {}}
