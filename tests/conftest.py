"""Pytest configuration and shared fixtures for row engine tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest

from cabinet_rows.application.config import RowsConfiguration
from cabinet_rows.application.factory import ServiceFactory
from cabinet_rows.infrastructure import InMemoryModel, PlacedCabinet


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end tests through the CLI")
    config.addinivalue_line("markers", "slow: tests that take a long time to run")


# =============================================================================
# Host model fixtures
# =============================================================================


PlaceRow = Callable[..., list[PlacedCabinet]]


@pytest.fixture
def model() -> InMemoryModel:
    """An empty in-memory host model."""
    return InMemoryModel()


@pytest.fixture
def place_row(model: InMemoryModel) -> PlaceRow:
    """Place cabinets side by side, separated by ``gap_mm``.

    ``definitions`` lets several positions share a definition: equal keys
    reuse the first definition created for that key.
    """

    def _place(
        widths: Sequence[float],
        gap_mm: float = 2.0,
        start_mm: float = 0.0,
        y: float = 0.0,
        definitions: Sequence[str] | None = None,
    ) -> list[PlacedCabinet]:
        shared: dict[str, str] = {}
        placed: list[PlacedCabinet] = []
        cursor = start_mm + gap_mm
        for index, width in enumerate(widths):
            key = definitions[index] if definitions is not None else None
            if key is not None and key in shared:
                cabinet = model.place(shared[key], cursor, y, 0.0)
            else:
                cabinet = model.place_cabinet(width, cursor, y, 0.0)
                if key is not None:
                    shared[key] = cabinet.definition_id
            placed.append(cabinet)
            cursor += width + gap_mm
        return placed

    return _place


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def config() -> RowsConfiguration:
    return RowsConfiguration()


@pytest.fixture
def factory(model: InMemoryModel, config: RowsConfiguration) -> ServiceFactory:
    """ServiceFactory bound to the test model."""
    return ServiceFactory(model=model, config=config)


@pytest.fixture
def registry(factory: ServiceFactory):
    return factory.get_registry()


@pytest.fixture
def membership(factory: ServiceFactory):
    return factory.get_membership_service()


@pytest.fixture
def reflow(factory: ServiceFactory):
    return factory.get_reflow_engine()


@pytest.fixture
def make_row(membership, place_row: PlaceRow) -> Callable[..., tuple[str, list[PlacedCabinet]]]:
    """Place cabinets and group them into a row. Returns (row_id, cabinets)."""

    def _make(
        widths: Sequence[float],
        row_reveal_mm: float | None = None,
        lock_total_length: bool = False,
        **placement,
    ) -> tuple[str, list[PlacedCabinet]]:
        cabinets = place_row(widths, **placement)
        row_id = membership.create_from_selection(
            cabinets,
            row_reveal_mm=row_reveal_mm,
            lock_total_length=lock_total_length,
        )
        return row_id, cabinets

    return _make
