"""Service factory for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cabinet_rows.application.config.schema import RowsConfiguration

if TYPE_CHECKING:
    from cabinet_rows.application.commands import (
        CreateRowCommand,
        EditRowMembersCommand,
        ReflowRowCommand,
        RowQueryCommand,
        UpdateRowCommand,
    )
    from cabinet_rows.application.snapshots import RowSnapshotBuilder
    from cabinet_rows.contracts.protocols import (
        HighlightProviderProtocol,
        HostModelProtocol,
        RegistryStoreProtocol,
    )
    from cabinet_rows.domain.services import (
        MembershipService,
        ReflowEngine,
        RevealCalculator,
        RowHighlighter,
        RowRegistry,
        SelectionBridge,
    )


@dataclass
class ServiceFactory:
    """Creates and caches the row services for one host model.

    All services built by one factory share a registry and a reveal
    calculator configured from ``config``.

    Example:
        ```python
        factory = ServiceFactory(model=InMemoryModel())
        command = factory.create_reflow_command()
        output = command.execute(member_id=2, new_width_mm=450.0)
        ```
    """

    model: HostModelProtocol
    config: RowsConfiguration = field(default_factory=RowsConfiguration)
    highlight_provider: HighlightProviderProtocol | None = None

    _store: RegistryStoreProtocol | None = field(default=None, init=False, repr=False)
    _registry: RowRegistry | None = field(default=None, init=False, repr=False)
    _calculator: RevealCalculator | None = field(default=None, init=False, repr=False)
    _membership: MembershipService | None = field(default=None, init=False, repr=False)
    _reflow: ReflowEngine | None = field(default=None, init=False, repr=False)
    _selection: SelectionBridge | None = field(default=None, init=False, repr=False)
    _highlighter: RowHighlighter | None = field(default=None, init=False, repr=False)
    _snapshots: RowSnapshotBuilder | None = field(default=None, init=False, repr=False)

    def get_registry_store(self) -> RegistryStoreProtocol:
        if self._store is None:
            from cabinet_rows.infrastructure.registry_store import JsonRegistryStore

            self._store = JsonRegistryStore()
        return self._store

    def get_registry(self) -> RowRegistry:
        if self._registry is None:
            from cabinet_rows.domain.services import RowRegistry

            self._registry = RowRegistry(self.model, self.get_registry_store())
        return self._registry

    def get_reveal_calculator(self) -> RevealCalculator:
        if self._calculator is None:
            from cabinet_rows.domain.services import RevealCalculator

            self._calculator = RevealCalculator(
                legacy_edge_reveal_mm=self.config.rows.legacy_edge_reveal_mm
            )
        return self._calculator

    def get_membership_service(self) -> MembershipService:
        if self._membership is None:
            from cabinet_rows.domain.services import MembershipService

            self._membership = MembershipService(
                self.get_registry(),
                self.get_reveal_calculator(),
                default_row_reveal_mm=self.config.rows.default_row_reveal_mm,
                collinear_tolerance_mm=self.config.rows.collinear_tolerance_mm,
            )
        return self._membership

    def get_reflow_engine(self) -> ReflowEngine:
        if self._reflow is None:
            from cabinet_rows.domain.services import ReflowEngine

            self._reflow = ReflowEngine(
                self.get_registry(),
                self.get_reveal_calculator(),
                min_member_width_mm=self.config.rows.min_member_width_mm,
            )
        return self._reflow

    def get_selection_bridge(self) -> SelectionBridge:
        if self._selection is None:
            from cabinet_rows.domain.services import SelectionBridge

            self._selection = SelectionBridge(
                self.get_registry(), enabled=self.config.rows.auto_select_row
            )
        return self._selection

    def get_highlighter(self) -> RowHighlighter:
        if self._highlighter is None:
            from cabinet_rows.domain.services import RowHighlighter

            provider = self.highlight_provider
            if provider is None:
                from cabinet_rows.infrastructure.highlight import RecordingHighlightProvider

                provider = RecordingHighlightProvider()
                self.highlight_provider = provider
            self._highlighter = RowHighlighter(self.get_registry(), provider)
        return self._highlighter

    def get_snapshot_builder(self) -> RowSnapshotBuilder:
        if self._snapshots is None:
            from cabinet_rows.application.snapshots import RowSnapshotBuilder

            self._snapshots = RowSnapshotBuilder(
                self.get_registry(), self.get_reveal_calculator()
            )
        return self._snapshots

    def create_create_command(self) -> CreateRowCommand:
        from cabinet_rows.application.commands import CreateRowCommand

        return CreateRowCommand(self)

    def create_members_command(self) -> EditRowMembersCommand:
        from cabinet_rows.application.commands import EditRowMembersCommand

        return EditRowMembersCommand(self)

    def create_update_command(self) -> UpdateRowCommand:
        from cabinet_rows.application.commands import UpdateRowCommand

        return UpdateRowCommand(self)

    def create_reflow_command(self) -> ReflowRowCommand:
        from cabinet_rows.application.commands import ReflowRowCommand

        return ReflowRowCommand(self)

    def create_query_command(self) -> RowQueryCommand:
        from cabinet_rows.application.commands import RowQueryCommand

        return RowQueryCommand(self)
