"""Application commands (use cases) for row management.

Commands translate persistent ids coming from a front end into host
objects, call the domain services and return ``RowOperationOutput`` DTOs.
Engine errors never escape a command: they are reported in the output's
``errors`` list with the engine's error code.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from cabinet_rows.contracts.dtos import RowOperationOutput
from cabinet_rows.domain.errors import RowError
from cabinet_rows.domain.value_objects import ReflowScope

if TYPE_CHECKING:
    from cabinet_rows.application.factory import ServiceFactory
    from cabinet_rows.contracts.protocols import PlacedObjectProtocol
    from cabinet_rows.domain.entities import Row


class _RowCommand:
    """Shared plumbing: id resolution, snapshots and error capture."""

    def __init__(self, factory: ServiceFactory) -> None:
        self.factory = factory

    @property
    def model(self):
        return self.factory.model

    def _resolve(self, persistent_ids: Sequence[int]) -> list[PlacedObjectProtocol]:
        objects: list[PlacedObjectProtocol] = []
        for pid in persistent_ids:
            try:
                entity = self.model.find_entity_by_persistent_id(int(pid))
            except (TypeError, ValueError):
                entity = None
            if entity is None:
                raise RowError("unknown_object", f"Object {pid} not found.")
            objects.append(entity)
        return objects

    def _output_for(self, row: Row | None, row_id: str | None = None) -> RowOperationOutput:
        if row is None:
            return RowOperationOutput(row_id=row_id)
        return RowOperationOutput(
            row=self.factory.get_snapshot_builder().build(row),
            row_id=row.row_id,
        )

    @staticmethod
    def _run(action: Callable[[], RowOperationOutput]) -> RowOperationOutput:
        try:
            return action()
        except RowError as e:
            return RowOperationOutput(errors=[e.message], error_code=e.code)


class CreateRowCommand(_RowCommand):
    """Create a row from a set of placed cabinets."""

    def execute(
        self,
        member_ids: Sequence[int],
        row_reveal_mm: float | None = None,
        lock_total_length: bool = False,
    ) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            service = self.factory.get_membership_service()
            row_id = service.create_from_selection(
                self._resolve(member_ids),
                row_reveal_mm=row_reveal_mm,
                lock_total_length=lock_total_length,
            )
            return self._output_for(service.get_row(row_id))

        return self._run(action)


class EditRowMembersCommand(_RowCommand):
    """Add, remove and reorder row members."""

    def add(self, row_id: str, member_ids: Sequence[int]) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            service = self.factory.get_membership_service()
            row = service.add_members(row_id, self._resolve(member_ids))
            return self._output_for(row)

        return self._run(action)

    def remove(self, row_id: str, member_ids: Sequence[int]) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            service = self.factory.get_membership_service()
            row = service.remove_members(row_id, self._resolve(member_ids))
            return self._output_for(row, row_id=row_id)

        return self._run(action)

    def reorder(self, row_id: str, member_ids: Sequence[int]) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            service = self.factory.get_membership_service()
            return self._output_for(service.reorder(row_id, list(member_ids)))

        return self._run(action)


class UpdateRowCommand(_RowCommand):
    """Change row-level settings or per-member reveal opt-outs."""

    def execute(
        self,
        row_id: str,
        row_reveal_mm: float | None = None,
        lock_total_length: bool | None = None,
        total_length_mm: float | None = None,
    ) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            service = self.factory.get_membership_service()
            if total_length_mm is None:
                row = service.update(
                    row_id,
                    row_reveal_mm=row_reveal_mm,
                    lock_total_length=lock_total_length,
                )
            else:
                row = service.update(
                    row_id,
                    row_reveal_mm=row_reveal_mm,
                    lock_total_length=lock_total_length,
                    total_length_mm=total_length_mm,
                )
            return self._output_for(row)

        return self._run(action)

    def set_use_row_reveal(self, member_id: int, enabled: bool) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            (member,) = self._resolve([member_id])
            row = self.factory.get_membership_service().set_use_row_reveal(member, enabled)
            return self._output_for(row)

        return self._run(action)

    def delete(self, row_id: str) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            self.factory.get_membership_service().delete_row(row_id)
            return RowOperationOutput(row_id=row_id)

        return self._run(action)


class ReflowRowCommand(_RowCommand):
    """Resize a row member and reflow its row."""

    def execute(
        self,
        member_id: int,
        new_width_mm: float,
        scope: ReflowScope | str = ReflowScope.INSTANCE_ONLY,
    ) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            (member,) = self._resolve([member_id])
            row = self.factory.get_reflow_engine().apply_width_change(
                member, new_width_mm, scope
            )
            return self._output_for(row)

        return self._run(action)

    def execute_at(
        self,
        row_id: str,
        index: int,
        new_width_mm: float,
        scope: ReflowScope | str = ReflowScope.INSTANCE_ONLY,
    ) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            row = self.factory.get_reflow_engine().reflow_member_at(
                row_id, index, new_width_mm, scope
            )
            return self._output_for(row)

        return self._run(action)


class RowQueryCommand(_RowCommand):
    """Read-only access to rows, highlights and selection expansion."""

    def list_rows(self) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            builder = self.factory.get_snapshot_builder()
            rows = self.factory.get_registry().list_rows()
            return RowOperationOutput(rows=[builder.build(row) for row in rows])

        return self._run(action)

    def get_row(self, row_id: str) -> RowOperationOutput:
        return self._run(
            lambda: self._output_for(self.factory.get_registry().get_row(row_id))
        )

    def for_member(self, member_id: int) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            (member,) = self._resolve([member_id])
            membership = self.factory.get_registry().for_instance(member)
            if membership is None:
                raise RowError("not_in_row", f"Object {member_id} is not part of a row.")
            return self._output_for(self.factory.get_registry().get_row(membership.row_id))

        return self._run(action)

    def highlight(self, row_id: str, enabled: bool = True) -> RowOperationOutput:
        def action() -> RowOperationOutput:
            geometry = self.factory.get_highlighter().highlight(row_id, enabled)
            return RowOperationOutput(row_id=row_id, highlight=geometry)

        return self._run(action)

    def select(self, member_ids: Sequence[int]) -> RowOperationOutput:
        """Replace the selection and let the selection bridge react to it."""

        def action() -> RowOperationOutput:
            self.factory.get_selection_bridge()
            objects = self._resolve(member_ids)
            selection = self.model.selection
            selection.clear()
            for obj in objects:
                selection.add(obj)
            return RowOperationOutput(
                selection_ids=[obj.persistent_id for obj in selection]
            )

        return self._run(action)
