"""Typer CLI for managing cabinet rows in a JSON model file."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from cabinet_rows.application import ServiceFactory
from cabinet_rows.application.config import (
    ConfigError,
    RowsConfiguration,
    load_config,
    merge_config_with_cli,
)
from cabinet_rows.contracts.dtos import RowOperationOutput
from cabinet_rows.domain.value_objects import ReflowScope
from cabinet_rows.infrastructure import (
    HighlightFormatter,
    InMemoryModel,
    ModelFileError,
    RowDetailFormatter,
    RowDiagramFormatter,
    RowListFormatter,
    load_model,
    save_model,
)
from cabinet_rows.cli.commands import validate_command

DEFAULT_MODEL_FILE = Path("rows-model.json")


@dataclass
class CliState:
    """Options shared by every subcommand."""

    model_file: Path = DEFAULT_MODEL_FILE
    config: RowsConfiguration | None = None


app = typer.Typer(
    name="cabinet-rows",
    help="Group placed cabinets into rows and keep their gaps consistent.",
)

# Register validate command
app.command(name="validate-config")(validate_command)


@app.callback()
def main(
    ctx: typer.Context,
    model_file: Annotated[
        Path,
        typer.Option("--model", "-m", help="Path to the JSON model file"),
    ] = DEFAULT_MODEL_FILE,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to JSON settings file"),
    ] = None,
    reveal: Annotated[
        float | None,
        typer.Option("--default-reveal", help="Default row reveal in mm (overrides config)"),
    ] = None,
    min_width: Annotated[
        float | None,
        typer.Option("--min-width", help="Minimum filler width in mm (overrides config)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Group placed cabinets into rows and keep their gaps consistent."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    config = RowsConfiguration()
    if config_file is not None:
        try:
            config = load_config(config_file)
        except ConfigError as e:
            typer.echo(f"Configuration error: {e}", err=True)
            raise typer.Exit(code=1)
    try:
        config = merge_config_with_cli(
            config, default_row_reveal_mm=reveal, min_member_width_mm=min_width
        )
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            typer.echo(f"Configuration error: {field}: {error['msg']}", err=True)
        raise typer.Exit(code=1)
    ctx.obj = CliState(model_file=model_file, config=config)


def _state(ctx: typer.Context) -> CliState:
    state = ctx.obj
    if not isinstance(state, CliState):
        state = CliState(config=RowsConfiguration())
        ctx.obj = state
    return state


def _open_model(state: CliState) -> InMemoryModel:
    try:
        return load_model(state.model_file)
    except ModelFileError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _save(model: InMemoryModel, state: CliState) -> None:
    try:
        save_model(model, state.model_file)
    except ModelFileError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _factory(ctx: typer.Context) -> tuple[ServiceFactory, CliState]:
    state = _state(ctx)
    model = _open_model(state)
    return ServiceFactory(model=model, config=state.config or RowsConfiguration()), state


def _check(result: RowOperationOutput) -> None:
    if not result.is_valid:
        for error in result.errors:
            typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1)


def _finish(
    factory: ServiceFactory, state: CliState, result: RowOperationOutput, as_json: bool = False
) -> None:
    _check(result)
    _save(factory.model, state)
    if result.row is not None:
        if as_json:
            typer.echo(json.dumps(_row_payload(result), indent=2))
        else:
            typer.echo(RowDetailFormatter().format(result.row))
    elif result.row_id is not None:
        typer.echo(f"Row {result.row_id} no longer exists.")


def _row_payload(result: RowOperationOutput) -> dict:
    row = result.row
    assert row is not None
    return {
        "row_id": row.row_id,
        "member_ids": row.member_ids,
        "widths_mm": row.widths_mm,
        "positions_mm": row.positions_mm,
        "gaps_mm": list(row.gaps_mm),
        "row_reveal_mm": row.row_reveal_mm,
        "lock_total_length": row.lock_total_length,
        "total_length_mm": row.total_length_mm,
        "total_span_mm": row.total_span_mm,
    }


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite an existing model file")
    ] = False,
) -> None:
    """Create an empty model file."""
    state = _state(ctx)
    if state.model_file.exists() and not force:
        typer.echo(f"Error: {state.model_file} already exists (use --force)", err=True)
        raise typer.Exit(code=1)
    _save(InMemoryModel(), state)
    typer.echo(f"Created {state.model_file}")


@app.command()
def place(
    ctx: typer.Context,
    width: Annotated[float, typer.Argument(help="Cabinet width in mm")],
    x: Annotated[float, typer.Option("--x", help="Start along the row axis in mm")] = 0.0,
    y: Annotated[float, typer.Option("--y", help="Depth offset in mm")] = 0.0,
    z: Annotated[float, typer.Option("--z", help="Elevation in mm")] = 0.0,
    definition: Annotated[
        str | None,
        typer.Option("--definition", "-d", help="Place another instance of this definition"),
    ] = None,
    not_cabinet: Annotated[
        bool, typer.Option("--not-cabinet", help="Place a non-cabinet object")
    ] = False,
    locked: Annotated[bool, typer.Option("--locked", help="Place the object locked")] = False,
) -> None:
    """Place a cabinet in the model and print its persistent id."""
    state = _state(ctx)
    model = _open_model(state)
    try:
        if definition is None:
            entity = model.place_cabinet(
                width, x, y, z, is_cabinet=not not_cabinet, locked=locked
            )
        else:
            entity = model.place(definition, x, y, z, locked=locked)
    except (KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    _save(model, state)
    typer.echo(f"Placed {entity.persistent_id} (definition {entity.definition_id})")


@app.command(name="list")
def list_rows(ctx: typer.Context) -> None:
    """List all rows."""
    factory, state = _factory(ctx)
    result = factory.create_query_command().list_rows()
    _check(result)
    _save(factory.model, state)
    typer.echo(RowListFormatter().format(result.rows))


@app.command()
def show(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
    diagram: Annotated[bool, typer.Option("--diagram", help="Also print an ASCII strip")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False,
) -> None:
    """Show one row."""
    factory, state = _factory(ctx)
    result = factory.create_query_command().get_row(row_id)
    _finish(factory, state, result, as_json=as_json)
    if diagram and not as_json:
        typer.echo()
        typer.echo(RowDiagramFormatter().format(result.row))


@app.command()
def create(
    ctx: typer.Context,
    member_ids: Annotated[list[int], typer.Argument(help="Persistent ids of the cabinets")],
    reveal: Annotated[
        float | None, typer.Option("--reveal", "-r", help="Row reveal in mm")
    ] = None,
    lock: Annotated[bool, typer.Option("--lock", help="Lock the row's total length")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False,
) -> None:
    """Create a row from placed cabinets."""
    factory, state = _factory(ctx)
    result = factory.create_create_command().execute(
        member_ids, row_reveal_mm=reveal, lock_total_length=lock
    )
    _finish(factory, state, result, as_json=as_json)


@app.command()
def add(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
    member_ids: Annotated[list[int], typer.Argument(help="Persistent ids to append")],
) -> None:
    """Append cabinets to a row."""
    factory, state = _factory(ctx)
    _finish(factory, state, factory.create_members_command().add(row_id, member_ids))


@app.command()
def remove(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
    member_ids: Annotated[list[int], typer.Argument(help="Persistent ids to remove")],
) -> None:
    """Remove cabinets from a row."""
    factory, state = _factory(ctx)
    _finish(factory, state, factory.create_members_command().remove(row_id, member_ids))


@app.command()
def reorder(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
    member_ids: Annotated[list[int], typer.Argument(help="All member ids in the new order")],
) -> None:
    """Reorder the members of a row."""
    factory, state = _factory(ctx)
    _finish(factory, state, factory.create_members_command().reorder(row_id, member_ids))


@app.command()
def update(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
    reveal: Annotated[
        float | None, typer.Option("--reveal", "-r", help="Row reveal in mm")
    ] = None,
    lock: Annotated[
        bool | None,
        typer.Option("--lock/--unlock", help="Lock or unlock the row's total length"),
    ] = None,
    total_length: Annotated[
        float | None, typer.Option("--total-length", help="Locked total length in mm")
    ] = None,
) -> None:
    """Change row settings."""
    factory, state = _factory(ctx)
    result = factory.create_update_command().execute(
        row_id, row_reveal_mm=reveal, lock_total_length=lock, total_length_mm=total_length
    )
    _finish(factory, state, result)


@app.command()
def delete(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
) -> None:
    """Dissolve a row, leaving its cabinets in place."""
    factory, state = _factory(ctx)
    _finish(factory, state, factory.create_update_command().delete(row_id))


@app.command()
def reveal(
    ctx: typer.Context,
    member_id: Annotated[int, typer.Argument(help="Persistent id of a row member")],
    use_row_reveal: Annotated[
        bool,
        typer.Option("--row/--legacy", help="Use the row reveal or the legacy edge reveal"),
    ] = True,
) -> None:
    """Opt a member in or out of its row's reveal."""
    factory, state = _factory(ctx)
    result = factory.create_update_command().set_use_row_reveal(member_id, use_row_reveal)
    _check(result)
    _save(factory.model, state)
    if result.row is None:
        typer.echo(f"Object {member_id} is not part of a row; preference saved.")
    else:
        typer.echo(RowDetailFormatter().format(result.row))


@app.command()
def reflow(
    ctx: typer.Context,
    member_id: Annotated[int, typer.Argument(help="Persistent id of the member to resize")],
    width: Annotated[float, typer.Argument(help="New width in mm")],
    scope: Annotated[
        ReflowScope,
        typer.Option("--scope", "-s", help="Resize only this instance or every instance"),
    ] = ReflowScope.INSTANCE_ONLY,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False,
) -> None:
    """Resize a row member and reflow its row."""
    factory, state = _factory(ctx)
    result = factory.create_reflow_command().execute(member_id, width, scope)
    _finish(factory, state, result, as_json=as_json)


@app.command()
def highlight(
    ctx: typer.Context,
    row_id: Annotated[str, typer.Argument(help="Row id")],
) -> None:
    """Print the highlight outline of a row."""
    factory, _ = _factory(ctx)
    result = factory.create_query_command().highlight(row_id, True)
    _check(result)
    typer.echo(HighlightFormatter().format(result.highlight))


@app.command()
def select(
    ctx: typer.Context,
    member_ids: Annotated[list[int], typer.Argument(help="Persistent ids to select")],
    auto_select: Annotated[
        bool | None,
        typer.Option("--auto-select/--no-auto-select", help="Expand to the whole row"),
    ] = None,
) -> None:
    """Select objects and print the resulting selection."""
    state = _state(ctx)
    config = state.config or RowsConfiguration()
    if auto_select is not None:
        config = merge_config_with_cli(config, auto_select_row=auto_select)
    factory = ServiceFactory(model=_open_model(state), config=config)
    result = factory.create_query_command().select(member_ids)
    _check(result)
    typer.echo("Selection: " + " ".join(str(pid) for pid in result.selection_ids))


if __name__ == "__main__":
    app()
