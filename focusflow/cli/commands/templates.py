"""
FILE: focusflow/cli/commands/templates.py
PURPOSE: Template commands (template ls, save, apply, rename, rm)
"""

import json

import typer

from ..app import console, fail, open_store, template_app
from ...core.exceptions import FocusFlowError, TemplateNotFoundError
from ...formatting import HistoryFormatter
from ...utils import resolve_ref, short_id


def find_template(store, ref: str):
    return resolve_ref(store.templates(), ref, TemplateNotFoundError, by_name=True)


def find_custom_template(store, ref: str):
    return resolve_ref(store.state.custom_templates, ref, TemplateNotFoundError, by_name=True)


@template_app.command("ls")
def template_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List built-in and custom templates."""
    try:
        with open_store() as store:
            templates = store.templates()
            custom_ids = [t.id for t in store.state.custom_templates]

        if json_output:
            console.print_json(json.dumps([t.to_dict() for t in templates]))
        else:
            console.print(HistoryFormatter.create_template_table(templates, custom_ids))
    except FocusFlowError as e:
        fail(str(e))


@template_app.command("save")
def template_save(
    name: str = typer.Argument(..., help="Template name"),
):
    """Save the current zone layout as a custom template."""
    try:
        with open_store() as store:
            template = store.save_custom_template(name)
        console.print(
            f"[green]✓ Saved template [bold]{short_id(template.id)}[/bold]:[/green] "
            f"{template.name} [dim]({len(template.zones)} zones)[/dim]"
        )
    except FocusFlowError as e:
        fail(str(e))


@template_app.command("apply")
def template_apply(
    template_ref: str = typer.Argument(..., help="Template id or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Replace the current zones with a template's zones. Removes all tasks."""
    try:
        with open_store() as store:
            template = find_template(store, template_ref)
            if store.tasks and not yes:
                typer.confirm(
                    f"This removes {len(store.tasks)} task(s). Continue?", abort=True
                )
            store.apply_template(template.id)
        console.print(f"[green]✓ Applied template[/green] {template.name}")
    except FocusFlowError as e:
        fail(str(e))


@template_app.command("rename")
def template_rename(
    template_ref: str = typer.Argument(..., help="Custom template id or name"),
    name: str = typer.Argument(..., help="New name"),
):
    """Rename a custom template."""
    try:
        with open_store() as store:
            template = find_custom_template(store, template_ref)
            store.rename_custom_template(template.id, name)
        console.print(f"[green]✓ Renamed template[/green] {template.name} → {name.strip()}")
    except FocusFlowError as e:
        fail(str(e))


@template_app.command("rm")
def template_rm(
    template_ref: str = typer.Argument(..., help="Custom template id or name"),
):
    """Delete a custom template."""
    try:
        with open_store() as store:
            template = find_custom_template(store, template_ref)
            store.delete_custom_template(template.id)
        console.print(f"[green]✓ Deleted template[/green] {template.name}")
    except FocusFlowError as e:
        fail(str(e))
