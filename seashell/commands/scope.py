"""作用域管理命令"""

import click
from rich.markup import escape

from seashell.commands.options import (
    collect_fields,
    console,
    fieldset_options,
    get_workspace,
    handle_errors,
    unset_option,
)
from seashell.core.models import DEFAULT_SCOPE


@click.group()
def scope_command():
    """作用域管理命令"""
    pass


@scope_command.command("add")
@click.argument("name")
@fieldset_options
@click.pass_context
@handle_errors
def add_scope(ctx, name, **kwargs):
    """添加作用域"""

    get_workspace(ctx).mutator().add_scope(name, collect_fields(kwargs))
    console.print(f"[green]✅ Scope '{escape(name)}' added successfully[/green]")


@scope_command.command("update")
@click.argument("name")
@fieldset_options
@unset_option
@click.pass_context
@handle_errors
def update_scope(ctx, name, unset, **kwargs):
    """修改作用域参数"""

    changes = collect_fields(kwargs, unset)
    if not changes:
        console.print("[yellow]No updates specified[/yellow]")
        return

    get_workspace(ctx).mutator().update_scope(name, changes)
    console.print(f"[green]✅ Scope '{escape(name)}' updated successfully[/green]")


@scope_command.command("rm")
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="强制删除，不询问确认")
@click.pass_context
@handle_errors
def remove_scope(ctx, name, force):
    """删除作用域（会删除其中的所有服务器）"""

    if name == DEFAULT_SCOPE:
        prompt = "Clear all default settings?"
    else:
        prompt = f"Are you sure you want to delete scope '{name}' and all its servers?"
    if not force and not click.confirm(prompt):
        console.print("[yellow]Operation cancelled[/yellow]")
        return

    workspace = get_workspace(ctx)
    workspace.mutator().remove_scope(name)
    if name == DEFAULT_SCOPE:
        console.print("[green]✅ Default settings cleared[/green]")
        return

    if workspace.storage.load_context() == name:
        workspace.storage.save_context(None)
    console.print(f"[green]✅ Scope '{escape(name)}' deleted successfully[/green]")
