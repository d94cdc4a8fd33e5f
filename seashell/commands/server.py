"""服务器管理命令"""

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
from seashell.core.errors import UnknownServer
from seashell.ui.formatter import OutputFormatter


def scope_options(func):
    func = click.option("--global", "-g", "global_", is_flag=True, help="使用默认作用域")(func)
    func = click.option("--scope", "-s", help="作用域（默认为当前作用域）")(func)
    return func


@click.group()
def server_command():
    """服务器管理命令"""
    pass


@server_command.command("add")
@click.argument("name")
@click.argument("address")
@scope_options
@fieldset_options
@click.pass_context
@handle_errors
def add_server(ctx, name, address, scope, global_, **kwargs):
    """添加服务器，NAME 可以是别名或正则表达式，ADDRESS 中的 $h 会被替换为输入的别名"""

    workspace = get_workspace(ctx)
    scope = workspace.target_scope(scope, global_)
    workspace.mutator().add_server(scope, name, address, collect_fields(kwargs))
    console.print(
        f"[green]✅ Server '{escape(name)}' added successfully in scope '{escape(scope)}'[/green]"
    )


@server_command.command("update")
@click.argument("name")
@click.option("--address", "-a", help="更新服务器地址")
@scope_options
@fieldset_options
@unset_option
@click.pass_context
@handle_errors
def update_server(ctx, name, address, scope, global_, unset, **kwargs):
    """更新服务器配置"""

    changes = collect_fields(kwargs, unset)
    if address is None and not changes:
        console.print("[yellow]No updates specified[/yellow]")
        return

    workspace = get_workspace(ctx)
    scope = workspace.target_scope(scope, global_)
    workspace.mutator().update_server(scope, name, address, changes)
    console.print(
        f"[green]✅ Server '{escape(name)}' updated successfully in scope '{escape(scope)}'[/green]"
    )


@server_command.command("rm")
@click.argument("name")
@scope_options
@click.option("--force", "-f", is_flag=True, help="强制删除，不询问确认")
@click.pass_context
@handle_errors
def remove_server(ctx, name, scope, global_, force):
    """删除服务器配置"""

    workspace = get_workspace(ctx)
    scope = workspace.target_scope(scope, global_)
    if not force and not click.confirm(
        f"Are you sure you want to delete server '{name}' in scope '{scope}'?"
    ):
        console.print("[yellow]Operation cancelled[/yellow]")
        return

    workspace.mutator().remove_server(scope, name)
    console.print(
        f"[green]✅ Server '{escape(name)}' deleted successfully from scope '{escape(scope)}'[/green]"
    )


@server_command.command("show")
@click.argument("name")
@scope_options
@click.pass_context
@handle_errors
def show_server(ctx, name, scope, global_):
    """显示服务器配置"""

    workspace = get_workspace(ctx)
    scope = workspace.target_scope(scope, global_)
    store = workspace.load()
    store.get_scope(scope)
    entry = store.find_entry(scope, name)
    if entry is None:
        raise UnknownServer(scope, name)
    OutputFormatter(console=console).print_entry(scope, entry)
