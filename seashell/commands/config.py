"""配置管理命令"""

import click
from rich.markup import escape

from seashell.commands.options import (
    collect_fields,
    console,
    err_console,
    fieldset_options,
    get_workspace,
    handle_errors,
    unset_option,
)
from seashell.core.errors import SeashellError, UnknownScope
from seashell.core.models import DEFAULT_SCOPE
from seashell.ui.formatter import OutputFormatter


@click.command()
@click.argument("scope", required=False)
@click.option("--global", "-g", "global_", is_flag=True, help="切换回默认作用域")
@click.pass_context
@handle_errors
def use_command(ctx, scope, global_):
    """切换当前作用域"""

    workspace = get_workspace(ctx)
    if not scope and not global_:
        console.print(f"Current scope: [magenta]{escape(workspace.current_scope())}[/magenta]")
        return

    if global_ or scope == DEFAULT_SCOPE:
        workspace.storage.save_context(None)
        console.print("[green]✅ Switched to the default scope[/green]")
        return

    if not workspace.load().has_scope(scope):
        raise UnknownScope(scope)
    workspace.storage.save_context(scope)
    console.print(f"[green]✅ Switched to scope '{escape(scope)}'[/green]")


@click.command()
@click.option("--all", "-a", "all_", is_flag=True, help="显示所有服务器")
@click.option("--scopes", "-s", is_flag=True, help="显示所有作用域")
@click.pass_context
@handle_errors
def ls_command(ctx, all_, scopes):
    """列出服务器"""

    workspace = get_workspace(ctx)
    store = workspace.load()
    current = workspace.current_scope()
    formatter = OutputFormatter(console=console)

    if all_:
        formatter.print_all_servers(store)
    elif scopes:
        formatter.print_scopes(store, current)
    elif current != DEFAULT_SCOPE and store.has_scope(current):
        formatter.print_scope_servers(store, current)
    else:
        formatter.print_all_servers(store)


@click.command()
@fieldset_options
@unset_option
@click.option("--clear", is_flag=True, help="清空所有全局默认值")
@click.pass_context
@handle_errors
def default_command(ctx, unset, clear, **kwargs):
    """设置全局默认连接参数"""

    workspace = get_workspace(ctx)
    changes = collect_fields(kwargs, unset)

    if clear:
        workspace.mutator().clear_defaults()
        console.print("[green]✅ Default settings cleared[/green]")
        return

    if not changes:
        OutputFormatter(console=console).print_scopes(workspace.load(), workspace.current_scope())
        return

    workspace.mutator().set_defaults(changes)
    console.print("[green]✅ Default settings updated[/green]")


@click.command()
@click.pass_context
def test_command(ctx):
    """检查配置文件"""

    workspace = get_workspace(ctx)
    path = workspace.storage.config_path
    try:
        workspace.load()
    except SeashellError as e:
        err_console.print(f"[red]❌ {escape(str(e))}[/red]")
        ctx.exit(1)
    console.print(f"[green]✅ The configuration file {escape(str(path))} syntax is ok[/green]")


@click.command()
@click.pass_context
@handle_errors
def edit_command(ctx):
    """用 $EDITOR 编辑配置文件"""

    workspace = get_workspace(ctx)
    workspace.storage.ensure_config_dir()
    click.edit(filename=str(workspace.storage.config_path))
    ctx.invoke(test_command)
