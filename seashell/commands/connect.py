"""连接命令"""

import click

from seashell.commands.options import (
    collect_fields,
    console,
    fieldset_options,
    get_workspace,
    handle_errors,
)
from seashell.core.resolver import parse_target
from seashell.core.session import open_session
from seashell.ui.formatter import OutputFormatter


def _resolve(ctx, target, scope, kwargs):
    workspace = get_workspace(ctx)
    store = workspace.load()
    scope = scope or workspace.current_scope()

    parsed = parse_target(target)
    # [user@]alias[:port] 中的值优先于命令行选项
    overrides = workspace.validator.load_fields(
        "command line", {**collect_fields(kwargs), **parsed.overrides().to_dict()}
    )
    return workspace.resolver(store).resolve(scope, parsed.alias, overrides)


@click.command()
@click.argument("target")
@click.argument("command", nargs=-1)
@click.option("--scope", "-s", help="在指定作用域中查找（默认为当前作用域）")
@fieldset_options
@click.pass_context
@handle_errors
def connect_command(ctx, target, command, scope, **kwargs):
    """连接服务器 ([user@]alias[:port])，给出 COMMAND 时执行后退出"""

    profile = _resolve(ctx, target, scope, kwargs)
    exit_status = open_session(profile, " ".join(command) or None)
    ctx.exit(exit_status)


@click.command()
@click.argument("target")
@click.option("--scope", "-s", help="在指定作用域中查找（默认为当前作用域）")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["default", "json", "yaml", "template"]),
    default="default",
    help="输出格式",
)
@click.option("--template", "-T", help="自定义输出模板 (Jinja2)")
@fieldset_options
@click.pass_context
@handle_errors
def resolve_command(ctx, target, scope, output, template, **kwargs):
    """显示别名解析后的连接参数，不建立连接"""

    profile = _resolve(ctx, target, scope, kwargs)
    formatter = OutputFormatter(output, template, console=console)
    if output == "default":
        formatter.print_profile(profile)
    else:
        click.echo(formatter.format_profile(profile))
