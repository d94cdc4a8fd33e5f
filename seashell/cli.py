"""主命令行接口"""

import logging
from pathlib import Path

import click

from seashell import __version__
from seashell.commands.config import (
    default_command,
    edit_command,
    ls_command,
    test_command,
    use_command,
)
from seashell.commands.connect import connect_command, resolve_command
from seashell.commands.scope import scope_command
from seashell.commands.server import server_command

LOG_FORMAT = "%(asctime)s [%(name)s][%(levelname)s] %(message)s"


def setup_logging(level: str):
    logger = logging.getLogger("seashell")
    logger.setLevel(level)
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    logger.addHandler(handler)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    envvar="SEASHELL_HOME",
    help="配置目录路径 (默认 ~/.seashell)",
)
@click.option(
    "--strict/--lenient",
    default=True,
    help="是否拒绝配置中的未知字段",
)
@click.option(
    "-l",
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
)
@click.pass_context
def cli(ctx, config_dir, strict, log_level):
    """Seashell - SSH client with scoped server configuration

    Define reusable connection defaults (scopes), name servers inside each
    scope and connect to them by alias or regular-expression pattern.
    """
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = Path(config_dir) if config_dir else None
    ctx.obj["strict"] = strict


# 注册子命令
cli.add_command(connect_command, name="connect")
cli.add_command(resolve_command, name="resolve")
cli.add_command(use_command, name="use")
cli.add_command(ls_command, name="ls")
cli.add_command(default_command, name="default")
cli.add_command(scope_command, name="scope")
cli.add_command(server_command, name="server")
cli.add_command(test_command, name="test")
cli.add_command(edit_command, name="edit")


def main():
    """主入口函数"""
    cli()


if __name__ == "__main__":
    main()
