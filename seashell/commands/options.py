"""命令共用的参数、错误处理和配置加载"""

import functools
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape

from seashell.config.storage import ConfigStorage
from seashell.config.validator import ConfigValidator
from seashell.core.errors import SeashellError
from seashell.core.models import DEFAULT_SCOPE, FIELD_NAMES, LIST_FIELDS, ConfigStore
from seashell.core.mutator import ConfigMutator
from seashell.core.resolver import Resolver

console = Console()
err_console = Console(stderr=True)


class Workspace:
    """一次命令调用使用的存储、校验器和当前作用域"""

    def __init__(self, config_dir: Optional[Path] = None, strict: bool = True):
        self.storage = ConfigStorage(config_dir)
        self.validator = ConfigValidator(strict=strict)

    def load(self) -> ConfigStore:
        return self.validator.validate(self.storage.load())

    def mutator(self) -> ConfigMutator:
        return ConfigMutator(self.storage, self.load(), self.validator)

    def resolver(self, store: ConfigStore) -> Resolver:
        return Resolver(store, known_hosts=str(self.storage.known_hosts_path))

    def current_scope(self) -> str:
        return self.storage.load_context() or DEFAULT_SCOPE

    def target_scope(self, scope: Optional[str], global_: bool) -> str:
        if global_:
            return DEFAULT_SCOPE
        return scope or self.current_scope()


def get_workspace(ctx: click.Context) -> Workspace:
    obj = ctx.find_root().obj or {}
    return Workspace(obj.get("config_dir"), obj.get("strict", True))


def handle_errors(func):
    """把 SeashellError 转成可读的错误信息和非零退出码"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SeashellError as e:
            err_console.print(f"[red]❌ {escape(str(e))}[/red]")
            sys.exit(1)

    return wrapper


def fieldset_options(func):
    """连接参数选项，列表字段用逗号分隔"""
    options = [
        click.option("--user", "-u", help="User to connect as"),
        click.option("--port", "-p", type=int, help="Port to connect to"),
        click.option("--known-hosts", type=click.Path(), help="Path to the known_hosts file"),
        click.option("--private-key", "-k", type=click.Path(), help="Path to the private key"),
        click.option("--openssh-cert", "-c", type=click.Path(), help="Path to the OpenSSH certificate"),
        click.option("--kex", metavar="CSV", help="Preferred key exchange algorithms"),
        click.option("--alg", metavar="CSV", help="Preferred host & public key algorithms"),
        click.option("--cipher", metavar="CSV", help="Preferred symmetric ciphers"),
        click.option("--mac", metavar="CSV", help="Preferred MAC algorithms"),
        click.option("--timeout", "-t", type=int, help="Seconds to wait for a connection"),
        click.option("--interval", "-i", type=int, help="Seconds between keepalive messages"),
        click.option("--retries", "-r", type=int, help="Maximum unanswered keepalives"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def unset_option(func):
    return click.option(
        "--unset",
        multiple=True,
        type=click.Choice(FIELD_NAMES),
        help="Clear a field (can be repeated)",
    )(func)


def collect_fields(kwargs: Dict[str, Any], unset=()) -> Dict[str, Any]:
    """从命令参数中取出连接字段，未给出的字段不出现在结果中"""
    fields = {}
    for name in FIELD_NAMES:
        value = kwargs.pop(name, None)
        if value is None:
            continue
        if name in LIST_FIELDS:
            value = [item.strip() for item in value.split(",") if item.strip()]
        fields[name] = value
    for name in unset:
        fields[name] = None
    return fields
