"""输出格式化模块"""

import json
from dataclasses import asdict
from typing import Any, Dict, List

import yaml
from jinja2 import Template
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..core.models import DEFAULT_SCOPE, ConfigStore, FieldSet, ResolvedProfile, ServerEntry

default_template = "{{ user }}@{{ address }}:{{ port }}"


class OutputFormatter:
    """输出格式化器"""

    def __init__(self, format_type: str = "default", template: str = None, console: Console = None):
        self.format_type = format_type.lower()
        self.template = template or default_template
        self.console = console or Console()

    def format_profile(self, profile: ResolvedProfile) -> str:
        """格式化解析结果"""
        data = _profile_data(profile)
        if self.format_type == "json":
            return json.dumps(data, indent=2, ensure_ascii=False)
        elif self.format_type == "yaml":
            return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        elif self.format_type == "template":
            return Template(self.template, lstrip_blocks=True, trim_blocks=True).render(data)
        return ""

    def print_profile(self, profile: ResolvedProfile):
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Key", style="blue")
        table.add_column("Value", style="white")
        for key, value in _profile_data(profile).items():
            if isinstance(value, list):
                value = ", ".join(value) or "(library default)"
            table.add_row(key, "N/A" if value is None else escape(str(value)))

        self.console.print(
            Panel(
                table,
                title=f"[bold green]{escape(profile.alias)}[/bold green] in [bold magenta]{escape(profile.scope)}[/bold magenta]",
                border_style="green",
            )
        )

    def print_scope_servers(self, store: ConfigStore, scope: str, title: str = None):
        """打印一个作用域内的服务器"""
        tree = Tree(f"[bold magenta]{escape(title or scope)}/[/bold magenta]")
        _add_servers(tree, store.entries(scope))
        self.console.print(tree)

    def print_all_servers(self, store: ConfigStore):
        for scope in store.scopes:
            if store.entries(scope):
                self.print_scope_servers(store, scope)
        if store.entries(DEFAULT_SCOPE):
            self.print_scope_servers(store, DEFAULT_SCOPE)

    def print_scopes(self, store: ConfigStore, current: str = ""):
        table = Table(title="Scopes")
        table.add_column("Name", style="magenta")
        table.add_column("Servers", style="cyan", justify="right")
        table.add_column("Settings", style="white")

        rows = [(DEFAULT_SCOPE, store.defaults.fields)]
        rows.extend((name, scope.fields) for name, scope in store.scopes.items())
        for name, fields in rows:
            marker = " *" if name == (current or DEFAULT_SCOPE) else ""
            table.add_row(
                f"{escape(name)}{marker}",
                str(len(store.entries(name))),
                escape(_fields_text(fields)) or "N/A",
            )

        self.console.print(table)

    def print_entry(self, scope: str, entry: ServerEntry):
        tree = Tree(f"[bold magenta]{escape(scope)}/[/bold magenta]")
        _add_servers(tree, [entry])
        self.console.print(tree)


def _profile_data(profile: ResolvedProfile) -> Dict[str, Any]:
    data = asdict(profile)
    for key, value in data.items():
        if isinstance(value, tuple):
            data[key] = list(value)
    return data


def _fields_text(fields: FieldSet) -> str:
    parts = []
    for key, value in fields.to_dict().items():
        if isinstance(value, list):
            value = ",".join(value)
        parts.append(f"{key}={value}")
    return " ".join(parts)


def _add_servers(tree: Tree, entries: List[ServerEntry]):
    for entry in entries:
        kind = " [dim](pattern)[/dim]" if entry.is_pattern else ""
        node = tree.add(f"[bold green]{escape(entry.key)}[/bold green]{kind}: {escape(entry.address)}")
        for key, value in entry.fields.to_dict().items():
            if isinstance(value, list):
                value = ", ".join(value)
            node.add(f"[blue]{key}[/blue]: {escape(str(value))}")
