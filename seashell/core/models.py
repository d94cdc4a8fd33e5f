import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, Tuple

from marshmallow.validate import Length, Range

from seashell.core.errors import UnknownScope

# 隐式的默认作用域
DEFAULT_SCOPE = "default"
RESERVED_SCOPE_NAMES = frozenset({DEFAULT_SCOPE, "global", "scopes", "servers"})

# 地址模板中的主机占位符
PLACEHOLDER = "$h"
# 出现这些字符的键按正则表达式处理
PATTERN_CHARS = frozenset("^$*+?()[]{}|\\")


def _port():
    return field(
        default=None, metadata={"strict": True, "validate": Range(min=0, max=65535)}
    )


def _non_negative():
    return field(default=None, metadata={"strict": True, "validate": Range(min=0)})


def _text():
    return field(default=None, metadata={"validate": Length(min=1)})


@dataclass
class FieldSet:
    """可逐级覆盖的连接参数，None 表示继承上一级"""

    user: Optional[str] = _text()
    port: Optional[int] = _port()
    known_hosts: Optional[str] = _text()
    private_key: Optional[str] = _text()
    openssh_cert: Optional[str] = _text()
    kex: Optional[List[str]] = None
    alg: Optional[List[str]] = None
    cipher: Optional[List[str]] = None
    mac: Optional[List[str]] = None
    timeout: Optional[int] = _non_negative()
    interval: Optional[int] = _non_negative()
    retries: Optional[int] = _non_negative()

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in FIELD_NAMES)

    def merged(self, *fallbacks: "FieldSet") -> "FieldSet":
        """逐字段取第一个非空值，self 优先"""
        values = {}
        for name in FIELD_NAMES:
            value = getattr(self, name)
            for fallback in fallbacks:
                if value is not None:
                    break
                value = getattr(fallback, name)
            values[name] = value
        return FieldSet(**values)

    def updated(self, changes: Dict[str, Any]) -> "FieldSet":
        """返回应用修改后的副本，值为 None 的字段被清除"""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for name in FIELD_NAMES:
            value = getattr(self, name)
            if value is not None:
                result[name] = list(value) if isinstance(value, (list, tuple)) else value
        return result


FIELD_NAMES: Tuple[str, ...] = tuple(f.name for f in fields(FieldSet))
LIST_FIELDS = frozenset({"kex", "alg", "cipher", "mac"})
INT_FIELDS = frozenset({"port", "timeout", "interval", "retries"})
PATH_FIELDS = frozenset({"known_hosts", "private_key", "openssh_cert"})


def is_pattern_key(key: str) -> bool:
    return any(ch in PATTERN_CHARS for ch in key)


@dataclass
class Scope:
    """作用域：一组默认连接参数和独立的服务器命名空间"""

    name: str
    fields: FieldSet = field(default_factory=FieldSet)

    @property
    def is_default(self) -> bool:
        return self.name == DEFAULT_SCOPE


@dataclass
class ServerEntry:
    """作用域内的一条服务器配置，键可以是别名或正则表达式"""

    key: str
    address: str
    fields: FieldSet = field(default_factory=FieldSet)
    pattern: Optional[re.Pattern] = None

    @property
    def is_pattern(self) -> bool:
        return self.pattern is not None

    def matches(self, alias: str) -> bool:
        if self.pattern is None:
            return self.key == alias
        return self.pattern.search(alias) is not None

    def expand_address(self, alias: str) -> str:
        return self.address.replace(PLACEHOLDER, alias)

    def to_document(self):
        if self.fields.is_empty():
            return self.address
        return {"address": self.address, **self.fields.to_dict()}


@dataclass
class ConfigStore:
    """内存中的配置：全局默认值、作用域和按作用域归属的服务器"""

    defaults: Scope = field(default_factory=lambda: Scope(DEFAULT_SCOPE))
    scopes: Dict[str, Scope] = field(default_factory=dict)
    # 每个作用域的服务器按声明顺序保存
    servers: Dict[str, List[ServerEntry]] = field(default_factory=dict)

    def has_scope(self, name: str) -> bool:
        return name == DEFAULT_SCOPE or name in self.scopes

    def get_scope(self, name: str) -> Scope:
        if name == DEFAULT_SCOPE:
            return self.defaults
        try:
            return self.scopes[name]
        except KeyError:
            raise UnknownScope(name) from None

    def entries(self, scope: str) -> List[ServerEntry]:
        return self.servers.get(scope, [])

    def find_entry(self, scope: str, key: str) -> Optional[ServerEntry]:
        for entry in self.entries(scope):
            if entry.key == key:
                return entry
        return None

    def to_document(self) -> Dict[str, Any]:
        """转换为持久化的文档结构"""
        document: Dict[str, Any] = dict(self.defaults.fields.to_dict())
        document["scopes"] = {
            name: scope.fields.to_dict() for name, scope in self.scopes.items()
        }
        servers: Dict[str, Any] = {}
        for entry in self.entries(DEFAULT_SCOPE):
            servers[entry.key] = entry.to_document()
        for name in self.scopes:
            entries = self.entries(name)
            if entries:
                servers[name] = {entry.key: entry.to_document() for entry in entries}
        document["servers"] = servers
        return document


@dataclass(frozen=True)
class ResolvedProfile:
    """一次别名解析得到的完整连接参数"""

    scope: str
    alias: str
    matched: str
    address: str
    user: str
    port: int
    known_hosts: str
    private_key: Optional[str] = None
    openssh_cert: Optional[str] = None
    kex: Tuple[str, ...] = ()
    alg: Tuple[str, ...] = ()
    cipher: Tuple[str, ...] = ()
    mac: Tuple[str, ...] = ()
    timeout: int = 10
    interval: int = 0
    retries: int = 3

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.address}:{self.port}"
