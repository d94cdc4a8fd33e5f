"""配置校验：字段类型和取值范围、作用域/服务器块分类、正则预编译"""

import logging
import re
from typing import Any, Dict, List, Optional

import marshmallow
import marshmallow_dataclass

from seashell.core.errors import (
    AmbiguousBlockClassification,
    DuplicateAlias,
    InvalidField,
    InvalidPattern,
    MalformedDocument,
)
from seashell.core.models import (
    DEFAULT_SCOPE,
    FIELD_NAMES,
    RESERVED_SCOPE_NAMES,
    ConfigStore,
    FieldSet,
    Scope,
    ServerEntry,
    is_pattern_key,
)

logger = logging.getLogger(__name__)

FieldSetSchema = marshmallow_dataclass.class_schema(FieldSet)

STRUCTURAL_KEYS = ("scopes", "servers")


class ConfigValidator:
    """把 YAML 解析出的原始结构转换为 ConfigStore

    strict 模式下未知字段名会被拒绝，否则只记录警告并忽略。
    """

    def __init__(self, strict: bool = True):
        self.strict = strict
        self._schema = FieldSetSchema()

    def validate(self, raw: Any) -> ConfigStore:
        if raw is None:
            return ConfigStore()
        if not isinstance(raw, dict):
            raise MalformedDocument(
                f"Configuration root must be a mapping, got {type(raw).__name__}"
            )

        defaults = {k: v for k, v in raw.items() if k not in STRUCTURAL_KEYS}
        store = ConfigStore(defaults=Scope(DEFAULT_SCOPE, self.load_fields(DEFAULT_SCOPE, defaults)))

        for name, value in self._mapping(raw.get("scopes"), "scopes").items():
            self.check_scope_name(name)
            store.scopes[name] = Scope(name, self.load_fields(f"scopes.{name}", value or {}))

        self._classify_servers(store, self._mapping(raw.get("servers"), "servers"))
        return store

    def check_scope_name(self, name: Any):
        if not isinstance(name, str) or not name.strip():
            raise InvalidField("scopes", str(name), "scope name must be a non-empty string")
        if name in RESERVED_SCOPE_NAMES:
            raise InvalidField("scopes", name, "scope name is reserved")

    def load_fields(self, block: str, data: Any) -> FieldSet:
        """校验一组连接参数并返回 FieldSet"""
        if not isinstance(data, dict):
            raise InvalidField(block, None, "expected a mapping of connection fields")

        unknown = [key for key in data if key not in FIELD_NAMES]
        if unknown:
            if self.strict:
                raise InvalidField(block, str(unknown[0]), "unknown field")
            logger.warning(f"Ignoring unknown fields {unknown} in '{block}'")
            data = {k: v for k, v in data.items() if k in FIELD_NAMES}

        try:
            return self._schema.load(data)
        except marshmallow.ValidationError as e:
            field, messages = next(iter(e.normalized_messages().items()))
            raise InvalidField(block, field, _first_message(messages)) from e

    def build_entry(self, scope: str, key: Any, value: Any) -> ServerEntry:
        """根据服务器键和值构造 ServerEntry，模式键在此编译"""
        block = f"servers.{key}" if scope == DEFAULT_SCOPE else f"servers.{scope}.{key}"
        if not isinstance(key, str) or not key:
            raise InvalidField(f"servers.{scope}", str(key), "server name must be a non-empty string")

        if isinstance(value, str):
            address, overrides = value, FieldSet()
        elif isinstance(value, dict) and "address" in value:
            address = value["address"]
            overrides = self.load_fields(
                block, {k: v for k, v in value.items() if k != "address"}
            )
        else:
            raise InvalidField(block, "address", "expected an address or a mapping with 'address'")

        if not isinstance(address, str) or not address.strip():
            raise InvalidField(block, "address", "address must be a non-empty string")

        pattern = None
        if is_pattern_key(key):
            try:
                pattern = re.compile(key)
            except re.error as e:
                raise InvalidPattern(scope, key, str(e)) from e

        return ServerEntry(key=key, address=address, fields=overrides, pattern=pattern)

    def _classify_servers(self, store: ConfigStore, servers: Dict[Any, Any]):
        """只有已声明的作用域名才被视为作用域块，其余都是默认作用域的服务器"""
        globals_: List[ServerEntry] = []
        scoped: Dict[str, List[ServerEntry]] = {}

        for name, value in servers.items():
            if isinstance(name, str) and name in store.scopes:
                if not isinstance(value, dict):
                    raise AmbiguousBlockClassification(
                        name, "it names a declared scope but is not a mapping of servers"
                    )
                scoped[name] = [self.build_entry(name, k, v) for k, v in value.items()]
            elif isinstance(value, dict) and "address" not in value:
                logger.warning(
                    f"Servers block '{name}' does not name a declared scope; "
                    f"treating its entries as servers of the default scope"
                )
                globals_.extend(self.build_entry(DEFAULT_SCOPE, k, v) for k, v in value.items())
            else:
                globals_.append(self.build_entry(DEFAULT_SCOPE, name, value))

        for scope, entries in [(DEFAULT_SCOPE, globals_), *scoped.items()]:
            _check_unique(scope, entries)
            if entries:
                store.servers[scope] = entries

    @staticmethod
    def _mapping(value: Any, section: str) -> Dict[Any, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise MalformedDocument(f"Section '{section}' must be a mapping")
        return value


def _check_unique(scope: str, entries: List[ServerEntry]):
    seen = set()
    for entry in entries:
        if entry.key in seen:
            raise DuplicateAlias(scope, entry.key)
        seen.add(entry.key)


def _first_message(messages: Optional[Any]) -> str:
    # marshmallow 的错误信息可能是列表或按索引嵌套的字典
    if isinstance(messages, list):
        return str(messages[0]) if messages else "invalid value"
    if isinstance(messages, dict):
        return _first_message(next(iter(messages.values()), None))
    return str(messages)
