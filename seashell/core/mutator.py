"""配置增删改：每次修改都在副本上完成，重新校验后原子写盘"""

import copy
import logging
from typing import Any, Callable, Dict, Optional

from seashell.config.storage import ConfigStorage
from seashell.config.validator import ConfigValidator
from seashell.core.errors import (
    AmbiguousBlockClassification,
    DuplicateAlias,
    DuplicateScope,
    InvalidField,
    UnknownServer,
)
from seashell.core.models import DEFAULT_SCOPE, FIELD_NAMES, ConfigStore, FieldSet, Scope

logger = logging.getLogger(__name__)


class ConfigMutator:
    """对 ConfigStore 的事务性修改

    任一不变量被破坏时抛出异常，内存中的 store 和磁盘文件保持原样。
    """

    def __init__(
        self, storage: ConfigStorage, store: ConfigStore, validator: ConfigValidator = None
    ):
        self.storage = storage
        self.store = store
        self.validator = validator or ConfigValidator()

    # 作用域
    def add_scope(self, name: str, fields: Optional[Dict[str, Any]] = None) -> Scope:
        def apply(store: ConfigStore):
            self.validator.check_scope_name(name)
            if name in store.scopes:
                raise DuplicateScope(name)
            if store.find_entry(DEFAULT_SCOPE, name):
                raise AmbiguousBlockClassification(
                    name, "a server of the default scope already uses this name"
                )
            store.scopes[name] = Scope(name, self._fields(f"scopes.{name}", FieldSet(), fields))

        self._commit(apply, f"add scope '{name}'")
        return self.store.scopes[name]

    def update_scope(self, name: str, changes: Dict[str, Any]) -> Scope:
        """修改作用域参数，对默认作用域即修改全局默认值"""

        def apply(store: ConfigStore):
            scope = store.get_scope(name)
            scope.fields = self._fields(_block(name), scope.fields, changes)

        self._commit(apply, f"update scope '{name}'")
        return self.store.get_scope(name)

    def remove_scope(self, name: str):
        """删除作用域及其服务器；默认作用域只清空全局默认值"""

        def apply(store: ConfigStore):
            scope = store.get_scope(name)
            if scope.is_default:
                scope.fields = FieldSet()
                return
            del store.scopes[name]
            store.servers.pop(name, None)

        self._commit(apply, f"remove scope '{name}'")

    def set_defaults(self, changes: Dict[str, Any]) -> Scope:
        return self.update_scope(DEFAULT_SCOPE, changes)

    def clear_defaults(self):
        self.remove_scope(DEFAULT_SCOPE)

    # 服务器
    def add_server(
        self,
        scope: str,
        key: str,
        address: str,
        fields: Optional[Dict[str, Any]] = None,
    ):
        def apply(store: ConfigStore):
            store.get_scope(scope)
            if store.find_entry(scope, key):
                raise DuplicateAlias(scope, key)
            if scope == DEFAULT_SCOPE and key in store.scopes:
                raise AmbiguousBlockClassification(
                    key, "a scope with this name already exists"
                )
            value = {"address": address, **self._fields(_block(scope, key), FieldSet(), fields).to_dict()}
            entry = self.validator.build_entry(scope, key, value)
            store.servers.setdefault(scope, []).append(entry)

        self._commit(apply, f"add server '{key}' to scope '{scope}'")
        return self.store.find_entry(scope, key)

    def update_server(
        self,
        scope: str,
        key: str,
        address: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
    ):
        def apply(store: ConfigStore):
            store.get_scope(scope)
            entries = store.entries(scope)
            for index, entry in enumerate(entries):
                if entry.key == key:
                    break
            else:
                raise UnknownServer(scope, key)

            fields = self._fields(_block(scope, key), entry.fields, changes)
            value = {"address": address if address is not None else entry.address, **fields.to_dict()}
            entries[index] = self.validator.build_entry(scope, key, value)

        self._commit(apply, f"update server '{key}' in scope '{scope}'")
        return self.store.find_entry(scope, key)

    def remove_server(self, scope: str, key: str):
        def apply(store: ConfigStore):
            store.get_scope(scope)
            entries = store.entries(scope)
            remaining = [entry for entry in entries if entry.key != key]
            if len(remaining) == len(entries):
                raise UnknownServer(scope, key)
            if remaining:
                store.servers[scope] = remaining
            else:
                store.servers.pop(scope, None)

        self._commit(apply, f"remove server '{key}' from scope '{scope}'")

    def _fields(
        self, block: str, current: FieldSet, changes: Optional[Dict[str, Any]]
    ) -> FieldSet:
        if not changes:
            return current
        for name in changes:
            if name not in FIELD_NAMES:
                raise InvalidField(block, name, "unknown field")
        data = current.updated(changes).to_dict()
        return self.validator.load_fields(block, data)

    def _commit(self, apply: Callable[[ConfigStore], None], action: str):
        candidate = copy.deepcopy(self.store)
        apply(candidate)

        document = candidate.to_document()
        # 用完整的校验流程检查修改后的文档，保证写盘内容可以被重新加载
        validated = self.validator.validate(document)
        self.storage.save(document)
        self.store = validated
        logger.info(f"Committed: {action}")


def _block(scope: str, key: Optional[str] = None) -> str:
    if key is None:
        return DEFAULT_SCOPE if scope == DEFAULT_SCOPE else f"scopes.{scope}"
    return f"servers.{key}" if scope == DEFAULT_SCOPE else f"servers.{scope}.{key}"
