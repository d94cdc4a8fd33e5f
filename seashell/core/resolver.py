"""别名解析：在当前作用域内匹配服务器并合并连接参数"""

import getpass
import logging
import os
from dataclasses import dataclass
from typing import Optional

from seashell.core.errors import InvalidField, UnknownServer
from seashell.core.models import (
    DEFAULT_SCOPE,
    ConfigStore,
    FieldSet,
    ResolvedProfile,
    ServerEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22
DEFAULT_TIMEOUT = 10
DEFAULT_INTERVAL = 0
DEFAULT_RETRIES = 3


@dataclass
class Target:
    """命令行目标 [user@]alias[:port]"""

    alias: str
    user: Optional[str] = None
    port: Optional[int] = None

    def overrides(self) -> FieldSet:
        return FieldSet(user=self.user, port=self.port)


def parse_target(text: str) -> Target:
    user = None
    if "@" in text:
        user, text = text.split("@", 1)
        user = user or None

    port = None
    if text.startswith("["):
        # [::1]:2222 形式的 IPv6 地址
        host, _, rest = text[1:].partition("]")
        if rest.startswith(":") and rest[1:].isdigit():
            port = int(rest[1:])
        text = host
    elif text.count(":") == 1:
        host, _, maybe_port = text.partition(":")
        if maybe_port.isdigit():
            text, port = host, int(maybe_port)

    if not text:
        raise InvalidField("target", "alias", "empty server name")
    return Target(alias=text, user=user, port=port)


class Resolver:
    """解析引擎

    优先级：命令行覆盖 > 服务器 > 作用域 > 全局默认 > 内置默认。
    """

    def __init__(
        self,
        store: ConfigStore,
        known_hosts: Optional[str] = None,
        identity: Optional[str] = None,
    ):
        self.store = store
        self.known_hosts = known_hosts or os.path.join("~", ".seashell", "known_hosts")
        self.identity = identity

    def match(self, scope: str, alias: str) -> ServerEntry:
        """字面别名优先，其次按声明顺序取第一个匹配的正则"""
        self.store.get_scope(scope)
        entries = self.store.entries(scope)

        for entry in entries:
            if not entry.is_pattern and entry.key == alias:
                logger.debug(f"Literal match '{alias}' in scope '{scope}'")
                return entry

        for entry in entries:
            if entry.is_pattern and entry.matches(alias):
                logger.debug(f"Pattern '{entry.key}' matches '{alias}' in scope '{scope}'")
                return entry

        raise UnknownServer(scope, alias)

    def resolve(
        self, scope: str, alias: str, overrides: Optional[FieldSet] = None
    ) -> ResolvedProfile:
        entry = self.match(scope, alias)
        scope_fields = self.store.get_scope(scope).fields
        merged = (overrides or FieldSet()).merged(
            entry.fields, scope_fields, self.store.defaults.fields
        )
        if merged.openssh_cert and not merged.private_key:
            raise InvalidField(
                f"{scope}/{entry.key}", "openssh_cert", "requires private_key"
            )

        profile = ResolvedProfile(
            scope=scope,
            alias=alias,
            matched=entry.key,
            address=entry.expand_address(alias),
            user=merged.user or self._invoking_user(scope),
            port=_pick(merged.port, DEFAULT_PORT),
            known_hosts=_expand(merged.known_hosts or self.known_hosts),
            private_key=_expand(merged.private_key),
            openssh_cert=_expand(merged.openssh_cert),
            kex=tuple(merged.kex or ()),
            alg=tuple(merged.alg or ()),
            cipher=tuple(merged.cipher or ()),
            mac=tuple(merged.mac or ()),
            timeout=_pick(merged.timeout, DEFAULT_TIMEOUT),
            interval=_pick(merged.interval, DEFAULT_INTERVAL),
            retries=_pick(merged.retries, DEFAULT_RETRIES),
        )
        logger.info(f"Resolved '{alias}' in scope '{scope}' to {profile.destination}")
        return profile

    def _invoking_user(self, scope: str) -> str:
        if self.identity:
            return self.identity
        try:
            return getpass.getuser()
        except (KeyError, OSError) as e:
            raise InvalidField(
                scope or DEFAULT_SCOPE, "user", "no user is specified and the current user is unknown"
            ) from e


def _pick(value, default):
    return default if value is None else value


def _expand(path: Optional[str]) -> Optional[str]:
    return os.path.expanduser(path) if path else path
