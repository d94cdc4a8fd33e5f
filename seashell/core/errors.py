"""错误类型"""

from typing import Optional


class SeashellError(Exception):
    """所有 seashell 错误的基类"""


class MalformedDocument(SeashellError):
    """配置文档结构无法解析"""


class InvalidField(SeashellError):
    """字段类型错误或取值越界"""

    def __init__(self, block: str, field: Optional[str], message: str):
        self.block = block
        self.field = field
        self.message = message
        where = f"'{block}'" if field is None else f"'{block}' field '{field}'"
        super().__init__(f"Invalid value in {where}: {message}")


class AmbiguousBlockClassification(SeashellError):
    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"Ambiguous servers block '{name}': {message}")


class InvalidPattern(SeashellError):
    def __init__(self, scope: str, key: str, reason: str):
        self.scope = scope
        self.key = key
        super().__init__(f"Bad regular expression '{key}' in scope '{scope}': {reason}")


class UnknownScope(SeashellError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Scope '{name}' not found")


class UnknownServer(SeashellError):
    def __init__(self, scope: str, alias: str):
        self.scope = scope
        self.alias = alias
        super().__init__(f"Unknown server '{alias}' in scope '{scope}'")


class DuplicateAlias(SeashellError):
    def __init__(self, scope: str, key: str):
        self.scope = scope
        self.key = key
        super().__init__(f"Server '{key}' already exists in scope '{scope}'")


class DuplicateScope(SeashellError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Scope '{name}' already exists")


class PersistenceFailure(SeashellError):
    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Failed to write '{path}': {reason}")


class TransportFailure(SeashellError):
    """SSH 传输层错误"""
