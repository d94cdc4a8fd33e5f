"""Seashell - SSH client with scoped server configuration"""

__version__ = "0.1.0"

from .config.storage import ConfigStorage
from .config.validator import ConfigValidator
from .core.errors import SeashellError
from .core.models import (
    DEFAULT_SCOPE,
    ConfigStore,
    FieldSet,
    ResolvedProfile,
    Scope,
    ServerEntry,
)
from .core.mutator import ConfigMutator
from .core.resolver import Resolver, parse_target

__all__ = [
    "ConfigStorage",
    "ConfigValidator",
    "ConfigMutator",
    "Resolver",
    "parse_target",
    "SeashellError",
    "DEFAULT_SCOPE",
    "ConfigStore",
    "FieldSet",
    "ResolvedProfile",
    "Scope",
    "ServerEntry",
]
