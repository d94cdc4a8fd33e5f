"""命令行命令模块"""

from .config import default_command, edit_command, ls_command, test_command, use_command
from .connect import connect_command, resolve_command
from .scope import scope_command
from .server import server_command

__all__ = [
    "connect_command",
    "resolve_command",
    "use_command",
    "ls_command",
    "default_command",
    "test_command",
    "edit_command",
    "scope_command",
    "server_command",
]
