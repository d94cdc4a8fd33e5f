"""配置存储管理"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from seashell.core.errors import MalformedDocument, PersistenceFailure

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yml"
CONTEXT_FILE = ".cache.json"
KNOWN_HOSTS_FILE = "known_hosts"


def default_config_dir() -> Path:
    return Path.home() / ".seashell"


class ConfigStorage:
    """配置文件和上下文文件的读写，写入均为原子替换"""

    def __init__(self, config_dir: Path = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_path = self.config_dir / CONFIG_FILE
        self.context_path = self.config_dir / CONTEXT_FILE

    @property
    def known_hosts_path(self) -> Path:
        return self.config_dir / KNOWN_HOSTS_FILE

    def ensure_config_dir(self):
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(self.config_dir, str(e)) from e

    # 配置文件
    def load(self) -> Optional[Any]:
        """读取并解析配置文件，文件不存在时返回 None"""
        if not self.config_path.exists():
            logger.debug(f"Config file {self.config_path} does not exist, using empty config")
            return None

        try:
            text = self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise MalformedDocument(f"Cannot read {self.config_path}: {e}") from e

        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedDocument(
                f"Bad yaml in {self.config_path}: {e} (hint: check the config file)"
            ) from e

    def save(self, document: Dict[str, Any]):
        text = yaml.safe_dump(
            document, sort_keys=False, allow_unicode=True, default_flow_style=False
        )
        self._atomic_write(self.config_path, text)
        logger.info(f"Configuration saved to {self.config_path}")

    # 上下文文件（当前作用域）
    def load_context(self) -> str:
        """返回当前作用域名称，空字符串表示默认作用域"""
        if not self.context_path.exists():
            return ""

        try:
            data = json.loads(self.context_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise MalformedDocument(
                f"Bad json in {self.context_path}: {e} (hint: check the context file)"
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("current_scope", ""), str):
            raise MalformedDocument(f"Unexpected content in {self.context_path}")
        return data.get("current_scope", "")

    def save_context(self, scope: Optional[str]):
        self._atomic_write(
            self.context_path, json.dumps({"current_scope": scope or ""})
        )

    def _atomic_write(self, path: Path, text: str):
        """先写入同目录临时文件，再用 os.replace 一次性替换目标文件"""
        self.ensure_config_dir()
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            if path.exists():
                os.chmod(tmp_name, path.stat().st_mode & 0o777)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise PersistenceFailure(path, str(e)) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
