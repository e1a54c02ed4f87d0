"""
JSON file backed session store.
Persists the session slots ("user", "selectedCompany", tokens, ...) to one JSON
document on disk so consecutive command-line runs share the same session.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from utils import store_logger
from utils.exceptions import SessionStoreError, ErrorCodes

from .base_store import BaseSessionStore
from .decoding import Raw


class JsonFileSessionStore(BaseSessionStore):
    """JSON 文件会话存储"""

    def __init__(self, file_path: Union[str, Path], name: str = "JsonFileSessionStore"):
        super().__init__(name)
        self.file_path = Path(file_path)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        """加载会话文件，文件不存在时视为空会话"""
        if not self.file_path.exists():
            store_logger.info(f"[{self.name}] No session file at {self.file_path}, starting empty")
            return {}

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (ValueError, RecursionError) as e:
            raise SessionStoreError(
                f"Session file {self.file_path} is not valid JSON: {e}",
                ErrorCodes.STORE_READ_FAILED,
                {"path": str(self.file_path)}
            ) from e
        except OSError as e:
            raise SessionStoreError(
                f"Failed to read session file {self.file_path}: {e}",
                ErrorCodes.STORE_READ_FAILED,
                {"path": str(self.file_path)}
            ) from e

        if not isinstance(data, dict):
            raise SessionStoreError(
                f"Session file {self.file_path} must contain a JSON object",
                ErrorCodes.STORE_READ_FAILED,
                {"path": str(self.file_path)}
            )

        store_logger.debug(f"[{self.name}] Loaded {len(data)} entries from {self.file_path}")
        return data

    def _flush(self) -> None:
        """原子写回会话文件"""
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.file_path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self._data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise SessionStoreError(
                f"Failed to write session file {self.file_path}: {e}",
                ErrorCodes.STORE_WRITE_FAILED,
                {"path": str(self.file_path)}
            ) from e

    def get(self, key: str) -> Raw:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._require_key(key)
        previous = self._data.get(key)
        had_key = key in self._data
        self._data[key] = value
        try:
            self._flush()
        except SessionStoreError:
            # 写盘失败时恢复内存中的旧值，保持与文件一致
            if had_key:
                self._data[key] = previous
            else:
                self._data.pop(key, None)
            raise
        store_logger.debug(f"[{self.name}] Set: {key}")

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        previous = self._data.pop(key)
        try:
            self._flush()
        except SessionStoreError:
            self._data[key] = previous
            raise
        store_logger.debug(f"[{self.name}] Delete: {key}")
        return True

    def clear(self) -> None:
        previous = self._data
        self._data = {}
        try:
            self._flush()
        except SessionStoreError:
            self._data = previous
            raise
        store_logger.info(f"[{self.name}] Cleared all entries")

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())

    def get_store_info(self) -> Dict[str, Any]:
        info = super().get_store_info()
        info['file_path'] = str(self.file_path)
        return info
