"""
In-memory session store.
Process-local backend used by tests and by callers that manage persistence themselves.
"""

import copy
from typing import Any, Dict, Iterable, Optional

from utils import store_logger

from .base_store import BaseSessionStore
from .decoding import Raw


class MemorySessionStore(BaseSessionStore):
    """内存会话存储"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None, name: str = "MemorySessionStore"):
        super().__init__(name)
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Raw:
        value = self._data.get(key)
        if value is not None:
            store_logger.debug(f"[{self.name}] Hit: {key}")
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        self._require_key(key)
        # 存入副本，调用方后续修改不影响已存储值
        self._data[key] = copy.deepcopy(value)
        store_logger.debug(f"[{self.name}] Set: {key}")

    def delete(self, key: str) -> bool:
        if key in self._data:
            del self._data[key]
            store_logger.debug(f"[{self.name}] Delete: {key}")
            return True
        return False

    def clear(self) -> None:
        self._data.clear()
        store_logger.info(f"[{self.name}] Cleared all entries")

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())
