"""
base session store class for the portal.
Defines the get/set/delete/clear contract every session backend implements.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Tuple

from utils import store_logger
from utils.exceptions import PortalError, RecoverableParseError, SessionStoreError, ErrorCodes

from .decoding import Raw, decode_mapping


class BaseSessionStore(ABC):
    """会话存储基类"""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def get(self, key: str) -> Raw:
        """获取原始存储值，不存在时返回 None"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """写入存储值"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """删除存储值"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """清空存储"""
        pass

    @abstractmethod
    def keys(self) -> Iterable[str]:
        """列出已存储的键"""
        pass

    def read_mapping(self, key: str) -> Tuple[Optional[Dict[str, Any]], Optional[PortalError]]:
        """宽容读取并解码为字典，读失败和解析失败都只作为错误返回"""
        try:
            raw = self.get(key)
        except Exception as e:
            # 注入的存储后端可能抛出任意异常，读取失败一律按缺失处理
            message = e.message if isinstance(e, SessionStoreError) else f"{type(e).__name__}: {e}"
            store_logger.warning(f"[{self.name}] Failed to read '{key}': {message}")
            error = RecoverableParseError(
                f"Failed to read '{key}' from session store: {message}",
                ErrorCodes.STORE_READ_FAILED,
                {"key": key}
            )
            error.__cause__ = e
            return None, error

        try:
            return decode_mapping(raw, key), None
        except RecoverableParseError as e:
            store_logger.warning(f"[{self.name}] Discarding malformed value for '{key}': {e}")
            return None, e

    def read_first_mapping(self, keys: Iterable[str]) -> Tuple[Optional[Dict[str, Any]], Optional[str], Optional[PortalError]]:
        """按顺序读取多个键，返回第一个可用的字典及其键名，以及遇到的第一个错误"""
        first_error = None
        for key in keys:
            value, error = self.read_mapping(key)
            if value:
                return value, key, first_error
            if error is not None and first_error is None:
                first_error = error
        return None, None, first_error

    def __contains__(self, key: str) -> bool:
        return key in set(self.keys())

    def get_store_info(self) -> Dict[str, Any]:
        """获取存储信息"""
        return {
            'name': self.name,
            'backend': self.__class__.__name__,
            'keys': sorted(self.keys()),
        }

    def _require_key(self, key: str) -> None:
        if not isinstance(key, str) or not key:
            raise SessionStoreError(
                f"Session store keys must be non-empty strings, got {key!r}",
                ErrorCodes.STORE_INVALID_VALUE
            )
