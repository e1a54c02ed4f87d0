"""
会话存储模块包
提供注入到报价构建器的会话状态服务
"""

from pathlib import Path
from typing import Optional

from utils import config_manager, store_logger, BASE_DIR, SessionStoreConfig
from utils.exceptions import ConfigurationError, ErrorCodes

from .base_store import BaseSessionStore
from .decoding import Raw, decode_stored_value, decode_mapping, tolerant_decode_mapping, encode_stored_value
from .memory_store import MemorySessionStore
from .file_store import JsonFileSessionStore


def create_session_store(store_config: Optional[SessionStoreConfig] = None,
                         file_path: Optional[str] = None) -> BaseSessionStore:
    """根据配置创建会话存储实例"""
    store_config = store_config or config_manager.get_session_store_config()
    backend = store_config.backend.lower()

    if backend == "memory":
        store_logger.info("[SessionStoreFactory] Using in-memory session store")
        return MemorySessionStore()

    if backend == "file":
        path = Path(file_path or store_config.file_path)
        if not path.is_absolute():
            path = BASE_DIR / path
        store_logger.info(f"[SessionStoreFactory] Using file session store at {path}")
        return JsonFileSessionStore(path)

    raise ConfigurationError(
        f"Unknown session store backend: {store_config.backend}",
        ErrorCodes.CONFIG_INVALID_FORMAT,
        {"backend": store_config.backend}
    )


__all__ = [
    "BaseSessionStore",
    "MemorySessionStore",
    "JsonFileSessionStore",
    "Raw",
    "decode_stored_value",
    "decode_mapping",
    "tolerant_decode_mapping",
    "encode_stored_value",
    "create_session_store",
]
