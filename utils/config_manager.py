"""
统一的配置管理模块
整合底层配置操作和应用层类型安全访问
"""

import json
import logging
import os
from typing import Any, Optional, Dict, List, TypeVar
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigurationError, ErrorCodes
from .path_utils import CONFIG_DIR

# 获取配置专用日志器
config_logger = logging.getLogger("Config")

# 为泛型类型定义一个TypeVar
T = TypeVar('T')

# 覆盖后端地址的环境变量
BASE_URL_ENV = "PORTAL_API_BASE_URL"

# ============================================================================
# 配置数据类型定义
# ============================================================================

@dataclass
class LoggingModuleConfig:
    """模块日志配置"""
    level: str = "INFO"
    enabled: bool = True

@dataclass
class FileLoggingConfig:
    """文件日志配置"""
    enabled: bool = True
    directory: str = "log"
    filename: str = "portal.log"
    rotation: Optional[Dict[str, Any]] = None

@dataclass
class ConsoleLoggingConfig:
    """控制台日志配置"""
    enabled: bool = True

@dataclass
class PerformanceConfig:
    """性能监控配置"""
    enabled: bool = True
    slow_operation_threshold: float = 1.0

@dataclass
class LoggingConfig:
    """完整日志配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_config: FileLoggingConfig = field(default_factory=FileLoggingConfig)
    console_config: ConsoleLoggingConfig = field(default_factory=ConsoleLoggingConfig)
    modules: Dict[str, LoggingModuleConfig] = field(default_factory=dict)
    performance_monitoring: PerformanceConfig = field(default_factory=PerformanceConfig)

@dataclass
class PortalApiConfig:
    """门户后端API配置"""
    base_url: str = "http://localhost:3000"
    timeout_total: float = 60.0
    timeout_connect: float = 15.0
    max_connections: int = 8
    upsert_quote_path: str = "/upsertQuote"
    request_quote_path: str = "/request-quote"
    token_keys: List[str] = field(default_factory=lambda: ["partnerToken", "token"])

@dataclass
class SessionStoreConfig:
    """会话存储配置"""
    backend: str = "file"
    file_path: str = "data/session.json"


# ============================================================================
# 统一配置管理器
# ============================================================================

class UnifiedConfigManager:
    """统一配置管理器 - 整合底层操作和应用层抽象"""

    def __init__(self, config_dir: Optional[str] = None):
        self._config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self._config_data: Dict[str, Any] = {}

        # 类型化配置缓存
        self._typed_cache: Dict[str, Any] = {}

        # 初始化配置
        self._load_config()

    def _load_config(self) -> None:
        """加载配置文件"""
        merged_config = {}
        config_logger.info(f"Loading configuration from directory: {self._config_dir}")

        if not self._config_dir.is_dir():
            raise ConfigurationError(
                f"Configuration path is not a directory: {self._config_dir}",
                ErrorCodes.CONFIG_NOT_FOUND
            )

        # 按文件名排序加载，确保加载顺序一致
        config_files = [
            config_file for config_file in sorted(self._config_dir.glob('*.json'))
            if config_file.name != "config.merged.json"
        ]
        if not config_files:
            raise ConfigurationError(
                f"No configuration files (.json) found in: {self._config_dir}",
                ErrorCodes.CONFIG_NOT_FOUND
            )

        for config_file in config_files:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"Invalid JSON in configuration file {config_file.name}: {e}",
                    ErrorCodes.CONFIG_INVALID_FORMAT
                ) from e
            except OSError as e:
                raise ConfigurationError(
                    f"Failed to read configuration file {config_file.name}: {e}",
                    ErrorCodes.CONFIG_NOT_FOUND
                ) from e

            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file {config_file.name} must contain a JSON object",
                    ErrorCodes.CONFIG_INVALID_FORMAT
                )
            merged_config.update(data)
            config_logger.debug(f"Loaded and merged: {config_file.name}")

        self._config_data = merged_config
        config_logger.info(f"Configuration loaded and merged from {len(config_files)} files.")
        # 清除类型化缓存
        self._typed_cache.clear()

    def reload_config(self) -> None:
        """重新加载配置"""
        config_logger.info("Reloading configuration...")
        self._load_config()

    # ========================================================================
    # 底层访问方法
    # ========================================================================

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        """获取配置值"""
        return self._config_data.get(key, default)

    def get_nested(self, path: str, default: Optional[T] = None) -> Optional[T]:
        """获取嵌套配置值，支持点分隔路径"""
        keys = path.split('.')
        current = self._config_data

        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key: str, value: Any) -> None:
        """设置配置值"""
        self._config_data[key] = value
        self._typed_cache.clear()

    def set_nested(self, path: str, value: Any) -> None:
        """设置嵌套配置值"""
        keys = path.split('.')
        current = self._config_data

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
        self._typed_cache.clear()

    def __contains__(self, key: str) -> bool:
        """支持 'in' 操作符"""
        return key in self._config_data

    def __getitem__(self, key: str) -> Any:
        """支持字典式访问"""
        return self._config_data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        """支持字典式设置"""
        self.set(key, value)

    # ========================================================================
    # 类型安全访问方法
    # ========================================================================

    def get_logging_config(self) -> LoggingConfig:
        """获取日志配置（类型安全）"""
        if 'logging_config' not in self._typed_cache:
            try:
                logging_data = self.get_nested('logging_config', {})

                # 解析文件日志配置
                file_data = logging_data.get('file_config', {})
                file_config = FileLoggingConfig(
                    enabled=file_data.get('enabled', True),
                    directory=file_data.get('directory', 'log'),
                    filename=file_data.get('filename', 'portal.log'),
                    rotation=file_data.get('rotation')
                )

                # 解析控制台日志配置
                console_data = logging_data.get('console_config', {})
                console_config = ConsoleLoggingConfig(
                    enabled=console_data.get('enabled', True)
                )

                # 解析性能监控配置
                perf_data = logging_data.get('performance_monitoring', {})
                perf_config = PerformanceConfig(
                    enabled=perf_data.get('enabled', True),
                    slow_operation_threshold=perf_data.get('slow_operation_threshold', 1.0)
                )

                # 解析模块配置
                modules_data = logging_data.get('modules', {})
                modules = {}
                for module_name, module_data in modules_data.items():
                    modules[module_name] = LoggingModuleConfig(
                        level=module_data.get('level', 'INFO'),
                        enabled=module_data.get('enabled', True)
                    )

                self._typed_cache['logging_config'] = LoggingConfig(
                    level=logging_data.get('level', 'INFO'),
                    format=logging_data.get('format', LoggingConfig.format),
                    date_format=logging_data.get('date_format', LoggingConfig.date_format),
                    file_config=file_config,
                    console_config=console_config,
                    modules=modules,
                    performance_monitoring=perf_config
                )
            except (AttributeError, TypeError) as e:
                config_logger.error(f"Failed to parse logging config: {e}")
                self._typed_cache['logging_config'] = LoggingConfig()

        return self._typed_cache['logging_config']

    def get_portal_api_config(self) -> PortalApiConfig:
        """获取门户API配置（类型安全），环境变量可覆盖后端地址"""
        if 'portal_api_config' not in self._typed_cache:
            defaults = PortalApiConfig()
            try:
                api_data = self.get_nested('portal_api_config', {})
                endpoints = api_data.get('endpoints', {})
                timeouts = api_data.get('timeouts', {})
                api_config = PortalApiConfig(
                    base_url=api_data.get('base_url', defaults.base_url),
                    timeout_total=float(timeouts.get('total', defaults.timeout_total)),
                    timeout_connect=float(timeouts.get('connect', defaults.timeout_connect)),
                    max_connections=int(api_data.get('max_connections', defaults.max_connections)),
                    upsert_quote_path=endpoints.get('upsert_quote', defaults.upsert_quote_path),
                    request_quote_path=endpoints.get('request_quote', defaults.request_quote_path),
                    token_keys=list(api_data.get('token_keys', defaults.token_keys))
                )
            except (AttributeError, TypeError, ValueError) as e:
                config_logger.error(f"Failed to parse portal api config: {e}")
                api_config = defaults

            env_base_url = os.getenv(BASE_URL_ENV)
            if env_base_url:
                config_logger.debug(f"Portal base URL overridden by {BASE_URL_ENV}")
                api_config.base_url = env_base_url

            self._typed_cache['portal_api_config'] = api_config

        return self._typed_cache['portal_api_config']

    def get_session_store_config(self) -> SessionStoreConfig:
        """获取会话存储配置（类型安全）"""
        if 'session_store_config' not in self._typed_cache:
            try:
                store_data = self.get_nested('session_store_config', {})
                self._typed_cache['session_store_config'] = SessionStoreConfig(
                    backend=store_data.get('backend', 'file'),
                    file_path=store_data.get('file_path', 'data/session.json')
                )
            except (AttributeError, TypeError) as e:
                config_logger.error(f"Failed to parse session store config: {e}")
                self._typed_cache['session_store_config'] = SessionStoreConfig()

        return self._typed_cache['session_store_config']

    # ========================================================================
    # 便捷方法
    # ========================================================================

    def is_enabled(self, feature_path: str) -> bool:
        """检查功能是否启用"""
        return self.get_nested(f"{feature_path}.enabled", False)

    def save_config(self, file_path: Optional[str] = None) -> None:
        """保存配置到文件"""
        # 默认保存为一个合并后的文件，而不是覆盖拆分的文件
        if file_path:
            save_path = Path(file_path)
        else:
            save_path = self._config_dir / "config.merged.json"

        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)

            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            config_logger.info(f"Current merged configuration saved to: {save_path}")
        except OSError as e:
            raise ConfigurationError(
                f"Failed to save configuration: {e}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        """返回配置数据的字典副本"""
        return self._config_data.copy()

    def update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """从字典更新配置"""
        self._config_data.update(config_dict)
        self._typed_cache.clear()  # 清除缓存
        config_logger.info("Configuration updated from dict")

    def clear_cache(self) -> None:
        """清除类型化配置缓存"""
        self._typed_cache.clear()
        config_logger.debug("Configuration cache cleared")


# ============================================================================
# 全局单例实例
# ============================================================================

config_manager = UnifiedConfigManager()
