"""
统一的日志管理模块
整合基础日志配置和高级日志功能
"""

import inspect
import logging
import sys
import time
import functools
import traceback
import threading
from pathlib import Path
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass
from collections import defaultdict, deque

from .exceptions import PortalError, ErrorCodes
from .config_manager import config_manager, LoggingConfig
from .path_utils import BASE_DIR

# 获取 logging_manager 模块的专用日志器
logger = logging.getLogger("LoggingManager")


@dataclass
class LogConfig:
    """日志配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True
    log_directory: Optional[str] = None
    log_filename: str = "portal.log"
    rotation_type: str = "size"  # "size" or "time"


class LoggingManager:
    """统一的日志管理器"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, '_initialized'):
            return

        self._initialized = True
        self._loggers: Dict[str, logging.Logger] = {}
        self._config = LogConfig()
        self._metrics = defaultdict(int)
        self._slow_operation_threshold = 1.0

    def configure(self, config: LogConfig = None):
        """配置日志系统"""
        if config:
            self._config = config

        # 处理日志目录 - 如果未设置，使用项目根目录下的 log 文件夹
        if self._config.log_directory is None:
            self._config.log_directory = str(BASE_DIR / "log")

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self._config.level.upper(), logging.INFO))

        # 清除现有处理器
        self._clear_handlers(root_logger)

        if self._config.enable_console:
            self._add_console_handler(root_logger)

        if self._config.enable_file:
            Path(self._config.log_directory).mkdir(parents=True, exist_ok=True)
            self._add_file_handler(root_logger)

    def configure_from_config_file(self) -> LoggingConfig:
        """从配置文件加载日志配置"""
        try:
            logging_config = config_manager.get_logging_config()
            file_config = logging_config.file_config

            # 相对路径相对于项目根目录
            log_directory = Path(file_config.directory)
            if not log_directory.is_absolute():
                log_directory = BASE_DIR / log_directory

            rotation_config = file_config.rotation or {}

            config = LogConfig(
                level=logging_config.level,
                format=logging_config.format,
                date_format=logging_config.date_format,
                file_max_bytes=rotation_config.get('max_bytes_mb', 10) * 1024 * 1024,
                file_backup_count=rotation_config.get('backup_count', 5),
                enable_console=logging_config.console_config.enabled,
                enable_file=file_config.enabled,
                log_directory=str(log_directory),
                log_filename=file_config.filename,
                rotation_type=rotation_config.get('type', 'size')
            )

            self.configure(config)

            # 配置模块特定的日志级别
            self._configure_module_loggers(logging_config.modules)
            self._slow_operation_threshold = logging_config.performance_monitoring.slow_operation_threshold

            return logging_config

        except (OSError, AttributeError, TypeError) as e:
            raise PortalError(
                f"Failed to configure logging from config file: {str(e)}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e

    def _configure_module_loggers(self, modules_config: Dict[str, Any]):
        """配置模块特定的日志器，禁用的模块提升到 CRITICAL"""
        for module_name, module_config in modules_config.items():
            module_logger = self.get_logger(module_name)
            if module_config.enabled:
                module_logger.setLevel(getattr(logging, module_config.level.upper(), logging.INFO))
            else:
                module_logger.setLevel(logging.CRITICAL)

    def _clear_handlers(self, logger: logging.Logger):
        """清除现有处理器"""
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    def _formatter(self) -> logging.Formatter:
        return logging.Formatter(self._config.format, datefmt=self._config.date_format)

    def _add_console_handler(self, logger: logging.Logger):
        """添加控制台处理器"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(self._formatter())
        logger.addHandler(console_handler)

    def _add_file_handler(self, logger: logging.Logger):
        """添加文件处理器"""
        log_file_path = Path(self._config.log_directory) / self._config.log_filename

        if self._config.rotation_type == "size":
            file_handler = RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self._config.file_max_bytes,
                backupCount=self._config.file_backup_count,
                encoding="utf-8"
            )
        else:  # time rotation
            file_handler = TimedRotatingFileHandler(
                filename=log_file_path,
                when="midnight",
                interval=1,
                backupCount=self._config.file_backup_count,
                encoding="utf-8"
            )

        file_handler.setFormatter(self._formatter())
        logger.addHandler(file_handler)

    def get_logger(self, name: str = None) -> logging.Logger:
        """获取日志记录器"""
        if name is None:
            name = "portal"

        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)

        return self._loggers[name]

    def get_metrics(self) -> Dict[str, int]:
        """获取日志统计指标"""
        return dict(self._metrics)

    def reset_metrics(self):
        """重置统计指标"""
        self._metrics.clear()


class LogContext:
    """日志上下文管理器"""

    def __init__(self, module: str, operation: str = None,
                 extra_context: Dict[str, Any] = None):
        self.module = module
        self.operation = operation
        self.extra_context = {k: v for k, v in (extra_context or {}).items()
                              if not k.startswith('_')}
        self.start_time = None
        self.logger = logging_manager.get_logger(module)

    def __enter__(self):
        self.start_time = time.time()
        self._log_start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type is not None:
            self._log_error(exc_val, duration, exc_tb)
        else:
            self._log_success(duration)

    def _get_context_str(self) -> str:
        """获取上下文字符串"""
        parts = [self.module]

        if self.operation:
            parts.append(self.operation)

        for key, value in self.extra_context.items():
            parts.append(f"{key}:{value}")

        return ".".join(parts)

    def _log_start(self):
        context = self._get_context_str()
        self.logger.info(f"[{context}] Starting operation")
        logging_manager._metrics[f"{context}_started"] += 1

    def _log_success(self, duration: float):
        context = self._get_context_str()
        if duration > logging_manager._slow_operation_threshold:
            self.logger.warning(f"[{context}] Slow operation completed in {duration:.2f}s")
        else:
            self.logger.info(f"[{context}] Operation completed in {duration:.2f}s")
        logging_manager._metrics[f"{context}_completed"] += 1

    def _log_error(self, error: BaseException, duration: float, tb):
        context = self._get_context_str()
        self.logger.error(f"[{context}] Operation failed in {duration:.2f}s: {str(error)}")
        if not isinstance(error, (PortalError, ConnectionError, TimeoutError)):
            self.logger.debug(f"[{context}] Traceback: {''.join(traceback.format_tb(tb))}")

        logging_manager._metrics[f"{context}_failed"] += 1


def log_execution(module: str, operation: str = None, extra_context: Dict[str, Any] = None):
    """日志装饰器，同时支持同步和协程函数"""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with LogContext(module, operation or func.__name__, extra_context):
                return func(*args, **kwargs)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            with LogContext(module, operation or func.__name__, extra_context):
                return await func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class MetricsLogger:
    """指标记录器"""

    def __init__(self, module: str):
        self.module = module
        self.metrics = defaultdict(lambda: deque(maxlen=1000))

    def increment(self, metric_name: str, value: int = 1):
        """增加计数器"""
        key = f"{self.module}.{metric_name}"
        self.metrics[key].append(value)
        logging_manager._metrics[key] += value

        logging_manager.get_logger(self.module).debug(
            f"[Metrics] {key}: {logging_manager._metrics[key]}"
        )

    def timing(self, metric_name: str, duration: float):
        """记录时间"""
        key = f"{self.module}.{metric_name}_duration"
        self.metrics[key].append(duration)
        logging_manager.get_logger(self.module).debug(f"[Metrics] {key}: {duration:.2f}s")

    def get_metrics(self) -> dict:
        """获取所有指标"""
        result = {}
        for key, values in self.metrics.items():
            if values:
                result[key] = {
                    'count': len(values),
                    'latest': values[-1],
                    'sum': sum(values)
                }
        return result

    def reset(self):
        """重置指标"""
        self.metrics.clear()


# 全局日志管理器实例
logging_manager = LoggingManager()

# 兼容性：默认 logger 接口
logger = logging_manager.get_logger()

# 预定义的指标记录器实例
quote_metrics = MetricsLogger("QuoteBuilder")
client_metrics = MetricsLogger("PortalClient")


class ModuleLoggers:
    """模块专用日志器集合"""

    QuoteBuilder = logging_manager.get_logger("QuoteBuilder")
    SessionStore = logging_manager.get_logger("SessionStore")
    PortalClient = logging_manager.get_logger("PortalClient")
    Config = logging_manager.get_logger("Config")
    Main = logging_manager.get_logger("Main")


# 便捷的模块日志器别名
quote_logger = ModuleLoggers.QuoteBuilder
store_logger = ModuleLoggers.SessionStore
client_logger = ModuleLoggers.PortalClient
config_logger = ModuleLoggers.Config
main_logger = ModuleLoggers.Main


def initialize_logging(use_config_file: bool = True) -> bool:
    """初始化日志系统，配置文件失败时回退到默认配置"""
    try:
        if use_config_file:
            logging_manager.configure_from_config_file()
        else:
            logging_manager.configure()
        logger.info("Logging system initialized successfully")
        return True

    except PortalError as e:
        print(f"Failed to initialize logging: {e}")
        if not use_config_file:
            raise
        print("Falling back to default configuration...")
        logging_manager.configure()
        logger.info("Logging system initialized with fallback config")
        return True
