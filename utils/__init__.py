"""
工具模块包
提供项目所需的通用工具和功能
"""

# 导出核心工具
from .config_manager import (
    config_manager,
    UnifiedConfigManager,
    LoggingConfig,
    PortalApiConfig,
    SessionStoreConfig
)
from .exceptions import (
    PortalError,
    ConfigurationError,
    SessionStoreError,
    RecoverableParseError,
    ResolutionDegradation,
    SubmissionError,
    ReconciliationError,
    ErrorCodes,
    create_error_response
)
from .logging_manager import (
    LogContext,
    log_execution,
    MetricsLogger,
    logging_manager,
    logger,
    quote_metrics,
    client_metrics,
    LogConfig,
    initialize_logging,
    ModuleLoggers,
    quote_logger,
    store_logger,
    client_logger,
    config_logger,
    main_logger
)
from .path_utils import BASE_DIR, CONFIG_DIR, LOG_DIR, DATA_DIR, SESSION_FILE
