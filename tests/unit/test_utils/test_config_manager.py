"""
Unit tests for configuration manager
"""

import pytest
import json

from utils.config_manager import UnifiedConfigManager, PortalApiConfig, SessionStoreConfig, BASE_URL_ENV
from utils.exceptions import ConfigurationError, ErrorCodes


@pytest.mark.unit
class TestConfigManager:
    """Test cases for UnifiedConfigManager"""

    @pytest.fixture
    def sample_config(self):
        """Sample configuration data split across files"""
        return {
            "portal_api_config.json": {
                "portal_api_config": {
                    "base_url": "http://backend.local/api",
                    "max_connections": 3,
                    "timeouts": {"total": 20, "connect": 4},
                    "endpoints": {"upsert_quote": "/quotes/upsert"},
                    "token_keys": ["partnerToken"]
                }
            },
            "session_store_config.json": {
                "session_store_config": {"backend": "memory"}
            },
            "logging_config.json": {
                "logging_config": {
                    "level": "DEBUG",
                    "modules": {"QuoteBuilder": {"level": "WARNING", "enabled": False}},
                    "performance_monitoring": {"slow_operation_threshold": 3.5}
                }
            }
        }

    @pytest.fixture
    def config_dir(self, sample_config, temp_dir):
        """Create temporary config directory"""
        for filename, data in sample_config.items():
            with open(temp_dir / filename, 'w') as f:
                json.dump(data, f)
        return temp_dir

    @pytest.fixture
    def config_manager(self, config_dir, monkeypatch):
        """Create UnifiedConfigManager instance"""
        monkeypatch.delenv(BASE_URL_ENV, raising=False)
        return UnifiedConfigManager(str(config_dir))

    def test_files_are_merged(self, config_manager):
        """Test every JSON file contributes its top-level sections"""
        assert "portal_api_config" in config_manager
        assert "session_store_config" in config_manager
        assert config_manager.get_nested("logging_config.level") == "DEBUG"
        assert config_manager.get_nested("portal_api_config.timeouts.total") == 20

    def test_get_with_default(self, config_manager):
        """Test missing keys fall back to the default"""
        assert config_manager.get("nonexistent", "default") == "default"
        assert config_manager.get_nested("portal_api_config.missing.key", 42) == 42

    def test_set_nested_clears_typed_cache(self, config_manager):
        """Test setting values invalidates typed accessors"""
        assert config_manager.get_session_store_config().backend == "memory"
        config_manager.set_nested("session_store_config.backend", "file")
        assert config_manager.get_session_store_config().backend == "file"

    def test_portal_api_config(self, config_manager):
        """Test typed portal API configuration"""
        api_config = config_manager.get_portal_api_config()

        assert isinstance(api_config, PortalApiConfig)
        assert api_config.base_url == "http://backend.local/api"
        assert api_config.timeout_total == 20.0
        assert api_config.timeout_connect == 4.0
        assert api_config.max_connections == 3
        assert api_config.upsert_quote_path == "/quotes/upsert"
        # not configured, default applies
        assert api_config.request_quote_path == "/request-quote"
        assert api_config.token_keys == ["partnerToken"]

    def test_portal_base_url_env_override(self, config_dir, monkeypatch):
        """Test the base URL can be overridden from the environment"""
        monkeypatch.setenv(BASE_URL_ENV, "https://staging.example.com")
        manager = UnifiedConfigManager(str(config_dir))

        assert manager.get_portal_api_config().base_url == "https://staging.example.com"

    def test_session_store_config_defaults(self, config_manager):
        """Test session store file path default"""
        store_config = config_manager.get_session_store_config()

        assert isinstance(store_config, SessionStoreConfig)
        assert store_config.file_path == "data/session.json"

    def test_logging_config(self, config_manager):
        """Test typed logging configuration"""
        logging_config = config_manager.get_logging_config()

        assert logging_config.level == "DEBUG"
        assert logging_config.modules["QuoteBuilder"].enabled is False
        assert logging_config.performance_monitoring.slow_operation_threshold == 3.5
        assert logging_config.file_config.filename == "portal.log"

    def test_missing_directory(self, temp_dir):
        """Test a missing config directory raises ConfigurationError"""
        with pytest.raises(ConfigurationError) as exc_info:
            UnifiedConfigManager(str(temp_dir / "nope"))

        assert exc_info.value.error_code == ErrorCodes.CONFIG_NOT_FOUND

    def test_invalid_json(self, temp_dir):
        """Test malformed config files raise ConfigurationError"""
        (temp_dir / "broken.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            UnifiedConfigManager(str(temp_dir))

        assert exc_info.value.error_code == ErrorCodes.CONFIG_INVALID_FORMAT

    def test_non_object_config_file(self, temp_dir):
        """Test config files must contain objects"""
        (temp_dir / "list.json").write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            UnifiedConfigManager(str(temp_dir))

    def test_save_config_skipped_on_reload(self, config_manager, config_dir):
        """Test the merged snapshot is written but not merged back in"""
        config_manager.set("extra", {"value": 1})
        config_manager.save_config()

        assert (config_dir / "config.merged.json").exists()

        config_manager.reload_config()
        assert config_manager.get("extra") is None

    def test_update_from_dict(self, config_manager):
        """Test bulk updates"""
        config_manager.update_from_dict({"session_store_config": {"backend": "file", "file_path": "x.json"}})

        assert config_manager.get_session_store_config().file_path == "x.json"
        assert config_manager.to_dict()["session_store_config"]["backend"] == "file"
