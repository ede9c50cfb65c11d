"""
Tests for Configuration Validation

Tests cover required backend settings, name checks for values used in
request paths, and the startup configuration summary.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.validators import get_config_summary, validate_settings
from utils.exceptions import ConfigurationError


class TestValidateSettings:

    def test_valid_settings(self, mock_settings):
        assert validate_settings() is True

    def test_missing_backend_settings(self, mock_settings):
        """All problems are reported together."""
        mock_settings.SUPABASE_URL = ""
        mock_settings.SUPABASE_ANON_KEY = ""

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings()

        message = str(exc_info.value)
        assert "SUPABASE_URL" in message
        assert "SUPABASE_ANON_KEY" in message

    def test_url_without_scheme(self, mock_settings):
        mock_settings.SUPABASE_URL = "test-project.example.co"

        with pytest.raises(ConfigurationError, match="http"):
            validate_settings()

    @pytest.mark.parametrize("table", ["", "posts?select=*", "1posts", "posts; drop"])
    def test_invalid_table_name(self, mock_settings, table):
        mock_settings.POSTS_TABLE = table

        with pytest.raises(ConfigurationError, match="POSTS_TABLE"):
            validate_settings()

    def test_invalid_rpc_name(self, mock_settings):
        mock_settings.LIKE_RPC_FUNCTION = "increment/likes"

        with pytest.raises(ConfigurationError, match="LIKE_RPC_FUNCTION"):
            validate_settings()

    def test_valid_rpc_name(self, mock_settings):
        mock_settings.LIKE_RPC_FUNCTION = "increment_likes"

        assert validate_settings() is True

    def test_non_positive_timeout(self, mock_settings):
        mock_settings.HTTP_TIMEOUT = 0

        with pytest.raises(ConfigurationError, match="HTTP_TIMEOUT"):
            validate_settings()

    def test_unknown_log_level(self, mock_settings):
        mock_settings.LOG_LEVEL = "VERBOSE"

        with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
            validate_settings()


class TestConfigSummary:

    def test_summary_hides_key(self, mock_settings):
        summary = get_config_summary()

        assert summary["backend"]["anon_key_configured"] is True
        assert "test-anon-key" not in str(summary)
        assert summary["backend"]["atomic_likes"] is False
        assert summary["auth"]["redirect_url"] is None
        assert summary["feed"]["self_like_guard"] is True
