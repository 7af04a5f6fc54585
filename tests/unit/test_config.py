"""
Unit Tests - Configuration
"""
import pytest
from pydantic import ValidationError

from warehouse_analytics import __version__
from warehouse_analytics.config import Settings
from warehouse_analytics.config.settings import AnalyticsSettings, DataLakeSettings


class TestSettings:
    """Tests for Settings"""

    def test_defaults(self, test_settings):
        """Test default thresholds"""
        assert test_settings.app_env == "testing"
        assert test_settings.app_name == "warehouse-analytics"
        assert test_settings.analytics.vip_min_lifespan_months == 12
        assert test_settings.analytics.vip_spending_threshold == 5000.0
        assert test_settings.data_lake.output_format == "parquet"
        assert test_settings.version == __version__

    def test_invalid_environment(self):
        """Test unknown environments are rejected"""
        with pytest.raises(ValidationError):
            Settings(APP_ENV="moon")

    def test_environment_is_normalized(self):
        """Test environment names are lowercased"""
        assert Settings(APP_ENV="PRODUCTION").app_env == "production"

    def test_output_format(self):
        """Test output format is validated and lowercased"""
        assert DataLakeSettings(output_format="CSV").output_format == "csv"
        with pytest.raises(ValidationError):
            DataLakeSettings(output_format="xlsx")

    def test_environment_override(self, monkeypatch):
        """Test thresholds are read from prefixed environment variables"""
        monkeypatch.setenv("ANALYTICS_VIP_SPENDING_THRESHOLD", "7500")
        monkeypatch.setenv("ANALYTICS_TOP_N", "3")

        settings = AnalyticsSettings()

        assert settings.vip_spending_threshold == 7500.0
        assert settings.top_n == 3

    def test_data_lake_override(self, monkeypatch):
        """Test file names are read from the environment"""
        monkeypatch.setenv("DATA_SALES_FILE", "sales.csv")

        assert DataLakeSettings().sales_file == "sales.csv"
