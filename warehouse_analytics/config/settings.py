"""
Sales Warehouse Analytics
Centralized Configuration Management

Configuration is loaded with Pydantic settings from environment variables
and an optional .env file, with validation and type safety.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from warehouse_analytics import __version__


class DataLakeSettings(BaseSettings):
    """Input and output storage locations"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Directory holding the source CSV files")
    curated_path: str = Field(default="./data/curated", description="Directory receiving analytical tables")

    # Source files
    customers_file: str = Field(default="dim_customers.csv", description="Customer dimension file name")
    products_file: str = Field(default="dim_products.csv", description="Product dimension file name")
    sales_file: str = Field(default="fact_sales.csv", description="Sales fact file name")

    # Parsing
    delimiter: str = Field(default=",", description="CSV delimiter")
    date_format: str = Field(default="%Y-%m-%d", description="Date format of the source files")
    null_values: List[str] = Field(
        default=["", "NULL", "null", "None", "NA", "N/A", "n/a"],
        description="Strings read as null",
    )

    # Output
    output_format: str = Field(default="parquet", description="Output format: parquet or csv")

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output format value"""
        allowed = ["parquet", "csv"]
        if v.lower() not in allowed:
            raise ValueError(f"Output format must be one of: {allowed}")
        return v.lower()


class AnalyticsSettings(BaseSettings):
    """Business thresholds used by segmentation and reporting"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Customer segmentation
    vip_min_lifespan_months: int = Field(default=12, description="Minimum lifespan for VIP/Regular")
    vip_spending_threshold: float = Field(default=5000.0, description="Spending above which a customer is VIP")

    # Product cost bands (upper bounds, exclusive for the first band)
    cost_band_low: float = Field(default=100.0, description="Upper bound of the lowest cost band")
    cost_band_mid: float = Field(default=500.0, description="Upper bound of the middle cost band")
    cost_band_high: float = Field(default=1000.0, description="Upper bound of the high cost band")

    # Product performance tiers
    high_performer_threshold: float = Field(default=50000.0, description="Sales above which a product is a high performer")
    mid_range_threshold: float = Field(default=10000.0, description="Sales from which a product is mid-range")

    # Rankings
    top_n: int = Field(default=5, description="Default size of top/bottom rankings")
    top_customers_n: int = Field(default=10, description="Size of the top customers ranking")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="console", alias="LOG_FORMAT", description="Log format: json or console")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE", description="Log file path")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="warehouse-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    version: str = Field(default=__version__, description="Application version")

    # Subsystem configurations
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
