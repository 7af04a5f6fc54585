"""
CSV Loader

Loads the warehouse CSV files into typed Polars frames.
Supports:
- Reading every column as text and casting it to the table schema
- Date parsing with a configurable format
- Skipping rows without their required columns, with a recorded count
- Lossy UTF-8 decoding; unreadable values are counted, never fatal
- Deduplicating dimension keys
- Load audit results
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import hashlib

import polars as pl
import structlog
from pydantic import BaseModel

from warehouse_analytics.config import get_settings
from warehouse_analytics.models import (
    CUSTOMER_SCHEMA,
    PRODUCT_SCHEMA,
    REQUIRED_COLUMNS,
    SALES_SCHEMA,
    StarSchema,
)

logger = structlog.get_logger(__name__)

TRUE_VALUES = ["true", "yes", "y", "1", "t"]
FALSE_VALUES = ["false", "no", "n", "0", "f"]
REPLACEMENT_CHAR = "\ufffd"


class LoadStatus(str, Enum):
    """Load status"""
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class CsvFileConfig:
    """Configuration for loading one warehouse table"""
    file_path: Union[str, Path]
    table: str
    schema: Dict[str, pl.DataType]
    required_columns: List[str] = field(default_factory=list)
    unique_key: Optional[str] = None
    delimiter: str = ","
    date_format: str = "%Y-%m-%d"
    null_values: List[str] = field(default_factory=lambda: ["", "NULL", "null", "None", "NA", "N/A"])


class LoadResult(BaseModel):
    """Result of a load operation"""
    file_path: str
    table: str
    status: LoadStatus
    rows_read: int = 0
    rows_loaded: int = 0
    rows_failed: int = 0
    rows_duplicated: int = 0
    values_coerced: int = 0
    missing_columns: List[str] = []
    error_message: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    file_hash: Optional[str] = None


class CsvLoader:
    """
    Loader for the warehouse CSV files.

    Malformed rows never abort a load: a row whose required columns are
    missing or unparseable is dropped and counted in rows_failed.

    Example:
        loader = CsvLoader()
        config = CsvFileConfig(
            file_path="data/raw/fact_sales.csv",
            table="sales",
            schema=SALES_SCHEMA,
            required_columns=["order_number", "sales_amount"],
        )
        df, result = loader.load(config)
    """

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for auditing"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _read_csv(self, config: CsvFileConfig) -> pl.DataFrame:
        """Read every column as text"""
        return pl.read_csv(
            config.file_path,
            separator=config.delimiter,
            null_values=config.null_values,
            infer_schema_length=0,
            truncate_ragged_lines=True,
            encoding="utf8-lossy",
        )

    def _cast_expr(self, column: str, dtype: pl.DataType, date_format: str) -> pl.Expr:
        """Non-strict cast of a text column to its schema type"""
        text = pl.col(column).str.strip_chars()
        text = pl.when(text == "").then(None).otherwise(text)

        if dtype == pl.Utf8:
            return text.alias(column)
        if dtype == pl.Date:
            return text.str.to_date(date_format, strict=False).alias(column)
        if dtype == pl.Boolean:
            lowered = text.str.to_lowercase()
            return (
                pl.when(lowered.is_in(TRUE_VALUES)).then(True)
                .when(lowered.is_in(FALSE_VALUES)).then(False)
                .otherwise(None)
                .alias(column)
            )
        if dtype.is_integer():
            # "3.0" is accepted, "2.7" is not
            number = text.cast(pl.Float64, strict=False)
            return (
                pl.when(number == number.floor()).then(number)
                .otherwise(None)
                .cast(dtype, strict=False)
                .alias(column)
            )
        return text.cast(dtype, strict=False).alias(column)

    def _apply_schema(
        self,
        df: pl.DataFrame,
        config: CsvFileConfig,
    ) -> Tuple[pl.DataFrame, List[str], int]:
        """Cast to the table schema, returning missing columns and coerced value count"""
        missing = [c for c in config.schema if c not in df.columns]
        if missing:
            logger.warning(f"Columns missing from {config.table} file", columns=missing)
            df = df.with_columns([pl.lit(None, dtype=pl.Utf8).alias(c) for c in missing])

        raw = df.select(list(config.schema))
        typed = raw.select([
            self._cast_expr(column, dtype, config.date_format)
            for column, dtype in config.schema.items()
        ])

        # Values present in the file that did not survive the cast, or that
        # carried bytes outside UTF-8 (decoded to U+FFFD)
        coerced = sum(
            (
                (raw[c].str.strip_chars().fill_null("") != "")
                & (typed[c].is_null() | raw[c].str.contains(REPLACEMENT_CHAR, literal=True))
            ).sum()
            for c in config.schema
        )
        if coerced:
            logger.warning(f"Coerced {coerced} unreadable values in {config.table} file")
        return typed, missing, int(coerced)

    def load(self, config: CsvFileConfig) -> Tuple[Optional[pl.DataFrame], LoadResult]:
        """
        Load one CSV file.

        Args:
            config: File configuration

        Returns:
            The typed frame (None on failure) and the load result
        """
        file_path = Path(config.file_path)
        started_at = datetime.now(timezone.utc)

        result = LoadResult(
            file_path=str(file_path),
            table=config.table,
            status=LoadStatus.COMPLETED,
            started_at=started_at,
        )

        logger.info("Starting load", file=str(file_path), table=config.table)

        try:
            if not file_path.exists():
                raise FileNotFoundError(f"File not found: {file_path}")

            result.file_hash = self._compute_file_hash(file_path)

            df = self._read_csv(config)
            result.rows_read = len(df)
            logger.info(f"Read {result.rows_read} rows from file")

            df, result.missing_columns, result.values_coerced = self._apply_schema(df, config)

            # Remove completely null rows, then rows without usable keys
            df = df.filter(~pl.all_horizontal(pl.all().is_null()))
            if config.required_columns:
                df = df.filter(pl.all_horizontal(
                    [pl.col(c).is_not_null() for c in config.required_columns]
                ))
            result.rows_failed = result.rows_read - len(df)

            if config.unique_key:
                before = len(df)
                df = df.unique(subset=[config.unique_key], keep="first", maintain_order=True)
                result.rows_duplicated = before - len(df)

            result.rows_loaded = len(df)
            if (
                result.rows_failed
                or result.rows_duplicated
                or result.values_coerced
                or result.missing_columns
            ):
                result.status = LoadStatus.PARTIAL

        except Exception as e:
            logger.error(f"Load failed: {e}", file=str(file_path), table=config.table)
            result.status = LoadStatus.FAILED
            result.error_message = str(e)
            df = None

        result.completed_at = datetime.now(timezone.utc)
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()

        logger.info(
            "Load completed",
            table=config.table,
            status=result.status.value,
            rows_loaded=result.rows_loaded,
            rows_failed=result.rows_failed,
            rows_duplicated=result.rows_duplicated,
            values_coerced=result.values_coerced,
        )

        return df, result


def table_configs(raw_path: Optional[Union[str, Path]] = None) -> List[CsvFileConfig]:
    """File configurations of the three warehouse tables"""
    lake = get_settings().data_lake
    root = Path(raw_path or lake.raw_path)

    common = dict(
        delimiter=lake.delimiter,
        date_format=lake.date_format,
        null_values=list(lake.null_values),
    )
    return [
        CsvFileConfig(
            file_path=root / lake.customers_file,
            table="customers",
            schema=CUSTOMER_SCHEMA,
            required_columns=REQUIRED_COLUMNS["customers"],
            unique_key="customer_key",
            **common,
        ),
        CsvFileConfig(
            file_path=root / lake.products_file,
            table="products",
            schema=PRODUCT_SCHEMA,
            required_columns=REQUIRED_COLUMNS["products"],
            unique_key="product_key",
            **common,
        ),
        CsvFileConfig(
            file_path=root / lake.sales_file,
            table="sales",
            schema=SALES_SCHEMA,
            required_columns=REQUIRED_COLUMNS["sales"],
            **common,
        ),
    ]


def load_star_schema(
    raw_path: Optional[Union[str, Path]] = None,
    loader: Optional[CsvLoader] = None,
) -> Tuple[StarSchema, Dict[str, LoadResult]]:
    """
    Load customers, products and sales into a star schema.

    Raises:
        FileNotFoundError: A source file does not exist
        ValueError: A source file could not be read
    """
    loader = loader or CsvLoader()
    frames: Dict[str, pl.DataFrame] = {}
    results: Dict[str, LoadResult] = {}

    for config in table_configs(raw_path):
        if not Path(config.file_path).exists():
            raise FileNotFoundError(f"File not found: {config.file_path}")

        df, result = loader.load(config)
        if result.status == LoadStatus.FAILED:
            raise ValueError(f"Could not load {config.table}: {result.error_message}")

        frames[config.table] = df
        results[config.table] = result

    star = StarSchema(
        customers=frames["customers"],
        products=frames["products"],
        sales=frames["sales"],
    )
    return star, results
