"""
Data Validation Module

Rule-based quality checks over the warehouse tables.

Every check counts violating rows; a check passes when that count is zero.
Checks:
- Null keys
- Duplicate dimension keys
- Out-of-range and negative measures
- Missing dimension references (fact rows are kept, left-join semantics)
- Shipping before ordering
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

CheckFunc = Callable[[pl.DataFrame], "ValidationCheck"]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Data cannot be trusted
    WARNING = "warning"  # Handled downstream, reported
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100

    def get_check(self, name: str) -> Optional[ValidationCheck]:
        """Look up a check result by name"""
        return next((c for c in self.checks if c.name == name), None)


class DataValidator:
    """
    Chainable validator for one warehouse table.

    Example:
        result = (
            DataValidator()
            .add_not_null_check("customer_key")
            .add_unique_check("customer_key")
            .validate(customers_df)
        )
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Warnings fail the suite
        self._checks: List[CheckFunc] = []

    def reset(self) -> None:
        """Remove every registered check"""
        self._checks = []

    def _add_row_check(
        self,
        name: str,
        columns: List[str],
        severity: ValidationSeverity,
        violations: Callable[[pl.DataFrame], int],
        describe: Callable[[int], str],
        details: Optional[Dict[str, Any]] = None,
    ) -> "DataValidator":
        """Register a check failing on every row counted by violations"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            absent = [c for c in columns if c not in df.columns]
            if absent:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Column '{absent[0]}' not found",
                )

            failed = int(violations(df))
            return ValidationCheck(
                name=name,
                passed=failed == 0,
                severity=severity,
                message=describe(failed),
                details={**(details or {}), "failed_count": failed},
                failed_rows=failed,
                total_rows=df.height,
            )

        self._checks.append(check)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Fail on null values in column"""
        return self._add_row_check(
            f"not_null_{column}",
            [column],
            severity,
            lambda df: df[column].null_count(),
            lambda n: f"Column '{column}' has {n} null values" if n else f"Column '{column}' has no null values",
        )

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Fail on rows sharing a value of column"""
        return self._add_row_check(
            f"unique_{column}",
            [column],
            severity,
            lambda df: df[column].is_duplicated().sum(),
            lambda n: f"Column '{column}' has {n} duplicated rows" if n else f"Column '{column}' values are unique",
        )

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Fail on values below min_value or above max_value. Nulls are ignored."""
        outside = pl.lit(False)
        if min_value is not None:
            outside = outside | (pl.col(column) < min_value)
        if max_value is not None:
            outside = outside | (pl.col(column) > max_value)

        return self._add_row_check(
            f"range_{column}",
            [column],
            severity,
            lambda df: df.filter(outside).height,
            lambda n: (
                f"Column '{column}' has {n} values outside range [{min_value}, {max_value}]"
                if n else "All values in range"
            ),
            details={"min": min_value, "max": max_value},
        )

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = True,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Fail on negative values (and zeros unless allow_zero)"""
        min_val = 0 if allow_zero else 0.0001
        return self.add_range_check(column, min_value=min_val, severity=severity)

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Fail on non-null keys missing from the reference table"""
        reference = reference_df.select(pl.col(reference_column).alias(column)).unique()

        def orphans(df: pl.DataFrame) -> int:
            # Anti join keeps rows without a match
            return df.filter(pl.col(column).is_not_null()).join(reference, on=column, how="anti").height

        return self._add_row_check(
            f"ref_integrity_{column}",
            [column],
            severity,
            orphans,
            lambda n: f"Column '{column}' has {n} orphan records" if n else "Referential integrity maintained",
        )

    def add_date_order_check(
        self,
        earlier: str,
        later: str,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Fail on rows where later precedes earlier. Rows with a null date are ignored."""
        return self._add_row_check(
            f"date_order_{earlier}_{later}",
            [earlier, later],
            severity,
            lambda df: df.filter(pl.col(later) < pl.col(earlier)).height,
            lambda n: f"{n} rows have {later} before {earlier}" if n else f"{later} never precedes {earlier}",
        )

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all registered checks.

        Status is FAILED on any failed ERROR check (or any warning in strict
        mode), PARTIAL on failed WARNING checks, PASSED otherwise. Failed INFO
        checks never change the status.
        """
        started_at = datetime.now(timezone.utc)
        logger.info(f"Running {len(self._checks)} validation checks on {len(df)} rows")

        results = [check(df) for check in self._checks]
        for result in results:
            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        failures = [r for r in results if not r.passed]
        failed_checks = sum(1 for r in failures if r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in failures if r.severity == ValidationSeverity.WARNING)

        if failed_checks or (warning_count and self.strict_mode):
            status = ValidationStatus.FAILED
        elif warning_count:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=len(results) - len(failures),
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

        logger.info(
            f"Validation complete: {status.value}",
            passed=result.passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )
        return result


# Pre-built validators for the warehouse tables
def create_customers_validator() -> DataValidator:
    """Validator for the customer dimension"""
    return (
        DataValidator()
        .add_not_null_check("customer_key")
        .add_unique_check("customer_key")
        .add_not_null_check("birthdate", severity=ValidationSeverity.INFO)
    )


def create_products_validator() -> DataValidator:
    """Validator for the product dimension"""
    return (
        DataValidator()
        .add_not_null_check("product_key")
        .add_unique_check("product_key")
        .add_positive_check("cost", severity=ValidationSeverity.WARNING)
    )


def create_sales_validator(
    customers_df: pl.DataFrame,
    products_df: pl.DataFrame,
) -> DataValidator:
    """
    Validator for the sales fact table.

    Null or missing references and undated rows are warnings: they are
    handled downstream (left joins, date filtering) and never drop a fact row.
    """
    return (
        DataValidator()
        .add_not_null_check("order_number")
        .add_not_null_check("order_date", severity=ValidationSeverity.WARNING)
        .add_not_null_check("customer_key", severity=ValidationSeverity.WARNING)
        .add_not_null_check("product_key", severity=ValidationSeverity.WARNING)
        .add_positive_check("sales_amount", severity=ValidationSeverity.WARNING)
        .add_positive_check("quantity", severity=ValidationSeverity.WARNING)
        .add_referential_integrity_check(
            "customer_key", customers_df, "customer_key", severity=ValidationSeverity.WARNING
        )
        .add_referential_integrity_check(
            "product_key", products_df, "product_key", severity=ValidationSeverity.WARNING
        )
        .add_date_order_check("order_date", "shipping_date")
    )
