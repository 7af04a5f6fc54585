"""
Unit Tests - Data Quality
"""
from datetime import date

import pytest
import polars as pl

from warehouse_analytics.quality import (
    DataValidator,
    ValidationSeverity,
    ValidationStatus,
    create_customers_validator,
    create_products_validator,
    create_sales_validator,
)


class TestDataValidator:
    """Tests for DataValidator"""

    def test_not_null_check_passes(self):
        """Test not null check with valid data"""
        df = pl.DataFrame({"id": [1, 2, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.PASSED
        assert result.passed_checks == 1

    def test_not_null_check_fails(self):
        """Test not null check with null values"""
        df = pl.DataFrame({"id": [1, None, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.failed_checks == 1

    def test_unique_check_fails(self):
        """Test unique check with duplicates"""
        df = pl.DataFrame({"id": [1, 2, 1]})

        validator = DataValidator()
        validator.add_unique_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.checks[0].failed_rows == 2

    def test_range_check(self):
        """Test range check"""
        df = pl.DataFrame({"price": [10.0, 50.0, -5.0, 200.0]})

        validator = DataValidator()
        validator.add_range_check("price", min_value=0, max_value=100)

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        # Two values outside range: -5 and 200
        check = result.checks[0]
        assert check.failed_rows == 2

    def test_missing_column(self):
        """Test a check on an absent column fails"""
        df = pl.DataFrame({"id": [1]})

        result = DataValidator().add_not_null_check("customer_key").validate(df)

        assert result.status == ValidationStatus.FAILED
        assert "not found" in result.checks[0].message

    def test_warning_is_partial(self):
        """Test failed warnings give a partial status"""
        df = pl.DataFrame({"cost": [-1.0, 2.0]})

        validator = DataValidator().add_positive_check("cost", severity=ValidationSeverity.WARNING)
        result = validator.validate(df)

        assert result.status == ValidationStatus.PARTIAL
        assert result.warning_count == 1

    def test_strict_mode(self):
        """Test warnings fail the suite in strict mode"""
        df = pl.DataFrame({"cost": [-1.0, 2.0]})

        validator = DataValidator(strict_mode=True)
        validator.add_positive_check("cost", severity=ValidationSeverity.WARNING)

        assert validator.validate(df).status == ValidationStatus.FAILED

    def test_referential_integrity(self):
        """Test orphan keys are counted and null keys ignored"""
        reference = pl.DataFrame({"customer_key": [1, 2]})
        df = pl.DataFrame({"customer_key": [1, 2, 3, None]}, schema={"customer_key": pl.Int64})

        validator = DataValidator().add_referential_integrity_check("customer_key", reference, "customer_key")
        result = validator.validate(df)

        check = result.get_check("ref_integrity_customer_key")
        assert check.failed_rows == 1
        assert result.get_check("not_a_check") is None

    def test_date_order(self):
        """Test shipping before ordering is flagged, missing dates ignored"""
        df = pl.DataFrame({
            "order_date": [date(2025, 1, 10), date(2025, 1, 10), None],
            "shipping_date": [date(2025, 1, 17), date(2025, 1, 5), date(2025, 1, 5)],
        })

        result = DataValidator().add_date_order_check("order_date", "shipping_date").validate(df)

        assert result.status == ValidationStatus.PARTIAL
        assert result.checks[0].failed_rows == 1

    def test_reset(self):
        """Test reset clears registered checks"""
        validator = DataValidator().add_not_null_check("id")
        validator.reset()

        result = validator.validate(pl.DataFrame({"id": [None]}))

        assert result.total_checks == 0
        assert result.success_rate == 100.0


class TestWarehouseValidators:
    """Tests for the pre-built warehouse validators"""

    def test_customers_validator(self, sample_customers_df):
        """Test missing birthdates are informational only"""
        result = create_customers_validator().validate(sample_customers_df)

        assert result.status == ValidationStatus.PASSED
        assert not result.get_check("not_null_birthdate").passed

    def test_products_validator(self, sample_products_df):
        """Test the product dimension passes"""
        result = create_products_validator().validate(sample_products_df)

        assert result.status == ValidationStatus.PASSED

    def test_sales_validator(self, star):
        """Test undated rows and unknown keys are warnings, not failures"""
        validator = create_sales_validator(star.customers, star.products)

        result = validator.validate(star.sales)

        assert result.status == ValidationStatus.PARTIAL
        assert result.warning_count == 3
        assert result.get_check("not_null_order_date").failed_rows == 1
        assert result.get_check("ref_integrity_customer_key").failed_rows == 1
        assert result.get_check("ref_integrity_product_key").failed_rows == 1

    @pytest.mark.parametrize("column", ["sales_amount", "quantity"])
    def test_negative_measures_are_flagged(self, star, column):
        """Test negative measures raise a warning"""
        sales = star.sales.with_columns(pl.lit(-1).cast(star.sales.schema[column]).alias(column))

        result = create_sales_validator(star.customers, star.products).validate(sales)

        assert not result.get_check(f"range_{column}").passed

    def test_null_keys_are_warnings(self, star):
        """Test facts without keys are reported but do not fail the table"""
        sales = star.sales.with_columns(pl.lit(None, dtype=pl.Int64).alias("customer_key"))

        result = create_sales_validator(star.customers, star.products).validate(sales)

        assert result.status == ValidationStatus.PARTIAL
        assert result.get_check("not_null_customer_key").failed_rows == sales.height
        assert result.get_check("not_null_product_key").passed
        assert result.get_check("ref_integrity_customer_key").passed

    def test_timestamps_are_timezone_aware(self, sample_products_df):
        """Test validation timestamps carry UTC"""
        result = create_products_validator().validate(sample_products_df)

        assert result.started_at.tzinfo is not None
        assert result.completed_at >= result.started_at
