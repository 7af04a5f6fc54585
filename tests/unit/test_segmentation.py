"""
Unit Tests - Segmentation Engine
"""
from datetime import date

import pytest
import polars as pl

from warehouse_analytics.analytics.reports import build_customer_report, build_product_report
from warehouse_analytics.analytics.segmentation import (
    RuleSet,
    SegmentRule,
    age_group_rules,
    cost_band_rules,
    customer_rules,
    performance_tier_rules,
    segment_counts,
    segment_customers,
    segment_products,
)
from warehouse_analytics.models import (
    CUSTOMER_SCHEMA,
    PRODUCT_SCHEMA,
    SALES_SCHEMA,
    Customer,
    Product,
    SalesTransaction,
    records_to_frame,
)


class TestRuleSet:
    """Tests for ordered rule evaluation"""

    def test_first_matching_rule_wins(self):
        """Test overlapping predicates resolve by position"""
        rules = RuleSet(
            rules=(
                SegmentRule("A", pl.col("x") > 0),
                SegmentRule("B", pl.col("x") > 5),
            ),
            default="C",
        )
        df = pl.DataFrame({"x": [10, 3, -1]})

        result = rules.apply(df, "label")

        assert result["label"].to_list() == ["A", "A", "C"]

    def test_null_comparison_falls_through(self):
        """Test a null input never matches a comparison"""
        rules = RuleSet(rules=(SegmentRule("Big", pl.col("x") > 5),), default="Other")
        df = pl.DataFrame({"x": [None, 10]}, schema={"x": pl.Int64})

        result = rules.apply(df, "label")

        assert result["label"].to_list() == ["Other", "Big"]

    def test_empty_rule_set_uses_default(self):
        """Test a rule set without rules labels everything with the default"""
        df = pl.DataFrame({"x": [1, 2]})

        result = RuleSet(rules=(), default="All").apply(df, "label")

        assert result["label"].to_list() == ["All", "All"]

    def test_labels(self):
        """Test labels are listed in priority order with the default last"""
        assert customer_rules(12, 5000).labels == ("VIP", "Regular", "New")


class TestCustomerRules:
    """Tests for customer segment boundaries"""

    @pytest.fixture
    def classify(self):
        rules = customer_rules(min_lifespan_months=12, spending_threshold=5000)

        def _classify(lifespan, spending):
            df = pl.DataFrame(
                {"lifespan_months": [lifespan], "total_spending": [spending]},
                schema={"lifespan_months": pl.Int64, "total_spending": pl.Float64},
            )
            return rules.apply(df, "segment")["segment"][0]

        return _classify

    def test_vip_boundary(self, classify):
        """Test 12 months and 5001 spending is VIP"""
        assert classify(12, 5001.0) == "VIP"

    def test_regular_boundary(self, classify):
        """Test 12 months and exactly 5000 spending is Regular"""
        assert classify(12, 5000.0) == "Regular"

    def test_short_lifespan_is_new(self, classify):
        """Test high spending under 12 months is still New"""
        assert classify(11, 10000.0) == "New"

    def test_no_history_is_new(self, classify):
        """Test an undefined lifespan is New"""
        assert classify(None, 0.0) == "New"

    def test_segment_customers(self, star):
        """Test every customer, including those without orders, gets one segment"""
        result = segment_customers(star.customers, star.sales)
        segments = dict(zip(result["customer_key"].to_list(), result["customer_segment"].to_list()))

        assert segments == {1: "VIP", 2: "New", 3: "New"}

    def test_customer_without_orders(self, star):
        """Test zero spending and null lifespan for a customer without orders"""
        result = segment_customers(star.customers, star.sales)
        row = result.filter(pl.col("customer_key") == 3).row(0, named=True)

        assert row["total_spending"] == 0.0
        assert row["lifespan_months"] is None

    def test_segment_counts(self, star):
        """Test customers per segment, largest first"""
        segmented = segment_customers(star.customers, star.sales)

        result = segment_counts(segmented, "customer_segment", "total_customers")

        assert result.rows() == [("New", 2), ("VIP", 1)]


class TestProductRules:
    """Tests for cost bands and performance tiers"""

    def test_cost_bands(self):
        """Test cost band boundaries"""
        df = pl.DataFrame(
            {"cost": [50.0, 100.0, 500.0, 999.0, 1000.0, 1500.0, None]},
            schema={"cost": pl.Float64},
        )

        result = cost_band_rules((100, 500, 1000)).apply(df, "cost_range")

        assert result["cost_range"].to_list() == [
            "Below 100", "100-500", "100-500", "500-1000", "500-1000", "Above 1000", "Unknown",
        ]

    def test_custom_bands(self):
        """Test labels follow the configured boundaries"""
        rules = cost_band_rules([50.5])

        assert rules.labels == ("Unknown", "Below 50.5", "Above 50.5")

    def test_no_bands(self):
        """Test an empty band list is rejected"""
        with pytest.raises(ValueError):
            cost_band_rules([])

    def test_performance_tiers(self):
        """Test revenue tier boundaries"""
        df = pl.DataFrame({"total_sales": [50001.0, 50000.0, 10000.0, 9999.0]})

        result = performance_tier_rules(50000, 10000).apply(df, "tier")

        assert result["tier"].to_list() == ["High-Performer", "Mid-Range", "Mid-Range", "Low-Performer"]

    def test_age_groups(self):
        """Test age group boundaries"""
        df = pl.DataFrame({"age": [19, 20, 39, 49, 50, None]}, schema={"age": pl.Int64})

        result = age_group_rules().apply(df, "age_group")

        assert result["age_group"].to_list() == [
            "Under 20", "20-29", "30-39", "40-49", "50 and above", "Unknown",
        ]

    def test_segment_products_without_sales(self, sample_products_df):
        """Test cost ranges only when no transactions are given"""
        result = segment_products(sample_products_df, bands=cost_band_rules((100, 500, 1000)))

        assert result.columns == ["product_key", "product_name", "cost", "cost_range"]
        assert result["cost_range"].to_list() == ["Above 1000", "Below 100", "Below 100"]

    def test_segment_products_with_sales(self, star):
        """Test unsold products get zero sales and the lowest tier"""
        result = segment_products(
            star.products,
            star.sales,
            tiers=performance_tier_rules(5000, 100),
        )
        tiers = dict(zip(result["product_key"].to_list(), result["product_segment"].to_list()))
        totals = dict(zip(result["product_key"].to_list(), result["total_sales"].to_list()))

        assert tiers == {10: "High-Performer", 20: "Low-Performer", 30: "Low-Performer"}
        assert totals[30] == 0.0


class TestEndToEnd:
    """Segment flowing into the customer report"""

    def test_long_lived_big_spender_is_vip(self):
        """Test a 13-month customer spending 6000 is reported as VIP"""
        customers = records_to_frame(
            [
                Customer(customer_key=1, customer_number="AW1", first_name="Ana", last_name="Diaz",
                         birthdate=date(1990, 3, 1)),
                Customer(customer_key=2, customer_number="AW2", first_name="Li", last_name="Wei"),
            ],
            CUSTOMER_SCHEMA,
        )
        products = records_to_frame(
            [
                Product(product_key=1, product_name="Road-150", category="Bikes", cost=2000.0),
                Product(product_key=2, product_name="Water Bottle", category="Accessories", cost=2.0),
            ],
            PRODUCT_SCHEMA,
        )
        sales = records_to_frame(
            [
                SalesTransaction(order_number="SO1", product_key=1, customer_key=1,
                                 order_date=date(2024, 1, 5), sales_amount=3000.0, quantity=1, price=3000.0),
                SalesTransaction(order_number="SO2", product_key=2, customer_key=2,
                                 order_date=date(2024, 5, 5), sales_amount=5.0, quantity=1, price=5.0),
                SalesTransaction(order_number="SO3", product_key=2, customer_key=1,
                                 order_date=date(2024, 9, 9), sales_amount=5.0, quantity=1, price=5.0),
                SalesTransaction(order_number="SO4", product_key=1, customer_key=1,
                                 order_date=date(2025, 2, 28), sales_amount=2995.0, quantity=1, price=2995.0),
            ],
            SALES_SCHEMA,
        )
        report = build_customer_report(
            customers,
            sales,
            as_of=date(2025, 6, 1),
            rules=customer_rules(12, 5000),
        )
        row = report.filter(pl.col("customer_key") == 1).row(0, named=True)

        assert row["total_sales"] == 6000.0
        assert row["lifespan"] == 13
        assert row["customer_segment"] == "VIP"
        assert report.filter(pl.col("customer_key") == 2)["customer_segment"][0] == "New"

        product_report = build_product_report(products, sales, as_of=date(2025, 6, 1))
        assert product_report["total_sales"].to_list() == [5995.0, 10.0]
        assert product_report["cost_range"].to_list() == ["Above 1000", "Below 100"]
