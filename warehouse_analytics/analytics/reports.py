"""
Report Builder

Business-facing views over the star schema:
- Customer report: one row per customer with demographics, segment,
  order history and derived KPIs
- Product report: one row per product with cost range, performance tier,
  sales history and derived KPIs

Recency, lifespan and ages are calendar differences measured at the
report-generation date (as_of). Every ratio is guarded and yields 0 when
its denominator is zero or missing.
"""

from datetime import date
from typing import Optional

import polars as pl
import structlog

from .aggregation import age_in_years, month_diff, safe_divide
from .segmentation import (
    RuleSet,
    age_group_rules,
    cost_band_rules,
    customer_rules,
    performance_tier_rules,
)

logger = structlog.get_logger(__name__)


def _order_history(transactions: pl.DataFrame, key: str, distinct_column: str, distinct_alias: str) -> pl.DataFrame:
    """Order totals per dimension key"""
    return transactions.group_by(key).agg([
        pl.col("order_number").drop_nulls().n_unique().alias("total_orders"),
        pl.col("sales_amount").sum().alias("total_sales"),
        pl.col("quantity").sum().alias("total_quantity"),
        pl.col(distinct_column).drop_nulls().n_unique().alias(distinct_alias),
        pl.col("order_date").min().alias("first_order_date"),
        pl.col("order_date").max().alias("last_order_date"),
    ])


def build_customer_report(
    customers: pl.DataFrame,
    transactions: pl.DataFrame,
    as_of: Optional[date] = None,
    rules: Optional[RuleSet] = None,
) -> pl.DataFrame:
    """
    Build the customer report.

    Args:
        customers: Customer dimension
        transactions: Sales fact rows
        as_of: Report-generation date (defaults to today)
        rules: Customer segmentation rules (defaults from settings)

    Returns:
        One row per customer, customers without orders included with zero
        totals, null dates and the New segment
    """
    as_of = as_of or date.today()
    rules = rules or customer_rules()

    history = _order_history(transactions, "customer_key", "product_key", "total_products")

    df = customers.join(history, on="customer_key", how="left").with_columns([
        pl.col("total_orders").fill_null(0),
        pl.col("total_sales").fill_null(0.0),
        pl.col("total_quantity").fill_null(0),
        pl.col("total_products").fill_null(0),
    ])

    df = df.with_columns([
        pl.concat_str(
            [pl.col("first_name").fill_null(""), pl.col("last_name").fill_null("")],
            separator=" ",
        ).str.strip_chars().alias("customer_name"),
        age_in_years("birthdate", as_of).alias("age"),
        month_diff("first_order_date", "last_order_date").alias("lifespan"),
        month_diff(pl.col("last_order_date"), pl.lit(as_of)).alias("recency"),
    ])

    # Segmentation rules read total_spending and lifespan_months
    df = df.with_columns([
        pl.col("total_sales").alias("total_spending"),
        pl.col("lifespan").alias("lifespan_months"),
    ])
    df = rules.apply(df, "customer_segment")
    df = age_group_rules().apply(df, "age_group")

    df = df.with_columns([
        safe_divide("total_sales", "total_orders").alias("avg_order_value"),
        safe_divide("total_sales", "lifespan").alias("avg_monthly_spend"),
    ])

    report = df.select([
        "customer_key",
        "customer_number",
        "customer_name",
        "age",
        "age_group",
        "customer_segment",
        "last_order_date",
        "recency",
        "total_orders",
        "total_sales",
        "total_quantity",
        "total_products",
        "lifespan",
        "avg_order_value",
        "avg_monthly_spend",
    ]).sort("customer_key")

    logger.info(f"Built customer report with {report.height} rows", as_of=as_of.isoformat())
    return report


def build_product_report(
    products: pl.DataFrame,
    transactions: pl.DataFrame,
    as_of: Optional[date] = None,
    bands: Optional[RuleSet] = None,
    tiers: Optional[RuleSet] = None,
) -> pl.DataFrame:
    """
    Build the product report.

    Args:
        products: Product dimension
        transactions: Sales fact rows
        as_of: Report-generation date (defaults to today)
        bands: Cost band rules (defaults from settings)
        tiers: Revenue performance tier rules (defaults from settings)

    Returns:
        One row per product, products without sales included with zero
        totals and the lowest performance tier
    """
    as_of = as_of or date.today()
    bands = bands or cost_band_rules()
    tiers = tiers or performance_tier_rules()

    history = _order_history(transactions, "product_key", "customer_key", "total_customers")

    # Average unit price over rows with a usable quantity
    selling_price = (
        transactions.filter(pl.col("quantity").is_not_null() & (pl.col("quantity") != 0))
        .group_by("product_key")
        .agg((pl.col("sales_amount") / pl.col("quantity")).mean().alias("avg_selling_price"))
    )

    df = (
        products.join(history, on="product_key", how="left")
        .join(selling_price, on="product_key", how="left")
        .with_columns([
            pl.col("total_orders").fill_null(0),
            pl.col("total_sales").fill_null(0.0),
            pl.col("total_quantity").fill_null(0),
            pl.col("total_customers").fill_null(0),
            pl.col("avg_selling_price").fill_null(0.0),
        ])
    )

    df = df.rename({"last_order_date": "last_sale_date"}).with_columns([
        month_diff("first_order_date", "last_sale_date").alias("lifespan"),
        month_diff(pl.col("last_sale_date"), pl.lit(as_of)).alias("recency"),
    ])

    df = bands.apply(df, "cost_range")
    df = tiers.apply(df, "product_segment")

    df = df.with_columns([
        safe_divide("total_sales", "total_orders").alias("avg_order_revenue"),
        safe_divide("total_sales", "lifespan").alias("avg_monthly_revenue"),
    ])

    report = df.select([
        "product_key",
        "product_number",
        "product_name",
        "category",
        "subcategory",
        "cost",
        "cost_range",
        "last_sale_date",
        "recency",
        "product_segment",
        "lifespan",
        "total_orders",
        "total_sales",
        "total_quantity",
        "total_customers",
        "avg_selling_price",
        "avg_order_revenue",
        "avg_monthly_revenue",
    ]).sort("product_key")

    logger.info(f"Built product report with {report.height} rows", as_of=as_of.isoformat())
    return report
