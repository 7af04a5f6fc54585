"""
Segmentation Engine

Classifies customers and products with ordered threshold rules.

A rule set is an ordered tuple of (label, predicate) pairs plus a default
label. Rules are evaluated top-down and the first matching predicate wins,
so every row receives exactly one label. Null comparisons never match and
fall through to the next rule.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import polars as pl
import structlog

from warehouse_analytics.config import get_settings
from .aggregation import month_diff

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SegmentRule:
    """A label applied when its predicate holds"""
    label: str
    predicate: pl.Expr


@dataclass(frozen=True)
class RuleSet:
    """Ordered rules with the label used when none matches"""
    rules: Tuple[SegmentRule, ...]
    default: str

    @property
    def labels(self) -> Tuple[str, ...]:
        """Every label the rule set can produce, in priority order"""
        labels = [rule.label for rule in self.rules]
        if self.default not in labels:
            labels.append(self.default)
        return tuple(labels)

    def to_expr(self) -> pl.Expr:
        """Compile the rules into a single when/then chain"""
        if not self.rules:
            return pl.lit(self.default)

        first, *rest = self.rules
        chain = pl.when(first.predicate.fill_null(False)).then(pl.lit(first.label))
        for rule in rest:
            chain = chain.when(rule.predicate.fill_null(False)).then(pl.lit(rule.label))
        return chain.otherwise(pl.lit(self.default))

    def apply(self, df: pl.DataFrame, column: str) -> pl.DataFrame:
        """Add the segment label as column"""
        return df.with_columns(self.to_expr().alias(column))


# =============================================================================
# RULE SETS
# =============================================================================

def customer_rules(
    min_lifespan_months: Optional[int] = None,
    spending_threshold: Optional[float] = None,
) -> RuleSet:
    """
    Customer segments on lifespan_months and total_spending.

    1. lifespan >= 12 months and spending > 5000  -> VIP
    2. lifespan >= 12 months and spending <= 5000 -> Regular
    3. otherwise                                  -> New
    """
    settings = get_settings().analytics
    lifespan = min_lifespan_months if min_lifespan_months is not None else settings.vip_min_lifespan_months
    spending = spending_threshold if spending_threshold is not None else settings.vip_spending_threshold

    long_lived = pl.col("lifespan_months") >= lifespan
    return RuleSet(
        rules=(
            SegmentRule("VIP", long_lived & (pl.col("total_spending") > spending)),
            SegmentRule("Regular", long_lived & (pl.col("total_spending") <= spending)),
        ),
        default="New",
    )


def cost_band_rules(bands: Optional[Sequence[float]] = None) -> RuleSet:
    """
    Product cost ranges.

    Default bands: Below 100, 100-500, 500-1000, Above 1000. A product
    without a cost is Unknown.
    """
    if bands is None:
        settings = get_settings().analytics
        bands = (settings.cost_band_low, settings.cost_band_mid, settings.cost_band_high)
    bands = sorted(bands)
    if not bands:
        raise ValueError("At least one cost band boundary is required")

    cost = pl.col("cost")
    rules = [
        SegmentRule("Unknown", cost.is_null()),
        SegmentRule(f"Below {_fmt(bands[0])}", cost < bands[0]),
    ]
    for low, high in zip(bands, bands[1:]):
        rules.append(SegmentRule(f"{_fmt(low)}-{_fmt(high)}", cost.is_between(low, high)))

    return RuleSet(rules=tuple(rules), default=f"Above {_fmt(bands[-1])}")


def performance_tier_rules(
    high_threshold: Optional[float] = None,
    mid_threshold: Optional[float] = None,
) -> RuleSet:
    """Revenue tiers on total_sales: High-Performer, Mid-Range, Low-Performer"""
    settings = get_settings().analytics
    high = high_threshold if high_threshold is not None else settings.high_performer_threshold
    mid = mid_threshold if mid_threshold is not None else settings.mid_range_threshold

    return RuleSet(
        rules=(
            SegmentRule("High-Performer", pl.col("total_sales") > high),
            SegmentRule("Mid-Range", pl.col("total_sales") >= mid),
        ),
        default="Low-Performer",
    )


def age_group_rules() -> RuleSet:
    """Customer age groups on age"""
    age = pl.col("age")
    return RuleSet(
        rules=(
            SegmentRule("Unknown", age.is_null()),
            SegmentRule("Under 20", age < 20),
            SegmentRule("20-29", age.is_between(20, 29)),
            SegmentRule("30-39", age.is_between(30, 39)),
            SegmentRule("40-49", age.is_between(40, 49)),
        ),
        default="50 and above",
    )


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# =============================================================================
# SEGMENTATION
# =============================================================================

def customer_spending(customers: pl.DataFrame, transactions: pl.DataFrame) -> pl.DataFrame:
    """
    Spending and order history per customer.

    total_spending covers every transaction, dated or not. Order dates and
    lifespan_months only use dated transactions. Customers without
    transactions get 0 spending and a null lifespan.
    """
    history = transactions.group_by("customer_key").agg([
        pl.col("sales_amount").sum().alias("total_spending"),
        pl.col("order_date").min().alias("first_order_date"),
        pl.col("order_date").max().alias("last_order_date"),
    ]).with_columns(
        month_diff("first_order_date", "last_order_date").alias("lifespan_months")
    )

    return (
        customers.select("customer_key")
        .join(history, on="customer_key", how="left")
        .with_columns(pl.col("total_spending").fill_null(0.0))
    )


def segment_customers(
    customers: pl.DataFrame,
    transactions: pl.DataFrame,
    rules: Optional[RuleSet] = None,
) -> pl.DataFrame:
    """
    Assign every customer exactly one segment.

    Returns:
        customer_key, total_spending, first_order_date, last_order_date,
        lifespan_months and customer_segment
    """
    rules = rules or customer_rules()
    spending = customer_spending(customers, transactions)
    segmented = rules.apply(spending, "customer_segment")

    logger.info(
        f"Segmented {segmented.height} customers",
        segments=dict(segmented["customer_segment"].value_counts().iter_rows()),
    )
    return segmented


def segment_products(
    products: pl.DataFrame,
    transactions: Optional[pl.DataFrame] = None,
    bands: Optional[RuleSet] = None,
    tiers: Optional[RuleSet] = None,
) -> pl.DataFrame:
    """
    Assign every product a cost range, and a performance tier when
    transactions are given.

    Returns:
        product_key, product_name, cost, cost_range and, with transactions,
        total_sales and product_segment
    """
    bands = bands or cost_band_rules()
    df = bands.apply(
        products.select(["product_key", "product_name", "cost"]),
        "cost_range",
    )

    if transactions is not None:
        tiers = tiers or performance_tier_rules()
        sales = transactions.group_by("product_key").agg(
            pl.col("sales_amount").sum().alias("total_sales")
        )
        df = df.join(sales, on="product_key", how="left").with_columns(
            pl.col("total_sales").fill_null(0.0)
        )
        df = tiers.apply(df, "product_segment")

    return df


def segment_counts(segmented: pl.DataFrame, column: str, count_column: str = "total") -> pl.DataFrame:
    """Number of rows per segment label, largest first"""
    return (
        segmented.group_by(column)
        .agg(pl.len().alias(count_column))
        .sort([count_column, column], descending=[True, False])
    )
