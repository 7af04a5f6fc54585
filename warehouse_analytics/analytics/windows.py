"""
Ranking & Window Engine

Order-dependent analytics over aggregated rows:
- Competitive ranking with top-N / bottom-N filters
- Running totals and moving averages within a partition
- Period-over-period comparison
- Comparison against the partition average

Every operation sorts explicitly before scanning and never relies on the
incoming row order.
"""

from enum import Enum
from typing import List, Optional, Sequence, Union

import polars as pl
import structlog

from .aggregation import AggFunc, Measure, aggregate

logger = structlog.get_logger(__name__)

Partition = Optional[Union[str, Sequence[str]]]


class RankDirection(str, Enum):
    """Ranking direction"""
    DESC = "desc"  # Largest value ranks first (top queries)
    ASC = "asc"  # Smallest value ranks first (bottom queries)


def _as_list(partition_by: Partition) -> List[str]:
    if partition_by is None:
        return []
    if isinstance(partition_by, str):
        return [partition_by]
    return list(partition_by)


# =============================================================================
# RANKING
# =============================================================================

def rank(
    rows: pl.DataFrame,
    order_measure: str,
    direction: Union[RankDirection, str] = RankDirection.DESC,
    rank_column: str = "rank",
) -> pl.DataFrame:
    """
    Add a competitive rank on order_measure.

    Tied values share a rank and the following rank is skipped:
    [100, 100, 90, 80] ranks as [1, 1, 3, 4].

    Returns:
        Rows sorted by rank, ties kept in their incoming order
    """
    descending = RankDirection(direction) == RankDirection.DESC
    ranked = rows.with_columns(
        pl.col(order_measure)
        .rank(method="min", descending=descending)
        .cast(pl.Int64)
        .alias(rank_column)
    )
    return ranked.sort(rank_column, nulls_last=True, maintain_order=True)


def top_n(
    rows: pl.DataFrame,
    order_measure: str,
    n: int,
    rank_column: str = "rank",
) -> pl.DataFrame:
    """Rows ranked within the first n by descending order_measure (ties included)"""
    ranked = rank(rows, order_measure, RankDirection.DESC, rank_column)
    return ranked.filter(pl.col(rank_column) <= n)


def bottom_n(
    rows: pl.DataFrame,
    order_measure: str,
    n: int,
    rank_column: str = "rank",
) -> pl.DataFrame:
    """Rows ranked within the first n by ascending order_measure (ties included)"""
    ranked = rank(rows, order_measure, RankDirection.ASC, rank_column)
    return ranked.filter(pl.col(rank_column) <= n)


# =============================================================================
# CUMULATIVE
# =============================================================================

def running_total(
    rows: pl.DataFrame,
    time_key: str,
    measure: str,
    partition_by: Partition = None,
    average_measure: Optional[str] = None,
) -> pl.DataFrame:
    """
    Add a running total and a moving average ordered by time_key.

    Args:
        rows: One row per time bucket (and partition)
        time_key: Column ordering the rows chronologically
        measure: Column accumulated into running_total
        partition_by: Column(s) restarting the accumulation
        average_measure: Column averaged into moving_average (defaults to measure)

    Returns:
        Rows sorted by partition and time with running_total and moving_average
    """
    partition = _as_list(partition_by)
    avg_col = average_measure or measure

    df = rows.sort(partition + [time_key], nulls_last=True)

    cumulative = pl.col(measure).fill_null(0).cum_sum()
    avg_sum = pl.col(avg_col).fill_null(0).cum_sum()
    avg_count = pl.col(avg_col).cum_count()
    if partition:
        cumulative = cumulative.over(partition)
        avg_sum = avg_sum.over(partition)
        avg_count = avg_count.over(partition)

    return df.with_columns([
        cumulative.alias("running_total"),
        pl.when(avg_count == 0)
        .then(None)
        .otherwise(avg_sum / avg_count)
        .alias("moving_average"),
    ])


def cumulative_sales(sales: pl.DataFrame) -> pl.DataFrame:
    """
    Monthly sales with a running total restarting each year and a moving
    average of the monthly average price.
    """
    monthly = aggregate(
        sales,
        ["order_period"],
        [
            Measure("sales_amount", AggFunc.SUM, "total_sales"),
            Measure("price", AggFunc.AVG, "avg_price"),
        ],
    ).with_columns(pl.col("order_period").dt.year().alias("order_year"))

    return running_total(
        monthly,
        time_key="order_period",
        measure="total_sales",
        partition_by="order_year",
        average_measure="avg_price",
    )


# =============================================================================
# COMPARISONS
# =============================================================================

def period_over_period(
    rows: pl.DataFrame,
    time_key: str,
    measure: str,
    partition_by: Partition = None,
    period: Union[int, str] = 1,
) -> pl.DataFrame:
    """
    Compare each row with the same partition one period earlier.

    Args:
        rows: At most one row per (partition, time_key)
        time_key: Integer period (e.g. order_year) or date column
        measure: Compared value
        partition_by: Column(s) identifying the series (e.g. product)
        period: Integer step, or a Polars duration such as "1mo" for dates

    Returns:
        Rows with prior_value, delta, pct_change and change. Without a prior
        period, prior_value/delta/pct_change are null and change is "n/a".
    """
    partition = _as_list(partition_by)
    keys = partition + [time_key]

    duplicated = rows.select(keys).is_duplicated().sum()
    if duplicated:
        raise ValueError(f"{duplicated} rows share a (partition, {time_key}) key")

    if isinstance(period, str):
        shifted = pl.col(time_key).dt.offset_by(period)
    else:
        shifted = pl.col(time_key) + period

    prior = rows.select(keys + [pl.col(measure).alias("prior_value")]).with_columns(
        shifted.cast(rows.schema[time_key]).alias(time_key)
    )

    df = rows.join(prior, on=keys, how="left").sort(keys, nulls_last=True)

    value = pl.col(measure)
    prior_value = pl.col("prior_value")
    delta = value - prior_value

    return df.with_columns([
        delta.alias("delta"),
        pl.when(prior_value.is_null() | (prior_value == 0))
        .then(None)
        .otherwise((delta / prior_value * 100).round(2))
        .alias("pct_change"),
        pl.when(prior_value.is_null() | value.is_null())
        .then(pl.lit("n/a"))
        .when(delta > 0)
        .then(pl.lit("Increase"))
        .when(delta < 0)
        .then(pl.lit("Decrease"))
        .otherwise(pl.lit("No Change"))
        .alias("change"),
    ])


def compare_to_average(
    rows: pl.DataFrame,
    measure: str,
    partition_by: Partition = None,
) -> pl.DataFrame:
    """Add the partition average, diff_avg and an Above/Below Avg label"""
    partition = _as_list(partition_by)
    average = pl.col(measure).mean()
    if partition:
        average = average.over(partition)

    df = rows.with_columns(average.alias("average_value"))
    diff = pl.col(measure) - pl.col("average_value")

    return df.with_columns([
        diff.alias("diff_avg"),
        pl.when(diff > 0)
        .then(pl.lit("Above Avg"))
        .when(diff < 0)
        .then(pl.lit("Below Avg"))
        .otherwise(pl.lit("Avg"))
        .alias("avg_change"),
    ])


def yearly_product_performance(joined: pl.DataFrame) -> pl.DataFrame:
    """
    Yearly sales per product against the product's average year and the
    previous year.
    """
    yearly = aggregate(
        joined,
        ["order_year", "product_key", "product_name"],
        [Measure("sales_amount", AggFunc.SUM, "current_sales")],
    )

    df = compare_to_average(yearly, "current_sales", partition_by="product_key")
    df = period_over_period(df, "order_year", "current_sales", partition_by="product_key")

    return df.rename({
        "average_value": "avg_sales",
        "prior_value": "py_sales",
        "delta": "diff_py",
        "change": "py_change",
    }).select([
        "order_year",
        "product_key",
        "product_name",
        "current_sales",
        "avg_sales",
        "diff_avg",
        "avg_change",
        "py_sales",
        "diff_py",
        "pct_change",
        "py_change",
    ])
