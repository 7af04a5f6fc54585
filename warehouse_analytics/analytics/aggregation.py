"""
Aggregation Engine

Grouped measures over the sales fact table, optionally joined to its
dimensions. Also provides the exploration summaries:
- Key business metrics
- Changes over time (yearly / monthly)
- Magnitude of a measure per dimension value
- Date ranges and customer age extremes
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

import polars as pl
import structlog

from warehouse_analytics.models import StarSchema

logger = structlog.get_logger(__name__)

IntoExpr = Union[str, pl.Expr]


class AggFunc(str, Enum):
    """Supported measure functions"""
    SUM = "sum"
    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class TimeGrain(str, Enum):
    """Granularity of time series aggregation"""
    YEAR = "year"
    MONTH = "month"
    PERIOD = "period"


@dataclass(frozen=True)
class Measure:
    """A named aggregate over one column. A column of None counts rows."""
    column: Optional[str]
    func: AggFunc
    alias: str

    def to_expr(self) -> pl.Expr:
        """Polars aggregation expression for this measure"""
        func = AggFunc(self.func)
        if self.column is None:
            if func != AggFunc.COUNT:
                raise ValueError(f"Measure '{self.alias}' needs a column for {func.value}")
            return pl.len().alias(self.alias)

        col = pl.col(self.column)
        if func == AggFunc.SUM:
            expr = col.sum()
        elif func == AggFunc.COUNT:
            expr = col.count()
        elif func == AggFunc.COUNT_DISTINCT:
            expr = col.drop_nulls().n_unique()
        elif func == AggFunc.AVG:
            expr = col.mean()
        elif func == AggFunc.MIN:
            expr = col.min()
        else:
            expr = col.max()
        return expr.alias(self.alias)


# Date parts derived from order_date
DATE_PARTS: Dict[str, pl.Expr] = {
    "order_year": pl.col("order_date").dt.year(),
    "order_month": pl.col("order_date").dt.month(),
    "order_period": pl.col("order_date").dt.truncate("1mo"),
}


def _to_expr(value: IntoExpr) -> pl.Expr:
    return pl.col(value) if isinstance(value, str) else value


def month_diff(start: IntoExpr, end: IntoExpr) -> pl.Expr:
    """
    Calendar-month difference between two date expressions.

    Counts month boundaries, not elapsed days: 2020-01-31 to 2020-02-01 is 1.
    """
    start, end = _to_expr(start), _to_expr(end)
    years = end.dt.year().cast(pl.Int64) - start.dt.year().cast(pl.Int64)
    months = end.dt.month().cast(pl.Int64) - start.dt.month().cast(pl.Int64)
    return years * 12 + months


def age_in_years(birthdate: IntoExpr, as_of: date) -> pl.Expr:
    """Completed years between a birthdate expression and as_of"""
    birthdate = _to_expr(birthdate)
    birthday_pending = (
        birthdate.dt.month().cast(pl.Int64) * 100 + birthdate.dt.day().cast(pl.Int64)
    ) > (as_of.month * 100 + as_of.day)
    return (
        pl.lit(as_of.year, dtype=pl.Int64)
        - birthdate.dt.year().cast(pl.Int64)
        - birthday_pending.cast(pl.Int64)
    )


def safe_divide(numerator: IntoExpr, denominator: IntoExpr) -> pl.Expr:
    """Ratio expression that yields 0.0 when the denominator is null or zero"""
    numerator, denominator = _to_expr(numerator), _to_expr(denominator)
    return (
        pl.when(denominator.is_null() | (denominator == 0))
        .then(pl.lit(0.0))
        .otherwise(numerator.cast(pl.Float64) / denominator)
    )


def aggregate(
    transactions: pl.DataFrame,
    group_keys: Sequence[str],
    measures: Sequence[Measure],
) -> pl.DataFrame:
    """
    Compute grouped measures.

    Args:
        transactions: Sales rows, optionally joined to dimensions
        group_keys: Columns or date parts (order_year, order_month, order_period)
        measures: Measures computed per group

    Returns:
        One row per distinct key combination, sorted by the keys
    """
    group_keys = list(group_keys)
    if not measures:
        raise ValueError("At least one measure is required")

    date_parts = [k for k in group_keys if k in DATE_PARTS]
    df = transactions
    if date_parts:
        # Undated rows cannot be placed in a time bucket
        df = df.filter(pl.col("order_date").is_not_null())
        dropped = transactions.height - df.height
        if dropped:
            logger.debug(f"Excluded {dropped} rows with null order_date", group_keys=group_keys)
        df = df.with_columns([DATE_PARTS[k].alias(k) for k in date_parts])

    missing = [k for k in group_keys if k not in df.columns]
    if missing:
        raise ValueError(f"Unknown group keys: {missing}")

    exprs = [m.to_expr() for m in measures]
    if not group_keys:
        return df.select(exprs)

    return (
        df.group_by(group_keys)
        .agg(exprs)
        .sort(group_keys, nulls_last=True)
    )


# =============================================================================
# EXPLORATION
# =============================================================================

def sales_over_time(
    sales: pl.DataFrame,
    grain: Union[TimeGrain, str] = TimeGrain.MONTH,
) -> pl.DataFrame:
    """Total sales, distinct customers and quantity per time bucket"""
    grain = TimeGrain(grain)
    keys = {
        TimeGrain.YEAR: ["order_year"],
        TimeGrain.MONTH: ["order_year", "order_month"],
        TimeGrain.PERIOD: ["order_period"],
    }[grain]

    return aggregate(
        sales,
        keys,
        [
            Measure("sales_amount", AggFunc.SUM, "total_sales"),
            Measure("customer_key", AggFunc.COUNT_DISTINCT, "total_customers"),
            Measure("quantity", AggFunc.SUM, "total_quantity"),
        ],
    )


def key_metrics(star: StarSchema) -> pl.DataFrame:
    """
    Headline business metrics as a long table.

    Returns:
        DataFrame with measure_name and measure_value columns
    """
    sales = star.sales
    metrics = [
        ("Total Sales", sales["sales_amount"].sum()),
        ("Total Quantity", sales["quantity"].sum()),
        ("Average Price", sales["price"].mean()),
        ("Total Orders", sales["order_number"].drop_nulls().n_unique()),
        ("Total Products", star.products["product_key"].drop_nulls().n_unique()),
        ("Total Customers", star.customers["customer_key"].drop_nulls().n_unique()),
        ("Customers With Orders", sales["customer_key"].drop_nulls().n_unique()),
    ]

    return pl.DataFrame(
        {
            "measure_name": [name for name, _ in metrics],
            "measure_value": [float(v) if v is not None else None for _, v in metrics],
        },
        schema={"measure_name": pl.Utf8, "measure_value": pl.Float64},
    )


def magnitude(
    rows: pl.DataFrame,
    dimension: Union[str, List[str]],
    measure: Optional[str],
    func: Union[AggFunc, str] = AggFunc.SUM,
    alias: Optional[str] = None,
) -> pl.DataFrame:
    """
    A measure per dimension value, largest first.

    Example:
        magnitude(customers, "country", "customer_key", "count_distinct", "total_customers")
        magnitude(joined, "category", "sales_amount", "sum", "total_revenue")
    """
    func = AggFunc(func)
    alias = alias or f"{func.value}_{measure or 'rows'}"
    keys = [dimension] if isinstance(dimension, str) else list(dimension)

    result = aggregate(rows, keys, [Measure(measure, func, alias)])
    return result.sort([alias] + keys, descending=[True] + [False] * len(keys), nulls_last=True)


def date_range_summary(sales: pl.DataFrame) -> pl.DataFrame:
    """First and last order date and the span between them in months"""
    return sales.select([
        pl.col("order_date").min().alias("first_order_date"),
        pl.col("order_date").max().alias("last_order_date"),
        month_diff(pl.col("order_date").min(), pl.col("order_date").max())
        .alias("order_range_months"),
    ])


def customer_age_extremes(customers: pl.DataFrame, as_of: Optional[date] = None) -> pl.DataFrame:
    """Oldest and youngest customer birthdates with their ages"""
    as_of = as_of or date.today()
    return customers.select([
        pl.col("birthdate").min().alias("oldest_birthdate"),
        age_in_years(pl.col("birthdate").min(), as_of).alias("oldest_age"),
        pl.col("birthdate").max().alias("youngest_birthdate"),
        age_in_years(pl.col("birthdate").max(), as_of).alias("youngest_age"),
    ])
