"""
Part-to-Whole Engine

Percentage contribution of each row to the total of its partition.
"""

from typing import Optional, Sequence, Union

import polars as pl

from .aggregation import AggFunc, Measure, aggregate


def contribution(
    rows: pl.DataFrame,
    measure: str,
    partition_by: Optional[Union[str, Sequence[str]]] = None,
    percent_column: str = "percent_of_total",
    decimals: int = 2,
) -> pl.DataFrame:
    """
    Add the share of measure in its partition total, in percent.

    A zero (or empty) total yields 0 for every row, never NaN.
    """
    total = pl.col(measure).sum()
    if partition_by is not None:
        partition = [partition_by] if isinstance(partition_by, str) else list(partition_by)
        total = total.over(partition)

    percent = (
        pl.when(total == 0)
        .then(pl.lit(0.0))
        .otherwise(pl.col(measure).cast(pl.Float64) * 100 / total)
        .fill_null(0.0)
        .round(decimals)
    )
    return rows.with_columns(percent.alias(percent_column))


def category_contribution(joined: pl.DataFrame) -> pl.DataFrame:
    """Total sales per product category with its share of overall sales"""
    by_category = aggregate(
        joined,
        ["category"],
        [Measure("sales_amount", AggFunc.SUM, "total_sales")],
    )
    return contribution(by_category, "total_sales").sort(
        "total_sales", descending=True, nulls_last=True
    )
