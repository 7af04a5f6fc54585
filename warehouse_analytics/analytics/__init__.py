"""
Analytics Module
"""
from .aggregation import (
    AggFunc,
    Measure,
    TimeGrain,
    age_in_years,
    aggregate,
    customer_age_extremes,
    date_range_summary,
    key_metrics,
    magnitude,
    month_diff,
    safe_divide,
    sales_over_time,
)
from .windows import (
    RankDirection,
    bottom_n,
    compare_to_average,
    cumulative_sales,
    period_over_period,
    rank,
    running_total,
    top_n,
    yearly_product_performance,
)
from .segmentation import (
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
from .contribution import category_contribution, contribution
from .reports import build_customer_report, build_product_report

__all__ = [
    "AggFunc",
    "Measure",
    "TimeGrain",
    "age_in_years",
    "aggregate",
    "customer_age_extremes",
    "date_range_summary",
    "key_metrics",
    "magnitude",
    "month_diff",
    "safe_divide",
    "sales_over_time",
    "RankDirection",
    "bottom_n",
    "compare_to_average",
    "cumulative_sales",
    "period_over_period",
    "rank",
    "running_total",
    "top_n",
    "yearly_product_performance",
    "RuleSet",
    "SegmentRule",
    "age_group_rules",
    "cost_band_rules",
    "customer_rules",
    "performance_tier_rules",
    "segment_counts",
    "segment_customers",
    "segment_products",
    "category_contribution",
    "contribution",
    "build_customer_report",
    "build_product_report",
]
