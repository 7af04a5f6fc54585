"""
Analytics Pipeline

Orchestrates loading, validation and every analytical table of the sales
warehouse, and writes each table to the curated zone.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union
from uuid import uuid4

import polars as pl
import structlog

from warehouse_analytics.config import get_settings
from warehouse_analytics.ingestion import LoadResult, load_star_schema
from warehouse_analytics.models import StarSchema
from warehouse_analytics.quality import (
    ValidationResult,
    create_customers_validator,
    create_products_validator,
    create_sales_validator,
)
from warehouse_analytics.analytics import (
    AggFunc,
    Measure,
    TimeGrain,
    aggregate,
    bottom_n,
    build_customer_report,
    build_product_report,
    category_contribution,
    cumulative_sales,
    customer_age_extremes,
    date_range_summary,
    key_metrics,
    magnitude,
    sales_over_time,
    segment_counts,
    segment_customers,
    segment_products,
    top_n,
    yearly_product_performance,
)

logger = structlog.get_logger(__name__)


@dataclass
class AnalysisResult:
    """Result of one analytical table"""
    name: str
    rows: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    output_path: Optional[str] = None
    table: Optional[pl.DataFrame] = None
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


@dataclass
class PipelineRun:
    """Everything produced by a full pipeline run"""
    load_results: Dict[str, LoadResult]
    validation: Dict[str, ValidationResult]
    analyses: Dict[str, AnalysisResult]

    @property
    def failed_analyses(self) -> List[str]:
        return [name for name, result in self.analyses.items() if not result.succeeded]


class AnalyticsPipeline:
    """
    Analytics pipeline orchestrator.

    Builds the exploration, ranking, time series, segmentation and
    part-to-whole tables plus the customer and product reports.

    Example:
        pipeline = AnalyticsPipeline(output_format="csv")
        run = pipeline.run_from_csv("data/raw")
    """

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        output_format: Optional[str] = None,
        as_of: Optional[date] = None,
        write_output: bool = True,
    ):
        settings = get_settings()
        self.output_path = Path(output_path or settings.data_lake.curated_path)
        self.output_format = (output_format or settings.data_lake.output_format).lower()
        self.as_of = as_of or date.today()
        self.write_output = write_output
        self.analytics_settings = settings.analytics
        self.run_id = uuid4().hex[:8]

        if self.output_format not in ("parquet", "csv"):
            raise ValueError(f"Unsupported output format: {self.output_format}")

        if self.write_output:
            self.output_path.mkdir(parents=True, exist_ok=True)

    def _write_output(self, df: pl.DataFrame, name: str) -> str:
        """Write an analytical table to the curated zone"""
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        output_file = self.output_path / f"{name}_{timestamp}_{self.run_id}.{self.output_format}"

        if self.output_format == "csv":
            df.write_csv(output_file)
        else:
            df.write_parquet(output_file)
        logger.info(f"Written {len(df)} rows to {output_file}")

        return str(output_file)

    def validate(self, star: StarSchema) -> Dict[str, ValidationResult]:
        """Run the quality checks of the three tables"""
        return {
            "customers": create_customers_validator().validate(star.customers),
            "products": create_products_validator().validate(star.products),
            "sales": create_sales_validator(star.customers, star.products).validate(star.sales),
        }

    def _analyses(self, star: StarSchema) -> Dict[str, Callable[[], pl.DataFrame]]:
        """Builders of every analytical table, in output order"""
        joined = star.joined_sales()
        top = self.analytics_settings.top_n

        def revenue_by_product() -> pl.DataFrame:
            return aggregate(
                joined,
                ["product_key", "product_name"],
                [Measure("sales_amount", AggFunc.SUM, "total_revenue")],
            )

        def revenue_by_customer() -> pl.DataFrame:
            return aggregate(
                joined,
                ["customer_key", "first_name", "last_name"],
                [Measure("sales_amount", AggFunc.SUM, "total_revenue")],
            )

        def orders_by_customer() -> pl.DataFrame:
            return aggregate(
                joined,
                ["customer_key", "first_name", "last_name"],
                [Measure("order_number", AggFunc.COUNT_DISTINCT, "total_orders")],
            )

        return {
            # Exploration
            "key_metrics": lambda: key_metrics(star),
            "date_range": lambda: date_range_summary(star.sales),
            "customer_age_extremes": lambda: customer_age_extremes(star.customers, self.as_of),
            "customers_by_country": lambda: magnitude(
                star.customers, "country", "customer_key", AggFunc.COUNT_DISTINCT, "total_customers"
            ),
            "customers_by_gender": lambda: magnitude(
                star.customers, "gender", "customer_key", AggFunc.COUNT_DISTINCT, "total_customers"
            ),
            "products_by_category": lambda: magnitude(
                star.products, "category", "product_key", AggFunc.COUNT_DISTINCT, "total_products"
            ),
            "average_cost_by_category": lambda: magnitude(
                star.products, "category", "cost", AggFunc.AVG, "avg_cost"
            ),
            "revenue_by_category": lambda: magnitude(
                joined, "category", "sales_amount", AggFunc.SUM, "total_revenue"
            ),
            "quantity_by_country": lambda: magnitude(
                joined, "country", "quantity", AggFunc.SUM, "total_sold_items"
            ),
            # Ranking
            "top_products": lambda: top_n(revenue_by_product(), "total_revenue", top, "rank_products"),
            "bottom_products": lambda: bottom_n(revenue_by_product(), "total_revenue", top, "rank_products"),
            "top_customers": lambda: top_n(
                revenue_by_customer(),
                "total_revenue",
                self.analytics_settings.top_customers_n,
                "rank_customers",
            ),
            "least_active_customers": lambda: bottom_n(
                orders_by_customer(), "total_orders", 3, "rank_customers"
            ),
            # Time series
            "sales_by_year": lambda: sales_over_time(star.sales, TimeGrain.YEAR),
            "sales_by_month": lambda: sales_over_time(star.sales, TimeGrain.MONTH),
            "cumulative_sales": lambda: cumulative_sales(star.sales),
            "product_performance": lambda: yearly_product_performance(joined),
            # Part-to-whole
            "category_contribution": lambda: category_contribution(joined),
            # Segmentation
            "product_cost_segments": lambda: segment_counts(
                segment_products(star.products), "cost_range", "total_products"
            ),
            "customer_segments": lambda: segment_counts(
                segment_customers(star.customers, star.sales), "customer_segment", "total_customers"
            ),
            # Reports
            "customer_report": lambda: build_customer_report(star.customers, star.sales, self.as_of),
            "product_report": lambda: build_product_report(star.products, star.sales, self.as_of),
        }

    def run_analysis(self, name: str, build: Callable[[], pl.DataFrame]) -> AnalysisResult:
        """Build one table, write it and record the outcome"""
        started_at = datetime.now(timezone.utc)
        errors = []
        table = None
        output_file = None

        try:
            table = build()
            if self.write_output:
                output_file = self._write_output(table, name)
        except Exception as e:
            logger.error(f"Analysis {name} failed: {e}")
            errors.append(str(e))

        completed_at = datetime.now(timezone.utc)

        return AnalysisResult(
            name=name,
            rows=len(table) if table is not None else 0,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            output_path=output_file,
            table=table,
            errors=errors,
        )

    def run(self, star: StarSchema) -> Dict[str, AnalysisResult]:
        """
        Build every analytical table.

        A failing table is logged and recorded; the others still run. Each
        call gets a fresh run_id, so repeated runs never overwrite outputs.

        Returns:
            Dictionary of analysis results by table name
        """
        self.run_id = uuid4().hex[:8]
        logger.info(
            "Starting analytics pipeline",
            run_id=self.run_id,
            customers=star.customers.height,
            products=star.products.height,
            sales=star.sales.height,
            as_of=self.as_of.isoformat(),
        )

        with structlog.contextvars.bound_contextvars(
            run_id=self.run_id,
            as_of=self.as_of.isoformat(),
        ):
            results = {
                name: self.run_analysis(name, build)
                for name, build in self._analyses(star).items()
            }

        total_rows = sum(r.rows for r in results.values())
        total_duration = sum(r.duration_seconds for r in results.values())
        failed = [name for name, r in results.items() if not r.succeeded]

        logger.info(
            f"Analytics pipeline complete: {len(results)} tables, {total_rows} rows, "
            f"duration: {total_duration:.2f}s",
            failed=failed,
        )

        return results

    def run_from_csv(self, raw_path: Optional[Union[str, Path]] = None) -> PipelineRun:
        """Load the CSV files, validate them and run every analysis"""
        star, load_results = load_star_schema(raw_path)
        validation = self.validate(star)
        analyses = self.run(star)

        return PipelineRun(
            load_results=load_results,
            validation=validation,
            analyses=analyses,
        )
