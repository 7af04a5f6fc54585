"""
Star Schema Model

In-memory representation of the sales warehouse: two dimension tables
(customers, products) around one fact table (sales).

Each table has:
- A Polars schema used to type loaded and constructed frames
- A frozen Pydantic record model with nullable attributes
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import polars as pl
from pydantic import BaseModel, ConfigDict


# =============================================================================
# POLARS SCHEMAS
# =============================================================================

CUSTOMER_SCHEMA: Dict[str, pl.DataType] = {
    "customer_key": pl.Int64,
    "customer_number": pl.Utf8,
    "first_name": pl.Utf8,
    "last_name": pl.Utf8,
    "country": pl.Utf8,
    "marital_status": pl.Utf8,
    "gender": pl.Utf8,
    "birthdate": pl.Date,
}

PRODUCT_SCHEMA: Dict[str, pl.DataType] = {
    "product_key": pl.Int64,
    "product_number": pl.Utf8,
    "product_name": pl.Utf8,
    "category": pl.Utf8,
    "subcategory": pl.Utf8,
    "maintenance": pl.Boolean,
    "cost": pl.Float64,
    "product_line": pl.Utf8,
}

SALES_SCHEMA: Dict[str, pl.DataType] = {
    "order_number": pl.Utf8,
    "product_key": pl.Int64,
    "customer_key": pl.Int64,
    "order_date": pl.Date,
    "shipping_date": pl.Date,
    "due_date": pl.Date,
    "sales_amount": pl.Float64,
    "quantity": pl.Int64,
    "price": pl.Float64,
}

# Columns that must be present for a row to be usable
REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "customers": ["customer_key"],
    "products": ["product_key"],
    "sales": ["order_number", "sales_amount"],
}


# =============================================================================
# RECORD MODELS
# =============================================================================

class Customer(BaseModel):
    """Customer dimension row"""

    model_config = ConfigDict(frozen=True)

    customer_key: int
    customer_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None
    marital_status: Optional[str] = None
    gender: Optional[str] = None
    birthdate: Optional[date] = None


class Product(BaseModel):
    """Product dimension row"""

    model_config = ConfigDict(frozen=True)

    product_key: int
    product_number: Optional[str] = None
    product_name: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    maintenance: Optional[bool] = None
    cost: Optional[float] = None
    product_line: Optional[str] = None


class SalesTransaction(BaseModel):
    """Sales fact row. sales_amount is authoritative over quantity * price.

    Keys are nullable: a row without a matching dimension is kept with null
    dimension attributes.
    """

    model_config = ConfigDict(frozen=True)

    order_number: str
    product_key: Optional[int] = None
    customer_key: Optional[int] = None
    order_date: Optional[date] = None
    shipping_date: Optional[date] = None
    due_date: Optional[date] = None
    sales_amount: float = 0.0
    quantity: int = 0
    price: Optional[float] = None


def records_to_frame(
    records: Iterable[BaseModel],
    schema: Dict[str, pl.DataType],
) -> pl.DataFrame:
    """
    Build a typed DataFrame from record models.

    An empty iterable yields an empty frame with the full schema.
    """
    rows = [record.model_dump() for record in records]
    if not rows:
        return pl.DataFrame(schema=schema)
    return pl.DataFrame(rows, schema=schema)


# =============================================================================
# STAR SCHEMA
# =============================================================================

@dataclass(frozen=True)
class StarSchema:
    """
    The three warehouse tables.

    Example:
        star = StarSchema(customers=customers_df, products=products_df, sales=sales_df)
        joined = star.joined_sales()
    """
    customers: pl.DataFrame
    products: pl.DataFrame
    sales: pl.DataFrame

    def joined_sales(
        self,
        customer_columns: Optional[Sequence[str]] = None,
        product_columns: Optional[Sequence[str]] = None,
    ) -> pl.DataFrame:
        """
        Fact table left-joined to both dimensions.

        Fact rows whose keys have no dimension row are kept with null
        dimension attributes.
        """
        return join_sales(
            self.sales,
            self.customers,
            self.products,
            customer_columns=customer_columns,
            product_columns=product_columns,
        )


def join_sales(
    sales: pl.DataFrame,
    customers: pl.DataFrame,
    products: pl.DataFrame,
    customer_columns: Optional[Sequence[str]] = None,
    product_columns: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """Left join sales to customers and products on their surrogate keys"""
    customer_columns = list(customer_columns or [
        c for c in customers.columns if c != "customer_key"
    ])
    product_columns = list(product_columns or [
        c for c in products.columns if c != "product_key"
    ])

    joined = sales.join(
        customers.select(["customer_key"] + customer_columns),
        on="customer_key",
        how="left",
    )
    joined = joined.join(
        products.select(["product_key"] + product_columns),
        on="product_key",
        how="left",
    )
    return joined
