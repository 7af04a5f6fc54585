"""
Warehouse Data Models
"""
from .schema import (
    CUSTOMER_SCHEMA,
    PRODUCT_SCHEMA,
    SALES_SCHEMA,
    REQUIRED_COLUMNS,
    Customer,
    Product,
    SalesTransaction,
    StarSchema,
    join_sales,
    records_to_frame,
)

__all__ = [
    "CUSTOMER_SCHEMA",
    "PRODUCT_SCHEMA",
    "SALES_SCHEMA",
    "REQUIRED_COLUMNS",
    "Customer",
    "Product",
    "SalesTransaction",
    "StarSchema",
    "join_sales",
    "records_to_frame",
]
