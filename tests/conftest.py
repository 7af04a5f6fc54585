"""
Test Suite Configuration
"""
from datetime import date

import pytest
import polars as pl

from warehouse_analytics.config import Settings
from warehouse_analytics.models import (
    CUSTOMER_SCHEMA,
    PRODUCT_SCHEMA,
    SALES_SCHEMA,
    Customer,
    Product,
    SalesTransaction,
    StarSchema,
    records_to_frame,
)

AS_OF = date(2026, 1, 15)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing")


@pytest.fixture
def as_of() -> date:
    """Fixed report-generation date"""
    return AS_OF


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Three customers, the last one without any order"""
    return records_to_frame(
        [
            Customer(
                customer_key=1,
                customer_number="AW00011000",
                first_name="Jon",
                last_name="Yang",
                country="Australia",
                marital_status="Married",
                gender="Male",
                birthdate=date(1971, 10, 6),
            ),
            Customer(
                customer_key=2,
                customer_number="AW00011001",
                first_name="Eugene",
                last_name="Huang",
                country="Australia",
                marital_status="Single",
                gender="Male",
                birthdate=date(1976, 5, 10),
            ),
            Customer(
                customer_key=3,
                customer_number="AW00011002",
                first_name="Ruben",
                last_name="Torres",
                country="United States",
                marital_status="Married",
                gender="Male",
            ),
        ],
        CUSTOMER_SCHEMA,
    )


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Three products, the last one never sold"""
    return records_to_frame(
        [
            Product(
                product_key=10,
                product_number="BK-M82S-38",
                product_name="Mountain-100 Silver- 38",
                category="Bikes",
                subcategory="Mountain Bikes",
                maintenance=True,
                cost=1898.09,
                product_line="Mountain",
            ),
            Product(
                product_key=20,
                product_number="TI-R092",
                product_name="LL Road Tire",
                category="Accessories",
                subcategory="Tires and Tubes",
                maintenance=False,
                cost=8.0,
                product_line="Road",
            ),
            Product(
                product_key=30,
                product_number="CA-1098",
                product_name="AWC Logo Cap",
                category="Clothing",
                subcategory="Caps",
                maintenance=False,
                cost=6.92,
                product_line="Other Sales",
            ),
        ],
        PRODUCT_SCHEMA,
    )


@pytest.fixture
def sample_sales_df() -> pl.DataFrame:
    """
    Six order lines:
    - customer 1 spends 6020 over 13 months
    - customer 2 spends 40, one line undated
    - one line references unknown customer 4 and product 99
    """
    return records_to_frame(
        [
            SalesTransaction(order_number="SO1", product_key=10, customer_key=1,
                             order_date=date(2024, 1, 10), sales_amount=3000.0, quantity=1, price=3000.0),
            SalesTransaction(order_number="SO2", product_key=20, customer_key=1,
                             order_date=date(2024, 6, 15), sales_amount=20.0, quantity=2, price=10.0),
            SalesTransaction(order_number="SO3", product_key=10, customer_key=1,
                             order_date=date(2025, 2, 20), sales_amount=3000.0, quantity=1, price=3000.0),
            SalesTransaction(order_number="SO4", product_key=20, customer_key=2,
                             order_date=date(2025, 2, 1), sales_amount=30.0, quantity=3, price=10.0),
            SalesTransaction(order_number="SO5", product_key=20, customer_key=2,
                             order_date=None, sales_amount=10.0, quantity=1, price=10.0),
            SalesTransaction(order_number="SO6", product_key=99, customer_key=4,
                             order_date=date(2025, 3, 1), sales_amount=50.0, quantity=1, price=50.0),
        ],
        SALES_SCHEMA,
    )


@pytest.fixture
def star(sample_customers_df, sample_products_df, sample_sales_df) -> StarSchema:
    """Sample star schema"""
    return StarSchema(
        customers=sample_customers_df,
        products=sample_products_df,
        sales=sample_sales_df,
    )
