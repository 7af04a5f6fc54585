"""
Synthetic Data Generator

Generates a realistic sales warehouse for testing and development:
- Customers with demographics
- Products across categories with costs
- Multi-line sales orders with shipping and due dates

Output files use the same layout as the loader expects.
"""

import random
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import polars as pl
import structlog
from faker import Faker

from warehouse_analytics.config import get_settings

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    ("Bikes", ["Mountain Bikes", "Road Bikes", "Touring Bikes"], (300, 2200)),
    ("Components", ["Handlebars", "Wheels", "Frames", "Brakes"], (40, 900)),
    ("Clothing", ["Jerseys", "Caps", "Gloves", "Shorts", "Socks"], (3, 60)),
    ("Accessories", ["Helmets", "Bottles and Cages", "Tires and Tubes", "Locks"], (1, 50)),
]

PRODUCT_LINES = ["Mountain", "Road", "Touring", "Other Sales"]
COUNTRIES = ["United States", "Australia", "United Kingdom", "Germany", "France", "Canada"]
MARITAL_STATUSES = ["Married", "Single"]
GENDERS = ["Male", "Female", None]

UNDATED_SHARE = 0.01  # Share of order lines without an order date


# =============================================================================
# GENERATORS
# =============================================================================

class CustomerGenerator:
    """Generate customer dimension rows"""

    def __init__(self, seed: int = 42):
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.rng = random.Random(seed)

    def generate(self, n: int = 1000) -> pl.DataFrame:
        """Generate n customers"""
        customers = []

        for key in range(1, n + 1):
            customers.append({
                "customer_key": key,
                "customer_number": f"AW{key:08d}",
                "first_name": self.fake.first_name(),
                "last_name": self.fake.last_name(),
                "country": self.rng.choice(COUNTRIES),
                "marital_status": self.rng.choice(MARITAL_STATUSES),
                "gender": self.rng.choice(GENDERS),
                "birthdate": self.fake.date_of_birth(minimum_age=18, maximum_age=85),
            })

        return pl.DataFrame(customers)


class ProductGenerator:
    """Generate product dimension rows"""

    def __init__(self, seed: int = 42):
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.rng = random.Random(seed)

    def generate(self, n: int = 300) -> pl.DataFrame:
        """Generate n products"""
        products = []

        for key in range(1, n + 1):
            category, subcategories, (low, high) = self.rng.choice(CATEGORIES)
            subcategory = self.rng.choice(subcategories)

            products.append({
                "product_key": key,
                "product_number": f"{category[:2].upper()}-{key:05d}",
                "product_name": f"{self.fake.word().title()} {subcategory[:-1] if subcategory.endswith('s') else subcategory}",
                "category": category,
                "subcategory": subcategory,
                "maintenance": "Yes" if self.rng.random() < 0.3 else "No",
                "cost": round(self.rng.uniform(low, high), 2),
                "product_line": self.rng.choice(PRODUCT_LINES),
            })

        return pl.DataFrame(products)


class SalesGenerator:
    """Generate sales fact rows referencing customers and products"""

    def __init__(
        self,
        customers_df: pl.DataFrame,
        products_df: pl.DataFrame,
        seed: int = 42,
    ):
        self.customer_keys = customers_df["customer_key"].to_numpy()
        self.product_keys = products_df["product_key"].to_numpy()
        self.product_costs = products_df["cost"].to_numpy()
        self.rng = np.random.default_rng(seed)

    def generate(
        self,
        n: int = 10000,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> pl.DataFrame:
        """Generate n orders of one to three lines each"""
        end_date = end_date or date.today()
        start_date = start_date or end_date - timedelta(days=4 * 365)
        span_days = max((end_date - start_date).days, 1)

        lines = []

        for order_idx in range(n):
            order_number = f"SO{43697 + order_idx}"
            customer_key = int(self.rng.choice(self.customer_keys))
            order_date = start_date + timedelta(days=int(self.rng.integers(0, span_days)))
            undated = self.rng.random() < UNDATED_SHARE

            n_lines = min(int(self.rng.choice([1, 2, 3], p=[0.6, 0.3, 0.1])), len(self.product_keys))
            product_idx = self.rng.choice(len(self.product_keys), size=n_lines, replace=False)

            for idx in product_idx:
                quantity = int(self.rng.choice([1, 2, 3], p=[0.85, 0.1, 0.05]))
                # Selling price marks the cost up by 20-80%
                price = round(float(self.product_costs[idx]) * float(self.rng.uniform(1.2, 1.8)), 2)

                lines.append({
                    "order_number": order_number,
                    "product_key": int(self.product_keys[idx]),
                    "customer_key": customer_key,
                    "order_date": None if undated else order_date,
                    "shipping_date": order_date + timedelta(days=7),
                    "due_date": order_date + timedelta(days=12),
                    "sales_amount": round(price * quantity, 2),
                    "quantity": quantity,
                    "price": price,
                })

        return pl.DataFrame(lines, schema_overrides={"order_date": pl.Date})


# =============================================================================
# MAIN GENERATOR
# =============================================================================

def generate_dataset(
    output_dir: Optional[Union[str, Path]] = None,
    n_customers: int = 1000,
    n_products: int = 300,
    n_orders: int = 10000,
    seed: int = 42,
    end_date: Optional[date] = None,
) -> Dict[str, pl.DataFrame]:
    """
    Generate the three warehouse tables and write them as CSV files.

    Returns:
        Dictionary of generated frames by table name
    """
    lake = get_settings().data_lake
    output_dir = Path(output_dir or lake.raw_path)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Generating synthetic sales warehouse",
        customers=n_customers,
        products=n_products,
        orders=n_orders,
        seed=seed,
    )

    customers_df = CustomerGenerator(seed).generate(n_customers)
    products_df = ProductGenerator(seed).generate(n_products)
    sales_df = SalesGenerator(customers_df, products_df, seed).generate(n_orders, end_date=end_date)

    data = {
        "customers": customers_df,
        "products": products_df,
        "sales": sales_df,
    }
    file_names = {
        "customers": lake.customers_file,
        "products": lake.products_file,
        "sales": lake.sales_file,
    }

    for name, df in data.items():
        csv_path = output_dir / file_names[name]
        df.write_csv(csv_path, date_format=lake.date_format)
        logger.info(f"Saved {name}: {len(df)} rows -> {csv_path}")

    return data
