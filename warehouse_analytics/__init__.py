"""
Sales Warehouse Analytics

Star-schema analytics over customers, products and sales: aggregation,
ranking, time series, segmentation and reporting on Polars DataFrames.
"""

__version__ = "1.0.0"
