"""
Data Ingestion Module
"""
from .csv_loader import CsvFileConfig, CsvLoader, LoadResult, LoadStatus, load_star_schema

__all__ = ["CsvFileConfig", "CsvLoader", "LoadResult", "LoadStatus", "load_star_schema"]
