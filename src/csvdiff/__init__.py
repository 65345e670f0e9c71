"""csv-diff: structural diff reports for delimited tabular data."""

__version__ = "0.4.0"

__all__ = ["__version__"]
