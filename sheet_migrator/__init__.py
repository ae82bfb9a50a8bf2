"""Safe, idempotent row migration between spreadsheet tabs."""

__version__ = "0.1.0"
