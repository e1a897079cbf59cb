"""District Lookup: congressional district resolution with multi-provider address validation."""

__version__ = "0.1.0"
