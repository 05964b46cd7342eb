"""Header-row inference and table normalization for marketplace spreadsheet templates."""

__version__ = "0.1.0"
