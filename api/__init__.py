"""Beat Store Checkout API."""

__version__ = "0.1.0"
