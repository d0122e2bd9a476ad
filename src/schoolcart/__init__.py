"""schoolcart: pricing and checkout for a multi-store fundraiser cart."""

__version__ = "0.1.0"

from .discounts import apply_code, apply_codes, remove_code, validate_codes
from .pricing import price_store

__all__ = ["__version__", "apply_code", "apply_codes", "price_store", "remove_code", "validate_codes"]
