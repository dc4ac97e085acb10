# -*- coding: utf-8 -*-
"""Utility modules."""

from nft_ledger.utils.money import decimal_to_str, to_decimal
from nft_ledger.utils.validation import (
    is_numeric_string,
    mask_address,
    normalize_hex,
)

__all__ = [
    "decimal_to_str",
    "is_numeric_string",
    "mask_address",
    "normalize_hex",
    "to_decimal",
]
