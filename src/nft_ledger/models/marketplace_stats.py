# -*- coding: utf-8 -*-
"""MarketplaceStats: aggregate over confirmed purchases."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from nft_ledger.utils.money import decimal_to_str


@dataclass(frozen=True, slots=True)
class MarketplaceStats:
    """Point-in-time statistics over CONFIRMED PURCHASE records."""

    total_sales: int
    total_volume: Decimal
    """Sum of price."""
    average_price: Decimal
    """total_volume / total_sales; 0 when there are no sales."""
    total_fees: Decimal
    """Sum of platform_fee + royalty_fee."""
    computed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSales": self.total_sales,
            "totalVolume": decimal_to_str(self.total_volume),
            "averagePrice": decimal_to_str(self.average_price),
            "totalFees": decimal_to_str(self.total_fees),
            "computedAt": self.computed_at.isoformat(),
        }
