"""Query & aggregation engine."""

from nft_ledger.services.query.query_engine import QueryEngine, compute_stats

__all__ = ["QueryEngine", "compute_stats"]
