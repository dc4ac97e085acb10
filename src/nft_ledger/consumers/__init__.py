"""Queue consumers."""

from nft_ledger.consumers.chain_event_consumer import ChainEventConsumer, ChainEventPayload

__all__ = ["ChainEventConsumer", "ChainEventPayload"]
