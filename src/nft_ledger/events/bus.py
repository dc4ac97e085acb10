"""Application event bus (bubus). Lazily created singleton for publish/subscribe."""

from __future__ import annotations

from bubus import EventBus  # type: ignore[import-untyped]

_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Return the ledger event bus, creating it on first call."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus(
            name="NftLedger",
            max_history_size=100,
            wal_path=None,
        )
    return _event_bus


def set_event_bus(bus: EventBus | None) -> None:
    """Replace the singleton (tests, DI). None resets to the lazy default."""
    global _event_bus
    _event_bus = bus
