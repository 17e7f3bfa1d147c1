"""Logistics adapter registry — pluggable delivery provider integration."""

import os

from allocation.logistics.port import LogisticsPort

_logistics_instance: LogisticsPort | None = None


def get_logistics() -> LogisticsPort:
    """Return the configured logistics adapter (singleton).

    Uses FakeLogistics by default. LOGISTICS_ADAPTER=http selects the rider
    API adapter configured by LOGISTICS_BASE_URL, LOGISTICS_API_KEY and
    LOGISTICS_TIMEOUT_SECONDS.
    """
    global _logistics_instance
    if _logistics_instance is None:
        adapter = os.environ.get("LOGISTICS_ADAPTER", "fake")
        if adapter == "fake":
            from allocation.logistics.fake_adapter import FakeLogistics

            _logistics_instance = FakeLogistics()
        elif adapter == "http":
            from allocation.logistics.http_adapter import HttpLogistics

            _logistics_instance = HttpLogistics(
                base_url=os.environ["LOGISTICS_BASE_URL"],
                access_token=os.environ.get("LOGISTICS_API_KEY", ""),
                timeout=float(os.environ.get("LOGISTICS_TIMEOUT_SECONDS", "30")),
            )
        else:
            raise ValueError(f"Unknown logistics adapter: {adapter}")
    return _logistics_instance


def set_logistics(logistics: LogisticsPort) -> None:
    global _logistics_instance
    _logistics_instance = logistics


def reset_logistics():
    """Reset the logistics singleton (useful for testing)."""
    global _logistics_instance
    _logistics_instance = None
