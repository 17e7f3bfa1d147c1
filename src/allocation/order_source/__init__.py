"""Order source adapter registry."""

import os

from allocation.order_source.port import OrderSourcePort

_order_source_instance: OrderSourcePort | None = None


def get_order_source() -> OrderSourcePort:
    """Return the configured order source (singleton).

    FakeOrderSource by default; ORDER_SOURCE_ADAPTER=http selects the admin
    API adapter configured by ORDER_SOURCE_BASE_URL and ORDER_SOURCE_API_KEY.
    """
    global _order_source_instance
    if _order_source_instance is None:
        adapter = os.environ.get("ORDER_SOURCE_ADAPTER", "fake")
        if adapter == "fake":
            from allocation.order_source.fake_adapter import FakeOrderSource

            _order_source_instance = FakeOrderSource()
        elif adapter == "http":
            from allocation.order_source.http_adapter import HttpOrderSource

            _order_source_instance = HttpOrderSource(
                base_url=os.environ["ORDER_SOURCE_BASE_URL"],
                access_token=os.environ.get("ORDER_SOURCE_API_KEY", ""),
            )
        else:
            raise ValueError(f"Unknown order source adapter: {adapter}")
    return _order_source_instance


def set_order_source(order_source: OrderSourcePort) -> None:
    global _order_source_instance
    _order_source_instance = order_source


def reset_order_source() -> None:
    global _order_source_instance
    _order_source_instance = None
