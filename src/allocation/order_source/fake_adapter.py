"""Fake order source — in-memory orders for testing and development."""

from allocation.errors import UpstreamUnavailable
from allocation.order_source.port import OrderLine, OrderSourcePort, ShippingAddress, SourceOrder


class FakeOrderSource(OrderSourcePort):
    def __init__(self):
        self.orders: dict[str, SourceOrder] = {}
        self.cancelled_orders: list[str] = []
        self.confirmed_fulfillments: list[str] = []
        self.should_succeed = True

    def configure(self, should_succeed: bool = True):
        self.should_succeed = should_succeed

    def add_order(
        self,
        order_id: str,
        order_number: str,
        line_items: list[dict],
        pincode: str,
        customer_name: str = "Test Customer",
        phone: str | None = "+919800000000",
        financial_status: str = "paid",
        tags: list[str] | None = None,
        email: str | None = "customer@example.com",
    ) -> SourceOrder:
        order = SourceOrder(
            order_id=order_id,
            order_number=order_number,
            line_items=[
                OrderLine(line_item_id=str(item["line_item_id"]), sku=item["sku"], quantity=int(item["quantity"]))
                for item in line_items
            ],
            shipping_address=ShippingAddress(
                pincode=str(pincode),
                name=customer_name,
                address="1 Test Street",
                city="Test City",
                phone=phone,
            ),
            financial_status=financial_status,
            tags=tags or [],
            email=email,
        )
        self.orders[order_id] = order
        return order

    def find_order(self, order_id):
        if not self.should_succeed:
            raise UpstreamUnavailable("order_source", "order source unavailable")
        return self.orders.get(str(order_id))

    def cancel_order(self, order_id):
        if not self.should_succeed:
            raise UpstreamUnavailable("order_source", "order source unavailable")
        self.cancelled_orders.append(str(order_id))
        return True

    def confirm_fulfillment(self, fulfillment_order_id):
        if not self.should_succeed:
            raise UpstreamUnavailable("order_source", "order source unavailable")
        self.confirmed_fulfillments.append(str(fulfillment_order_id))
        return True

    def reset(self):
        self.orders.clear()
        self.cancelled_orders.clear()
        self.confirmed_fulfillments.clear()
        self.should_succeed = True
