"""Application tests for customer notifications sent around split orders."""

from allocation.channel.dispatcher import NotificationDispatcher, Recipient
from allocation.split import actions
from allocation.split.split_order import SplitOrder
from protean import current_domain


def _recipient(**overrides):
    defaults = {
        "order_name": "#1001",
        "customer_name": "Asha",
        "phone_number": "+919800000000",
        "email": "asha@example.com",
    }
    defaults.update(overrides)
    return Recipient(**defaults)


class TestNotificationDispatcher:
    def test_send_returns_gateway_result(self, sms):
        result = NotificationDispatcher().send(_recipient(), "Confirmation")

        assert result["status"] == "sent"
        assert len(sms.sent_messages) == 1
        assert "#1001" in sms.sent_messages[0]["body"]

    def test_send_passes_failed_result_through(self, sms):
        sms.configure(should_succeed=False, failure_reason="DND number")

        result = NotificationDispatcher().send(_recipient(), "OnHold")

        assert result == {"message_id": None, "status": "failed", "error": "DND number"}

    def test_send_without_phone_is_skipped(self, sms):
        result = NotificationDispatcher().send(_recipient(phone_number=None), "Delivered")

        assert result["status"] == "skipped"
        assert sms.sent_messages == []

    def test_send_email_for_status(self, email):
        result = NotificationDispatcher().send_email("1001-S1", "out_for_delivery", _recipient())

        assert result["status"] == "sent"
        assert len(email.sent_emails) == 1


class TestLifecycleNotifications:
    def _split_one(self, cluster_stores, put_stock, order_source):
        put_stock("SKU-1", "s1", 10)
        order_source.add_order(
            "ord-1",
            "1001",
            [{"line_item_id": "li-1", "sku": "SKU-1", "quantity": 1}],
            pincode="560001",
            phone="+919800000000",
        )
        actions.split_order("ord-1", split_mode="cluster")
        return "1001-S1"

    def test_undelivered_sms_does_not_block_hold(self, cluster_stores, put_stock, order_source, logistics, sms, email):
        split_id = self._split_one(cluster_stores, put_stock, order_source)
        sms.configure(should_succeed=False)
        email.sent_emails.clear()

        actions.place_on_hold(split_id)

        split = current_domain.repository_for(SplitOrder).get(split_id)
        assert split.order_status == "on_hold"
        assert len(email.sent_emails) == 1

    def test_each_lifecycle_step_sends_one_sms(self, cluster_stores, put_stock, order_source, logistics, sms):
        split_id = self._split_one(cluster_stores, put_stock, order_source)
        sms.sent_messages.clear()

        actions.place_on_hold(split_id)
        actions.mark_ready_for_pickup(split_id)
        actions.dispatch(split_id)
        actions.deliver(split_id)

        assert len(sms.sent_messages) == 3
        assert "on hold" in sms.sent_messages[0]["body"]
