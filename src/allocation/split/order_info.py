"""OrderInfo aggregate — order-level bookkeeping for a split order.

Created once per order no matter how many splits result. Holds the customer
contact details the notification side effects need, the split ids, any
allocation gap left for manual review, and the confirmation-sent flags.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from allocation.domain import allocation
from allocation.split.events import (
    AllocationGapRecorded,
    DraftOrderLinked,
    OrderReplanned,
    OrderSplitRecorded,
)


class PaymentType(Enum):
    PREPAID = "prepaid"
    COD = "cod"


class DeliveryType(Enum):
    STANDARD = "standard"
    EXPRESS = "express"


PAID_FINANCIAL_STATUSES = {"paid", "partially_refunded", "refunded"}
EXPRESS_TAG = "express"


def payment_type_for(financial_status: str | None) -> PaymentType:
    if (financial_status or "").lower() in PAID_FINANCIAL_STATUSES:
        return PaymentType.PREPAID
    return PaymentType.COD


def delivery_type_for(tags: list[str] | None) -> DeliveryType:
    if any(tag.strip().lower() == EXPRESS_TAG for tag in (tags or [])):
        return DeliveryType.EXPRESS
    return DeliveryType.STANDARD


@allocation.aggregate
class OrderInfo:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True, max_length=50)
    reference_id = String(required=True, max_length=50)
    payment_type = String(choices=PaymentType, default=PaymentType.COD.value)
    delivery_type = String(choices=DeliveryType, default=DeliveryType.STANDARD.value)
    split_mode = String(required=True, max_length=30)
    draft_order_id = String(max_length=100)
    split_ids = Text()  # JSON list
    unfulfilled_items = Text()  # JSON list of gaps
    needs_review = Boolean(default=False)
    customer_name = String(max_length=200)
    phone_number = String(max_length=30)
    email = String(max_length=254)
    shipping_address = Text()  # JSON {name, address, city, pincode, phone, latitude, longitude}
    order_total = Float(default=0.0)
    confirmation_sms_sent = Boolean(default=False)
    confirmation_email_sent = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def record(
        cls,
        order_id: str,
        order_number: str,
        split_mode: str,
        split_ids: list[str],
        gaps: list[dict],
        financial_status: str | None = None,
        tags: list[str] | None = None,
        customer_name: str | None = None,
        phone_number: str | None = None,
        email: str | None = None,
        shipping_address: dict | None = None,
        order_total: float = 0.0,
    ):
        now = datetime.now(UTC)
        info = cls(
            order_id=order_id,
            order_number=str(order_number),
            reference_id=f"#{order_number}",
            payment_type=payment_type_for(financial_status).value,
            delivery_type=delivery_type_for(tags).value,
            split_mode=split_mode,
            split_ids=json.dumps(split_ids),
            unfulfilled_items=json.dumps(gaps),
            needs_review=bool(gaps),
            customer_name=customer_name,
            phone_number=phone_number,
            email=email,
            shipping_address=json.dumps(shipping_address or {}),
            order_total=order_total or 0.0,
            confirmation_sms_sent=False,
            confirmation_email_sent=False,
            created_at=now,
            updated_at=now,
        )
        info.raise_(
            OrderSplitRecorded(
                order_id=order_id,
                reference_id=info.reference_id,
                split_mode=split_mode,
                split_ids=info.split_ids,
                needs_review=info.needs_review,
                recorded_at=now,
            )
        )
        if gaps:
            info.raise_(AllocationGapRecorded(order_id=order_id, gaps=info.unfulfilled_items, recorded_at=now))
        return info

    @property
    def split_id_list(self) -> list[str]:
        return json.loads(self.split_ids) if self.split_ids else []

    @property
    def gaps(self) -> list[dict]:
        return json.loads(self.unfulfilled_items) if self.unfulfilled_items else []

    @property
    def address(self) -> dict:
        return json.loads(self.shipping_address) if self.shipping_address else {}

    @property
    def is_prepaid(self) -> bool:
        return self.payment_type == PaymentType.PREPAID.value

    @property
    def is_linked(self) -> bool:
        return bool(self.draft_order_id)

    def link_draft_order(self, draft_order_id: str) -> None:
        if self.draft_order_id and self.draft_order_id != draft_order_id:
            raise ValidationError(
                {"draft_order_id": [f"Order already linked to draft order {self.draft_order_id}"]}
            )
        now = datetime.now(UTC)
        self.draft_order_id = draft_order_id
        self.updated_at = now
        self.raise_(DraftOrderLinked(order_id=str(self.order_id), draft_order_id=draft_order_id, linked_at=now))

    def replan(self, split_ids: list[str], gaps: list[dict]) -> None:
        """Record the outcome of re-running the planner through the update path."""
        now = datetime.now(UTC)
        merged = self.split_id_list
        merged.extend(sid for sid in split_ids if sid not in merged)
        self.split_ids = json.dumps(merged)
        self.unfulfilled_items = json.dumps(gaps)
        self.needs_review = bool(gaps)
        self.updated_at = now
        self.raise_(OrderReplanned(order_id=str(self.order_id), split_ids=self.split_ids, replanned_at=now))
        if gaps:
            self.raise_(
                AllocationGapRecorded(order_id=str(self.order_id), gaps=self.unfulfilled_items, recorded_at=now)
            )

    def mark_confirmation_sent(self, sms: bool, email: bool) -> None:
        if sms:
            self.confirmation_sms_sent = True
        if email:
            self.confirmation_email_sent = True
        self.updated_at = datetime.now(UTC)
