"""Order splitting — PlanOrderSplit and LinkDraftOrder commands.

PlanOrderSplit runs the AllocationPlanner against current raw stock and
persists the outcome:

- first run for an order: one SplitOrder per draft plus the OrderInfo record;
- order already split but not yet linked to a draft order: nothing changes,
  the existing split ids come back;
- order linked to a draft order: the update path plans only the quantity
  not already held by splits past ``new``, refreshes splits still in ``new``,
  creates any split the new plan adds and withdraws ``new`` splits it drops.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.order_source.port import SourceOrder
from allocation.split.order_info import OrderInfo
from allocation.split.planner import Gap, PlanLine, PlanningContext, SplitMode, plan_allocation
from allocation.split.split_order import SplitOrder, SplitOrderStatus
from allocation.stock.stock import StockRecord
from allocation.store.directory import StoreDirectory

logger = structlog.get_logger(__name__)


@allocation.command(part_of="OrderInfo")
class PlanOrderSplit:
    """Split an order across stores under one split mode."""

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    line_items = Text(required=True)  # JSON list of {line_item_id, sku, quantity}
    pincode = String(max_length=20)
    split_mode = String(required=True, choices=SplitMode)
    store_id = Identifier()  # manual mode only
    financial_status = String(max_length=50)
    tags = Text()  # JSON list
    customer_name = String(max_length=200)
    phone_number = String(max_length=30)
    email = String(max_length=254)
    shipping_address = Text()  # JSON
    order_total = Float(default=0.0)


@allocation.command(part_of="OrderInfo")
class LinkDraftOrder:
    """Record the downstream draft order; later re-planning updates in place."""

    order_id = Identifier(required=True)
    draft_order_id = String(required=True, max_length=100)


def plan_command_for(order: SourceOrder, split_mode: SplitMode | str, store_id: str | None = None) -> PlanOrderSplit:
    """Build a PlanOrderSplit from an order fetched from the order source."""
    return PlanOrderSplit(
        order_id=order.order_id,
        order_number=str(order.order_number),
        line_items=json.dumps(
            [
                {"line_item_id": line.line_item_id, "sku": line.sku, "quantity": line.quantity}
                for line in order.line_items
            ]
        ),
        pincode=order.shipping_address.pincode,
        split_mode=SplitMode(split_mode).value,
        store_id=store_id,
        financial_status=order.financial_status,
        tags=json.dumps(order.tags),
        customer_name=order.customer_name,
        phone_number=order.phone_number,
        email=order.email,
        shipping_address=json.dumps(
            {
                "name": order.shipping_address.name,
                "address": order.shipping_address.address,
                "city": order.shipping_address.city,
                "pincode": order.shipping_address.pincode,
                "phone": order.shipping_address.phone,
                "latitude": order.shipping_address.latitude,
                "longitude": order.shipping_address.longitude,
            }
        ),
        order_total=order.total_price,
    )


def _stock_lookup(skus: set[str]):
    records = current_domain.repository_for(StockRecord)._dao.query.filter(sku__in=list(skus)).limit(None).all().items
    raw = {(r.sku, str(r.store_id)): r.raw_stock or 0 for r in records}
    return lambda sku, store_id: raw.get((sku, store_id), 0)


def _committed_quantities(splits: list[SplitOrder]) -> dict[str, int]:
    """Quantities per line item held by splits that re-planning can no longer change."""
    committed: dict[str, int] = {}
    for split in splits:
        if split.status in (SplitOrderStatus.NEW, SplitOrderStatus.CANCELLED):
            continue
        for item in split.line_items or []:
            committed[item.line_item_id] = committed.get(item.line_item_id, 0) + item.quantity
    return committed


def _gaps_after(lines: list[PlanLine], allocated: dict[str, int]) -> list[dict]:
    return [
        Gap(
            line_item_id=line.line_item_id,
            sku=line.sku,
            requested=line.quantity,
            allocated=allocated.get(line.line_item_id, 0),
        ).to_dict()
        for line in lines
        if line.quantity > 0 and allocated.get(line.line_item_id, 0) < line.quantity
    ]


@allocation.command_handler(part_of=OrderInfo)
class OrderSplitHandler:
    @handle(PlanOrderSplit)
    def plan_order_split(self, command):
        info_repo = current_domain.repository_for(OrderInfo)
        split_repo = current_domain.repository_for(SplitOrder)

        try:
            info = info_repo.get(command.order_id)
        except ObjectNotFoundError:
            info = None

        if info is not None and not info.is_linked:
            logger.info("Order already split", order_id=str(command.order_id), split_ids=info.split_id_list)
            return {
                "order_id": str(command.order_id),
                "split_ids": info.split_id_list,
                "created": [],
                "updated": [],
                "withdrawn": [],
                "gaps": info.gaps,
            }

        lines = [PlanLine(**item) for item in json.loads(command.line_items)]
        existing_splits = split_repo.for_order(command.order_id) if info is not None else []

        # Only the quantity not already past ``new`` elsewhere is planned again
        committed = _committed_quantities(existing_splits)
        open_lines = [
            PlanLine(
                line_item_id=line.line_item_id,
                sku=line.sku,
                quantity=max(line.quantity - committed.get(line.line_item_id, 0), 0),
            )
            for line in lines
        ]
        context = PlanningContext(
            order_number=command.order_number,
            lines=open_lines,
            pincode=command.pincode,
            directory=StoreDirectory(),
            stock_lookup=_stock_lookup({line.sku for line in lines}),
            manual_store_id=command.store_id,
        )
        plan = plan_allocation(context, command.split_mode)

        allocated = dict(committed)
        created, updated, withdrawn = [], [], []
        existing_by_id = {split.split_id: split for split in existing_splits}
        for draft in plan.drafts:
            existing = existing_by_id.get(draft.split_id)
            if existing is None:
                split = SplitOrder.create(
                    order_id=command.order_id,
                    order_number=command.order_number,
                    store_id=draft.store_id,
                    store_code=draft.store_code,
                    line_items=draft.line_items,
                )
                split_repo.add_new(split)
                created.append(split.split_id)
            elif existing.status == SplitOrderStatus.NEW:
                existing.refresh_line_items(draft.line_items)
                split_repo.add(existing)
                updated.append(existing.split_id)
            else:
                # Quantity planned onto a split that can no longer change stays unfulfilled
                logger.info(
                    "Split past new left untouched by re-planning",
                    split_id=existing.split_id,
                    order_status=existing.order_status,
                )
                continue
            for item in draft.line_items:
                allocated[item["line_item_id"]] = allocated.get(item["line_item_id"], 0) + item["quantity"]

        planned_ids = set(created) | set(updated)
        for split in existing_splits:
            if split.status == SplitOrderStatus.NEW and split.split_id not in planned_ids:
                split.withdraw()
                split_repo.add(split)
                withdrawn.append(split.split_id)

        gaps = _gaps_after(lines, allocated)

        if info is None:
            info = OrderInfo.record(
                order_id=command.order_id,
                order_number=command.order_number,
                split_mode=command.split_mode,
                split_ids=created,
                gaps=gaps,
                financial_status=command.financial_status,
                tags=json.loads(command.tags) if command.tags else [],
                customer_name=command.customer_name,
                phone_number=command.phone_number,
                email=command.email,
                shipping_address=json.loads(command.shipping_address) if command.shipping_address else {},
                order_total=command.order_total,
            )
        else:
            info.replan(created + updated, gaps)
        info_repo.add(info)

        if gaps:
            logger.warning(
                "Order allocation left unfulfilled quantity",
                order_id=str(command.order_id),
                split_mode=command.split_mode,
                gaps=gaps,
            )
        logger.info(
            "Order split planned",
            order_id=str(command.order_id),
            split_mode=command.split_mode,
            created=created,
            updated=updated,
            withdrawn=withdrawn,
        )
        return {
            "order_id": str(command.order_id),
            "split_ids": info.split_id_list,
            "created": created,
            "updated": updated,
            "withdrawn": withdrawn,
            "gaps": gaps,
        }

    @handle(LinkDraftOrder)
    def link_draft_order(self, command):
        repo = current_domain.repository_for(OrderInfo)
        info = repo.get(command.order_id)
        info.link_draft_order(command.draft_order_id)
        repo.add(info)
