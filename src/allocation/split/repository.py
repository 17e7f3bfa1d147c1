"""SplitOrder repository — enforces one split per split id."""

from protean.exceptions import ObjectNotFoundError, ValidationError

from allocation.domain import allocation
from allocation.split.split_order import SplitOrder


@allocation.repository(part_of=SplitOrder)
class SplitOrderRepository:
    def find(self, split_id: str) -> SplitOrder | None:
        try:
            return self.get(split_id)
        except ObjectNotFoundError:
            return None

    def add_new(self, split: SplitOrder) -> SplitOrder:
        """Persist a freshly planned split; a second split with the same id is rejected."""
        if self.find(split.split_id) is not None:
            raise ValidationError({"split_id": [f"Split order {split.split_id} already exists"]})
        return self.add(split)

    def for_order(self, order_id: str) -> list[SplitOrder]:
        splits = self._dao.query.filter(order_id=str(order_id)).limit(None).all().items
        return sorted(splits, key=lambda s: s.split_id)

    def by_order_number(self, order_number: str) -> list[SplitOrder]:
        splits = self._dao.query.filter(order_number=str(order_number)).limit(None).all().items
        return sorted(splits, key=lambda s: s.split_id)

    def by_task_id(self, task_id: str) -> SplitOrder | None:
        """The split a carrier task was booked for, if any."""
        matches = self._dao.query.filter(tpl_task_id=task_id).limit(None).all().items
        return matches[0] if matches else None
