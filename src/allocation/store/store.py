"""Store aggregate — a physical outlet acting as a fulfillment point.

Stores are administered outside the allocation core; the core reads them
through StoreDirectory. The only mutations are registration, activation
status and backup designation.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from allocation.domain import allocation
from allocation.store.events import BackupStoreAssigned, StoreRegistered, StoreStatusChanged


class StoreStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


@allocation.aggregate
class Store:
    store_id = Identifier(identifier=True, required=True)
    store_code = String(required=True, max_length=50)
    store_name = String(required=True, max_length=200)
    cluster = String(max_length=100)
    backup_store_id = Identifier()
    status = String(choices=StoreStatus, default=StoreStatus.ACTIVE.value)
    address = String(max_length=500)
    pincodes = Text()  # JSON list of serviced pincodes
    latitude = Float()
    longitude = Float()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(
        cls,
        store_id: str,
        store_code: str,
        store_name: str,
        cluster: str | None = None,
        backup_store_id: str | None = None,
        address: str | None = None,
        pincodes: list[str] | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ):
        if backup_store_id and backup_store_id == store_id:
            raise ValidationError({"backup_store_id": ["A store cannot back itself up"]})

        now = datetime.now(UTC)
        store = cls(
            store_id=store_id,
            store_code=store_code,
            store_name=store_name,
            cluster=cluster,
            backup_store_id=backup_store_id,
            address=address,
            pincodes=json.dumps([str(p) for p in (pincodes or [])]),
            latitude=latitude,
            longitude=longitude,
            status=StoreStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        store.raise_(
            StoreRegistered(
                store_id=store_id,
                store_code=store_code,
                cluster=cluster or "",
                registered_at=now,
            )
        )
        return store

    @property
    def is_active(self) -> bool:
        return self.status == StoreStatus.ACTIVE.value

    @property
    def pincode_list(self) -> list[str]:
        return json.loads(self.pincodes) if self.pincodes else []

    def services(self, pincode: str) -> bool:
        return str(pincode) in self.pincode_list

    def change_status(self, status: str) -> None:
        new_status = StoreStatus(status)
        if new_status.value == self.status:
            return
        now = datetime.now(UTC)
        self.status = new_status.value
        self.updated_at = now
        self.raise_(
            StoreStatusChanged(
                store_id=str(self.store_id),
                status=new_status.value,
                changed_at=now,
            )
        )

    def assign_backup(self, backup_store_id: str | None) -> None:
        if backup_store_id and str(backup_store_id) == str(self.store_id):
            raise ValidationError({"backup_store_id": ["A store cannot back itself up"]})
        now = datetime.now(UTC)
        self.backup_store_id = backup_store_id
        self.updated_at = now
        self.raise_(
            BackupStoreAssigned(
                store_id=str(self.store_id),
                backup_store_id=backup_store_id or "",
                assigned_at=now,
            )
        )
