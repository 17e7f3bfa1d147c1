"""Store administration — register stores, toggle status, set backups."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.store.store import Store, StoreStatus


@allocation.command(part_of="Store")
class RegisterStore:
    store_id = Identifier(required=True)
    store_code = String(required=True, max_length=50)
    store_name = String(required=True, max_length=200)
    cluster = String(max_length=100)
    backup_store_id = Identifier()
    address = String(max_length=500)
    pincodes = Text()  # JSON list
    latitude = Float()
    longitude = Float()


@allocation.command(part_of="Store")
class UpdateStoreStatus:
    store_id = Identifier(required=True)
    status = String(required=True, choices=StoreStatus)


@allocation.command(part_of="Store")
class AssignBackupStore:
    store_id = Identifier(required=True)
    backup_store_id = Identifier()


@allocation.command_handler(part_of=Store)
class StoreAdministrationHandler:
    @handle(RegisterStore)
    def register_store(self, command):
        repo = current_domain.repository_for(Store)
        existing = repo._dao.query.filter(store_code=command.store_code).all()
        if existing.items:
            raise ValidationError({"store_code": [f"Store code {command.store_code} is already registered"]})

        store = Store.register(
            store_id=str(command.store_id),
            store_code=command.store_code,
            store_name=command.store_name,
            cluster=command.cluster,
            backup_store_id=str(command.backup_store_id) if command.backup_store_id else None,
            address=command.address,
            pincodes=json.loads(command.pincodes) if command.pincodes else [],
            latitude=command.latitude,
            longitude=command.longitude,
        )
        repo.add(store)
        return str(store.store_id)

    @handle(UpdateStoreStatus)
    def update_store_status(self, command):
        repo = current_domain.repository_for(Store)
        store = repo.get(command.store_id)
        store.change_status(command.status)
        repo.add(store)

    @handle(AssignBackupStore)
    def assign_backup_store(self, command):
        repo = current_domain.repository_for(Store)
        store = repo.get(command.store_id)
        if command.backup_store_id:
            # Raises ObjectNotFoundError for an unknown backup
            repo.get(command.backup_store_id)
        store.assign_backup(str(command.backup_store_id) if command.backup_store_id else None)
        repo.add(store)
