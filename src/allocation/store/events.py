"""Store domain events."""

from protean.fields import DateTime, Identifier, String

from allocation.domain import allocation


@allocation.event(part_of="Store")
class StoreRegistered:
    """A store was registered as a fulfillment point."""

    __version__ = 1

    store_id = Identifier(required=True)
    store_code = String(required=True)
    cluster = String()
    registered_at = DateTime(required=True)


@allocation.event(part_of="Store")
class StoreStatusChanged:
    """A store was activated or deactivated."""

    __version__ = 1

    store_id = Identifier(required=True)
    status = String(required=True)
    changed_at = DateTime(required=True)


@allocation.event(part_of="Store")
class BackupStoreAssigned:
    """A store's designated backup was changed (empty string clears it)."""

    __version__ = 1

    store_id = Identifier(required=True)
    backup_store_id = String()
    assigned_at = DateTime(required=True)
