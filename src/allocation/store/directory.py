"""StoreDirectory — read-only view over registered stores.

Resolves pincodes to stores, backup designations and cluster membership for
the planner and the stock aggregator. Cluster groups are derived on every
call and never persisted.
"""

from dataclasses import dataclass, field

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from allocation.store.store import Store


@dataclass
class ClusterGroup:
    """Active stores sharing a cluster, in registration order."""

    cluster: str
    store_ids: list[str] = field(default_factory=list)


class StoreDirectory:
    def __init__(self, stores: list[Store] | None = None):
        if stores is None:
            stores = current_domain.repository_for(Store)._dao.query.limit(None).all().items
        # Stable order: registration time, then code, so ties resolve the same way every run
        self._stores = sorted(stores, key=lambda s: (s.created_at is None, s.created_at, s.store_code))
        self._by_id = {str(s.store_id): s for s in self._stores}

    def all(self) -> list[Store]:
        return list(self._stores)

    def get(self, store_id: str) -> Store:
        store = self._by_id.get(str(store_id))
        if store is None:
            raise ObjectNotFoundError(f"Store {store_id} not found")
        return store

    def find(self, store_id: str | None) -> Store | None:
        if not store_id:
            return None
        return self._by_id.get(str(store_id))

    def by_code(self, store_code: str) -> Store:
        store = next((s for s in self._stores if s.store_code == store_code), None)
        if store is None:
            raise ObjectNotFoundError(f"Store with code {store_code} not found")
        return store

    def resolve_pincode(self, pincode: str) -> Store | None:
        """Return the first active store servicing ``pincode``."""
        return next((s for s in self._stores if s.is_active and s.services(pincode)), None)

    def backup_for(self, store: Store) -> Store | None:
        """Return the designated backup of ``store`` when it exists and is active."""
        backup = self.find(store.backup_store_id)
        if backup is None or not backup.is_active:
            return None
        return backup

    def cluster_members(self, cluster: str | None, active_only: bool = True) -> list[Store]:
        if not cluster:
            return []
        return [s for s in self._stores if s.cluster == cluster and (s.is_active or not active_only)]

    def cluster_groups(self) -> dict[str, ClusterGroup]:
        groups: dict[str, ClusterGroup] = {}
        for store in self._stores:
            if not store.cluster or not store.is_active:
                continue
            groups.setdefault(store.cluster, ClusterGroup(cluster=store.cluster)).store_ids.append(
                str(store.store_id)
            )
        return groups
