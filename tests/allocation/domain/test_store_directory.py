import pytest
from allocation.store.directory import StoreDirectory
from allocation.store.store import Store, StoreStatus
from protean.exceptions import ObjectNotFoundError, ValidationError


def _store(store_id, store_code, **kwargs):
    return Store.register(store_id=store_id, store_code=store_code, store_name=f"Store {store_code}", **kwargs)


@pytest.fixture
def directory():
    return StoreDirectory(
        stores=[
            _store("s1", "S1", cluster="north", pincodes=["560001", "560003"]),
            _store("s2", "S2", cluster="north", pincodes=["560001"], backup_store_id="s1"),
            _store("s3", "S3", cluster="south", pincodes=["600001"], backup_store_id="s4"),
            _store("s4", "S4"),
        ]
    )


class TestStore:
    def test_cannot_back_itself_up(self):
        with pytest.raises(ValidationError):
            _store("s1", "S1", backup_store_id="s1")

        store = _store("s1", "S1")
        with pytest.raises(ValidationError):
            store.assign_backup("s1")

    def test_pincodes_are_stored_as_strings(self):
        store = _store("s1", "S1", pincodes=[560001])
        assert store.pincode_list == ["560001"]
        assert store.services("560001")
        assert store.services(560001)

    def test_status_change_raises_event_only_on_change(self):
        store = _store("s1", "S1")
        before = len(store._events)
        store.change_status(StoreStatus.ACTIVE.value)
        assert len(store._events) == before

        store.change_status(StoreStatus.INACTIVE.value)
        assert not store.is_active
        assert len(store._events) == before + 1


class TestStoreDirectory:
    def test_lookup_by_id_and_code(self, directory):
        assert directory.get("s2").store_code == "S2"
        assert directory.by_code("S3").store_id == "s3"
        assert directory.find("missing") is None
        with pytest.raises(ObjectNotFoundError):
            directory.get("missing")
        with pytest.raises(ObjectNotFoundError):
            directory.by_code("S9")

    def test_first_active_store_wins_pincode(self, directory):
        assert directory.resolve_pincode("560001").store_id == "s1"
        directory.get("s1").change_status("Inactive")
        assert directory.resolve_pincode("560001").store_id == "s2"
        assert directory.resolve_pincode("560003") is None

    def test_backup_must_be_active(self, directory):
        assert directory.backup_for(directory.get("s3")).store_id == "s4"
        directory.get("s4").change_status("Inactive")
        assert directory.backup_for(directory.get("s3")) is None
        assert directory.backup_for(directory.get("s4")) is None

    def test_cluster_groups_hold_active_members(self, directory):
        directory.get("s2").change_status("Inactive")
        groups = directory.cluster_groups()

        assert set(groups) == {"north", "south"}
        assert groups["north"].store_ids == ["s1"]
        assert groups["south"].store_ids == ["s3"]
        assert [s.store_id for s in directory.cluster_members("north", active_only=False)] == ["s1", "s2"]
