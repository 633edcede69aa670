import pytest

from wildlog.storage.errors import ConstraintViolation
from wildlog.storage.memory import MemoryCache, MemoryStore
from wildlog.storage.seed import SAMPLE_SIGHTINGS, SEED_EMAILS, clear_data, seed_sample_data


@pytest.fixture
def store():
    return MemoryStore()


def test_account_email_unique_case_insensitive(store):
    account = store.create_account("Alice@Example.com", "hash")
    assert account.email == "alice@example.com"
    with pytest.raises(ConstraintViolation):
        store.create_account("ALICE@example.com", "hash")
    assert store.get_account_by_email(" alice@EXAMPLE.com ").id == account.id


def test_soft_deleted_account_frees_email(store):
    account = store.create_account("alice@example.com", "hash")
    assert store.soft_delete_account(account.id)
    assert store.get_account(account.id) is None
    assert store.get_account_by_email("alice@example.com") is None
    replacement = store.create_account("alice@example.com", "hash2")
    assert replacement.id != account.id
    assert not store.soft_delete_account(account.id)


def test_touch_last_login(store):
    account = store.create_account("alice@example.com", "hash")
    assert store.touch_last_login(account.id, at=1234) == 1234
    assert store.get_account(account.id).last_login_at == 1234
    assert store.touch_last_login("missing") is None


def test_returned_rows_are_copies(store):
    account = store.create_account("alice@example.com", "hash")
    account.email = "mutated@example.com"
    assert store.get_account(account.id).email == "alice@example.com"


def test_list_sightings_newest_first_with_tie_break(store):
    owner = store.create_account("alice@example.com", "hash").id
    other = store.create_account("bob@example.com", "hash").id
    first = store.create_sighting(owner, "Fox", "A")
    second = store.create_sighting(owner, "Owl", "B")
    store.create_sighting(other, "Bear", "C")
    # same-second inserts still list newest first
    assert [s.id for s in store.list_sightings(owner)] == [second.id, first.id]
    store.sightings[first.id].created_at += 10
    assert [s.id for s in store.list_sightings(owner)] == [first.id, second.id]


def test_list_sightings_pagination_and_soft_delete(store):
    owner = store.create_account("alice@example.com", "hash").id
    created = [store.create_sighting(owner, f"Animal {i}", "Park") for i in range(5)]
    newest_first = [s.id for s in reversed(created)]
    assert [s.id for s in store.list_sightings(owner, limit=2)] == newest_first[:2]
    assert [s.id for s in store.list_sightings(owner, limit=2, offset=2)] == newest_first[2:4]
    assert store.soft_delete_sighting(created[-1].id)
    assert not store.soft_delete_sighting(created[-1].id)
    assert created[-1].id not in [s.id for s in store.list_sightings(owner)]
    assert store.get_sighting(created[-1].id) is None


def test_update_sighting(store):
    owner = store.create_account("alice@example.com", "hash").id
    sighting = store.create_sighting(owner, "Fox", "Park", "data:image/png;base64,AA")
    updated = store.update_sighting(sighting.id, {"photo_url": None, "location": "Forest"})
    assert updated.photo_url is None
    assert updated.location == "Forest"
    assert updated.updated_at >= sighting.updated_at
    with pytest.raises(ValueError):
        store.update_sighting(sighting.id, {"user_id": "someone"})
    store.soft_delete_sighting(sighting.id)
    assert store.update_sighting(sighting.id, {"location": "X"}) is None


def test_seed_and_clear(store):
    result = seed_sample_data(store, lambda password: "hashed:" + password, now=1_000_000)
    assert result.accounts_created == len(SEED_EMAILS)
    assert result.sightings_created == len(SAMPLE_SIGHTINGS)
    owner = store.get_account_by_email(SEED_EMAILS[0])
    sightings = store.list_sightings(owner.id)
    assert sorted(s.timestamp_sighted for s in sightings) == [
        1_000_000 - i * 86400 for i in reversed(range(len(SAMPLE_SIGHTINGS)))
    ]
    with pytest.raises(ConstraintViolation):
        seed_sample_data(store, lambda password: "hashed")
    clear_data(store)
    assert store.get_account_by_email(SEED_EMAILS[0]) is None


def test_seed_refuses_before_inserting_when_any_sample_account_exists(store):
    store.create_account(SEED_EMAILS[1], "hash")
    with pytest.raises(ConstraintViolation):
        seed_sample_data(store, lambda password: "hashed")
    assert store.get_account_by_email(SEED_EMAILS[0]) is None


async def test_memory_cache_expires_entries():
    now = [100.0]
    cache = MemoryCache(clock=lambda: now[0])
    await cache.cache_session("tok", "payload", 10)
    assert await cache.get_session("tok") == "payload"
    now[0] = 110.0
    assert await cache.get_session("tok") is None
    await cache.revoke_session("tok")
