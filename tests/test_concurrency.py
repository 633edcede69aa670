"""Concurrent access to the in-process store and session cache.

Requests run on worker threads, so the memory backends must stay consistent
under parallel signups, sign-ins and sightings.
"""

import asyncio
import threading
from typing import List

from wildlog.service.sessions import SessionManager
from wildlog.storage.errors import ConstraintViolation
from wildlog.storage.memory import MemoryCache, MemoryStore


def _run_threads(target, count: int) -> None:
    threads = [threading.Thread(target=target, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


def test_parallel_signups_for_one_email_create_one_account():
    store = MemoryStore()
    created: List[str] = []
    conflicts: List[int] = []
    lock = threading.Lock()

    def signup(i):
        try:
            account = store.create_account("Same@Example.com", f"hash-{i}")
        except ConstraintViolation:
            with lock:
                conflicts.append(i)
        else:
            with lock:
                created.append(account.id)

    _run_threads(signup, 20)
    assert len(created) == 1
    assert len(conflicts) == 19


def test_parallel_sighting_inserts_are_all_listed():
    store = MemoryStore()
    owner = store.create_account("owner@example.com", "hash").id

    def insert(i):
        store.create_sighting(owner, f"Animal {i}", "Park")

    _run_threads(insert, 50)
    assert len(store.list_sightings(owner)) == 50


def test_parallel_session_creation_yields_distinct_valid_tokens():
    sessions = SessionManager(MemoryCache())
    tokens: List[str] = []
    lock = threading.Lock()

    def create(i):
        token = asyncio.run(sessions.create(f"acct-{i}"))
        with lock:
            tokens.append(token)

    _run_threads(create, 25)
    assert len(set(tokens)) == 25
    for token in tokens:
        assert asyncio.run(sessions.validate(token)) is not None
