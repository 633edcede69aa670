"""Sample accounts and sightings for local development."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from wildlog.logging import get_logger
from wildlog.storage.errors import ConstraintViolation
from wildlog.storage.models import unix_now

logger = get_logger(__name__)

SEED_PASSWORD = "Password123!"
SEED_EMAILS = ("test@example.com", "demo@example.com")

# 1x1 PNG pixel
_PIXEL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

SAMPLE_SIGHTINGS = (
    ("Eastern Bluebird", "Central Park, New York, NY", _PIXEL),
    ("Red Fox", "Yellowstone National Park, WY", None),
    ("Canada Goose", "Lake Michigan shoreline, Chicago, IL", _PIXEL),
    ("White-tailed Deer", "Great Smoky Mountains National Park, TN", None),
    ("American Bald Eagle", "Glacier Bay, Alaska", _PIXEL),
)


@dataclass
class SeedResult:
    accounts_created: int
    sightings_created: int


def seed_sample_data(
    store, hash_password: Callable[[str], str], *, now: Optional[int] = None
) -> SeedResult:
    """Create the two sample accounts and five sightings for the first one.

    Sightings are spaced one day apart going back from ``now``. Raises
    ``ConstraintViolation`` if a sample account already exists.
    """
    existing = [email for email in SEED_EMAILS if store.get_account_by_email(email)]
    if existing:
        raise ConstraintViolation("Email already registered", {"existing": len(existing)})
    password_hash = hash_password(SEED_PASSWORD)
    accounts = [store.create_account(email, password_hash) for email in SEED_EMAILS]
    base = unix_now() if now is None else now
    owner = accounts[0]
    for offset, (animal_name, location, photo_url) in enumerate(SAMPLE_SIGHTINGS):
        store.create_sighting(
            owner.id,
            animal_name,
            location,
            photo_url,
            timestamp_sighted=base - offset * 86400,
        )
    logger.info(
        "seed_complete", accounts=len(accounts), sightings=len(SAMPLE_SIGHTINGS)
    )
    return SeedResult(accounts_created=len(accounts), sightings_created=len(SAMPLE_SIGHTINGS))


def clear_data(store) -> None:
    store.clear_all()
    logger.info("seed_cleared")
