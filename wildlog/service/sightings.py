from __future__ import annotations

from typing import List, Optional, Protocol

from wildlog.logging import get_logger
from wildlog.service.errors import ForbiddenError, NotFoundError, ValidationError
from wildlog.storage.models import Sighting

logger = get_logger(__name__)

SIGHTING_NOT_FOUND = "Sighting not found"


class SightingStore(Protocol):
    def create_sighting(
        self,
        user_id: str,
        animal_name: str,
        location: str,
        photo_url: Optional[str] = None,
        *,
        timestamp_sighted: Optional[int] = None,
    ) -> Sighting: ...

    def get_sighting(self, sighting_id: str) -> Optional[Sighting]: ...

    def list_sightings(
        self, user_id: str, *, limit: Optional[int] = None, offset: int = 0
    ) -> List[Sighting]: ...

    def update_sighting(self, sighting_id: str, changes: dict) -> Optional[Sighting]: ...

    def soft_delete_sighting(self, sighting_id: str) -> bool: ...


class SightingService:
    """Sighting CRUD scoped to the owning account."""

    def __init__(self, store: SightingStore) -> None:
        self.store = store

    def create(
        self, account_id: str, animal_name: str, location: str, photo_url: Optional[str] = None
    ) -> Sighting:
        sighting = self.store.create_sighting(account_id, animal_name, location, photo_url)
        logger.info("sighting_created", user_id=account_id, sighting_id=sighting.id)
        return sighting

    def list(self, account_id: str, *, limit: Optional[int] = None, offset: int = 0) -> List[Sighting]:
        return self.store.list_sightings(account_id, limit=limit, offset=offset)

    def get_owned(self, account_id: str, sighting_id: str, *, action: str = "view") -> Sighting:
        """Fetch a sighting the caller owns.

        Existence is checked before ownership: a missing or deleted id is 404
        whoever asks, and only an existing sighting owned by someone else is 403.
        """
        sighting = self.store.get_sighting(sighting_id)
        if sighting is None:
            raise NotFoundError(SIGHTING_NOT_FOUND)
        if sighting.user_id != account_id:
            logger.warning(
                "sighting_access_denied", user_id=account_id, sighting_id=sighting_id
            )
            raise ForbiddenError(f"Not authorized to {action} this sighting")
        return sighting

    def update(self, account_id: str, sighting_id: str, changes: dict) -> Sighting:
        return self.update_owned(self.get_owned(account_id, sighting_id, action="update"), changes)

    def update_owned(self, sighting: Sighting, changes: dict) -> Sighting:
        """Apply ``changes`` to a sighting whose ownership was already checked."""
        if not changes:
            raise ValidationError("No fields to update")
        updated = self.store.update_sighting(sighting.id, changes)
        if updated is None:
            raise NotFoundError(SIGHTING_NOT_FOUND)
        logger.info(
            "sighting_updated", user_id=sighting.user_id, sighting_id=sighting.id, fields=sorted(changes)
        )
        return updated

    def delete(self, account_id: str, sighting_id: str) -> None:
        self.delete_owned(self.get_owned(account_id, sighting_id, action="delete"))

    def delete_owned(self, sighting: Sighting) -> None:
        if not self.store.soft_delete_sighting(sighting.id):
            raise NotFoundError(SIGHTING_NOT_FOUND)
        logger.info("sighting_deleted", user_id=sighting.user_id, sighting_id=sighting.id)
