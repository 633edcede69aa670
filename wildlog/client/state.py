from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from wildlog.client.api import ApiClient
from wildlog.logging import get_logger

logger = get_logger(__name__)

USER_KEY = "current_user"
FORM_DRAFT_KEY = "sighting_form_draft"


class StateStorage(Protocol):
    def load(self, key: str) -> Optional[Any]: ...

    def save(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStateStorage:
    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def load(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def save(self, key: str, value: Any) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class FileStateStorage:
    """Persist client state as a single JSON object on disk.

    A missing or corrupt file reads as empty state.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("client_state_unreadable", path=str(self.path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    def load(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class SessionState:
    """Client-side view of who is signed in, plus an unsaved sighting draft.

    The session token itself stays in the HTTP client's cookie jar; this
    object only remembers the account so a UI can render before the server
    confirms the session.
    """

    def __init__(self, api: ApiClient, storage: Optional[StateStorage] = None) -> None:
        self.api = api
        self.storage: StateStorage = storage or MemoryStateStorage()
        self.current_user: Optional[Dict[str, Any]] = self.storage.load(USER_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def set_user(self, user: Optional[Dict[str, Any]]) -> None:
        self.current_user = user
        if user is None:
            self.storage.delete(USER_KEY)
        else:
            self.storage.save(USER_KEY, user)

    def clear_user(self) -> None:
        self.set_user(None)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        user = self.api.signin(email, password)
        self.set_user(user)
        return user

    def sign_out(self) -> None:
        """Sign out on the server (if the session still exists) and forget locally."""
        try:
            self.api.signout()
        finally:
            self.clear_user()
            self.clear_form_draft()

    def refresh(self) -> Optional[Dict[str, Any]]:
        """Re-check the session with the server and sync local state."""
        user = self.api.check_session()
        self.set_user(user)
        return user

    # -- form draft ---------------------------------------------------------

    def save_form_draft(self, draft: Dict[str, Any]) -> None:
        if draft:
            self.storage.save(FORM_DRAFT_KEY, draft)

    def load_form_draft(self) -> Optional[Dict[str, Any]]:
        draft = self.storage.load(FORM_DRAFT_KEY)
        return draft if isinstance(draft, dict) else None

    def clear_form_draft(self) -> None:
        self.storage.delete(FORM_DRAFT_KEY)
