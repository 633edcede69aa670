"""HTTP client for the Wildlog API.

The session cookie lives in the injected ``httpx.Client``'s cookie jar, so
one client instance corresponds to one signed-in user.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from wildlog.logging import get_logger

logger = get_logger(__name__)

NETWORK_ERROR = "Network error. Please check your connection and try again."

_UNSET: Any = object()


class ApiError(Exception):
    def __init__(self, status: int, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, message={self.message!r})"


class ApiClient:
    def __init__(self, http: httpx.Client) -> None:
        self.http = http

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = self.http.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            logger.warning("api_request_failed", method=method, path=path, error=str(exc))
            raise ApiError(0, NETWORK_ERROR) from exc
        data = None
        if "application/json" in response.headers.get("content-type", ""):
            try:
                data = response.json()
            except ValueError:
                data = None
        if response.is_error:
            body = data if isinstance(data, dict) else {}
            raise ApiError(
                response.status_code,
                body.get("error") or f"HTTP {response.status_code}",
                body.get("details") or {},
            )
        return data

    # -- auth ---------------------------------------------------------------

    def signup(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/auth/signup", json={"email": email, "password": password})

    def signin(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/auth/signin", json={"email": email, "password": password})

    def signout(self) -> None:
        self._request("POST", "/api/auth/signout")

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/auth/me")

    def check_session(self) -> Optional[Dict[str, Any]]:
        """Return the signed-in account, or None when signed out or unreachable."""
        try:
            return self.me()
        except ApiError as exc:
            if exc.status in (0, 401):
                return None
            raise

    # -- sightings ----------------------------------------------------------

    def create_sighting(
        self, animal_name: str, location: str, photo_url: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"animal_name": animal_name, "location": location}
        if photo_url is not None:
            payload["photo_url"] = photo_url
        return self._request("POST", "/api/sightings", json=payload)["sighting"]

    def list_sightings(
        self, *, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        params = {}
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        return self._request("GET", "/api/sightings", params=params or None)["sightings"]

    def get_sighting(self, sighting_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/sightings/{sighting_id}")["sighting"]

    def update_sighting(
        self,
        sighting_id: str,
        *,
        animal_name: Optional[str] = None,
        location: Optional[str] = None,
        photo_url: Any = _UNSET,
    ) -> Dict[str, Any]:
        """Send only the provided fields; ``photo_url=None`` removes the photo."""
        payload: Dict[str, Any] = {}
        if animal_name is not None:
            payload["animal_name"] = animal_name
        if location is not None:
            payload["location"] = location
        if photo_url is not _UNSET:
            payload["photo_url"] = photo_url
        return self._request("PATCH", f"/api/sightings/{sighting_id}", json=payload)["sighting"]

    def delete_sighting(self, sighting_id: str) -> None:
        self._request("DELETE", f"/api/sightings/{sighting_id}")
