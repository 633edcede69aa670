from __future__ import annotations

from typing import Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from wildlog.api.cookies import clear_session_cookie, parse_session_token, set_session_cookie
from wildlog.api.schemas import (
    CreateSightingRequest,
    SeedResponse,
    SigninRequest,
    SightingEnvelope,
    SightingListResponse,
    SightingResponse,
    SignupRequest,
    SignupResponse,
    UpdateSightingRequest,
    UserResponse,
)
from wildlog.logging import get_logger
from wildlog.service.auth import AuthContext
from wildlog.service.errors import AuthenticationError, NotFoundError, SessionExpiredError
from wildlog.service.runtime import get_runtime
from wildlog.storage.models import Sighting
from wildlog.storage.seed import clear_data, seed_sample_data

logger = get_logger(__name__)

router = APIRouter(prefix="/api")

NOT_AUTHENTICATED = "Not authenticated"

_Model = TypeVar("_Model", bound=BaseModel)


async def require_account(cookie: Optional[str] = Header(None)) -> AuthContext:
    """Resolve the caller from the ``session`` cookie or fail with 401.

    A cookie that no longer resolves to a live session is cleared on the
    401 response.
    """
    token = parse_session_token(cookie)
    if not token:
        raise AuthenticationError(NOT_AUTHENTICATED)
    ctx = await get_runtime().auth.resolve_session(token)
    if ctx is None:
        raise SessionExpiredError(NOT_AUTHENTICATED)
    return ctx


def owned_sighting(action: str):
    """Dependency factory loading a sighting the caller owns (404, then 403)."""

    def dependency(
        sighting_id: str, principal: AuthContext = Depends(require_account)
    ) -> Sighting:
        return get_runtime().sightings.get_owned(
            principal.account_id, sighting_id, action=action
        )

    return dependency


def authenticated_body(model: Type[_Model]):
    """Dependency factory decoding a JSON body only once the caller is known.

    Requests without a live session are rejected before their body is read.
    """

    async def dependency(
        request: Request, principal: AuthContext = Depends(require_account)
    ):
        try:
            payload = await request.json()
        except ValueError:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error"}]
            )
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise RequestValidationError(exc.errors(include_url=False)) from exc

    return dependency


def require_dev_endpoints() -> None:
    if not get_runtime().settings.enable_dev_endpoints:
        raise NotFoundError("Not found")


# -- auth -------------------------------------------------------------------


@router.post("/auth/signup", response_model=SignupResponse, status_code=201, tags=["auth"])
async def signup(body: SignupRequest):
    """Register an account. Does not sign the caller in."""
    account = get_runtime().auth.signup(body.email, body.password)
    return SignupResponse.from_account(account)


@router.post(
    "/auth/signin",
    response_model=UserResponse,
    response_model_exclude_none=True,
    tags=["auth"],
)
async def signin(body: SigninRequest, response: Response):
    runtime = get_runtime()
    account, token = await runtime.auth.signin(body.email, body.password)
    set_session_cookie(
        response,
        token,
        max_age=runtime.settings.session_ttl_seconds,
        secure=runtime.settings.session_cookie_secure,
    )
    return UserResponse.from_account(account)


@router.post("/auth/signout", status_code=204, tags=["auth"])
async def signout(principal: AuthContext = Depends(require_account)):
    runtime = get_runtime()
    await runtime.auth.signout(principal.token)
    logger.info("signout_succeeded", user_id=principal.account_id)
    response = Response(status_code=204)
    clear_session_cookie(response, secure=runtime.settings.session_cookie_secure)
    return response


@router.get(
    "/auth/me",
    response_model=UserResponse,
    response_model_exclude_none=True,
    tags=["auth"],
)
async def me(principal: AuthContext = Depends(require_account)):
    account = get_runtime().auth.get_account(principal.account_id)
    if account is None:
        raise NotFoundError("User not found")
    return UserResponse.from_account(account)


# -- sightings --------------------------------------------------------------


@router.post(
    "/sightings", response_model=SightingEnvelope, status_code=201, tags=["sightings"]
)
async def create_sighting(
    principal: AuthContext = Depends(require_account),
    body: CreateSightingRequest = Depends(authenticated_body(CreateSightingRequest)),
):
    sighting = get_runtime().sightings.create(
        principal.account_id, body.animal_name, body.location, body.photo_url
    )
    return SightingEnvelope(sighting=SightingResponse.from_sighting(sighting))


@router.get("/sightings", response_model=SightingListResponse, tags=["sightings"])
async def list_sightings(
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: AuthContext = Depends(require_account),
):
    """List the caller's sightings, newest first."""
    sightings = get_runtime().sightings.list(
        principal.account_id, limit=limit, offset=offset
    )
    return SightingListResponse(
        sightings=[SightingResponse.from_sighting(s) for s in sightings]
    )


@router.get("/sightings/{sighting_id}", response_model=SightingEnvelope, tags=["sightings"])
async def get_sighting(sighting: Sighting = Depends(owned_sighting("view"))):
    return SightingEnvelope(sighting=SightingResponse.from_sighting(sighting))


@router.patch(
    "/sightings/{sighting_id}", response_model=SightingEnvelope, tags=["sightings"]
)
async def update_sighting(
    sighting: Sighting = Depends(owned_sighting("update")),
    body: UpdateSightingRequest = Depends(authenticated_body(UpdateSightingRequest)),
):
    updated = get_runtime().sightings.update_owned(sighting, body.changes())
    return SightingEnvelope(sighting=SightingResponse.from_sighting(updated))


@router.delete("/sightings/{sighting_id}", status_code=204, tags=["sightings"])
async def delete_sighting(sighting: Sighting = Depends(owned_sighting("delete"))):
    get_runtime().sightings.delete_owned(sighting)
    return Response(status_code=204)


# -- development ------------------------------------------------------------


@router.post(
    "/dev/seed",
    response_model=SeedResponse,
    status_code=201,
    tags=["dev"],
    dependencies=[Depends(require_dev_endpoints)],
)
async def seed():
    runtime = get_runtime()
    result = seed_sample_data(runtime.store, runtime.auth.hash_password)
    return SeedResponse(
        accounts_created=result.accounts_created,
        sightings_created=result.sightings_created,
    )


@router.post(
    "/dev/clear",
    status_code=204,
    tags=["dev"],
    dependencies=[Depends(require_dev_endpoints)],
)
async def clear():
    clear_data(get_runtime().store)
    return Response(status_code=204)
