from fastapi import FastAPI
from fastapi.testclient import TestClient

from wildlog.api.error_handling import register_exception_handlers, validation_details
from wildlog.service.errors import ConflictError, ServerError, SessionExpiredError
from wildlog.storage.errors import ConstraintViolation


def _app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/conflict")
    async def conflict():
        raise ConflictError("Email already registered", detail={"email": "taken"})

    @app.get("/constraint")
    async def constraint():
        raise ConstraintViolation("email already exists", {"field": "email"})

    @app.get("/stale")
    async def stale():
        raise SessionExpiredError("Not authenticated")

    @app.get("/server")
    async def server():
        raise ServerError("Storage unavailable")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    return app


def test_service_error_body_has_error_and_details():
    response = TestClient(_app()).get("/conflict")
    assert response.status_code == 409
    assert response.json() == {"error": "Email already registered", "details": {"email": "taken"}}


def test_constraint_violation_maps_to_409():
    response = TestClient(_app()).get("/constraint")
    assert response.status_code == 409
    assert response.json() == {"error": "email already exists"}


def test_session_expired_clears_cookie():
    response = TestClient(_app()).get("/stale")
    assert response.status_code == 401
    assert response.headers["set-cookie"].startswith("session=; Path=/; Max-Age=0")


def test_server_error_status():
    response = TestClient(_app()).get("/server")
    assert response.status_code == 500
    assert response.json() == {"error": "Storage unavailable"}


def test_unhandled_exception_does_not_leak_details():
    response = TestClient(_app(), raise_server_exceptions=False).get("/boom")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "secret" not in response.text


def test_unknown_route_uses_error_body():
    response = TestClient(_app()).get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_validation_details_one_message_per_field():
    details = validation_details(
        [
            {"type": "value_error", "loc": ("body", "email"), "msg": "Value error, Invalid email address"},
            {"type": "value_error", "loc": ("body", "email"), "msg": "second message"},
            {"type": "missing", "loc": ("body", "location"), "msg": "Field required"},
            {"type": "greater_than_equal", "loc": ("query", "limit"), "msg": "Input should be >= 1"},
            {"type": "missing", "loc": ("body",), "msg": "Field required"},
        ]
    )
    assert details == {
        "email": "Invalid email address",
        "location": "Field required",
        "limit": "Input should be >= 1",
        "body": "Field required",
    }
