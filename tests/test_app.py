"""Tests for turnstile.app — registration, dispatch end to end, and error handling."""

import io
import logging
from datetime import timedelta, timezone
from typing import Any

import pytest

from turnstile.app import App
from turnstile.config import AppConfig
from turnstile.context import RequestContext, get_claims, get_request
from turnstile.controller import Controller
from turnstile.diagnostics import DiagnosticEvent, Diagnostics
from turnstile.errors import ConfigurationError, HTTPError, NotFound
from turnstile.http.request import Request
from turnstile.http.response import Response
from turnstile.middleware.auth import AuthMiddleware
from turnstile.security.tokens import TokenCodec, encode
from turnstile.testing import TestClient

SECRET = "s3cr3t"

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET,POST,PUT,DELETE,OPTIONS",
    "access-control-allow-headers": "Content-Type,Authorization,X-Requested-With",
    "access-control-allow-credentials": "true",
}


class UserController(Controller):
    shown: list[tuple[Any, ...]] = []

    def index(self):
        return [{"id": "1"}]

    def show(self, *args: str):
        UserController.shown.append(args)
        return {"id": args[0]}

    def store(self):
        data = self.validate(self.input(), {"name": "required", "email": "required"})
        return data, 201


class Counter:
    """Middleware that counts calls and always allows."""

    def __init__(self) -> None:
        self.calls = 0

    def handle(self, context: RequestContext) -> bool:
        self.calls += 1
        return True


class Deny:
    def handle(self, context: RequestContext) -> bool:
        context.respond(Response(body='{"denied":true}', status=403))
        return False


def _app(events: list[DiagnosticEvent] | None = None, **config: Any) -> App:
    diagnostics = Diagnostics(events.append) if events is not None else Diagnostics()
    config.setdefault("token_secret", SECRET)
    return App(AppConfig(**config), diagnostics=diagnostics)


@pytest.fixture(autouse=True)
def _reset_controller() -> None:
    UserController.shown = []


class TestScenarios:
    async def test_hello(self) -> None:
        app = _app()
        app.get("/hello", lambda: {"greeting": "hello"})

        async with TestClient(app) as client:
            response = await client.get("/hello")

        assert response.status == 200
        assert response.content_type == "application/json; charset=utf-8"
        assert response.json() == {
            "success": True,
            "message": "Success",
            "data": {"greeting": "hello"},
        }

    async def test_resource_show_receives_positional_param(self) -> None:
        app = _app()
        app.register_controller("UserController", UserController)
        app.resource("users", "UserController")

        async with TestClient(app) as client:
            response = await client.get("/users/42")

        assert response.status == 200
        assert response.json()["data"] == {"id": "42"}
        assert UserController.shown == [("42",)]

    async def test_expired_token_is_rejected_before_handler(self) -> None:
        calls: list[str] = []
        app = _app()
        app.register_middleware("auth", AuthMiddleware(TokenCodec(SECRET)))
        app.get("/me", lambda: calls.append("handler"), middleware=["auth"])
        token = encode({"sub": "42"}, SECRET, 0)

        async with TestClient(app) as client:
            response = await client.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status == 401
        assert response.json() == {"success": False, "message": "Token has expired", "data": None}
        assert response.header("WWW-Authenticate") == "Bearer"
        assert calls == []

    async def test_unknown_route(self) -> None:
        app = _app()
        app.get("/hello", lambda: "hi")

        async with TestClient(app) as client:
            response = await client.get("/nope")

        assert response.status == 404
        assert response.json() == {"success": False, "message": "Route not found", "data": None}

    async def test_missing_required_field(self) -> None:
        app = _app()
        app.register_controller("UserController", UserController)
        app.resource("users", "UserController")

        async with TestClient(app) as client:
            response = await client.post("/users", json={"name": "Ada"})

        assert response.status == 422
        body = response.json()
        assert body["success"] is False
        assert body["data"] == {"email": "The email field is required"}

    async def test_store_created(self) -> None:
        app = _app()
        app.register_controller("UserController", UserController)
        app.resource("users", "UserController")

        async with TestClient(app) as client:
            response = await client.post("/users", json={"name": "Ada", "email": "ada@example.com"})

        assert response.status == 201
        assert response.json()["data"] == {"name": "Ada", "email": "ada@example.com"}


class TestCors:
    async def test_headers_on_success_and_error(self) -> None:
        app = _app()
        app.get("/ok", lambda: None)

        async with TestClient(app) as client:
            ok = await client.get("/ok")
            missing = await client.get("/missing")

        for response in (ok, missing):
            for name, value in CORS.items():
                assert response.header(name) == value

    async def test_configured_origin(self) -> None:
        app = _app(cors_origins="https://example.com")
        app.get("/ok", lambda: None)

        async with TestClient(app) as client:
            response = await client.get("/ok")

        assert response.header("Access-Control-Allow-Origin") == "https://example.com"

    async def test_preflight_short_circuits(self) -> None:
        counter = Counter()
        app = _app()
        app.add_middleware(counter)

        async with TestClient(app) as client:
            response = await client.options("/anything/at/all")

        assert response.status == 200
        assert response.json() == {"success": True, "message": "OK", "data": None}
        assert response.header("Access-Control-Allow-Credentials") == "true"
        assert counter.calls == 0


class TestMiddleware:
    async def test_halting_global_skips_route_middleware_and_handler(self) -> None:
        route_mw = Counter()
        calls: list[str] = []
        app = _app()
        app.add_middleware(Deny())
        app.register_middleware("counted", route_mw)
        app.get("/x", lambda: calls.append("handler"), middleware=["counted"])

        async with TestClient(app) as client:
            response = await client.get("/x")

        assert response.status == 403
        assert response.json() == {"denied": True}
        assert route_mw.calls == 0
        assert calls == []

    async def test_global_runs_before_route_resolution(self) -> None:
        counter = Counter()
        app = _app()
        app.add_middleware(counter)

        async with TestClient(app) as client:
            response = await client.get("/missing")

        assert response.status == 404
        assert counter.calls == 1

    async def test_unregistered_route_middleware_fails_closed(self) -> None:
        events: list[DiagnosticEvent] = []
        calls: list[str] = []
        app = _app(events)
        app.get("/x", lambda: calls.append("handler"), middleware=["typo"])

        async with TestClient(app) as client:
            response = await client.get("/x")

        assert response.status == 500
        assert response.json()["message"] == "Internal server error"
        assert calls == []
        assert "middleware.unresolved" in [e.name for e in events]

    async def test_add_middleware_registers_by_class_name(self) -> None:
        app = _app()
        app.add_middleware(Counter())
        assert app.middleware == ("Counter",)
        assert app.registry.has_middleware("Counter")

    async def test_middleware_class_instantiated_per_request(self) -> None:
        created: list[object] = []

        class Tracking:
            def __init__(self) -> None:
                created.append(self)

            def handle(self, context: RequestContext) -> bool:
                return True

        app = _app()
        app.register_middleware("tracking", Tracking)
        app.get("/x", lambda: None, middleware=["tracking"])

        async with TestClient(app) as client:
            await client.get("/x")
            await client.get("/x")

        assert len(created) == 2
        assert created[0] is not created[1]

    async def test_valid_token_claims_reach_handler(self) -> None:
        codec = TokenCodec(SECRET)
        app = _app()
        app.register_middleware("auth", AuthMiddleware(codec))
        app.get("/me", lambda: get_claims()["sub"], middleware=["auth"])

        async with TestClient(app) as client:
            response = await client.get(
                "/me", headers={"Authorization": f"Bearer {codec.encode({'sub': '42'})}"}
            )

        assert response.status == 200
        assert response.json()["data"] == "42"

    async def test_missing_token(self) -> None:
        app = _app()
        app.register_middleware("auth", AuthMiddleware(TokenCodec(SECRET)))
        app.get("/me", lambda: None, middleware=["auth"])

        async with TestClient(app) as client:
            response = await client.get("/me")

        assert response.status == 401
        assert response.json()["message"] == "Invalid or missing token"


class TestHandlers:
    async def test_status_tuple(self) -> None:
        app = _app()
        app.post("/things", lambda: ({"id": 1}, 201))

        async with TestClient(app) as client:
            response = await client.post("/things")

        assert response.status == 201
        assert response.json()["data"] == {"id": 1}

    async def test_response_passthrough(self) -> None:
        app = _app()
        app.get("/raw", lambda: Response(body="plain", status=202, content_type="text/plain"))

        async with TestClient(app) as client:
            response = await client.get("/raw")

        assert response.status == 202
        assert response.text == "plain"
        assert response.header("Access-Control-Allow-Origin") == "*"

    async def test_request_and_context_injection(self) -> None:
        app = _app()

        def show(id: str, request: Request, context: RequestContext):
            return {"id": id, "path": request.path, "same": context.request is request}

        app.get("/items/{id}", show)

        async with TestClient(app) as client:
            response = await client.get("/items/7")

        assert response.json()["data"] == {"id": "7", "path": "/items/7", "same": True}

    async def test_async_handler_and_get_request(self) -> None:
        app = _app()

        async def who():
            return get_request().query.get("name")

        app.get("/who", who)

        async with TestClient(app) as client:
            response = await client.get("/who?name=ada")

        assert response.json()["data"] == "ada"

    async def test_route_decorator_methods(self) -> None:
        app = _app()

        @app.route("/echo", methods=["GET", "PUT"])
        def echo(request: Request):
            return request.method

        async with TestClient(app) as client:
            got = await client.get("/echo")
            put = await client.put("/echo")
            post = await client.post("/echo")

        assert got.json()["data"] == "GET"
        assert put.json()["data"] == "PUT"
        assert post.status == 404

    async def test_http_error_from_handler(self) -> None:
        app = _app()

        def missing():
            raise NotFound("User not found")

        app.get("/u", missing)

        async with TestClient(app) as client:
            response = await client.get("/u")

        assert response.status == 404
        assert response.json()["message"] == "User not found"

    async def test_invalid_json_body(self) -> None:
        app = _app()
        app.register_controller("UserController", UserController)
        app.resource("users", "UserController")

        async with TestClient(app) as client:
            response = await client.post(
                "/users", body=b"{not json", headers={"Content-Type": "application/json"}
            )

        assert response.status == 400
        assert response.json()["message"] == "Invalid JSON body"


class TestErrorBoundary:
    async def test_unexpected_error_hidden_without_debug(self) -> None:
        events: list[DiagnosticEvent] = []
        app = _app(events)

        def boom():
            raise RuntimeError("database exploded")

        app.get("/boom", boom)

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500
        assert response.json() == {"success": False, "message": "Internal server error", "data": None}
        assert response.header("Access-Control-Allow-Origin") == "*"
        errors = [e for e in events if e.name == "handler.error"]
        assert len(errors) == 1
        assert errors[0].details["error"] == "RuntimeError"
        assert "test_app.py:" in errors[0].details["origin"]

    async def test_unexpected_error_shown_in_debug(self) -> None:
        app = _app(debug=True)

        def boom():
            raise RuntimeError("database exploded")

        app.get("/boom", boom)

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500
        assert response.json()["message"] == "database exploded"

    async def test_error_is_logged_with_origin(self, caplog: pytest.LogCaptureFixture) -> None:
        app = _app()

        def boom():
            raise ValueError("bad value")

        app.get("/boom", boom)

        with caplog.at_level(logging.ERROR, logger="turnstile.server"):
            async with TestClient(app) as client:
                await client.get("/boom")

        assert any("bad value" in r.getMessage() and "test_app.py:" in r.getMessage() for r in caplog.records)

    async def test_failing_sink_still_responds(self) -> None:
        def broken(event: DiagnosticEvent) -> None:
            raise RuntimeError("sink down")

        app = App(AppConfig(token_secret=SECRET), diagnostics=Diagnostics(broken))
        app.get("/hello", lambda: "hi")

        hello = await app.dispatch(Request("GET", "/hello"))
        missing = await app.dispatch(Request("GET", "/nope"))

        assert hello.status == 200
        assert hello.json()["data"] == "hi"
        assert missing.status == 404

    async def test_unserializable_error_data_falls_back_to_500(self) -> None:
        app = _app()

        def conflict():
            raise HTTPError(409, "Conflict", data={"at": object()})

        app.get("/conflict", conflict)
        response = await app.dispatch(Request("GET", "/conflict"))

        assert response.status == 500
        assert response.json() == {"success": False, "message": "Internal server error", "data": None}
        assert response.header("Access-Control-Allow-Origin") == "*"

    async def test_unknown_controller(self) -> None:
        app = _app(debug=True)
        app.get("/ghost", ("GhostController", "index"))

        async with TestClient(app) as client:
            response = await client.get("/ghost")

        assert response.status == 500
        assert response.json()["message"] == "Controller 'GhostController' not found"

    async def test_missing_controller_method(self) -> None:
        app = _app(debug=True)
        app.register_controller("UserController", UserController)
        app.get("/users/{id}/avatar", ("UserController", "avatar"))

        async with TestClient(app) as client:
            response = await client.get("/users/1/avatar")

        assert response.status == 500
        assert response.json()["message"] == "Method 'avatar' not found in controller 'UserController'"


class TestBasePath:
    async def test_stripped(self) -> None:
        app = _app(base_path="/api/")
        app.get("/hello", lambda: "hi")
        app.get("/", lambda: "root")

        async with TestClient(app) as client:
            hello = await client.get("/api/hello")
            root = await client.get("/api")
            trailing = await client.get("/api/hello/")

        assert hello.json()["data"] == "hi"
        assert root.json()["data"] == "root"
        assert trailing.json()["data"] == "hi"

    async def test_segment_boundary(self) -> None:
        app = _app(base_path="/api")
        app.get("/hello", lambda: "hi")

        async with TestClient(app) as client:
            response = await client.get("/apiary/hello")

        assert response.status == 404


class TestDiagnostics:
    async def test_matched_sequence(self) -> None:
        events: list[DiagnosticEvent] = []
        app = _app(events)
        app.get("/users/{id}", lambda id: id)

        async with TestClient(app) as client:
            await client.get("/users/5")

        assert [e.name for e in events] == ["request.received", "route.matched"]
        assert events[1].details == {"pattern": "/users/{id}", "params": ["5"]}
        assert events[1].method == "GET"
        assert events[1].path == "/users/5"

    async def test_unmatched(self) -> None:
        events: list[DiagnosticEvent] = []
        app = _app(events)

        async with TestClient(app) as client:
            await client.delete("/users/5")

        assert [e.name for e in events] == ["request.received", "route.unmatched"]


class TestLifecycle:
    async def test_registration_after_first_dispatch(self) -> None:
        app = _app()
        app.get("/", lambda: None)
        await app.dispatch(Request("GET", "/"))

        with pytest.raises(RuntimeError, match="after it has started"):
            app.get("/late", lambda: None)
        with pytest.raises(RuntimeError):
            app.add_middleware("late")

    def test_registration_chains(self) -> None:
        app = _app()
        result = app.get("/a", lambda: None).post("/a", lambda: None).resource("posts")
        assert result is app
        assert len(app.routes) == 7

    def test_resource_routes(self) -> None:
        app = _app()
        app.resource("photo", middleware=["auth"])
        table = {(r.method, r.pattern): r for r in app.routes}
        assert str(table[("GET", "/photo")].handler) == "PhotoController.index"
        assert str(table[("GET", "/photo/{id}")].handler) == "PhotoController.show"
        assert str(table[("POST", "/photo")].handler) == "PhotoController.store"
        assert str(table[("PUT", "/photo/{id}")].handler) == "PhotoController.update"
        assert str(table[("DELETE", "/photo/{id}")].handler) == "PhotoController.destroy"
        assert all(r.middleware == ("auth",) for r in app.routes)

    def test_routes_setup_callable(self) -> None:
        app = App(AppConfig(), routes=lambda a: a.get("/", lambda: None), diagnostics=Diagnostics())
        assert [r.pattern for r in app.routes] == ["/"]

    def test_routes_setup_failure_is_configuration_error(self) -> None:
        def broken(app: App) -> None:
            raise KeyError("missing")

        with pytest.raises(ConfigurationError, match="Route setup failed"):
            App(AppConfig(), routes=broken, diagnostics=Diagnostics())

    def test_invalid_pattern_fails_at_registration(self) -> None:
        app = _app()
        with pytest.raises(ConfigurationError):
            app.get("/users/<id>", lambda id: id)

    def test_controller_decorator(self) -> None:
        app = _app()

        @app.controller()
        class PostController(Controller):
            pass

        assert app.registry.has_controller("PostController")

    def test_invalid_timezone_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="turnstile.app"):
            app = App(AppConfig(timezone="Mars/Olympus_Mons"), diagnostics=Diagnostics())
        assert app.config.timezone == "UTC"
        assert "Invalid timezone" in caplog.text

    def test_now_uses_app_timezone(self) -> None:
        app = _app(timezone="UTC")
        assert app.tz is timezone.utc
        assert app.now().utcoffset() == timedelta(0)

    def test_from_env_logs_in_app_timezone(self) -> None:
        logger = logging.getLogger("turnstile")
        before = list(logger.handlers)
        try:
            App.from_env({"TIMEZONE": "UTC"}, env_file=None, diagnostics=Diagnostics())
            installed = [h for h in logger.handlers if h not in before]
            assert installed
            for handler in installed:
                assert handler.formatter.converter(0).tm_hour == 0
        finally:
            for handler in list(logger.handlers):
                if handler not in before:
                    logger.removeHandler(handler)
                    handler.close()



class TestDatastore:
    def test_disabled_by_default(self) -> None:
        app = _app()
        with pytest.raises(RuntimeError, match="No datastore"):
            _ = app.db

    def test_enabled_without_datastore(self) -> None:
        with pytest.raises(ConfigurationError):
            App(AppConfig(db_enable=True), diagnostics=Diagnostics())

    def test_factory_receives_config(self) -> None:
        seen: list[AppConfig] = []

        def connect(config: AppConfig) -> dict[str, str]:
            seen.append(config)
            return {"kind": "fake"}

        app = App(AppConfig(db_enable=True), datastore=connect, diagnostics=Diagnostics())
        assert app.db == {"kind": "fake"}
        assert seen == [app.config]

    def test_factory_errors_propagate(self) -> None:
        def connect(config: AppConfig) -> None:
            raise ConnectionError("refused")

        with pytest.raises(ConnectionError):
            App(AppConfig(db_enable=True), datastore=connect, diagnostics=Diagnostics())

    async def test_controller_reaches_datastore(self) -> None:
        class StatsController(Controller):
            def index(self):
                return self.db["kind"]

        app = App(AppConfig(db_enable=True), datastore={"kind": "fake"}, diagnostics=Diagnostics())
        app.register_controller("StatsController", StatsController)
        app.resource("stats")

        async with TestClient(app) as client:
            response = await client.get("/stats")

        assert response.json()["data"] == "fake"


class TestCgiRun:
    def test_single_request(self) -> None:
        app = _app()
        app.get("/users/{id}", lambda id: {"id": id})
        stdout = io.BytesIO()

        response = app.run(
            {"REQUEST_METHOD": "GET", "REQUEST_URI": "/users/42?x=1"},
            io.BytesIO(b""),
            stdout,
        )

        assert response.status == 200
        raw = stdout.getvalue()
        assert raw.startswith(b"Status: 200 OK\r\n")
        head, _, body = raw.partition(b"\r\n\r\n")
        assert b"Access-Control-Allow-Origin: *" in head
        assert body == b'{"success":true,"message":"Success","data":{"id":"42"}}'
