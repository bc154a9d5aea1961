"""Controller base class.

Controllers group the actions of one resource. Register a class and it is
instantiated once per request; actions receive the positional path
parameters and reach the request through the controller::

    class UserController(Controller):
        def show(self, id: str):
            return {"id": id}

        def store(self):
            data = self.validate(self.input(), {"name": "required", "email": "required"})
            return data, 201

    app.register_controller("UserController", UserController)
    app.resource("user")
"""

from collections.abc import Mapping
from typing import Any

from turnstile.context import RequestContext, get_context
from turnstile.errors import BadRequest, ValidationFailure
from turnstile.http.request import Request
from turnstile.http.response import Response, error, json_response, success
from turnstile.validation import RuleSpec, validate


class Controller:
    """Base class for controllers. Subclassing is optional."""

    @property
    def context(self) -> RequestContext:
        return get_context()

    @property
    def request(self) -> Request:
        return get_context().request

    @property
    def claims(self) -> dict[str, Any] | None:
        return get_context().claims

    @property
    def db(self) -> Any:
        """The app's datastore. Raises ``RuntimeError`` when none is enabled."""
        datastore = get_context().datastore
        if datastore is None:
            msg = "No datastore is available. Set DB_ENABLE and pass App(datastore=...)."
            raise RuntimeError(msg)
        return datastore

    def input(self) -> dict[str, Any]:
        """The JSON request body as a dict; ``{}`` for an empty body.

        Raises ``BadRequest`` for invalid JSON or a non-object body.
        """
        data = self.request.json()
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise BadRequest("Expected a JSON object")
        return data

    def validate(
        self, data: Mapping[str, Any] | None, rules: Mapping[str, RuleSpec]
    ) -> dict[str, Any]:
        """Return the validated fields, or raise ``ValidationFailure`` (422)."""
        result = validate(data, rules)
        if not result:
            raise ValidationFailure(result.errors)
        return result.data

    # -- Response helpers --

    def json(self, data: Any, status: int = 200) -> Response:
        """A raw JSON response, outside the envelope."""
        return json_response(data, status)

    def success(self, data: Any = None, message: str = "Success", status: int = 200) -> Response:
        return success(data, message, status)

    def error(self, message: str = "Error", code: int | str = 400, data: Any = None) -> Response:
        return error(message, code, data)
