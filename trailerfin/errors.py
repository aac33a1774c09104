"""Errors raised by the HTTP request clients and the server error bodies they carry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Union


@dataclass(frozen=True)
class ServerOtherBody:
    """A generic error body returned by a remote API."""

    status_code: int
    status_message: str

    def __str__(self) -> str:
        return f"server body error with code {self.status_code}: {self.status_message}"


@dataclass(frozen=True)
class ServerValidationBody:
    """A validation error body listing the failed checks."""

    errors: Tuple[str, ...]

    def __str__(self) -> str:
        return "server validation body errors:" + "".join(f", {item}" for item in self.errors)


ServerBody = Union[ServerOtherBody, ServerValidationBody]


class RequestClientError(Exception):
    """Base class for failures while talking to a remote API."""


class RequestFailedError(RequestClientError):
    """The request could not be sent or no response arrived."""

    def __str__(self) -> str:
        return "couldn't execute request"


class ResponseError(RequestClientError):
    """The response could not be read or decoded."""

    def __str__(self) -> str:
        return "couldn't read response"


class ValidationError(RequestClientError):
    """The server rejected the request as invalid (HTTP 422)."""

    def __init__(self, body: ServerValidationBody) -> None:
        super().__init__(body)
        self.body = body

    def __str__(self) -> str:
        return f"validation failed: {self.body}"


class ServerError(RequestClientError):
    """The server answered with an unsuccessful status code."""

    def __init__(self, code: int, content: ServerBody) -> None:
        super().__init__(code, content)
        self.code = code
        self.content = content

    def __str__(self) -> str:
        return f"internal server error with code {self.code}: {self.content}"


class UnsupportedOperationError(RequestClientError):
    """The client does not support the requested operation."""

    def __init__(self, operation: str) -> None:
        super().__init__(operation)
        self.operation = operation

    def __str__(self) -> str:
        return f"unsupported operation: {self.operation}"


def _require_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def parse_other_body(data: Any) -> ServerOtherBody:
    """Build a :class:`ServerOtherBody` from decoded JSON, raising ValueError if malformed."""
    obj = _require_object(data)
    code = obj.get("status_code")
    message = obj.get("status_message")
    if isinstance(code, bool) or not isinstance(code, int) or not 0 <= code <= 0xFFFF:
        raise ValueError("status_code must be an integer between 0 and 65535")
    if not isinstance(message, str):
        raise ValueError("status_message must be a string")
    return ServerOtherBody(status_code=code, status_message=message)


def parse_validation_body(data: Any) -> ServerValidationBody:
    """Build a :class:`ServerValidationBody` from decoded JSON, raising ValueError if malformed."""
    obj = _require_object(data)
    errors = obj.get("errors")
    if not isinstance(errors, list) or not all(isinstance(item, str) for item in errors):
        raise ValueError("errors must be a list of strings")
    return ServerValidationBody(errors=tuple(errors))


def parse_server_body(data: Any) -> ServerBody:
    """Parse either error body shape, trying the generic one first."""
    try:
        return parse_other_body(data)
    except ValueError:
        pass
    try:
        return parse_validation_body(data)
    except ValueError as exc:
        raise ValueError("data matches no known server error body") from exc