import pytest

from trailerfin.errors import (
    RequestClientError,
    RequestFailedError,
    ResponseError,
    ServerError,
    ServerOtherBody,
    ServerValidationBody,
    UnsupportedOperationError,
    ValidationError,
    parse_other_body,
    parse_server_body,
    parse_validation_body,
)


def test_other_body_str_contains_code_and_message():
    body = ServerOtherBody(status_code=404, status_message="Not Found")
    text = str(body)
    assert text.startswith("server body error with code")
    assert "404" in text and text.endswith("Not Found")


def test_validation_body_str_lists_items():
    body = ServerValidationBody(errors=("a", "b"))
    assert str(body) == "server validation body errors:, a, b"


def test_empty_validation_body_str():
    assert str(ServerValidationBody(errors=())) == "server validation body errors:"


def test_parse_other_body_round_trip():
    body = parse_other_body({"status_code": 7, "status_message": "Invalid API key"})
    assert body == ServerOtherBody(7, "Invalid API key")


@pytest.mark.parametrize(
    "data",
    [
        {"status_code": "7", "status_message": "x"},
        {"status_code": 70000, "status_message": "x"},
        {"status_code": True, "status_message": "x"},
        {"status_code": 7},
        ["status_code"],
    ],
)
def test_parse_other_body_rejects_malformed(data):
    with pytest.raises(ValueError):
        parse_other_body(data)


def test_parse_validation_body_round_trip():
    body = parse_validation_body({"errors": ["page must be positive"]})
    assert body.errors == ("page must be positive",)


def test_parse_validation_body_rejects_non_strings():
    with pytest.raises(ValueError):
        parse_validation_body({"errors": [1, 2]})


def test_parse_server_body_prefers_other_shape():
    data = {"status_code": 34, "status_message": "missing", "errors": ["x"]}
    assert parse_server_body(data) == ServerOtherBody(34, "missing")


def test_parse_server_body_falls_back_to_validation():
    body = parse_server_body({"errors": ["x"]})
    assert body == ServerValidationBody(("x",))


def test_parse_server_body_rejects_unknown():
    with pytest.raises(ValueError):
        parse_server_body({"message": "nope"})


def test_request_failed_message_and_cause():
    error = RequestFailedError()
    assert str(error) == "couldn't execute request"
    cause = OSError("connection reset")
    with pytest.raises(RequestClientError) as info:
        raise error from cause
    assert info.value.__cause__ is cause
    assert str(info.value) == "couldn't execute request"


def test_response_error_message():
    assert str(ResponseError()) == "couldn't read response"


def test_validation_error_carries_body():
    body = ServerValidationBody(("bad",))
    error = ValidationError(body)
    assert error.body is body
    assert str(error) == "validation failed: " + str(body)


def test_server_error_fields_and_message():
    content = ServerOtherBody(34, "missing")
    error = ServerError(404, content)
    assert error.code == 404
    assert error.content is content
    assert str(error).startswith("internal server error with code")
    assert str(error).endswith(str(content))


def test_unsupported_operation_message():
    error = UnsupportedOperationError("generic execute")
    assert str(error) == "unsupported operation: " + "generic execute"
    assert isinstance(error, RequestClientError)