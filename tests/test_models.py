from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from usermgmt.models import (
    CreateUserRequest,
    UpdateUserRequest,
    format_timestamp,
    parse_timestamp,
)


def _create_payload(**overrides: object) -> dict:
    payload = {"userName": "alice01", "email": "a@x.com", "firstName": "Alice", "lastName": "A"}
    payload.update(overrides)
    return payload


def test_create_request_accepts_wire_names() -> None:
    request = CreateUserRequest.model_validate(_create_payload())
    assert request.user_name == "alice01"
    assert request.first_name == "Alice"
    assert request.model_dump(by_alias=True) == _create_payload()


@pytest.mark.parametrize(
    "overrides",
    [
        {"userName": "ab"},
        {"userName": "x" * 51},
        {"userName": "   "},
        {"email": "not-an-email"},
        {"firstName": ""},
        {"firstName": "   "},
        {"lastName": "y" * 101},
    ],
)
def test_create_request_rejects_invalid_fields(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        CreateUserRequest.model_validate(_create_payload(**overrides))


@pytest.mark.parametrize("missing", ["userName", "email", "firstName", "lastName"])
def test_create_request_requires_every_field(missing: str) -> None:
    payload = _create_payload()
    payload.pop(missing)
    with pytest.raises(ValidationError):
        CreateUserRequest.model_validate(payload)


def test_create_request_length_bounds_are_inclusive() -> None:
    CreateUserRequest.model_validate(_create_payload(userName="abc", firstName="f" * 100))
    CreateUserRequest.model_validate(_create_payload(userName="u" * 50, lastName="l" * 100))


def test_update_request_fields_are_optional() -> None:
    request = UpdateUserRequest.model_validate({})
    assert request.model_dump(exclude_none=True) == {}


def test_update_request_treats_blank_strings_as_unset() -> None:
    request = UpdateUserRequest.model_validate({"firstName": "  ", "email": "", "active": False})
    assert request.first_name is None
    assert request.email is None
    assert request.active is False


def test_update_request_validates_present_fields() -> None:
    with pytest.raises(ValidationError):
        UpdateUserRequest.model_validate({"email": "broken"})
    with pytest.raises(ValidationError):
        UpdateUserRequest.model_validate({"lastName": "z" * 101})


def test_timestamp_format_has_microseconds_and_no_offset() -> None:
    value = datetime(2024, 3, 9, 7, 5, 1, 42)
    assert format_timestamp(value) == "2024-03-09T07:05:01.000042"
    assert parse_timestamp("2024-03-09T07:05:01.000042") == value
