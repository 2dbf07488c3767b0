from __future__ import annotations

import pytest

from estate_crm.errors import (
    GENERIC_MESSAGE,
    AuthorizationError,
    CrmValidationError,
    DataServiceError,
    format_error_for_user,
    handle_secure_error,
    is_error_public,
)


@pytest.mark.parametrize(
    ("error", "code", "message"),
    [
        (AuthorizationError("nope"), "PERMISSION_DENIED", "You do not have permission to perform this action"),
        (
            DataServiceError('new row violates row-level security policy for table "leads"', code="42501"),
            "PERMISSION_DENIED",
            "You do not have permission to perform this action",
        ),
        (DataServiceError("JWT expired", code="PGRST301"), "AUTH_REQUIRED", "Authentication required. Please log in again"),
        (CrmValidationError("Invalid email format"), "VALIDATION_ERROR", "Invalid email format"),
        (ValueError("Notes exceeds maximum limit"), "VALIDATION_ERROR", "Notes exceeds maximum limit"),
        (AuthorizationError("Only administrators can assign roles"), "INSUFFICIENT_PRIVILEGES",
         "Only administrators can assign roles"),
        (DataServiceError("File size exceeds 10MB"), "FILE_ERROR", "File size exceeds 10MB"),
        (DataServiceError("relation \"leads\" does not exist", code="42P01"), "INTERNAL_ERROR", GENERIC_MESSAGE),
    ],
)
def test_errors_map_to_safe_messages(error, code, message) -> None:
    secure = handle_secure_error(error, "test")

    assert secure.code == code
    assert secure.message == message
    assert format_error_for_user(error) == message


def test_only_internal_errors_are_private() -> None:
    assert is_error_public(CrmValidationError("Invalid phone"))
    assert not is_error_public(RuntimeError("database exploded"))


def test_unique_violation_detection() -> None:
    assert DataServiceError("boom", code="23505").is_unique_violation
    assert DataServiceError("duplicate key value violates unique constraint").is_unique_violation
    assert not DataServiceError("boom", code="23503").is_unique_violation
    assert str(DataServiceError("boom", code="23505")) == "boom (code 23505)"
