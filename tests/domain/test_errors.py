import pytest

from schoolpay.domain.salary import (
    ConflictError,
    ErrorCode,
    NetworkError,
    RejectedError,
    ValidationError,
)
from schoolpay.domain.salary.errors import error_from_response, extract_error_code


def test_code_read_from_problem_type_url() -> None:
    payload = {"type": "https://schoolhub.example/errors/duplicate_salary_month_year"}

    assert extract_error_code(payload) == ErrorCode.DUPLICATE_SALARY_MONTH_YEAR


def test_explicit_code_wins_over_type() -> None:
    payload = {"type": "https://schoolhub.example/errors/other", "code": "no_conducted_lessons"}

    assert extract_error_code(payload) == ErrorCode.NO_CONDUCTED_LESSONS


def test_non_mapping_payload_has_no_code() -> None:
    assert extract_error_code(["oops"]) is None
    assert extract_error_code(None) is None


@pytest.mark.parametrize(
    ("status", "payload", "expected", "code"),
    [
        (500, {"detail": "boom"}, NetworkError, ErrorCode.SERVER),
        (503, None, NetworkError, ErrorCode.SERVER),
        (409, {"code": "duplicate_salary_month_year"}, ConflictError, "duplicate_salary_month_year"),
        (400, {"code": "cannot_approve_non_pending"}, ConflictError, "cannot_approve_non_pending"),
        (400, {"code": "cannot_reopen_non_approved"}, ConflictError, "cannot_reopen_non_approved"),
        (404, {"title": "Not Found"}, ConflictError, ErrorCode.UNKNOWN),
        (400, {"code": "no_salary_rules_configured"}, RejectedError, "no_salary_rules_configured"),
        (400, {"code": "no_conducted_lessons"}, RejectedError, "no_conducted_lessons"),
        (422, {"title": "Invalid"}, ValidationError, ErrorCode.VALIDATION),
        (403, {"title": "Forbidden"}, RejectedError, ErrorCode.UNKNOWN),
    ],
)
def test_error_from_response(status, payload, expected, code) -> None:
    error = error_from_response(status, payload)

    assert type(error) is expected
    assert error.code == code


def test_adjustment_reason_error_targets_reason_field() -> None:
    error = error_from_response(
        400,
        {
            "type": "https://schoolhub.example/errors/adjustment_reason_required",
            "detail": "Reason is required when amount differs from calculated",
        },
    )

    assert isinstance(error, ValidationError)
    assert error.field == "reason"
    assert error.message == "Reason is required when amount differs from calculated"


def test_only_network_errors_are_retryable() -> None:
    assert NetworkError("down").retryable
    assert not ConflictError("dup").retryable
    assert not ValidationError("bad").retryable
