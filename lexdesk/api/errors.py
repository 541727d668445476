"""Shared API error types and helpers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException


class ApiErrorCode(StrEnum):
    """Machine-readable API error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_MISSING_TOKEN = "AUTH_MISSING_TOKEN"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_RATE_LIMITED = "AUTH_RATE_LIMITED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_INVALID = "USER_INVALID"
    USER_CONFLICT = "USER_CONFLICT"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    PROFILE_INVALID = "PROFILE_INVALID"
    COMPANY_REQUIRED = "COMPANY_REQUIRED"
    COMPANY_NOT_FOUND = "COMPANY_NOT_FOUND"
    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    CLIENT_INVALID = "CLIENT_INVALID"
    CEP_INVALID = "CEP_INVALID"
    CEP_NOT_FOUND = "CEP_NOT_FOUND"
    CEP_LOOKUP_FAILED = "CEP_LOOKUP_FAILED"
    PARAMETER_NOT_FOUND = "PARAMETER_NOT_FOUND"
    PARAMETER_INVALID = "PARAMETER_INVALID"
    OPPORTUNITY_NOT_FOUND = "OPPORTUNITY_NOT_FOUND"
    OPPORTUNITY_INVALID = "OPPORTUNITY_INVALID"
    BILLING_INVALID = "BILLING_INVALID"
    FLOW_NOT_FOUND = "FLOW_NOT_FOUND"
    FLOW_INVALID = "FLOW_INVALID"
    FLOW_EXTERNALLY_MANAGED = "FLOW_EXTERNALLY_MANAGED"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_INVALID = "TEMPLATE_INVALID"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    DOCUMENT_INVALID = "DOCUMENT_INVALID"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_INVALID = "EVENT_INVALID"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TASK_INVALID = "TASK_INVALID"
    BLOG_POST_NOT_FOUND = "BLOG_POST_NOT_FOUND"
    BLOG_POST_INVALID = "BLOG_POST_INVALID"
    BLOG_POST_CONFLICT = "BLOG_POST_CONFLICT"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ApiError(HTTPException):
    """HTTP exception carrying stable API error envelope."""

    def __init__(
        self, *, status_code: int, error_code: ApiErrorCode, message: str
    ) -> None:
        super().__init__(
            status_code=status_code,
            detail={"error_code": str(error_code), "message": message},
        )

    @property
    def error_code(self) -> str:
        return str(self.detail["error_code"])


def to_error_payload(detail: Any, status_code: int) -> dict[str, str]:
    """Normalize HTTP exception detail into stable error payload."""
    if isinstance(detail, dict):
        error_code = str(detail.get("error_code") or f"HTTP_{status_code}")
        message = str(detail.get("message") or detail.get("detail") or "HTTP error")
        return {"error_code": error_code, "message": message}
    return {
        "error_code": f"HTTP_{status_code}",
        "message": str(detail or "HTTP error"),
    }


def not_found(error_code: ApiErrorCode, message: str) -> ApiError:
    return ApiError(status_code=404, error_code=error_code, message=message)


def bad_request(error_code: ApiErrorCode, message: str) -> ApiError:
    return ApiError(status_code=400, error_code=error_code, message=message)
