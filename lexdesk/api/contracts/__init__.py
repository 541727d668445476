"""Public API response contracts."""

from lexdesk.api.contracts.models import (
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    CountResponse,
    DeletedResponse,
    FinancialFlowResponse,
    FinancialFlowSaveResponse,
    FinancialFlowsPageResponse,
    FinancialSummaryResponse,
    HealthResponse,
    ItemsResponse,
    LogoutResponse,
    OpportunityDocumentResponse,
    TemplateResponse,
)

__all__ = [
    "ApiErrorResponse",
    "AuthMeResponse",
    "AuthSessionResponse",
    "CountResponse",
    "DeletedResponse",
    "FinancialFlowResponse",
    "FinancialFlowSaveResponse",
    "FinancialFlowsPageResponse",
    "FinancialSummaryResponse",
    "HealthResponse",
    "ItemsResponse",
    "LogoutResponse",
    "OpportunityDocumentResponse",
    "TemplateResponse",
]
