"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ClaimValue = str | bool | int | None


class ApiErrorResponse(BaseModel):
    """Stable error envelope for API responses."""

    error_code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check response payload."""

    status: Literal["ok"]


class AuthSessionResponse(BaseModel):
    """Authentication session response payload."""

    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    user: dict[str, ClaimValue]


class AuthMeResponse(BaseModel):
    """Current user endpoint response payload."""

    user: dict[str, ClaimValue]


class LogoutResponse(BaseModel):
    """Logout response payload."""

    status: Literal["ok"]


class ItemsResponse(BaseModel):
    """Plain listing envelope."""

    items: list[dict[str, Any]]


class DeletedResponse(BaseModel):
    """Delete confirmation payload."""

    id: int
    deleted: bool


class CountResponse(BaseModel):
    total: int


class FinancialFlowResponse(BaseModel):
    """Normalized financial flow row."""

    id: int | str
    tipo: Literal["receita", "despesa"]
    descricao: str
    valor: float
    vencimento: str
    pagamento: str | None = None
    status: Literal["pendente", "pago"]
    conta_id: int | None = None
    categoria_id: int | None = None
    cliente_id: str | None = None
    fornecedor_id: str | None = None


class FinancialFlowsPageResponse(BaseModel):
    """Paginated financial flow listing."""

    items: list[FinancialFlowResponse]
    total: int
    page: int
    limit: int


class FinancialFlowSaveResponse(BaseModel):
    """Create response; ``charge`` stays empty without a payment provider."""

    flow: FinancialFlowResponse
    charge: dict[str, Any] | None = None


class FinancialSummaryResponse(BaseModel):
    receitas_pagas: float
    receitas_pendentes: float
    despesas_pagas: float
    despesas_pendentes: float
    saldo: float


class OpportunityDocumentResponse(BaseModel):
    """Generated opportunity document."""

    id: int
    oportunidade_id: int
    template_id: int | None = None
    title: str
    created_at: str
    variables: dict[str, Any] = Field(default_factory=dict)
    content_html: str
    content_editor_json: list[dict[str, Any]] | None = None
    metadata: Any = None


class TemplateResponse(BaseModel):
    id: int
    title: str
    content: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
