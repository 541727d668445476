from __future__ import annotations

from fastapi.routing import APIRoute

from lexdesk.blog.router import BlogPostsRouter
from lexdesk.blog.service import BlogPostsService
from web_api import app


def _ref(operation: dict, status: str) -> str:
    return operation["responses"][status]["content"]["application/json"]["schema"]["$ref"]


def test_health_endpoint_contract_function() -> None:
    route = next(
        (
            candidate
            for candidate in app.routes
            if isinstance(candidate, APIRoute) and candidate.path == "/api/health"
        ),
        None,
    )

    assert route is not None
    payload = route.endpoint()
    assert payload.model_dump() == {"status": "ok"}


def test_openapi_contains_auth_rate_limit_contract() -> None:
    schema = app.openapi()
    login = schema["paths"]["/api/auth/login"]["post"]

    assert _ref(login, "429").endswith("ApiErrorResponse")
    assert _ref(login, "200").endswith("AuthSessionResponse")


def test_openapi_contains_financial_contracts() -> None:
    schema = app.openapi()

    flows = schema["paths"]["/api/financial/flows"]["get"]
    assert _ref(flows, "200").endswith("FinancialFlowsPageResponse")
    parameter_names = {parameter["name"] for parameter in flows["parameters"]}
    assert {"page", "limit", "clienteId"} <= parameter_names

    create = schema["paths"]["/api/financial/flows"]["post"]
    assert _ref(create, "201").endswith("FinancialFlowSaveResponse")

    settle = schema["paths"]["/api/financial/flows/{flow_id}/settle"]["post"]
    assert _ref(settle, "409").endswith("ApiErrorResponse")


def test_openapi_contains_opportunity_document_contracts() -> None:
    schema = app.openapi()
    base = "/api/oportunidades/{oportunidade_id}/documentos"

    generate = schema["paths"][base]["post"]
    assert _ref(generate, "201").endswith("OpportunityDocumentResponse")
    assert _ref(generate, "403").endswith("ApiErrorResponse")

    pdf = schema["paths"][base + "/{documento_id}/pdf"]["get"]
    assert "application/pdf" in pdf["responses"]["200"]["content"]


def test_crm_routes_are_registered() -> None:
    paths = set(app.openapi()["paths"])

    for path in (
        "/api/usuarios",
        "/api/perfis",
        "/api/empresa",
        "/api/clientes",
        "/api/parametros/{kind}",
        "/api/oportunidades",
        "/api/oportunidades/{oportunidade_id}/parcelas",
        "/api/templates",
        "/api/templates/variables",
        "/api/agendas/total-hoje",
        "/api/tarefas/{task_id}/concluir",
        "/api/public/blog-posts",
        "/api/blog-posts/{post_id}",
    ):
        assert path in paths


def test_public_blog_route_has_no_auth_dependency() -> None:
    router = BlogPostsRouter(service=BlogPostsService(repo=None), current_user=lambda: None).build()
    route = next(
        candidate
        for candidate in router.routes
        if isinstance(candidate, APIRoute) and candidate.path == "/api/public/blog-posts"
    )

    assert [dependency.name for dependency in route.dependant.dependencies] == []
