from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lexdesk.api.context import create_current_user_dependency
from lexdesk.api.http_setup import register_exception_handlers, register_http_middleware
from lexdesk.api.runtime_routes import register_runtime_routes
from lexdesk.auth.middleware import create_auth_middleware
from lexdesk.auth.rate_limiter import LoginRateLimiter
from lexdesk.auth.repository import AuthRepository
from lexdesk.auth.router import create_auth_router
from lexdesk.auth.service import AuthService
from lexdesk.blog.repository import BlogPostsRepository
from lexdesk.blog.router import create_blog_posts_router
from lexdesk.blog.service import BlogPostsService
from lexdesk.clients.cep_lookup import CepLookupClient
from lexdesk.clients.repository import ClientsRepository
from lexdesk.clients.router import create_clients_router
from lexdesk.clients.service import ClientsService
from lexdesk.company.router import create_company_router
from lexdesk.company.service import CompanyRepository, CompanyService
from lexdesk.core.config import AppConfig
from lexdesk.core.database import Database, SchemaInspector
from lexdesk.core.logging import setup_logging
from lexdesk.core.mongo_migrations import apply_mongo_migrations
from lexdesk.documents.repository import OpportunityDocumentsRepository
from lexdesk.documents.router import create_opportunity_documents_router
from lexdesk.documents.service import OpportunityDocumentsService
from lexdesk.financial.repository import FinancialFlowsRepository
from lexdesk.financial.router import create_financial_router
from lexdesk.financial.service import FinancialService
from lexdesk.opportunities.repository import OpportunitiesRepository
from lexdesk.opportunities.router import create_opportunities_router
from lexdesk.opportunities.service import OpportunitiesService
from lexdesk.parameters.repository import ParametersRepository
from lexdesk.parameters.router import create_parameters_router
from lexdesk.parameters.service import ParametersService
from lexdesk.schedule.repository import ScheduleRepository
from lexdesk.schedule.router import create_schedule_router
from lexdesk.schedule.service import ScheduleService
from lexdesk.templates.repository import TemplatesRepository
from lexdesk.templates.router import create_templates_router
from lexdesk.templates.service import TemplatesService
from lexdesk.users.repository import UsersRepository
from lexdesk.users.router import create_users_router
from lexdesk.users.service import ProfilesService, UsersService

load_dotenv()
APP_CONFIG = AppConfig.from_env()
setup_logging(APP_CONFIG.logging.level, APP_CONFIG.logging.format)
LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent
RUNTIME_DIR = APP_ROOT / "runtime"
AUTH_STORE_DIR = RUNTIME_DIR / "auth_store"

for directory in [RUNTIME_DIR, AUTH_STORE_DIR]:
    directory.mkdir(parents=True, exist_ok=True)


def _database_path(config: AppConfig) -> Path:
    path = Path(config.database.sqlite_path)
    return path if path.is_absolute() else APP_ROOT / path


def create_app(config: AppConfig = APP_CONFIG) -> FastAPI:
    app = FastAPI(title="Lexdesk CRM API", version="1.0.0")
    apply_mongo_migrations(config.database)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)

    database = Database(_database_path(config))
    inspector = SchemaInspector(
        database, ttl_seconds=config.database.schema_cache_ttl_seconds
    )

    users_repo = UsersRepository(database)
    auth_repo = AuthRepository(
        AUTH_STORE_DIR,
        mongodb_uri=config.database.mongodb_uri,
        mongodb_db=config.database.mongodb_db,
    )
    auth_service = AuthService(auth_repo, config.auth, empresa_of=users_repo.empresa_of)
    admin_id = users_repo.ensure_admin(
        email=config.auth.admin_email,
        nome=config.auth.admin_name,
        company_name=config.auth.admin_company,
    )
    auth_service.bootstrap_admin_user(admin_id)
    login_rate_limiter = LoginRateLimiter(
        database=database,
        max_attempts=config.security.login_rate_limit_max_attempts,
        window_seconds=config.security.login_rate_limit_window_seconds,
        lock_seconds=config.security.login_rate_limit_lock_seconds,
    )
    app.include_router(
        create_auth_router(
            auth_service, login_rate_limiter, on_login=users_repo.touch_last_login
        )
    )
    app.middleware("http")(create_auth_middleware(auth_service))
    current_user = create_current_user_dependency(users=users_repo, auth=auth_service)

    register_runtime_routes(app, inspector=inspector, logger=LOGGER)

    app.include_router(
        create_users_router(
            users=UsersService(repo=users_repo, credentials=auth_service, logger=LOGGER),
            profiles=ProfilesService(repo=users_repo),
            current_user=current_user,
        )
    )
    app.include_router(
        create_company_router(
            service=CompanyService(repo=CompanyRepository(database)),
            current_user=current_user,
        )
    )
    cep_lookup = CepLookupClient(
        url_template=config.integrations.cep_lookup_url,
        timeout_seconds=config.integrations.cep_lookup_timeout_seconds,
    )
    app.include_router(
        create_clients_router(
            service=ClientsService(
                repo=ClientsRepository(database), cep_lookup=cep_lookup, logger=LOGGER
            ),
            current_user=current_user,
        )
    )
    app.include_router(
        create_parameters_router(
            service=ParametersService(repo=ParametersRepository(database)),
            current_user=current_user,
        )
    )
    app.include_router(
        create_opportunities_router(
            service=OpportunitiesService(repo=OpportunitiesRepository(database), logger=LOGGER),
            current_user=current_user,
        )
    )
    financial_repo = FinancialFlowsRepository(
        database, inspector, ttl_seconds=config.database.schema_cache_ttl_seconds
    )
    app.include_router(
        create_financial_router(
            service=FinancialService(repo=financial_repo, logger=LOGGER),
            current_user=current_user,
        )
    )
    templates_repo = TemplatesRepository(database)
    app.include_router(
        create_templates_router(
            service=TemplatesService(repo=templates_repo), current_user=current_user
        )
    )
    app.include_router(
        create_opportunity_documents_router(
            service=OpportunityDocumentsService(
                repo=OpportunityDocumentsRepository(database, inspector),
                templates=templates_repo,
                logger=LOGGER,
            ),
            current_user=current_user,
        )
    )
    app.include_router(
        create_schedule_router(
            service=ScheduleService(repo=ScheduleRepository(database), logger=LOGGER),
            current_user=current_user,
        )
    )
    app.include_router(
        create_blog_posts_router(
            service=BlogPostsService(repo=BlogPostsRepository(database), logger=LOGGER),
            current_user=current_user,
        )
    )

    return app


app = create_app()
