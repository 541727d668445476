from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from lexdesk.auth.repository import AuthRepository
from lexdesk.auth.service import AuthService
from lexdesk.core.config import AppConfig
from lexdesk.core.database import Database
from lexdesk.core.logging import setup_logging
from lexdesk.core.migrations.runner import apply_migrations
from lexdesk.core.mongo_migrations import apply_mongo_migrations
from lexdesk.users.repository import UsersRepository

APP_ROOT = Path(__file__).resolve().parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lexdesk CRM maintenance commands.")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("migrate", help="Apply pending SQLite and MongoDB migrations.")
    admin = commands.add_parser(
        "create-admin", help="Create the bootstrap admin or reset its password."
    )
    admin.add_argument("--email", default="", help="Override AUTH_ADMIN_EMAIL.")
    admin.add_argument("--password", default="", help="Override AUTH_ADMIN_PASSWORD.")
    return parser


def _database_path(config: AppConfig) -> Path:
    path = Path(config.database.sqlite_path)
    return path if path.is_absolute() else APP_ROOT / path


def run_migrate(config: AppConfig) -> dict[str, list[str]]:
    return {
        "sqlite": apply_migrations(_database_path(config)),
        "mongo": apply_mongo_migrations(config.database),
    }


def run_create_admin(config: AppConfig, *, email: str, password: str) -> dict[str, object]:
    email = (email or config.auth.admin_email).strip().lower()
    password = password or config.auth.admin_password
    database = Database(_database_path(config))
    usuario_id = UsersRepository(database).ensure_admin(
        email=email, nome=config.auth.admin_name, company_name=config.auth.admin_company
    )
    auth_service = AuthService(
        AuthRepository(
            APP_ROOT / "runtime" / "auth_store",
            mongodb_uri=config.database.mongodb_uri,
            mongodb_db=config.database.mongodb_db,
        ),
        config.auth,
    )
    auth_service.register_credentials(
        email=email, password=password, usuario_id=usuario_id, role="admin"
    )
    return {"usuario_id": usuario_id, "email": email}


def main() -> None:
    load_dotenv()
    config = AppConfig.from_env()
    setup_logging(config.logging.level, config.logging.format)
    logger = logging.getLogger("main")
    args = build_parser().parse_args()

    if args.command == "migrate":
        summary: dict[str, object] = {"applied": run_migrate(config)}
    else:
        summary = run_create_admin(config, email=args.email, password=args.password)
    logger.info("command_completed")
    print(json.dumps(summary, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
