"""Versioned MongoDB migrations for the auth collections."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pymongo
from pymongo.errors import PyMongoError

from lexdesk.core.config import DatabaseConfig
from lexdesk.core.logging import CORRELATION_ID_CTX

LOGGER = logging.getLogger(__name__)

MigrationFn = Callable[[Any], None]


def _migration_20261001_01_auth_indexes(db: Any) -> None:
    db["auth_users"].create_index("email", unique=True)
    db["auth_users"].create_index("usuario_id")
    db["auth_refresh_tokens"].create_index("jti", unique=True)


def _migration_20261001_02_refresh_token_ttl(db: Any) -> None:
    db["auth_refresh_tokens"].create_index(
        "expires_at_dt",
        expireAfterSeconds=0,
        name="idx_auth_refresh_tokens_expires_at_ttl",
    )


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("20261001_01_auth_indexes", _migration_20261001_01_auth_indexes),
    ("20261001_02_refresh_token_ttl", _migration_20261001_02_refresh_token_ttl),
]


def apply_mongo_migrations(config: DatabaseConfig) -> list[str]:
    """Apply pending MongoDB migrations when a Mongo URI is configured."""
    if not config.mongodb_uri:
        return []

    applied: list[str] = []
    client: Any = pymongo.MongoClient(config.mongodb_uri, serverSelectionTimeoutMS=3000)
    try:
        client.admin.command("ping")
        db = client[config.mongodb_db]
        migration_collection = db["schema_migrations"]
        migration_collection.create_index("migration_id", unique=True)

        for migration_id, migration_fn in MIGRATIONS:
            if migration_collection.find_one({"migration_id": migration_id}):
                continue
            migration_fn(db)
            migration_collection.insert_one(
                {
                    "migration_id": migration_id,
                    "applied_at": datetime.now(timezone.utc),
                    "correlation_id": CORRELATION_ID_CTX.get(),
                }
            )
            applied.append(migration_id)
    except PyMongoError:
        LOGGER.warning("mongo_migrations_skipped", exc_info=True)
    finally:
        client.close()
    return applied
