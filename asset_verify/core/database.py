import structlog
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import extras
from psycopg2.pool import SimpleConnectionPool

from asset_verify import config
from asset_verify.core.errors import RegistryUnavailable
from asset_verify.models.asset import RegisteredAsset

logger = structlog.get_logger()

ASSET_COLUMNS = """
    asset_id, storage_ref, content_hash, perceptual_hash, provenance_hash,
    creator, uploader, created_at, is_verified, original_name, mime_type, file_size
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS registered_assets (
    asset_id TEXT PRIMARY KEY,
    storage_ref TEXT NOT NULL UNIQUE,
    content_hash CHAR(64) NOT NULL,
    perceptual_hash TEXT,
    provenance_hash CHAR(64),
    creator TEXT,
    uploader TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    is_verified BOOLEAN NOT NULL DEFAULT FALSE,
    original_name TEXT,
    mime_type TEXT,
    file_size BIGINT
);
CREATE INDEX IF NOT EXISTS idx_registered_assets_content_hash
    ON registered_assets (content_hash);
CREATE INDEX IF NOT EXISTS idx_registered_assets_perceptual_hash
    ON registered_assets (perceptual_hash);
"""


def row_to_asset(row: Dict[str, Any]) -> RegisteredAsset:
    """Map a RealDictCursor row onto the asset model."""
    data = dict(row)
    if data.get("content_hash"):
        data["content_hash"] = data["content_hash"].strip()
    if data.get("provenance_hash"):
        data["provenance_hash"] = data["provenance_hash"].strip()
    return RegisteredAsset(**data)


class PostgresAssetRegistry:
    """Asset registry backed by a Postgres table, read through a connection pool."""

    def __init__(self, dsn: Optional[str] = None, pool=None):
        self.dsn = dsn or config.DB_DSN
        self._pool = pool

    def initialize_connection_pool(self):
        """Initialize the database connection pool."""
        if self._pool is None:
            try:
                self._pool = SimpleConnectionPool(
                    config.DB_MIN_CONNECTIONS,
                    config.DB_MAX_CONNECTIONS,
                    self.dsn
                )
                logger.info("Registry connection pool initialized",
                           min_connections=config.DB_MIN_CONNECTIONS,
                           max_connections=config.DB_MAX_CONNECTIONS)
            except psycopg2.Error as e:
                logger.error("Failed to initialize registry connection pool", error=str(e))
                raise RegistryUnavailable(f"Cannot connect to registry: {e}") from e

    @contextmanager
    def get_db_connection(self):
        """Context manager for pooled connections with automatic cleanup."""
        if self._pool is None:
            self.initialize_connection_pool()

        conn = None
        try:
            conn = self._pool.getconn()
            yield conn
        except Exception as e:
            if conn:
                conn.rollback()
            logger.error("Registry operation failed", error=str(e))
            raise
        finally:
            if conn:
                self._pool.putconn(conn)

    def _fetch(self, sql: str, params: tuple) -> List[Dict[str, Any]]:
        try:
            with self.get_db_connection() as conn:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    cur.execute(sql, params)
                    return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise RegistryUnavailable(f"Registry query failed: {e}") from e

    def initialize_schema(self):
        """Create the registered_assets table and its lookup indexes."""
        try:
            with self.get_db_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(SCHEMA_SQL)
                    conn.commit()
            logger.info("Registry schema initialized")
        except psycopg2.Error as e:
            raise RegistryUnavailable(f"Registry schema setup failed: {e}") from e

    def insert_asset(self, asset: RegisteredAsset):
        """Insert or replace a registered asset record."""
        sql = f"""
        INSERT INTO registered_assets ({ASSET_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, COALESCE(%s, NOW()), %s, %s, %s, %s)
        ON CONFLICT (asset_id) DO UPDATE SET
            storage_ref = EXCLUDED.storage_ref,
            content_hash = EXCLUDED.content_hash,
            perceptual_hash = EXCLUDED.perceptual_hash,
            provenance_hash = EXCLUDED.provenance_hash,
            is_verified = EXCLUDED.is_verified
        """
        params = (
            asset.asset_id, asset.storage_ref, asset.content_hash, asset.perceptual_hash,
            asset.provenance_hash, asset.creator, asset.uploader, asset.created_at,
            asset.is_verified, asset.original_name, asset.mime_type, asset.file_size,
        )
        try:
            with self.get_db_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    conn.commit()

            logger.info("Registered asset inserted",
                       asset_id=asset.asset_id, storage_ref=asset.storage_ref)

        except psycopg2.Error as e:
            logger.error("Failed to insert registered asset",
                        asset_id=asset.asset_id, error=str(e))
            raise RegistryUnavailable(f"Registry insert failed: {e}") from e

    def find_by_id(self, asset_id: str) -> Optional[RegisteredAsset]:
        sql = f"SELECT {ASSET_COLUMNS} FROM registered_assets WHERE asset_id = %s"
        rows = self._fetch(sql, (asset_id,))
        return row_to_asset(rows[0]) if rows else None

    def find_by_storage_ref(self, storage_ref: str) -> Optional[RegisteredAsset]:
        sql = f"SELECT {ASSET_COLUMNS} FROM registered_assets WHERE storage_ref = %s"
        rows = self._fetch(sql, (storage_ref,))
        return row_to_asset(rows[0]) if rows else None

    def find_by_content_hash(self, content_hash: str) -> List[RegisteredAsset]:
        sql = f"""
        SELECT {ASSET_COLUMNS} FROM registered_assets
        WHERE content_hash = %s
        ORDER BY created_at
        """
        rows = self._fetch(sql, (content_hash,))
        logger.debug("Content hash lookup completed",
                    content_hash=content_hash, results_count=len(rows))
        return [row_to_asset(row) for row in rows]

    def find_by_perceptual_hash(self, perceptual_hash: str) -> List[RegisteredAsset]:
        sql = f"""
        SELECT {ASSET_COLUMNS} FROM registered_assets
        WHERE perceptual_hash = %s
        ORDER BY created_at
        """
        rows = self._fetch(sql, (perceptual_hash,))
        logger.debug("Perceptual hash lookup completed", results_count=len(rows))
        return [row_to_asset(row) for row in rows]

    def check_connection(self) -> bool:
        """Check if the registry database is reachable."""
        try:
            rows = self._fetch("SELECT 1 AS ok", ())
            return bool(rows) and rows[0]["ok"] == 1
        except RegistryUnavailable as e:
            logger.error("Registry connection check failed", error=str(e))
            return False
