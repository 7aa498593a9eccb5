"""Tenant configuration stores.

The gateway only reads tenants (`get`/`list`); `upsert`/`delete` serve the
admin REST surface. Two backends:

- FileTenantStore: a JSON file (list, or {"tenants": [...]}) written atomically
- SqlTenantStore: one row per tenant in any SQLAlchemy-supported database
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from app.infra.errors import TenantNotFoundError, TenantStoreError, TenantValidationError
from app.infra.validation import validation_details
from app.models.tenant import TenantConfig

logger = logging.getLogger(__name__)


def parse_tenant(record: Any) -> TenantConfig:
    """Validate one tenant record."""
    try:
        return TenantConfig.model_validate(record)
    except ValidationError as e:
        raise TenantValidationError("Tenant validation failed", details=validation_details(e))


class TenantStore(ABC):
    """Tenant persistence contract."""

    @abstractmethod
    def get(self, tenant_id: str) -> Optional[TenantConfig]:
        ...

    @abstractmethod
    def list(self) -> List[TenantConfig]:
        ...

    @abstractmethod
    def upsert(self, record: Dict[str, Any]) -> List[TenantConfig]:
        """Validate and insert/replace a tenant; returns the updated list."""

    @abstractmethod
    def delete(self, tenant_id: str) -> List[TenantConfig]:
        """Remove a tenant; returns the updated list."""


class FileTenantStore(TenantStore):
    """Tenants held in memory and persisted to a JSON file."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._tenants: List[TenantConfig] = []

    def load(self) -> List[TenantConfig]:
        """
        (Re)load tenants from disk.

        A missing file yields an empty store; the path is still used for
        later writes.

        Raises:
            TenantValidationError: a record fails validation
            TenantStoreError: the file cannot be read or parsed
        """
        try:
            raw = Path(self.file_path).read_text(encoding="utf-8")
        except FileNotFoundError:
            self._tenants = []
            return self.list()
        except OSError as e:
            raise TenantStoreError(
                "TENANTS_LOAD_FAILED",
                "Failed to load tenants file",
                details={"error": str(e), "filePath": self.file_path},
            )

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            raise TenantStoreError(
                "TENANTS_LOAD_FAILED",
                "Failed to load tenants file",
                details={"error": str(e), "filePath": self.file_path},
            )

        records = parsed if isinstance(parsed, list) else (parsed or {}).get("tenants", [])
        self._tenants = [parse_tenant(r) for r in records]
        return self.list()

    def get(self, tenant_id: str) -> Optional[TenantConfig]:
        return next((t for t in self._tenants if t.tenant_id == tenant_id), None)

    def list(self) -> List[TenantConfig]:
        return list(self._tenants)

    def upsert(self, record: Dict[str, Any]) -> List[TenantConfig]:
        tenant = parse_tenant(record)
        updated = list(self._tenants)
        for i, existing in enumerate(updated):
            if existing.tenant_id == tenant.tenant_id:
                updated[i] = tenant
                break
        else:
            updated.insert(0, tenant)
        self._persist(updated)
        return self.list()

    def delete(self, tenant_id: str) -> List[TenantConfig]:
        updated = [t for t in self._tenants if t.tenant_id != tenant_id]
        if len(updated) == len(self._tenants):
            raise TenantNotFoundError(tenant_id)
        self._persist(updated)
        return self.list()

    def _persist(self, tenants: List[TenantConfig]) -> None:
        """Write atomically (temp file + rename), then swap the in-memory list."""
        content = json.dumps([t.to_record() for t in tenants], indent=2)
        try:
            directory = os.path.dirname(self.file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = self.file_path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            raise TenantStoreError(
                "TENANTS_WRITE_FAILED",
                "Failed to persist tenants file",
                details={"error": str(e), "filePath": self.file_path},
            )
        self._tenants = tenants


class SqlTenantStore(TenantStore):
    """Tenants stored as JSON documents in a `maximo_tenants` table."""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if not database_url:
                raise ValueError("SqlTenantStore requires database_url or engine")
            engine = create_engine(database_url, pool_pre_ping=True)
        self.engine = engine

    def ensure_schema(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text("""
                CREATE TABLE IF NOT EXISTS maximo_tenants (
                    tenant_id VARCHAR(128) PRIMARY KEY,
                    config TEXT NOT NULL
                )
            """))

    def get(self, tenant_id: str) -> Optional[TenantConfig]:
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT config FROM maximo_tenants WHERE tenant_id = :tenant_id"),
                {"tenant_id": tenant_id},
            ).fetchone()
        return parse_tenant(json.loads(row.config)) if row else None

    def list(self) -> List[TenantConfig]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("SELECT config FROM maximo_tenants ORDER BY tenant_id")
            ).fetchall()
        return [parse_tenant(json.loads(row.config)) for row in rows]

    def upsert(self, record: Dict[str, Any]) -> List[TenantConfig]:
        tenant = parse_tenant(record)
        params = {"tenant_id": tenant.tenant_id, "config": json.dumps(tenant.to_record())}
        with self.engine.begin() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM maximo_tenants WHERE tenant_id = :tenant_id"),
                {"tenant_id": tenant.tenant_id},
            ).fetchone()
            if exists:
                conn.execute(
                    text("UPDATE maximo_tenants SET config = :config WHERE tenant_id = :tenant_id"),
                    params,
                )
            else:
                conn.execute(
                    text("INSERT INTO maximo_tenants (tenant_id, config) VALUES (:tenant_id, :config)"),
                    params,
                )
        return self.list()

    def delete(self, tenant_id: str) -> List[TenantConfig]:
        with self.engine.begin() as conn:
            result = conn.execute(
                text("DELETE FROM maximo_tenants WHERE tenant_id = :tenant_id"),
                {"tenant_id": tenant_id},
            )
            deleted = result.rowcount
        if deleted == 0:
            raise TenantNotFoundError(tenant_id)
        return self.list()


def build_tenant_store(config) -> TenantStore:
    """Pick the backend from configuration: SQL when TENANT_STORE_URL is set, else the JSON file."""
    if config.TENANT_STORE_URL:
        store = SqlTenantStore(config.TENANT_STORE_URL)
        store.ensure_schema()
        logger.info("Using SQL tenant store")
        return store

    store = FileTenantStore(config.TENANTS_FILE)
    store.load()
    logger.info(f"Loaded {len(store.list())} tenant(s) from {config.TENANTS_FILE}")
    return store
