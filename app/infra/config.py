"""Configuration management with secrets support."""

import os
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
# This ensures dotenv works regardless of where the script is run from
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

# override=False means existing environment variables take precedence
load_dotenv(dotenv_path=env_file, override=False)


# Use lazy import to avoid circular dependencies
def get_secret_lazy(secret_ref: str, fallback: Optional[str] = None) -> Optional[str]:
    """Lazy import of get_secret to avoid circular dependencies."""
    from app.infra.secrets import get_secret
    return get_secret(secret_ref, fallback)


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag; accepts 1/true/yes/y/on."""
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "y", "on")


def env_int(name: str, default: int) -> int:
    """Parse a positive integer, falling back to default when missing or invalid."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Config:
    """Application configuration with secrets management."""
    # HTTP
    PORT: int = env_int("PORT", 8080)

    # Tenants: JSON file by default, SQL store when TENANT_STORE_URL is set
    TENANTS_FILE: str = os.getenv("TENANTS_FILE") or "/etc/maximo-mcp/tenants.json"
    TENANT_STORE_URL: Optional[str] = get_secret_lazy(
        os.getenv("TENANT_STORE_URL_REF", ""),
        fallback=os.getenv("TENANT_STORE_URL") or None
    )

    # Tenant resolution header for JSON-RPC calls
    TENANT_HEADER: str = os.getenv("TENANT_HEADER") or "x-tenant-id"

    # Admin surface
    CONFIG_WRITE_ENABLED: bool = env_bool("CONFIG_WRITE_ENABLED", True)
    APPROVALS_ENABLED: bool = False  # Approval workflow is not available in this build
    ADMIN_API_KEY: Optional[str] = get_secret_lazy(
        os.getenv("ADMIN_API_KEY_REF", ""),
        fallback=os.getenv("ADMIN_API_KEY")
    )

    # Tool catalog / schema discovery
    TOOL_CATALOG_LIMIT: int = max(1, env_int("TOOL_CATALOG_LIMIT", 128))
    METADATA_TTL_SECONDS: int = env_int("METADATA_TTL_SECONDS", 3600)
    METADATA_CACHE_MAX_ENTRIES: int = env_int("METADATA_CACHE_MAX_ENTRIES", 256)

    # Timeouts
    UPSTREAM_TIMEOUT_SECONDS: int = env_int("UPSTREAM_TIMEOUT_SECONDS", 30)
    REQUEST_TIMEOUT_SECONDS: int = env_int("REQUEST_TIMEOUT_SECONDS", 60)

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")
    DEBUG: bool = env_bool("DEBUG", False)


config = Config()
