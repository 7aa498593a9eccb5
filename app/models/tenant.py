"""Tenant configuration models."""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

AUTH_MODE_ALIASES = {
    "apikey": "apiKey",
    "api-key": "apiKey",
    "api_key": "apiKey",
    "maxauth": "maxauth",
    "basic": "maxauth",
    "basic-credential": "maxauth",
    "oauth": "oauth",
    "oauth2": "oauth",
    "oauth-client-credentials": "oauth",
}


class SecretRef(BaseModel):
    """Indirect reference to credential material (never the secret itself)."""
    type: Literal["env", "file"] = Field(..., description="'env' | 'file'")
    name: Optional[str] = Field(None, description="Environment variable name (type=env)")
    path: Optional[str] = Field(None, description="File path (type=file)")

    @model_validator(mode="after")
    def _check_target(self):
        if self.type == "env" and not self.name:
            raise ValueError("SecretRef env requires name")
        if self.type == "file" and not self.path:
            raise ValueError("SecretRef file requires path")
        return self


class OslcSettings(BaseModel):
    """Per-tenant OSLC query defaults."""
    where_default: Optional[str] = Field(None, alias="whereDefault")
    page_size: Optional[int] = Field(None, alias="pageSize", ge=1, le=200)

    model_config = {"populate_by_name": True}


class OAuthSettings(BaseModel):
    """OAuth2 client-credentials settings."""
    token_url: str = Field(..., alias="tokenUrl")
    client_id_ref: SecretRef = Field(..., alias="clientIdRef")
    client_secret_ref: SecretRef = Field(..., alias="clientSecretRef")
    scope: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("token_url")
    @classmethod
    def _check_token_url(cls, v: str) -> str:
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("tokenUrl must be an http(s) URL")
        return v


class MaxauthSettings(BaseModel):
    """Maximo native (maxauth) credential references."""
    username_ref: SecretRef = Field(..., alias="usernameRef")
    password_ref: SecretRef = Field(..., alias="passwordRef")

    model_config = {"populate_by_name": True}


class TenantConfig(BaseModel):
    """Configuration for one Maximo tenant.

    Read-only from the gateway's point of view; records are created and
    replaced by the tenant store.
    """
    tenant_id: str = Field(..., alias="tenantId", min_length=1)
    auth_mode: Literal["apiKey", "maxauth", "oauth"] = Field(..., alias="authMode")
    base_url: str = Field(..., alias="baseUrl")
    org: Optional[str] = None
    site: Optional[str] = None
    oslc: Optional[OslcSettings] = None
    metadata_ttl_seconds: Optional[int] = Field(None, alias="metadataTtlSeconds", ge=30)

    # apiKey mode
    api_key: Optional[str] = Field(None, alias="apiKey", min_length=1)
    api_key_ref: Optional[SecretRef] = Field(None, alias="apiKeyRef")

    # maxauth mode: inline values take precedence over refs
    username: Optional[str] = None
    password: Optional[str] = None
    maxauth: Optional[MaxauthSettings] = None

    # oauth mode (client credentials)
    oauth: Optional[OAuthSettings] = None

    # Optional explicit allowlist of object structures
    object_structures: Optional[List[str]] = Field(None, alias="objectStructures")

    model_config = {"populate_by_name": True}

    @field_validator("auth_mode", mode="before")
    @classmethod
    def _normalize_auth_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return AUTH_MODE_ALIASES.get(v.strip().lower(), v)
        return v

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str) -> str:
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("baseUrl must be an http(s) URL")
        return v

    @field_validator("object_structures")
    @classmethod
    def _check_object_structures(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and any(not name for name in v):
            raise ValueError("objectStructures entries must be non-empty")
        return v

    def to_record(self) -> Dict[str, Any]:
        """Serialize back to the camelCase record shape used by the stores."""
        return self.model_dump(by_alias=True, exclude_none=True)


def redact_tenant(tenant: TenantConfig) -> Dict[str, Any]:
    """
    Public view of a tenant.

    Only identity/non-secret fields and credential *references* are exposed.
    Inline apiKey/username/password never leave the process.
    """
    out: Dict[str, Any] = {
        "tenantId": tenant.tenant_id,
        "authMode": tenant.auth_mode,
        "baseUrl": tenant.base_url,
        "org": tenant.org,
        "site": tenant.site,
        "oslc": tenant.oslc.model_dump(by_alias=True, exclude_none=True) if tenant.oslc else None,
        "metadataTtlSeconds": tenant.metadata_ttl_seconds,
        "objectStructures": tenant.object_structures,
        "apiKeyRef": tenant.api_key_ref.model_dump(exclude_none=True) if tenant.api_key_ref else None,
    }
    if tenant.oauth:
        out["oauth"] = tenant.oauth.model_dump(by_alias=True, exclude_none=True)
    if tenant.maxauth:
        out["maxauth"] = tenant.maxauth.model_dump(by_alias=True, exclude_none=True)
    return out
