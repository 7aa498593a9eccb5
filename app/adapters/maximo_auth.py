"""Per-tenant authorization headers for outbound Maximo calls.

Three mutually exclusive modes:

- apiKey: ``apikey: <key>``
- maxauth: ``maxauth: base64(username:password)`` (Maximo native auth)
- oauth: client-credentials grant against the tenant's token endpoint,
  then ``Authorization: Bearer <access_token>``

SECURITY: resolved secrets and tokens are never logged.
"""

import base64
import json
import logging
import time
from typing import Dict

import httpx

from app.infra.errors import (
    MissingCredentialError,
    TokenMissingError,
    TokenParseFailedError,
    TokenRequestFailedError,
    is_retryable_status,
)
from app.infra.metrics import status_class, upstream_request_duration, upstream_requests_total
from app.infra.secrets import resolve_secret
from app.models.tenant import TenantConfig

logger = logging.getLogger(__name__)

TOKEN_TIMEOUT_SECONDS = 30.0


def _basic(user: str, secret: str) -> str:
    return base64.b64encode(f"{user}:{secret}".encode("utf-8")).decode("ascii")


def api_key_headers(tenant: TenantConfig) -> Dict[str, str]:
    key = tenant.api_key or resolve_secret(tenant.api_key_ref)
    if not key:
        raise MissingCredentialError(
            "TENANT_MISSING_APIKEY",
            f"apiKey or apiKeyRef not configured for tenant {tenant.tenant_id}",
        )
    return {"apikey": key}


def maxauth_headers(tenant: TenantConfig) -> Dict[str, str]:
    refs = tenant.maxauth
    username = tenant.username or (resolve_secret(refs.username_ref) if refs else "")
    password = tenant.password or (resolve_secret(refs.password_ref) if refs else "")
    if not username or not password:
        raise MissingCredentialError(
            "TENANT_MISSING_MAXAUTH",
            f"maxauth.usernameRef and maxauth.passwordRef not configured for tenant {tenant.tenant_id}",
        )
    return {"maxauth": _basic(username, password)}


async def oauth_headers(tenant: TenantConfig, timeout: float = TOKEN_TIMEOUT_SECONDS) -> Dict[str, str]:
    """
    Fetch a client-credentials token and build a bearer header.

    A fresh token is requested on every call; nothing is cached here.

    Raises:
        MissingCredentialError: oauth block absent or client id/secret empty
        TokenRequestFailedError: token endpoint unreachable or non-2xx
        TokenParseFailedError: response body is not a JSON object
        TokenMissingError: response lacks access_token
    """
    oauth = tenant.oauth
    if not oauth:
        raise MissingCredentialError(
            "TENANT_MISSING_OAUTH",
            f"oauth not configured for tenant {tenant.tenant_id}",
        )

    client_id = resolve_secret(oauth.client_id_ref)
    client_secret = resolve_secret(oauth.client_secret_ref)
    if not client_id or not client_secret:
        raise MissingCredentialError("TENANT_MISSING_OAUTH_SECRET", "Missing OAuth clientId/clientSecret")

    form = {"grant_type": "client_credentials"}
    if oauth.scope:
        form["scope"] = oauth.scope

    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        "Authorization": f"Basic {_basic(client_id, client_secret)}",
        "Accept": "application/json",
    }

    start_time = time.time()
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.post(oauth.token_url, data=form, headers=headers)
        except httpx.HTTPError as e:
            upstream_requests_total.labels(kind="token", status_class="error").inc()
            logger.warning(f"[maximo] POST {oauth.token_url} failed: {e.__class__.__name__}")
            raise TokenRequestFailedError(
                f"OAuth token request failed ({e.__class__.__name__})",
                details={"tokenUrl": oauth.token_url, "status": None, "error": str(e)},
                retryable=True,
            )

    upstream_request_duration.labels(kind="token").observe(time.time() - start_time)
    upstream_requests_total.labels(kind="token", status_class=status_class(response.status_code)).inc()
    content_type = response.headers.get("content-type", "")
    logger.info(f"[maximo] POST {oauth.token_url} -> {response.status_code} {content_type}")

    if not response.is_success:
        raise TokenRequestFailedError(
            f"OAuth token request failed ({response.status_code})",
            details={"tokenUrl": oauth.token_url, "status": response.status_code},
            retryable=is_retryable_status(response.status_code),
        )

    body = response.text
    try:
        token = json.loads(body)
    except ValueError:
        token = None
    if not isinstance(token, dict):
        raise TokenParseFailedError(
            f"OAuth token response was not JSON ({response.status_code})",
            details={"contentType": content_type, "bodySnippet": body[:200]},
        )

    access_token = str(token.get("access_token") or "")
    if not access_token:
        raise TokenMissingError()

    return {"Authorization": f"Bearer {access_token}"}


async def auth_headers(tenant: TenantConfig) -> Dict[str, str]:
    """Headers that authorize one outbound call for the tenant's auth mode."""
    if tenant.auth_mode == "apiKey":
        return api_key_headers(tenant)
    if tenant.auth_mode == "maxauth":
        return maxauth_headers(tenant)
    return await oauth_headers(tenant)
