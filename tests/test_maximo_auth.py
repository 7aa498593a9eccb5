"""Unit tests for per-tenant authorization headers."""

import base64

import httpx
import pytest

from app.adapters.maximo_auth import auth_headers
from app.infra.errors import (
    MissingCredentialError,
    TokenMissingError,
    TokenParseFailedError,
    TokenRequestFailedError,
)
from app.models.tenant import TenantConfig


@pytest.fixture
def oauth_tenant(tenant_record, monkeypatch):
    monkeypatch.setenv("T2_CLIENT_ID", "client-id")
    monkeypatch.setenv("T2_CLIENT_SECRET", "client-secret")
    return TenantConfig.model_validate(tenant_record(
        tenantId="t2",
        authMode="oauth-client-credentials",
        apiKey=None,
        oauth={
            "tokenUrl": "https://idp.example.com/oauth/token",
            "clientIdRef": {"type": "env", "name": "T2_CLIENT_ID"},
            "clientSecretRef": {"type": "env", "name": "T2_CLIENT_SECRET"},
            "scope": "maximo",
        },
    ))


class TestApiKey:
    """apiKey mode."""

    @pytest.mark.asyncio
    async def test_inline_key(self, tenant_record):
        tenant = TenantConfig.model_validate(tenant_record())

        assert await auth_headers(tenant) == {"apikey": "test-api-key"}

    @pytest.mark.asyncio
    async def test_key_from_env_ref(self, tenant_record, monkeypatch):
        monkeypatch.setenv("T1_APIKEY", "from-env")
        tenant = TenantConfig.model_validate(
            tenant_record(apiKey=None, apiKeyRef={"type": "env", "name": "T1_APIKEY"})
        )

        assert await auth_headers(tenant) == {"apikey": "from-env"}

    @pytest.mark.asyncio
    async def test_empty_key_fails_without_network(self, tenant_record, monkeypatch, http_client):
        monkeypatch.delenv("T1_APIKEY", raising=False)
        tenant = TenantConfig.model_validate(
            tenant_record(apiKey=None, apiKeyRef={"type": "env", "name": "T1_APIKEY"})
        )

        with pytest.raises(MissingCredentialError) as exc_info:
            await auth_headers(tenant)

        assert exc_info.value.code == "TENANT_MISSING_APIKEY"
        http_client.post.assert_not_called()
        http_client.request.assert_not_called()


class TestMaxauth:
    """maxauth mode."""

    @pytest.mark.asyncio
    async def test_inline_credentials_are_base64(self, tenant_record):
        tenant = TenantConfig.model_validate(
            tenant_record(authMode="basic", apiKey=None, username="maxadmin", password="s3cret")
        )

        headers = await auth_headers(tenant)

        assert base64.b64decode(headers["maxauth"]).decode() == "maxadmin:s3cret"

    @pytest.mark.asyncio
    async def test_credentials_from_file_refs(self, tenant_record, tmp_path):
        (tmp_path / "user").write_text("maxadmin\n")
        (tmp_path / "pass").write_text("s3cret\n")
        tenant = TenantConfig.model_validate(tenant_record(
            authMode="maxauth",
            apiKey=None,
            maxauth={
                "usernameRef": {"type": "file", "path": str(tmp_path / "user")},
                "passwordRef": {"type": "file", "path": str(tmp_path / "pass")},
            },
        ))

        headers = await auth_headers(tenant)

        assert base64.b64decode(headers["maxauth"]).decode() == "maxadmin:s3cret"

    @pytest.mark.asyncio
    async def test_missing_password(self, tenant_record):
        tenant = TenantConfig.model_validate(
            tenant_record(authMode="maxauth", apiKey=None, username="maxadmin")
        )

        with pytest.raises(MissingCredentialError) as exc_info:
            await auth_headers(tenant)

        assert exc_info.value.code == "TENANT_MISSING_MAXAUTH"


class TestOAuth:
    """OAuth client-credentials mode."""

    @pytest.mark.asyncio
    async def test_bearer_token(self, oauth_tenant, http_client, make_response):
        http_client.post.return_value = make_response(200, {"access_token": "tok-1", "expires_in": 3600})

        headers = await auth_headers(oauth_tenant)

        assert headers == {"Authorization": "Bearer tok-1"}
        call = http_client.post.call_args
        assert call.args[0] == "https://idp.example.com/oauth/token"
        assert call.kwargs["data"] == {"grant_type": "client_credentials", "scope": "maximo"}
        basic = call.kwargs["headers"]["Authorization"].split(" ", 1)[1]
        assert base64.b64decode(basic).decode() == "client-id:client-secret"

    @pytest.mark.asyncio
    async def test_fresh_token_every_call(self, oauth_tenant, http_client, make_response):
        http_client.post.side_effect = [
            make_response(200, {"access_token": "tok-1"}),
            make_response(200, {"access_token": "tok-2"}),
        ]

        first = await auth_headers(oauth_tenant)
        second = await auth_headers(oauth_tenant)

        assert first["Authorization"] == "Bearer tok-1"
        assert second["Authorization"] == "Bearer tok-2"
        assert http_client.post.call_count == 2

    @pytest.mark.asyncio
    async def test_token_endpoint_500(self, oauth_tenant, http_client, make_response):
        http_client.post.return_value = make_response(500, text="boom", content_type="text/plain")

        with pytest.raises(TokenRequestFailedError) as exc_info:
            await auth_headers(oauth_tenant)

        error = exc_info.value
        assert error.code == "OAUTH_TOKEN_FAILED"
        assert error.details["status"] == 500
        assert error.details["tokenUrl"] == "https://idp.example.com/oauth/token"
        assert error.retryable is True

    @pytest.mark.asyncio
    async def test_token_endpoint_unreachable(self, oauth_tenant, http_client):
        http_client.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(TokenRequestFailedError) as exc_info:
            await auth_headers(oauth_tenant)

        assert exc_info.value.details["status"] is None

    @pytest.mark.asyncio
    async def test_html_body_is_parse_failure(self, oauth_tenant, http_client, make_response):
        http_client.post.return_value = make_response(
            200, text="<!DOCTYPE html><html>login</html>", content_type="text/html"
        )

        with pytest.raises(TokenParseFailedError) as exc_info:
            await auth_headers(oauth_tenant)

        assert exc_info.value.details["contentType"] == "text/html"
        assert exc_info.value.details["bodySnippet"].startswith("<!DOCTYPE")

    @pytest.mark.asyncio
    async def test_missing_access_token(self, oauth_tenant, http_client, make_response):
        http_client.post.return_value = make_response(200, {"token_type": "bearer"})

        with pytest.raises(TokenMissingError):
            await auth_headers(oauth_tenant)

    @pytest.mark.asyncio
    async def test_missing_client_secret(self, oauth_tenant, monkeypatch, http_client):
        monkeypatch.delenv("T2_CLIENT_SECRET")

        with pytest.raises(MissingCredentialError) as exc_info:
            await auth_headers(oauth_tenant)

        assert exc_info.value.code == "TENANT_MISSING_OAUTH_SECRET"
        http_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_oauth_block(self, tenant_record):
        tenant = TenantConfig.model_validate(tenant_record(authMode="oauth", apiKey=None))

        with pytest.raises(MissingCredentialError) as exc_info:
            await auth_headers(tenant)

        assert exc_info.value.code == "TENANT_MISSING_OAUTH"
