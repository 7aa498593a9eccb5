"""Maximo OSLC REST client bound to one tenant."""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from app.adapters.maximo_auth import auth_headers
from app.infra.errors import (
    RemoteOperationFailedError,
    RemoteQueryFailedError,
    RemoteResponseNotJsonError,
    is_retryable_status,
)
from app.infra.metrics import status_class, upstream_request_duration, upstream_requests_total
from app.infra.timeout import UPSTREAM_TIMEOUT
from app.models.tenant import TenantConfig

logger = logging.getLogger(__name__)

BODY_SNIPPET_LIMIT = 800

# Maximo deployments return member records under different keys.
# Tried in order; the first key holding a list is authoritative.
MEMBER_KEYS: Tuple[str, ...] = ("member", "rdfs_member", "rdfs:member", "oslc:member")
COUNT_KEYS: Tuple[str, ...] = ("totalCount", "oslc:totalCount")

# Service-description members: (title keys, href keys)
DISCOVERY_TITLE_KEYS: Tuple[str, ...] = ("title", "dcterms:title")
DISCOVERY_HREF_KEYS: Tuple[str, ...] = ("href", "rdf:about")


@dataclass
class QueryResult:
    """Normalized OSLC query result."""
    items: List[Dict[str, Any]] = field(default_factory=list)
    count: Optional[int] = None


def extract_members(body: Any) -> List[Dict[str, Any]]:
    """Return the member list from an OSLC envelope, or [] when none is present."""
    if not isinstance(body, dict):
        return []
    for key in MEMBER_KEYS:
        members = body.get(key)
        if isinstance(members, list):
            return members
    return []


def extract_count(body: Any) -> Optional[int]:
    if not isinstance(body, dict):
        return None
    for key in COUNT_KEYS:
        value = body.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            try:
                return int(float(value))
            except ValueError:
                continue
    return None


def body_snippet(text: str, limit: int = BODY_SNIPPET_LIMIT) -> str:
    return text[:limit] + "…" if len(text) > limit else text


def _segment(value: str) -> str:
    return quote(value, safe="")


class MaximoClient:
    """
    Issues authorized OSLC calls for a single tenant.

    Auth headers are built per call (see maximo_auth), so an OAuth tenant
    fetches a token before every request.
    """

    def __init__(self, tenant: TenantConfig, timeout: float = UPSTREAM_TIMEOUT):
        self.tenant = tenant
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return self.tenant.base_url.rstrip("/") + path

    async def _headers(self, content_type: bool = False) -> Dict[str, str]:
        headers = dict(await auth_headers(self.tenant))
        headers["Accept"] = "application/json"
        if content_type:
            headers["Content-Type"] = "application/json"
        return headers

    async def _send(self, kind: str, method: str, url: str, **kwargs) -> httpx.Response:
        start_time = time.time()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.HTTPError:
                upstream_requests_total.labels(kind=kind, status_class="error").inc()
                logger.warning(f"[maximo] {method} {url} failed", exc_info=True)
                raise

        upstream_request_duration.labels(kind=kind).observe(time.time() - start_time)
        upstream_requests_total.labels(kind=kind, status_class=status_class(response.status_code)).inc()
        logger.info(
            f"[maximo] {method} {url} -> {response.status_code} {response.headers.get('content-type', '')}",
            extra={"tenant_id": self.tenant.tenant_id},
        )
        return response

    async def query(
        self,
        object_structure: str,
        where: Optional[str] = None,
        select: str = "*",
        order_by: Optional[str] = None,
        page_size: int = 50,
        start: int = 0,
    ) -> QueryResult:
        """
        Fetch one page of an object structure.

        Args:
            object_structure: OSLC object structure name (e.g. mxwo)
            where: Native oslc.where expression; omitted when blank
            select: oslc.select expression ("*" for all fields)
            order_by: oslc.orderBy expression
            page_size: Page size (1-200)
            start: Zero-based offset; sent as 1-based oslc.startIndex

        Returns:
            QueryResult with items and, when reported, the total count

        Raises:
            RemoteQueryFailedError: Non-2xx response
            RemoteResponseNotJsonError: 2xx response whose body is not JSON
        """
        params: Dict[str, str] = {}
        if where and where.strip():
            params["oslc.where"] = where
        params["oslc.select"] = select
        params["oslc.pageSize"] = str(page_size)
        params["oslc.paging"] = "true"
        params["oslc.startIndex"] = str(max(1, start + 1))
        if order_by:
            params["oslc.orderBy"] = order_by

        url = self._url(f"/oslc/os/{_segment(object_structure)}")
        headers = await self._headers()
        try:
            response = await self._send("query", "GET", url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteQueryFailedError(
                f"OSLC query failed ({e.__class__.__name__})",
                details={"objectStructure": object_structure, "status": None, "error": str(e)},
                retryable=True,
            )

        content_type = response.headers.get("content-type", "")
        text = response.text
        if not response.is_success:
            raise RemoteQueryFailedError(
                f"OSLC query failed ({response.status_code})",
                details={
                    "objectStructure": object_structure,
                    "status": response.status_code,
                    "contentType": content_type,
                    "bodySnippet": body_snippet(text),
                },
                retryable=is_retryable_status(response.status_code),
            )

        try:
            body = json.loads(text)
        except ValueError:
            raise RemoteResponseNotJsonError(
                "OSLC query returned non-JSON response",
                details={
                    "objectStructure": object_structure,
                    "status": response.status_code,
                    "contentType": content_type,
                    "bodySnippet": body_snippet(text),
                },
            )

        return QueryResult(items=extract_members(body), count=extract_count(body))

    async def get_one(self, object_structure: str, key: str) -> Optional[Dict[str, Any]]:
        """First record matching the raw key expression, or None when nothing matches."""
        result = await self.query(object_structure, where=key, select="*", page_size=1, start=0)
        return result.items[0] if result.items else None

    async def execute_operation(
        self,
        operation: str,
        target: Dict[str, str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Execute a generic Maximo operation.

        A target key that is already an absolute resource URL is PATCHed
        directly; otherwise the action URL
        /oslc/os/{objectStructure}/{key}/action/{operation} receives a POST.

        Returns:
            Parsed JSON body, or {"ok": True, "raw": body} for non-JSON
            acknowledgements

        Raises:
            RemoteOperationFailedError: Non-2xx response
        """
        key = str(target.get("key", ""))
        object_structure = str(target.get("objectStructure", ""))

        if key.startswith(("http://", "https://")):
            method, url = "PATCH", key
        else:
            method = "POST"
            url = self._url(
                f"/oslc/os/{_segment(object_structure)}/{_segment(key)}/action/{_segment(operation)}"
            )

        headers = await self._headers(content_type=True)
        target_info = {"objectStructure": object_structure, "key": key}
        try:
            response = await self._send("operation", method, url, json=payload or {}, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteOperationFailedError(
                f"OSLC operation failed ({e.__class__.__name__})",
                details={"operation": operation, "target": target_info, "status": None, "error": str(e)},
                retryable=True,
            )

        text = response.text
        if not response.is_success:
            raise RemoteOperationFailedError(
                f"OSLC operation failed ({response.status_code})",
                details={
                    "operation": operation,
                    "target": target_info,
                    "status": response.status_code,
                    "contentType": response.headers.get("content-type", ""),
                    "bodySnippet": body_snippet(text),
                },
                retryable=is_retryable_status(response.status_code),
            )

        try:
            return json.loads(text)
        except ValueError:
            return {"ok": True, "raw": text}

    async def list_object_structures_fallback(self) -> List[str]:
        """
        Best-effort probe of the /oslc/os service description.

        Any failure (credentials, network, status, body) yields [] so callers
        can fall back to a static list.
        """
        try:
            headers = await self._headers()
            response = await self._send("discovery", "GET", self._url("/oslc/os"), headers=headers)
            if not response.is_success:
                return []
            body = json.loads(response.text)
        except Exception as e:
            logger.info(f"Object structure discovery unavailable for tenant {self.tenant.tenant_id}: {e}")
            return []

        names = set()
        for member in extract_members(body):
            if not isinstance(member, dict):
                continue
            title = next((member[k] for k in DISCOVERY_TITLE_KEYS if member.get(k)), "")
            href = next((member[k] for k in DISCOVERY_HREF_KEYS if member.get(k)), "")
            if title:
                names.add(str(title))
            elif href and "/oslc/os/" in str(href):
                names.add(str(href).split("/oslc/os/", 1)[1])
        return sorted(name for name in names if name)
