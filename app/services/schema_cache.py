"""Per-tenant object-structure schema cache with TTL."""

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple, TYPE_CHECKING

from app.infra.metrics import schema_cache_lookups_total
from app.models.shape import SchemaShape

if TYPE_CHECKING:
    from app.adapters.maximo_client import MaximoClient

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


class SchemaCache:
    """
    Read-through cache of inferred field sets keyed by (tenant, object structure).

    Fields come from the keys of a single sampled record. Entries are only
    ever replaced whole. Concurrent refreshes of the same key are not
    de-duplicated: each probe stores its own shape and the last write wins.
    Capacity is bounded; the least recently used entry is evicted first.
    """

    def __init__(
        self,
        default_ttl_seconds: int = 3600,
        max_entries: int = 256,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, SchemaShape]" = OrderedDict()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _ttl_seconds(self, client: "MaximoClient", ttl_seconds: Optional[int]) -> int:
        if ttl_seconds is not None:
            return ttl_seconds
        tenant_ttl = getattr(client.tenant, "metadata_ttl_seconds", None)
        if tenant_ttl is not None:
            return tenant_ttl
        return self.default_ttl_seconds

    def peek(self, tenant_id: str, object_structure: str) -> Optional[SchemaShape]:
        """Cached shape regardless of age, without touching recency."""
        return self._entries.get((tenant_id, object_structure))

    def _store(self, key: CacheKey, shape: SchemaShape) -> None:
        self._entries[key] = shape
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def get_shape(
        self,
        tenant_id: str,
        object_structure: str,
        client: "MaximoClient",
        ttl_seconds: Optional[int] = None,
    ) -> SchemaShape:
        """
        Return the cached shape, refreshing it when absent or stale.

        TTL resolution: explicit ttl_seconds, then the tenant's
        metadataTtlSeconds, then the process default.

        The probe carries no oslc.where; Maximo's parser rejects always-true
        idioms such as `1=1`.
        """
        key = (tenant_id, object_structure)
        ttl_ms = self._ttl_seconds(client, ttl_seconds) * 1000

        existing = self._entries.get(key)
        if existing is not None and (self._now_ms() - existing.discovered_at) < ttl_ms:
            self._entries.move_to_end(key)
            schema_cache_lookups_total.labels(result="hit").inc()
            return existing

        schema_cache_lookups_total.labels(result="miss").inc()
        result = await client.query(object_structure, select="*", page_size=1, start=0)
        sample = result.items[0] if result.items else {}
        fields = sorted(k for k in sample if isinstance(k, str)) if isinstance(sample, dict) else []

        shape = SchemaShape(
            object_structure=object_structure,
            fields=fields,
            discovered_at=self._now_ms(),
        )
        self._store(key, shape)
        logger.debug(f"Discovered {len(fields)} fields for {tenant_id}/{object_structure}")
        return shape

    def invalidate(self, tenant_id: str, object_structure: Optional[str] = None) -> int:
        """Drop one shape, or every shape of a tenant. Returns the number removed."""
        if object_structure is not None:
            return 1 if self._entries.pop((tenant_id, object_structure), None) else 0
        keys = [k for k in self._entries if k[0] == tenant_id]
        for k in keys:
            del self._entries[k]
        return len(keys)

    def __len__(self) -> int:
        return len(self._entries)
