"""Input validation helpers."""

import re
from typing import Any, Dict, List

from pydantic import ValidationError

TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]*$")


def validate_tenant_id(tenant_id: str) -> None:
    """
    Validate tenant_id format.

    Tenant ids appear in headers, URLs and log lines, so they are limited
    to a conservative character set.

    Args:
        tenant_id: Tenant ID to validate

    Raises:
        ValueError: If validation fails
    """
    if not tenant_id:
        raise ValueError("tenant_id cannot be empty")

    if len(tenant_id) > 128:
        raise ValueError("tenant_id too long")

    if not TENANT_ID_PATTERN.match(tenant_id):
        raise ValueError(f"Invalid tenant_id format: {tenant_id!r}")


def validation_details(error: ValidationError) -> List[Dict[str, Any]]:
    """Pydantic error list without the offending input values (which may hold secrets)."""
    return [
        {"type": e["type"], "loc": list(e["loc"]), "msg": e["msg"]}
        for e in error.errors()
    ]
