#!/usr/bin/env python3
"""Smoke-check a running gateway: health probes plus mcp.listTools."""

import os
import sys

import httpx


def smoke(base_url: str, tenant_id: str) -> int:
    """Return a process exit code: 0 when every probe answers 2xx."""
    failures = 0
    with httpx.Client(base_url=base_url, timeout=10.0) as client:
        for path in ("/healthz", "/readyz"):
            response = client.get(path)
            print(f"{path} {response.status_code} {response.text}")
            failures += 0 if response.is_success else 1

        response = client.post(
            "/mcp",
            headers={"x-tenant-id": tenant_id},
            json={"jsonrpc": "2.0", "id": "1", "method": "mcp.listTools", "params": {}},
        )
        print(f"mcp.listTools {response.status_code} {response.text}")
        failures += 0 if response.is_success else 1

    return 1 if failures else 0


if __name__ == "__main__":
    base = os.getenv("BASE", "http://localhost:8080")
    tenant = os.getenv("TENANT", "tenant1")

    # Allow override via command line
    if len(sys.argv) > 1:
        base = sys.argv[1]

    sys.exit(smoke(base, tenant))
