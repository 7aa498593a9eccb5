"""Secret resolution for tenant credentials and service settings."""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from app.models.tenant import SecretRef

logger = logging.getLogger(__name__)


class SecretsManager:
    """Resolves secret references to their values.

    Two reference shapes are supported:

    - ``SecretRef`` records from tenant configuration
      (``{"type": "env", "name": ...}`` / ``{"type": "file", "path": ...}``)
    - string references used by service settings
      (``env://VAR_NAME``, ``file:///path/to/secret`` or a literal value)
    """

    def resolve(self, ref: Union[SecretRef, dict, None]) -> str:
        """
        Resolve a tenant SecretRef.

        Args:
            ref: SecretRef model or equivalent dict

        Returns:
            Secret value, or "" when the reference is empty or unreadable
        """
        if ref is None:
            return ""
        if isinstance(ref, dict):
            ref = SecretRef.model_validate(ref)

        if ref.type == "env":
            name = (ref.name or "").strip()
            return os.getenv(name, "") if name else ""

        path = (ref.path or "").strip()
        if not path:
            return ""
        return self._read_file(path)

    def get_secret(self, secret_ref: str) -> Optional[str]:
        """
        Get secret from a string reference.

        Supports:
        - env://VAR_NAME - Environment variable
        - file:///path/to/secret - File contents (stripped)
        - Direct value (if not a reference)

        Args:
            secret_ref: Secret reference or direct value

        Returns:
            Secret value or None if not found
        """
        if not secret_ref:
            return None

        if secret_ref.startswith("env://"):
            return os.getenv(secret_ref[6:])

        if secret_ref.startswith("file://"):
            value = self._read_file(secret_ref[7:])
            return value or None

        return secret_ref

    def _read_file(self, path: str) -> str:
        try:
            return Path(path).read_text(encoding="utf-8").strip()
        except OSError as e:
            # SECURITY: log the path only, never the contents
            logger.warning(f"Secret file not readable: {path} ({e.__class__.__name__})")
            return ""


# Global secrets manager instance
secrets_manager = SecretsManager()


def resolve_secret(ref: Any) -> str:
    """Convenience function to resolve a tenant SecretRef."""
    return secrets_manager.resolve(ref)


def get_secret(secret_ref: str, fallback: Optional[str] = None) -> Optional[str]:
    """
    Convenience function to get a secret.

    Args:
        secret_ref: Secret reference (env://, file://) or direct value
        fallback: Fallback value if secret not found

    Returns:
        Secret value or fallback
    """
    value = secrets_manager.get_secret(secret_ref)
    return value if value is not None else fallback
