# Overview: Shared-secret checks for machine-to-machine endpoints (units and scheduler).

from __future__ import annotations

import secrets


def verify_shared_secret(provided: object, configured: str | None) -> bool:
    """
    Constant-time comparison of a caller-supplied secret against configuration.

    An unset or blank configured secret rejects everything, so a missing
    environment variable never opens the endpoint.
    """
    if not configured:
        return False
    if not isinstance(provided, str) or not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), configured.encode("utf-8"))
