# ping.py
# Registry endpoint discovery: which scheme answers, and does it want auth?

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from cifetch.modules.auth import RegistryAuth, TransportPolicy
from cifetch.modules.errors import (
    DeadlineExceededError,
    DecodeError,
    TransportError,
    UnexpectedStatusError,
)
from cifetch.modules.formatters import registry_base_url

logger = logging.getLogger(__name__)

SCHEMES = ("https", "http")

HEADER_WWW_AUTHENTICATE = "WWW-Authenticate"
HEADER_API_VERSION = "Docker-Distribution-Api-Version"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class APIError:
    """One entry of the 'errors' array of a registry error response."""
    code: str = ""
    message: str = ""
    detail: Any = None


@dataclass(frozen=True)
class RegistryEndpoint:
    """Result of pinging a registry's /v2/ root."""
    scheme: str
    hostname: str
    www_authenticate: str = ""
    api_version: str = ""
    errors: list[APIError] = field(default_factory=list)

    @property
    def auth_required(self) -> bool:
        # strictly the challenge header, not the status code
        return self.www_authenticate != ""

    @property
    def auth_scheme(self) -> str:
        """'basic', 'bearer', ... taken from the challenge; '' if none."""
        return self.www_authenticate.split(" ", 1)[0].lower()


# =============================================================================
# Probe
# =============================================================================

def _decode_errors(body: bytes) -> list[APIError]:
    try:
        doc = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"cannot decode registry error response: {e}") from e
    if not isinstance(doc, dict):
        raise DecodeError("registry error response is not a JSON object")

    errors = doc.get("errors") or []
    if not isinstance(errors, list):
        raise DecodeError("'errors' in registry error response is not a list")

    decoded = []
    for entry in errors:
        if not isinstance(entry, dict):
            raise DecodeError("registry error entry is not a JSON object")
        decoded.append(APIError(
            code=str(entry.get("code", "")),
            message=str(entry.get("message", "")),
            detail=entry.get("detail"),
        ))
    return decoded


def _ping_scheme(auth: RegistryAuth, registry: str, scheme: str) -> RegistryEndpoint:
    url = registry_base_url(scheme, registry)
    with auth.request("GET", url) as resp:
        if resp.status_code not in (200, 401):
            raise UnexpectedStatusError(
                f"error pinging registry {registry}, response code {resp.status_code}",
                status_code=resp.status_code,
                url=url,
            )

        errors = []
        if resp.status_code == 401:
            errors = _decode_errors(resp.content)

        endpoint = RegistryEndpoint(
            scheme=scheme,
            hostname=registry,
            www_authenticate=resp.headers.get(HEADER_WWW_AUTHENTICATE, ""),
            api_version=resp.headers.get(HEADER_API_VERSION, ""),
            errors=errors,
        )

    if resp.status_code == 401 and not endpoint.auth_required:
        logger.warning("Registry %s answered 401 without a %s challenge", registry, HEADER_WWW_AUTHENTICATE)
    return endpoint


def ping(registry: str, auth: Optional[RegistryAuth] = None) -> RegistryEndpoint:
    """
    Find out how to talk to a registry.

    Tries https first and falls back to http once, but only when the https
    attempt failed at the transport level. A wrong status code or an
    undecodable 401 body is final.

    Args:
        registry: Registry API host, e.g. "registry-1.docker.io"
        auth: Session for the current operation (a fresh one if omitted)

    Returns:
        RegistryEndpoint for the scheme that answered.

    Raises:
        TransportError: neither scheme could be reached (the http error)
        UnexpectedStatusError: status other than 200 / 401
        DecodeError: 401 body is not a registry error document
    """
    if auth is None:
        with RegistryAuth(policy=TransportPolicy.from_config()) as own_auth:
            return ping(registry, own_auth)

    try:
        endpoint = _ping_scheme(auth, registry, SCHEMES[0])
    except DeadlineExceededError:
        raise
    except TransportError as e:
        logger.info("%s unreachable over %s (%s), retrying over %s", registry, SCHEMES[0], e, SCHEMES[1])
        endpoint = _ping_scheme(auth, registry, SCHEMES[1])

    logger.debug(
        "Registry %s: scheme=%s auth_required=%s api_version=%r",
        registry, endpoint.scheme, endpoint.auth_required, endpoint.api_version,
    )
    return endpoint
