"""
Registry credentials and the HTTP session used to talk to a registry.

Provides:
- get_auth(): username/password lookup in the Docker CLI config.json
- TransportPolicy: TLS verification and timeouts, secure by default
- Deadline: an overall time budget shared by every request of one operation
- RegistryAuth: one requests.Session per operation, closed via invalidate()
"""

import base64
import binascii
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union

import requests

from cifetch import config
from cifetch.modules.errors import DecodeError, DeadlineExceededError, TransportError
from cifetch.modules.formatters import DOCKER_HOSTNAME

logger = logging.getLogger(__name__)

# Docker Hub credentials are stored under the legacy index URL
DOCKER_AUTH_REGISTRY = "https://index.docker.io/v1/"
CONFIG_FILENAME = "config.json"


# =============================================================================
# Credentials
# =============================================================================

@dataclass(frozen=True)
class Credentials:
    """Username/password pair for one registry. Empty when unconfigured."""
    username: str = ""
    password: str = ""

    def __bool__(self) -> bool:
        return bool(self.username)

    def __repr__(self) -> str:
        # never leak the password into logs
        return f"Credentials(username={self.username!r})"


def _strip_registry_key(key: str) -> str:
    """'https://quay.io/v1/' -> 'quay.io'"""
    if "://" in key:
        key = key.split("://", 1)[1]
    return key.split("/", 1)[0]


def _decode_entry(hostname: str, entry: dict) -> Credentials:
    if entry.get("username"):
        return Credentials(entry["username"], entry.get("password", ""))
    encoded = entry.get("auth")
    if not encoded:
        return Credentials()
    try:
        decoded = base64.b64decode(encoded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid auth entry for {hostname} in docker config: {e}") from e
    username, sep, password = decoded.partition(":")
    if not sep:
        raise DecodeError(f"invalid auth entry for {hostname} in docker config")
    return Credentials(username, password)


def get_auth(hostname: str, config_dir: Optional[str] = None) -> Credentials:
    """
    Look up credentials for a registry hostname in the Docker CLI config.

    Args:
        hostname: Registry hostname as written in the image reference
                  (e.g. "docker.io", "quay.io", "localhost:5000")
        config_dir: Directory holding config.json (default: $DOCKER_CONFIG
                    or ~/.docker)

    Returns:
        Credentials, empty if the file or the entry does not exist.

    Raises:
        DecodeError: if config.json exists but cannot be parsed
    """
    path = os.path.join(config_dir or config.DOCKER_CONFIG_DIR, CONFIG_FILENAME)
    if not os.path.exists(path):
        logger.debug("No docker config at %s", path)
        return Credentials()

    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError) as e:
        raise DecodeError(f"cannot load docker config {path}: {e}") from e

    auths = cfg.get("auths") or {}
    if not isinstance(auths, dict):
        raise DecodeError(f"'auths' in {path} is not an object")

    key = DOCKER_AUTH_REGISTRY if hostname == DOCKER_HOSTNAME else hostname
    if key in auths:
        return _decode_entry(hostname, auths[key])

    # entries are sometimes keyed by URL rather than bare hostname
    for name, entry in auths.items():
        if _strip_registry_key(name) == hostname:
            return _decode_entry(hostname, entry)

    logger.debug("No credentials configured for %s", hostname)
    return Credentials()


# =============================================================================
# Transport
# =============================================================================

@dataclass(frozen=True)
class TransportPolicy:
    """How requests reach a registry."""
    verify: bool = True
    ca_bundle: Optional[str] = None
    timeout: float = 30.0
    deadline: float = 60.0

    @classmethod
    def from_config(cls, **overrides) -> "TransportPolicy":
        values = {
            "verify": config.TLS_VERIFY,
            "ca_bundle": config.CA_BUNDLE,
            "timeout": config.REQUEST_TIMEOUT,
            "deadline": config.OPERATION_DEADLINE,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def requests_verify(self) -> Union[bool, str]:
        """Value for the 'verify' argument of requests."""
        if self.verify and self.ca_bundle:
            return self.ca_bundle
        return self.verify


class Deadline:
    """Time budget for one operation, spent across all of its requests."""

    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return self._expires_at - self._clock()

    def timeout(self, per_request: float) -> float:
        """Timeout for the next request, capped by what is left of the budget."""
        remaining = self.remaining()
        if remaining <= 0:
            raise DeadlineExceededError("operation deadline exceeded")
        return min(per_request, remaining)


# =============================================================================
# Session
# =============================================================================

class RegistryAuth:
    """
    HTTP session for a single registry operation.

    Usage:
        with RegistryAuth(credentials, policy) as auth:
            with auth.request("GET", url) as resp:
                ...

    Nothing is kept between operations: a new RegistryAuth (and session)
    is created per ping + fetch and closed when the block exits.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        policy: Optional[TransportPolicy] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.credentials = credentials or Credentials()
        self.policy = policy or TransportPolicy()
        self.deadline = deadline or Deadline(self.policy.deadline)
        self._session: Optional[requests.Session] = None

    def get_session(self) -> requests.Session:
        """Create the session on first call, reuse it thereafter."""
        if not self._session:
            self._session = requests.Session()
            self._session.verify = self.policy.requests_verify
            if not self.policy.verify:
                logger.warning("TLS certificate verification is disabled")
        return self._session

    def request(self, method: str, url: str, basic_auth: bool = False, **kwargs) -> requests.Response:
        """
        Issue one request within the operation deadline.

        Args:
            method: HTTP method ("GET", "HEAD", ...)
            url: Full URL to request
            basic_auth: Attach the configured username/password
            **kwargs: Passed to requests (e.g. headers=...)

        Raises:
            TransportError: connection, TLS or timeout failure
            DeadlineExceededError: no time left for this request
        """
        timeout = self.deadline.timeout(self.policy.timeout)
        if basic_auth and self.credentials:
            kwargs["auth"] = (self.credentials.username, self.credentials.password)

        logger.debug("%s %s (timeout %.1fs)", method, url, timeout)
        session = self.get_session()
        try:
            return session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    def invalidate(self):
        """Close the session. Safe to call more than once."""
        if self._session:
            self._session.close()
        self._session = None

    def __enter__(self) -> "RegistryAuth":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.invalidate()
        return False
