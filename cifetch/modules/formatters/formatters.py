# formatters.py
# Image reference parsing and registry URL helpers.

import re
from dataclasses import dataclass
from typing import Optional

from cifetch.modules.errors import ReferenceParseError


# =============================================================================
# Constants
# =============================================================================

DEFAULT_TAG = "latest"

# docker.io is only an alias: the API itself lives on registry-1.docker.io
DOCKER_HOSTNAME = "docker.io"
DOCKER_LEGACY_HOSTNAME = "index.docker.io"
DOCKER_REGISTRY = "registry-1.docker.io"
DOCKER_OFFICIAL_NAMESPACE = "library"

NAME_TOTAL_LENGTH_MAX = 255

_NAME_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"

PATH_RE = re.compile(rf"{_NAME_COMPONENT}(?:/{_NAME_COMPONENT})*")
DOMAIN_RE = re.compile(rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?")
TAG_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}")
DIGEST_RE = re.compile(r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}")


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class ImageReference:
    """A parsed image reference. Exactly one of tag / digest is set."""
    hostname: str
    remote_name: str
    registry: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def reference(self) -> str:
        """Tag or digest, whichever goes into the manifest request path."""
        return self.digest or self.tag

    @property
    def name(self) -> str:
        return f"{self.hostname}/{self.remote_name}"

    def __str__(self) -> str:
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag}"


# =============================================================================
# Parsing
# =============================================================================

def _split_hostname(name: str) -> tuple[str, str]:
    """Split 'host/path' the way the docker CLI does."""
    first, sep, rest = name.partition("/")
    if not sep:
        return DOCKER_HOSTNAME, name
    if "." in first or ":" in first or first == "localhost":
        return first, rest
    return DOCKER_HOSTNAME, name


def parse_image_ref(image_ref: str) -> ImageReference:
    """
    Parse an image reference like 'busybox', 'quay.io/coreos/etcd:v3' or
    'localhost:5000/app@sha256:...'.

    A reference without tag or digest gets the 'latest' tag. When both are
    given the digest wins. Docker Hub references resolve to the API host
    registry-1.docker.io and single-component names gain the 'library/'
    namespace.

    Raises:
        ReferenceParseError: if the reference does not follow the grammar
    """
    if not image_ref or not image_ref.strip():
        raise ReferenceParseError("image reference must not be empty")
    if image_ref != image_ref.strip():
        raise ReferenceParseError(f"invalid reference format: {image_ref!r}")

    remainder, _, digest = image_ref.partition("@")
    if "@" in image_ref and not DIGEST_RE.fullmatch(digest):
        raise ReferenceParseError(f"invalid digest format in {image_ref!r}")

    tag = None
    # a ':' after the last '/' introduces the tag; earlier ones belong to a port
    last_colon = remainder.rfind(":")
    if last_colon > remainder.rfind("/"):
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1:]
        if not TAG_RE.fullmatch(tag):
            raise ReferenceParseError(f"invalid tag format in {image_ref!r}")

    if not remainder:
        raise ReferenceParseError(f"invalid reference format: {image_ref!r}")
    if len(remainder) > NAME_TOTAL_LENGTH_MAX:
        raise ReferenceParseError(
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )

    hostname, path = _split_hostname(remainder)
    if not DOMAIN_RE.fullmatch(hostname):
        raise ReferenceParseError(f"invalid registry hostname {hostname!r}")
    if not PATH_RE.fullmatch(path):
        if PATH_RE.fullmatch(path.lower()):
            raise ReferenceParseError(f"repository name must be lowercase: {image_ref!r}")
        raise ReferenceParseError(f"invalid reference format: {image_ref!r}")

    if hostname == DOCKER_LEGACY_HOSTNAME:
        hostname = DOCKER_HOSTNAME
    if hostname == DOCKER_HOSTNAME:
        registry = DOCKER_REGISTRY
        if "/" not in path:
            path = f"{DOCKER_OFFICIAL_NAMESPACE}/{path}"
    else:
        registry = hostname

    if digest:
        tag = None
    elif tag is None:
        tag = DEFAULT_TAG

    return ImageReference(
        hostname=hostname,
        remote_name=path,
        registry=registry,
        tag=tag,
        digest=digest or None,
    )


# =============================================================================
# URLs
# =============================================================================

def registry_base_url(scheme: str, registry: str) -> str:
    """API root of a registry, e.g. https://registry-1.docker.io/v2/"""
    return f"{scheme}://{registry}/v2/"


def manifest_url(scheme: str, ref: ImageReference) -> str:
    return f"{registry_base_url(scheme, ref.registry)}{ref.remote_name}/manifests/{ref.reference}"
