# images.py
# Image kinds and the prefix router that picks one.
#
# Only docker:// images exist today. Another registry kind plugs in as one
# more Image subclass plus one entry in IMAGE_KINDS.

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from cifetch.modules.auth import Credentials, RegistryAuth, TransportPolicy, get_auth
from cifetch.modules.errors import ReferenceParseError, UnsupportedManifestVersionError
from cifetch.modules.finders import ManifestSchema1
from cifetch.modules.formatters import ImageReference, parse_image_ref
from cifetch.modules.keepers.downloaders import get_manifest

logger = logging.getLogger(__name__)

DOCKER_PREFIX = "docker://"
SCHEMA1_VERSION = "2-1"


class Kind(Enum):
    UNKNOWN = 0
    DOCKER = 1


class Image(ABC):
    """Something we can fetch a manifest and a layer list for."""

    kind = Kind.UNKNOWN

    @abstractmethod
    def get_manifest(self) -> ManifestSchema1:
        ...

    @abstractmethod
    def get_raw_manifest(self, version: str = SCHEMA1_VERSION) -> bytes:
        ...

    def get_layers(self) -> list[str]:
        """Validated layer digests, top layer first."""
        return self.get_manifest().get_layers()


class DockerImage(Image):
    """An image served by a Docker Registry HTTP API V2 endpoint."""

    kind = Kind.DOCKER

    def __init__(
        self,
        ref: ImageReference,
        credentials: Optional[Credentials] = None,
        policy: Optional[TransportPolicy] = None,
    ):
        self.ref = ref
        self.credentials = credentials or Credentials()
        self.policy = policy or TransportPolicy.from_config()

    def __repr__(self) -> str:
        return f"DockerImage({self.ref})"

    def get_manifest(self) -> ManifestSchema1:
        # fresh session and deadline per call; nothing is reused
        with RegistryAuth(self.credentials, self.policy) as auth:
            return get_manifest(auth, self.ref)

    def get_raw_manifest(self, version: str = SCHEMA1_VERSION) -> bytes:
        """
        Manifest body exactly as the registry sent it.

        The body is only returned once its layer chain validated; duplicate
        entries are not stripped from it since it may be signed.
        """
        if version != SCHEMA1_VERSION:
            raise UnsupportedManifestVersionError(
                f"unsupported manifest version {version!r}, only {SCHEMA1_VERSION!r} is supported"
            )
        return self.get_manifest().raw


def parse_docker_image(
    img: str,
    policy: Optional[TransportPolicy] = None,
    config_dir: Optional[str] = None,
) -> DockerImage:
    """Parse a prefix-stripped docker reference and load its credentials."""
    ref = parse_image_ref(img)
    credentials = get_auth(ref.hostname, config_dir=config_dir)
    logger.debug("Parsed %s -> registry %s, credentials: %r", img, ref.registry, credentials)
    return DockerImage(ref, credentials, policy)


IMAGE_KINDS: dict[str, Callable[..., Image]] = {
    DOCKER_PREFIX: parse_docker_image,
}


def parse_image(
    img: str,
    policy: Optional[TransportPolicy] = None,
    config_dir: Optional[str] = None,
) -> Image:
    """
    Route a raw image string like 'docker://busybox:latest' to its Image kind.

    Raises:
        ReferenceParseError: no known prefix, or a malformed reference
    """
    for prefix, parser in IMAGE_KINDS.items():
        if img.startswith(prefix):
            return parser(img[len(prefix):], policy=policy, config_dir=config_dir)
    raise ReferenceParseError(f"no valid prefix provided in {img!r} (expected one of {', '.join(IMAGE_KINDS)})")
