import logging

from cifetch.modules.auth import RegistryAuth
from cifetch.modules.errors import UnexpectedStatusError
from cifetch.modules.finders import ManifestSchema1, decode_manifest, fix_manifest_layers, ping
from cifetch.modules.finders.manifest import MEDIA_TYPE_SCHEMA1, MEDIA_TYPE_SCHEMA1_SIGNED
from cifetch.modules.formatters import ImageReference, manifest_url

logger = logging.getLogger(__name__)

API_VERSION = "registry/2.0"

MANIFEST_HEADERS = {
    "Docker-Distribution-API-Version": API_VERSION,
    "Accept": f"{MEDIA_TYPE_SCHEMA1_SIGNED}, {MEDIA_TYPE_SCHEMA1}, application/json",
}

# How much of an error body to keep in the exception message
ERROR_BODY_PREVIEW = 200


# =============================================================================
# Manifest Fetching
# =============================================================================

def get_manifest(auth: RegistryAuth, ref: ImageReference) -> ManifestSchema1:
    """
    Ping the registry, fetch the schema-1 manifest and validate its layer chain.

    Basic credentials are sent when the registry asks for auth. Token (bearer)
    auth is not implemented: against a bearer registry the request goes out
    with basic credentials, or none, and will usually come back 401.

    Args:
        auth: Session for this operation; its credentials and deadline apply
        ref: Parsed image reference

    Returns:
        ManifestSchema1 with adjacent duplicate layers removed.

    Raises:
        TransportError, UnexpectedStatusError, DecodeError,
        InvalidLayerIDError, ChainIntegrityError
    """
    endpoint = ping(ref.registry, auth)
    url = manifest_url(endpoint.scheme, ref)

    if endpoint.auth_required:
        if endpoint.auth_scheme == "bearer":
            logger.warning(
                "Registry %s requires token auth, which is not supported; trying basic auth",
                ref.registry,
            )
        if not auth.credentials:
            logger.warning("Registry %s requires auth but no credentials are configured", ref.registry)

    logger.info("Fetching manifest %s", url)
    with auth.request("GET", url, basic_auth=endpoint.auth_required, headers=MANIFEST_HEADERS) as resp:
        if resp.status_code != 200:
            preview = resp.text[:ERROR_BODY_PREVIEW].strip()
            raise UnexpectedStatusError(
                f"invalid status code returned when fetching manifest {resp.status_code}"
                + (f": {preview}" if preview else ""),
                status_code=resp.status_code,
                url=url,
            )
        body = resp.content

    manifest = decode_manifest(body)
    fs_layers, history = fix_manifest_layers(manifest.fs_layers, manifest.history)
    if len(fs_layers) != len(manifest.fs_layers):
        logger.info("Dropped %d duplicate layer entries", len(manifest.fs_layers) - len(fs_layers))
    return manifest.with_layers(fs_layers, history)
