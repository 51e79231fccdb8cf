import logging

from fastapi import FastAPI, Query, HTTPException, APIRouter
import fastapi_swagger_dark as fsd

from cifetch import __version__
from cifetch.modules.auth import TransportPolicy
from cifetch.modules.errors import (
    ChainIntegrityError,
    CifetchError,
    DecodeError,
    InvalidLayerIDError,
    ReferenceParseError,
    TransportError,
    UnexpectedStatusError,
    UnsupportedManifestVersionError,
)
from cifetch.modules.keepers import DOCKER_PREFIX, parse_image

logger = logging.getLogger(__name__)

app = FastAPI(
    title="cifetch API",
    docs_url=None,
    description="""
**cifetch API**
* Validated schema-1 manifests and layer lists from any V2 registry
* One registry round trip per request, nothing cached
    """,
    version=__version__,
    )

# Create a router for the dark docs
router = APIRouter()

# Install dark theme on the router
fsd.install(router)

# Include the router in the app
app.include_router(router)


def _to_http_error(e: CifetchError) -> HTTPException:
    """Map a cifetch failure onto the status the API answers with."""
    if isinstance(e, (ReferenceParseError, UnsupportedManifestVersionError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, UnexpectedStatusError):
        # a missing image stays a 404, anything else is the upstream's fault
        status = 404 if e.status_code == 404 else 502
        return HTTPException(status_code=status, detail=f"Registry error: {e}")
    if isinstance(e, TransportError):
        return HTTPException(status_code=502, detail=f"Failed to connect to registry: {e}")
    if isinstance(e, (DecodeError, InvalidLayerIDError, ChainIntegrityError)):
        return HTTPException(status_code=422, detail=f"Invalid manifest: {e}")
    return HTTPException(status_code=500, detail=str(e))


def _load_image(image: str):
    if "://" not in image:
        image = DOCKER_PREFIX + image
    return parse_image(image, policy=TransportPolicy.from_config())


@app.get("/manifest")
def manifest(image: str = Query(..., description="Image reference, e.g. busybox:latest")):
    """
    ## /manifest

    Fetch the schema-1 manifest of an image and validate its layer chain.

    - Returns the manifest with adjacent duplicate layers removed.

    - Example: `/manifest?image=docker://quay.io/coreos/etcd:v3.1.0`
    """
    try:
        return _load_image(image).get_manifest().to_dict()
    except CifetchError as e:
        logger.warning("GET /manifest %s failed: %s", image, e)
        raise _to_http_error(e) from e


@app.get("/layers")
def layers(image: str = Query(..., description="Image reference, e.g. busybox:latest")):
    """
    ## /layers

    List the validated layer digests of an image, top layer first.

    - Example: `/layers?image=busybox:latest`
    """
    try:
        img = _load_image(image)
        return {"image": str(img.ref), "layers": img.get_layers()}
    except CifetchError as e:
        logger.warning("GET /layers %s failed: %s", image, e)
        raise _to_http_error(e) from e
