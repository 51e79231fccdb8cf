from .formatters import (
    DEFAULT_TAG,
    DOCKER_HOSTNAME,
    DOCKER_REGISTRY,
    ImageReference,
    parse_image_ref,
    registry_base_url,
    manifest_url,
)
