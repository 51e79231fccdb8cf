from .downloaders import get_manifest
from .images import (
    DOCKER_PREFIX,
    DockerImage,
    Image,
    Kind,
    parse_docker_image,
    parse_image,
)
