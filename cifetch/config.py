# config.py
# Environment-driven settings for cifetch.
#
# Every value can be overridden by exporting the matching environment variable
# before the process starts. Nothing here is mutated at runtime.

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")


# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Transport. Certificate checks stay on unless explicitly disabled.
TLS_VERIFY = _env_bool("CIFETCH_TLS_VERIFY", True)
CA_BUNDLE = os.getenv("CIFETCH_CA_BUNDLE") or None
REQUEST_TIMEOUT = float(os.getenv("CIFETCH_TIMEOUT", "30"))   # seconds, per request
OPERATION_DEADLINE = float(os.getenv("CIFETCH_DEADLINE", "60"))  # seconds, per ping + fetch

# Docker CLI credential store
DOCKER_CONFIG_DIR = os.getenv("DOCKER_CONFIG") or os.path.join(os.path.expanduser("~"), ".docker")

# API server
API_HOST = os.getenv("CIFETCH_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("CIFETCH_API_PORT", "8000"))
