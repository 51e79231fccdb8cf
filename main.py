#  cifetch main CLI
#  Fetch containers' images manifests and layers from a V2 registry
import logging
import sys

from cifetch import config
from cifetch.modules.auth import TransportPolicy
from cifetch.modules.cli import parse_args
from cifetch.modules.errors import CifetchError
from cifetch.modules.keepers import parse_image

logger = logging.getLogger("cifetch")

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(debug=False, log_file=None):
    level = logging.DEBUG if debug else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    # urllib3 connection chatter is only useful when debugging
    logging.getLogger("urllib3").setLevel(logging.DEBUG if debug else logging.WARNING)


def build_policy(args) -> TransportPolicy:
    overrides = {
        "ca_bundle": args.ca_bundle,
        "timeout": args.timeout,
        "deadline": args.deadline,
    }
    if args.insecure:
        overrides["verify"] = False
    return TransportPolicy.from_config(**overrides)


# =============================================================================
# Commands
# =============================================================================

def cmd_manifest(args, policy):
    img = parse_image(args.image, policy=policy)
    manifest = img.get_raw_manifest(args.schema_version)
    print(manifest.decode("utf-8"))


def cmd_layers(args, policy):
    img = parse_image(args.image, policy=policy)
    for digest in img.get_layers():
        print(digest)


COMMANDS = {
    "manifest": cmd_manifest,
    "layers": cmd_layers,
}


def main(argv=None):
    args = parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file)

    # --- API server mode ---
    if args.api:
        import uvicorn
        print(f"[*] Starting API server on http://{config.API_HOST}:{config.API_PORT}/docs")
        uvicorn.run("cifetch.modules.api.api:app", host=config.API_HOST, port=config.API_PORT)
        return 0

    command = COMMANDS[args.command]
    try:
        command(args, build_policy(args))
    except CifetchError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"[!] Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
