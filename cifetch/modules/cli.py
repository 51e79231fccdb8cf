# CLI argument parsing for cifetch
# Kept apart from main.py so the command table there stays small

import argparse
import sys

from cifetch import __version__
from cifetch.modules.keepers.images import SCHEMA1_VERSION


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cifetch",
        description="Fetch container images' manifests and layers.",
    )
    p.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )
    p.add_argument(
        "--log-file", "-l",
        dest="log_file",
        help="Path to save a complete log of output",
    )
    p.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification (default: verify)",
    )
    p.add_argument(
        "--ca-bundle",
        dest="ca_bundle",
        default=None,
        help="CA bundle used to verify the registry certificate",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: $CIFETCH_TIMEOUT or 30)",
    )
    p.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall time budget per image in seconds (default: $CIFETCH_DEADLINE or 60)",
    )
    p.add_argument(
        "--api", "-A",
        action="store_true",
        help="Start the API server (uvicorn, see CIFETCH_API_HOST / CIFETCH_API_PORT)",
    )

    sub = p.add_subparsers(dest="command", metavar="COMMAND")

    manifest = sub.add_parser("manifest", help="Print the validated raw manifest of an image")
    manifest.add_argument("image", help="Image, e.g. docker://busybox:latest")
    manifest.add_argument(
        "--version",
        dest="schema_version",
        default=SCHEMA1_VERSION,
        help=f"Manifest schema version (default: {SCHEMA1_VERSION}, the only one supported)",
    )

    layers = sub.add_parser("layers", help="Print the validated layer digests, top layer first")
    layers.add_argument("image", help="Image, e.g. docker://busybox:latest")

    return p


def parse_args(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    # Show help if no mode selected
    if not args.command and not args.api:
        p.print_help()
        sys.exit(0)
    return args
