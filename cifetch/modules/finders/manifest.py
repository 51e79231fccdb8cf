"""
Schema-1 image manifest decoding.

Turns the body of a /v2/<name>/manifests/<ref> response into a
ManifestSchema1, checking only the shape of the document. The parent chain
is checked separately by layer_chain.fix_manifest_layers().
"""

import json
from dataclasses import dataclass, field, replace
from typing import Optional

from cifetch.modules.errors import DecodeError

# Media types a registry may answer with for a schema-1 manifest
MEDIA_TYPE_SCHEMA1 = "application/vnd.docker.distribution.manifest.v1+json"
MEDIA_TYPE_SCHEMA1_SIGNED = "application/vnd.docker.distribution.manifest.v1+prettyjws"


@dataclass(frozen=True)
class ManifestSchema1:
    """A decoded schema-1 manifest. fs_layers and history are index-aligned."""
    fs_layers: list[str]
    history: list[str]
    name: Optional[str] = None
    tag: Optional[str] = None
    architecture: Optional[str] = None
    schema_version: int = 1
    raw: bytes = field(default=b"", repr=False, compare=False)

    def get_layers(self) -> list[str]:
        """Layer digests, top layer first."""
        return list(self.fs_layers)

    def with_layers(self, fs_layers: list[str], history: list[str]) -> "ManifestSchema1":
        return replace(self, fs_layers=list(fs_layers), history=list(history))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "schemaVersion": self.schema_version,
            "name": self.name,
            "tag": self.tag,
            "architecture": self.architecture,
            "fsLayers": [{"blobSum": digest} for digest in self.fs_layers],
            "history": [{"v1Compatibility": entry} for entry in self.history],
        }


def _require_list(doc: dict, key: str) -> list:
    value = doc.get(key)
    if not isinstance(value, list):
        raise DecodeError(f"manifest field {key!r} is missing or not a list")
    return value


def _require_str_field(entry, key: str, index: int) -> str:
    if not isinstance(entry, dict) or not isinstance(entry.get(key), str):
        raise DecodeError(f"manifest entry {index} has no string {key!r}")
    return entry[key]


def decode_manifest(body: bytes) -> ManifestSchema1:
    """
    Decode a schema-1 manifest body.

    Raises:
        DecodeError: invalid JSON, wrong shape, or fsLayers / history of
                     different lengths
    """
    try:
        doc = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"manifest is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise DecodeError("manifest is not a JSON object")

    schema_version = doc.get("schemaVersion", 1)
    # the integer 1 only; true and 1.0 compare equal to it
    if type(schema_version) is not int or schema_version != 1:
        raise DecodeError(f"expected a schema 1 manifest, got schemaVersion {schema_version!r}")

    fs_layers = [
        _require_str_field(entry, "blobSum", i)
        for i, entry in enumerate(_require_list(doc, "fsLayers"))
    ]
    history = [
        _require_str_field(entry, "v1Compatibility", i)
        for i, entry in enumerate(_require_list(doc, "history"))
    ]
    if len(fs_layers) != len(history):
        raise DecodeError(
            f"manifest has {len(fs_layers)} fsLayers but {len(history)} history entries"
        )

    return ManifestSchema1(
        fs_layers=fs_layers,
        history=history,
        name=doc.get("name"),
        tag=doc.get("tag"),
        architecture=doc.get("architecture"),
        schema_version=schema_version,
        raw=body,
    )
