# layer_chain.py
# Validation of the legacy schema-1 parent chain.
#
# A schema-1 manifest lists layers top first, base last. Each history entry
# carries a v1Compatibility JSON string with the layer's ID and its Parent ID,
# so the entries must form a single chain ending in a parentless base layer.
# Registries sometimes emit the same layer twice in a row; those adjacent
# duplicates are dropped here, anything else that breaks the chain is fatal.

import json
import logging
import re
from dataclasses import dataclass

from cifetch.modules.errors import ChainIntegrityError, DecodeError, InvalidLayerIDError

logger = logging.getLogger(__name__)

VALID_HEX = re.compile(r"[a-f0-9]{64}")


@dataclass(frozen=True)
class LayerRecord:
    """ID and parent ID decoded from one v1Compatibility string."""
    id: str
    parent: str = ""


def validate_v1_id(layer_id: str) -> None:
    """Raise InvalidLayerIDError unless layer_id is 64 lowercase hex chars."""
    if not isinstance(layer_id, str) or not VALID_HEX.fullmatch(layer_id):
        raise InvalidLayerIDError(f"image ID {layer_id!r} is invalid")


def decode_v1_compatibility(raw: str) -> LayerRecord:
    """
    Decode a v1Compatibility string into a LayerRecord.

    Keys are matched case-insensitively; registries write "id"/"parent",
    older tooling wrote "ID"/"Parent".
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"invalid v1Compatibility record: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError("v1Compatibility record is not a JSON object")

    fields = {k.lower(): v for k, v in data.items()}
    layer_id = fields.get("id", "")
    parent = fields.get("parent") or ""
    if not isinstance(parent, str):
        raise DecodeError(f"parent of layer {layer_id!r} is not a string")
    return LayerRecord(id=layer_id, parent=parent)


def fix_manifest_layers(blob_sums: list[str], history: list[str]) -> tuple[list[str], list[str]]:
    """
    Check the parent chain and drop adjacent duplicate entries.

    Args:
        blob_sums: layer digests, top layer first
        history: v1Compatibility strings, index-aligned with blob_sums

    Returns:
        (blob_sums, history) as new lists with adjacent duplicates removed.
        The inputs are left untouched.

    Raises:
        DecodeError: a history entry is not a valid record
        InvalidLayerIDError: an ID is not 64 lowercase hex characters
        ChainIntegrityError: bad base parent, repeated ID or broken link
    """
    if len(blob_sums) != len(history):
        raise ChainIntegrityError(
            f"manifest has {len(blob_sums)} fsLayers but {len(history)} history entries"
        )
    if not blob_sums:
        raise ChainIntegrityError("manifest has no layers")

    records = []
    for raw in history:
        record = decode_v1_compatibility(raw)
        validate_v1_id(record.id)
        records.append(record)

    if records[-1].parent:
        raise ChainIntegrityError("invalid parent ID in the base layer of the image")

    # an ID may repeat only right after itself; anything else would loop
    seen = set()
    last_id = None
    for record in records:
        if record.id in seen and record.id != last_id:
            raise ChainIntegrityError(f"ID {record.id} appears multiple times in manifest")
        seen.add(record.id)
        last_id = record.id

    # walk from the base up, building the result base first
    kept = [len(records) - 1]
    for i in range(len(records) - 2, -1, -1):
        child, expected = records[i], records[i + 1]
        if child.id == expected.id:
            logger.debug("Dropping duplicate layer entry %s at index %d", child.id, i)
            continue
        if child.parent != expected.id:
            raise ChainIntegrityError(
                f"invalid parent ID: expected {expected.id}, got {child.parent}"
            )
        kept.append(i)

    kept.reverse()
    return [blob_sums[i] for i in kept], [history[i] for i in kept]
