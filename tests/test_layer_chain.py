import json

import pytest

from cifetch.modules.errors import ChainIntegrityError, DecodeError, InvalidLayerIDError
from cifetch.modules.finders.layer_chain import (
    LayerRecord,
    decode_v1_compatibility,
    fix_manifest_layers,
    validate_v1_id,
)
from tests.fakes import blob_sum, chain, layer_id, v1_compat


class TestValidateV1ID:
    @pytest.mark.parametrize("value", [
        "0" * 64,
        "f" * 64,
        layer_id("base"),
    ])
    def test_accepts_64_lowercase_hex(self, value):
        validate_v1_id(value)

    @pytest.mark.parametrize("value", [
        "",
        "a" * 63,
        "a" * 65,
        "A" * 64,
        layer_id("base").upper(),
        "g" * 64,
        "sha256:" + "a" * 57,
        " " + "a" * 63,
        "a" * 64 + "\n",
        "\n" + "a" * 64,
        None,
        42,
    ])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidLayerIDError):
            validate_v1_id(value)


class TestDecodeV1Compatibility:
    def test_lowercase_keys(self):
        record = decode_v1_compatibility(v1_compat(layer_id("a"), layer_id("b")))
        assert record == LayerRecord(id=layer_id("a"), parent=layer_id("b"))

    def test_capitalised_keys(self):
        raw = json.dumps({"ID": layer_id("a"), "Parent": layer_id("b")})
        assert decode_v1_compatibility(raw) == LayerRecord(layer_id("a"), layer_id("b"))

    def test_missing_parent_is_empty(self):
        assert decode_v1_compatibility(v1_compat(layer_id("a"))).parent == ""

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"string"', None])
    def test_rejects_malformed(self, raw):
        with pytest.raises(DecodeError):
            decode_v1_compatibility(raw)


class TestFixManifestLayers:
    def test_valid_chain_is_unchanged(self):
        blobs, history = chain("top", "middle", "base")
        out_blobs, out_history = fix_manifest_layers(blobs, history)
        assert out_blobs == blobs
        assert out_history == history
        assert len(out_blobs) == 3

    def test_single_base_layer(self):
        blobs, history = chain("base")
        assert fix_manifest_layers(blobs, history) == (blobs, history)

    def test_inputs_are_not_mutated(self):
        blobs, history = chain("top", "base")
        blobs.insert(0, blobs[0])
        history.insert(0, history[0])
        before = (list(blobs), list(history))
        fix_manifest_layers(blobs, history)
        assert (blobs, history) == before

    def test_adjacent_duplicate_is_dropped(self):
        blobs, history = chain("top", "middle", "base")
        # repeat "middle" right after itself
        blobs.insert(1, blob_sum("middle-dup"))
        history.insert(1, history[1])

        out_blobs, out_history = fix_manifest_layers(blobs, history)

        assert len(out_blobs) == 3
        assert out_history == [history[0], history[2], history[3]]
        # the entry nearer the base survives
        assert out_blobs == [blobs[0], blobs[2], blobs[3]]

    def test_duplicate_of_top_layer_is_dropped(self):
        blobs, history = chain("top", "base")
        blobs.insert(0, blob_sum("top-dup"))
        history.insert(0, history[0])
        out_blobs, out_history = fix_manifest_layers(blobs, history)
        assert out_blobs == blobs[1:]
        assert out_history == history[1:]

    def test_run_of_duplicates_collapses_to_one(self):
        blobs, history = chain("top", "base")
        blobs = [blobs[0]] * 3 + blobs[1:]
        history = [history[0]] * 3 + history[1:]
        out_blobs, out_history = fix_manifest_layers(blobs, history)
        assert len(out_blobs) == 2
        assert out_history == [history[0], history[-1]]

    def test_base_layer_with_parent_fails(self):
        blobs = [blob_sum("base")]
        history = [v1_compat(layer_id("base"), layer_id("ghost"))]
        with pytest.raises(ChainIntegrityError, match="base layer"):
            fix_manifest_layers(blobs, history)

    def test_base_parent_checked_before_anything_else(self):
        # both a broken link and a bad base parent: the base wins
        blobs = [blob_sum("top"), blob_sum("base")]
        history = [
            v1_compat(layer_id("top"), layer_id("elsewhere")),
            v1_compat(layer_id("base"), layer_id("ghost")),
        ]
        with pytest.raises(ChainIntegrityError, match="base layer"):
            fix_manifest_layers(blobs, history)

    def test_non_adjacent_duplicate_fails(self):
        blobs, history = chain("a", "b", "c")
        blobs.insert(0, blob_sum("c-again"))
        history.insert(0, v1_compat(layer_id("c"), layer_id("a")))
        with pytest.raises(ChainIntegrityError, match="appears multiple times"):
            fix_manifest_layers(blobs, history)

    def test_parent_mismatch_names_both_ids(self):
        blobs, history = chain("top", "middle", "base")
        history[0] = v1_compat(layer_id("top"), layer_id("stranger"))
        with pytest.raises(ChainIntegrityError) as exc_info:
            fix_manifest_layers(blobs, history)
        message = str(exc_info.value)
        assert f"expected {layer_id('middle')}" in message
        assert f"got {layer_id('stranger')}" in message

    def test_invalid_id_fails(self):
        blobs, history = chain("top", "base")
        history[0] = v1_compat("NOT-HEX", layer_id("base"))
        with pytest.raises(InvalidLayerIDError):
            fix_manifest_layers(blobs, history)

    def test_undecodable_history_fails(self):
        blobs, history = chain("top", "base")
        history[1] = "{broken"
        with pytest.raises(DecodeError):
            fix_manifest_layers(blobs, history)

    def test_length_mismatch_fails(self):
        blobs, history = chain("top", "base")
        with pytest.raises(ChainIntegrityError):
            fix_manifest_layers(blobs, history[:1])

    def test_empty_manifest_fails(self):
        with pytest.raises(ChainIntegrityError, match="no layers"):
            fix_manifest_layers([], [])

    def test_id_with_trailing_newline_fails(self):
        blobs = [blob_sum("base")]
        history = [v1_compat(layer_id("base") + "\n")]
        with pytest.raises(InvalidLayerIDError):
            fix_manifest_layers(blobs, history)
