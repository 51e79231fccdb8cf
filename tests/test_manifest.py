import json

import pytest

from cifetch.modules.errors import DecodeError
from cifetch.modules.finders.manifest import ManifestSchema1, decode_manifest
from tests.fakes import chain, schema1_body


class TestDecodeManifest:
    def test_decodes_schema1_document(self):
        blobs, history = chain("top", "base")
        body = schema1_body(blobs, history, name="library/busybox", tag="1.36")

        manifest = decode_manifest(body)

        assert manifest.fs_layers == blobs
        assert manifest.history == history
        assert manifest.name == "library/busybox"
        assert manifest.tag == "1.36"
        assert manifest.architecture == "amd64"
        assert manifest.raw == body
        assert manifest.get_layers() == blobs

    def test_schema_version_defaults_to_one(self):
        doc = {"fsLayers": [], "history": []}
        assert decode_manifest(json.dumps(doc).encode()).schema_version == 1

    @pytest.mark.parametrize("body", [
        b"",
        b"<html>nope</html>",
        b"[]",
        json.dumps({"schemaVersion": 2, "layers": []}).encode(),
        json.dumps({"schemaVersion": True, "fsLayers": [], "history": []}).encode(),
        json.dumps({"schemaVersion": 1.0, "fsLayers": [], "history": []}).encode(),
        json.dumps({"schemaVersion": "1", "fsLayers": [], "history": []}).encode(),
        json.dumps({"fsLayers": {}, "history": []}).encode(),
        json.dumps({"history": []}).encode(),
        json.dumps({"fsLayers": [{"blobSum": 1}], "history": [{"v1Compatibility": "{}"}]}).encode(),
        json.dumps({"fsLayers": [{"blobSum": "sha256:x"}], "history": ["{}"]}).encode(),
        json.dumps({"fsLayers": [{"blobSum": "sha256:x"}], "history": []}).encode(),
    ])
    def test_rejects_malformed_documents(self, body):
        with pytest.raises(DecodeError):
            decode_manifest(body)


def test_with_layers_and_to_dict():
    blobs, history = chain("top", "base")
    manifest = ManifestSchema1(fs_layers=blobs, history=history, name="library/busybox", tag="latest")

    trimmed = manifest.with_layers(blobs[1:], history[1:])

    assert manifest.fs_layers == blobs
    assert trimmed.fs_layers == blobs[1:]
    assert trimmed.to_dict() == {
        "schemaVersion": 1,
        "name": "library/busybox",
        "tag": "latest",
        "architecture": None,
        "fsLayers": [{"blobSum": blobs[1]}],
        "history": [{"v1Compatibility": history[1]}],
    }
