from .layer_chain import LayerRecord, decode_v1_compatibility, fix_manifest_layers, validate_v1_id
from .manifest import ManifestSchema1, decode_manifest
from .ping import APIError, RegistryEndpoint, ping
