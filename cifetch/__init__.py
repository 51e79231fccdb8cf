"""
cifetch - fetch container image manifests and layers from a registry.
"""

__version__ = "0.1.0"
