"""
Metadata catalog infrastructure.
"""

from .json_catalog import JsonMetadataCatalog

__all__ = [
    "JsonMetadataCatalog",
]
