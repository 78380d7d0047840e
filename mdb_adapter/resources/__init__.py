"""
Resource registration: descriptors, schema building and the model cache.
"""

from .descriptor import (RESOURCE_DESCRIPTOR_SCHEMA, FieldSpec,
                         ResourceDescriptor, validate_resource_descriptor)
from .registry import (ResourceModel, ResourceRegistry,
                       build_document_schema)

__all__ = [
    "FieldSpec",
    "ResourceDescriptor",
    "RESOURCE_DESCRIPTOR_SCHEMA",
    "validate_resource_descriptor",
    "ResourceModel",
    "ResourceRegistry",
    "build_document_schema",
]
