"""
C++ Bindings Generator - Generate layered C++ bindings from API metadata
"""

from .generator import CppBindingsGenerator
from .signatures import SignatureClassifier, SignatureCategory
from .dependency_sorter import DependencySorter
from .code_generators import CodeGenerator, OutputBuilder
from .metadata import MetadataDatabase, TypeEntry, TypeKind
from .metadata_loader import MetadataLoader, load_metadata
from .errors import (
    BindingGenerationError,
    CyclicDependencyError,
    MalformedAttributeError,
    UnsupportedLayoutError,
    InvariantViolation,
)
from .constants import (
    CPP_TYPE_MAP,
    ROOT_NAMESPACE,
    ROOT_INTERFACE,
    DEFAULT_HEADER,
)

__version__ = "0.1.0"

__all__ = [
    "CppBindingsGenerator",
    "SignatureClassifier",
    "SignatureCategory",
    "DependencySorter",
    "CodeGenerator",
    "OutputBuilder",
    "MetadataDatabase",
    "TypeEntry",
    "TypeKind",
    "MetadataLoader",
    "load_metadata",
    "BindingGenerationError",
    "CyclicDependencyError",
    "MalformedAttributeError",
    "UnsupportedLayoutError",
    "InvariantViolation",
    "CPP_TYPE_MAP",
    "ROOT_NAMESPACE",
    "ROOT_INTERFACE",
    "DEFAULT_HEADER",
]
