"""Base classes and shared interfaces."""

from .builder import BasePackageBuilder, PackageMetadata
from .connection import BaseConnection
from .models import (
    Diagnostic,
    DiagnosticKind,
    ExtractedScript,
    Extraction,
    ObjectKind,
    ObjectReference,
)
from .scripter import BaseScripter, ScriptingOptions

__all__ = [
    "BaseConnection",
    "BaseScripter",
    "BasePackageBuilder",
    "PackageMetadata",
    "ScriptingOptions",
    "ObjectKind",
    "ObjectReference",
    "ExtractedScript",
    "Extraction",
    "Diagnostic",
    "DiagnosticKind",
]
