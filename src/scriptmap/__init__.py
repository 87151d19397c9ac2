from __future__ import annotations

from .api import FlattenResult, flatten_file, flatten_source
from .diagnostics import DiagnosticAggregate, ScriptDiagnostic
from .errors import (
    DuplicateInclude,
    IncludeError,
    InclusionDisabled,
    MalformedDirective,
    ScriptMapError,
    TranslationError,
    UnresolvedInclude,
)
from .include import IncludeProcessor, flatten, parse_directive
from .normalizer import DiagnosticNormalizer
from .origins import OriginTree
from .spans import CodeLocation, CodeSpan

__all__ = [
    "CodeLocation",
    "CodeSpan",
    "DiagnosticAggregate",
    "DiagnosticNormalizer",
    "DuplicateInclude",
    "FlattenResult",
    "IncludeError",
    "IncludeProcessor",
    "InclusionDisabled",
    "MalformedDirective",
    "OriginTree",
    "ScriptDiagnostic",
    "ScriptMapError",
    "TranslationError",
    "UnresolvedInclude",
    "flatten",
    "flatten_file",
    "flatten_source",
    "parse_directive",
]
