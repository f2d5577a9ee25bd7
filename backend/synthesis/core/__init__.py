"""
Core Pipeline Components

These components form the synthesis pipeline, leaves first:
1. Dependency Resolver - Deterministic ordering of groups and units
2. Scope Enforcer - Allowed path prefixes and artifact filtering
3. Symbol Catalog - Cross-phase symbol knowledge
4. Extraction - Tolerant parsing of oracle responses
5. Error Interpreter - Build logs → structured errors
6. Builder - Build/verify command
7. Repair Loop - Bounded correction cycle
8. Generator - One oracle call per group
9. Trace Store - Write-once audit artifacts

The LLM oracle adapter lives in synthesis.core.oracle and is imported on
demand so the pipeline runs without chat-model credentials when an oracle is
injected.
"""
from .resolver import DependencyResolver, Resolution
from .scope_enforcer import ScopeEnforcer, ProjectLayout
from .symbol_catalog import SymbolCatalog, CatalogError
from .extraction import ExtractionResult, extract_structured
from .error_interpreter import ErrorInterpreter
from .builder import Builder, BuildCommandError
from .repair_loop import RepairLoop
from .generator import Generator, GenerationError, collect_transform_targets
from .trace_store import TraceStore, TraceWriteError

__all__ = [
    "DependencyResolver",
    "Resolution",
    "ScopeEnforcer",
    "ProjectLayout",
    "SymbolCatalog",
    "CatalogError",
    "ExtractionResult",
    "extract_structured",
    "ErrorInterpreter",
    "Builder",
    "BuildCommandError",
    "RepairLoop",
    "Generator",
    "GenerationError",
    "collect_transform_targets",
    "TraceStore",
    "TraceWriteError",
]
