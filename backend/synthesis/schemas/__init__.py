"""
Schemas for the Pipeline Coordination Engine

These schemas define the contracts between pipeline stages:
- Plan: phases, unit groups, units and their output contracts
- Artifact: generated files and scope decisions
- Catalog: symbols produced by earlier groups
- Repair: build errors and repair sessions
- Oracle: request bundles and response documents
- Summary: per-group results and the pipeline summary
"""
from .plan_schema import (
    ActionKind,
    OutputContract,
    TargetPattern,
    Unit,
    UnitGroup,
    Phase,
    ExecutionPlan,
    PlanLoadError,
    group_sort_key,
    load_contracts_from_templates,
    bindings_from_context,
)
from .artifact_schema import (
    TargetArea,
    GeneratedArtifact,
    ScopedPath,
    AllowedPathSet,
    RejectedArtifact,
    ScopeDecision,
)
from .catalog_schema import SymbolKind, CatalogEntry, PhaseCatalog, CatalogConflict, CatalogUpdate
from .repair_schema import (
    RepairState,
    TERMINAL_STATES,
    BuildErrorRecord,
    BuildResult,
    RepairIteration,
    RepairSession,
)
from .oracle_schema import GenerationRequest, CorrectionRequest, FileEntry, files_from_document
from .summary_schema import GroupStatus, RepairOutcome, GroupResult, PipelineSummary

__all__ = [
    # Plan
    "ActionKind",
    "OutputContract",
    "TargetPattern",
    "Unit",
    "UnitGroup",
    "Phase",
    "ExecutionPlan",
    "PlanLoadError",
    "group_sort_key",
    "load_contracts_from_templates",
    "bindings_from_context",
    # Artifacts
    "TargetArea",
    "GeneratedArtifact",
    "ScopedPath",
    "AllowedPathSet",
    "RejectedArtifact",
    "ScopeDecision",
    # Catalog
    "SymbolKind",
    "CatalogEntry",
    "PhaseCatalog",
    "CatalogConflict",
    "CatalogUpdate",
    # Repair
    "RepairState",
    "TERMINAL_STATES",
    "BuildErrorRecord",
    "BuildResult",
    "RepairIteration",
    "RepairSession",
    # Oracle
    "GenerationRequest",
    "CorrectionRequest",
    "FileEntry",
    "files_from_document",
    # Summary
    "GroupStatus",
    "RepairOutcome",
    "GroupResult",
    "PipelineSummary",
]
