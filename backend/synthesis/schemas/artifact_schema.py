"""
Artifact Schema - Generated files and scope decisions

GeneratedArtifact is what the oracle returns; the Scope Enforcer turns a
list of them into a ScopeDecision against the group's AllowedPathSet.
"""
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class TargetArea(str, Enum):
    """Target-area buckets of the generated project"""
    SOURCE = "source"
    TEST = "test"
    RESOURCE = "resource"
    ROOT = "root"


class GeneratedArtifact(BaseModel):
    """A single file produced by the oracle"""
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Output path as returned by the oracle")
    content: str = Field(..., description="Full file content")
    unit_id: str = Field("", description="Owning unit")
    group_id: str = Field(..., description="Owning group")


class ScopedPath(BaseModel):
    """Where a path lands once classified into a target area"""
    model_config = ConfigDict(frozen=True)

    area: TargetArea
    scope_path: str = Field(..., description="Path compared against allowed prefixes")
    target_path: str = Field(..., description="Project-relative path the file is written to")


class AllowedPathSet(BaseModel):
    """Concrete path prefixes a group may write to"""
    model_config = ConfigDict(frozen=True)

    group_id: str
    prefixes: Tuple[str, ...] = Field(default_factory=tuple, description="Sorted, unique")

    def permits(self, scope_path: str) -> bool:
        return any(scope_path == p or scope_path.startswith(p) for p in self.prefixes)

    def __len__(self) -> int:
        return len(self.prefixes)


class RejectedArtifact(BaseModel):
    """An artifact discarded by the Scope Enforcer"""
    model_config = ConfigDict(frozen=True)

    artifact: GeneratedArtifact
    scope_path: str
    reason: str
    nearest_prefixes: Tuple[str, ...] = Field(default_factory=tuple)


class ScopeDecision(BaseModel):
    """Partition of candidates into accepted and rejected"""
    group_id: str
    accepted: List[GeneratedArtifact] = Field(default_factory=list)
    rejected: List[RejectedArtifact] = Field(default_factory=list)
    placements: Dict[str, ScopedPath] = Field(
        default_factory=dict,
        description="Accepted artifact path → classified placement",
    )

    def placement_for(self, artifact: GeneratedArtifact) -> ScopedPath:
        return self.placements[artifact.path]

    def audit_record(self) -> Dict:
        """Trace-friendly view (no file contents)"""
        return {
            "group_id": self.group_id,
            "accepted": [
                {
                    "path": a.path,
                    "unit_id": a.unit_id,
                    "target_path": self.placements[a.path].target_path,
                    "area": self.placements[a.path].area.value,
                }
                for a in self.accepted
            ],
            "rejected": [
                {
                    "path": r.artifact.path,
                    "unit_id": r.artifact.unit_id,
                    "scope_path": r.scope_path,
                    "reason": r.reason,
                    "nearest_prefixes": list(r.nearest_prefixes),
                }
                for r in self.rejected
            ],
        }


__all__ = [
    "TargetArea",
    "GeneratedArtifact",
    "ScopedPath",
    "AllowedPathSet",
    "RejectedArtifact",
    "ScopeDecision",
]
