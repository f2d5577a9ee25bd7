"""
Summary Schema - Per-group results and the pipeline summary
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class GroupStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class RepairOutcome(str, Enum):
    PASSED = "passed"          # passed after at least one correction
    EXHAUSTED = "exhausted"
    NOT_NEEDED = "not-needed"  # first verification passed
    SKIPPED = "skipped"        # build gate unavailable for this group
    NOT_RUN = "not-run"        # generation failed before the gate


class GroupResult(BaseModel):
    """Outcome of one group"""
    group_id: str
    phase: int
    action: str
    status: GroupStatus = Field(GroupStatus.SUCCESS)
    unit_order: List[str] = Field(default_factory=list)
    accepted: int = Field(0, ge=0)
    rejected: int = Field(0, ge=0)
    rejected_paths: List[str] = Field(default_factory=list)
    catalogued: int = Field(0, ge=0)
    catalog_conflicts: List[str] = Field(default_factory=list)
    repair_outcome: RepairOutcome = Field(RepairOutcome.NOT_RUN)
    repair_iterations: int = Field(0, ge=0)
    degraded_order: bool = Field(False, description="Group or its units were ordered past a dependency cycle")
    error: Optional[str] = Field(None)


class PipelineSummary(BaseModel):
    """Single record written when the run completes"""
    job_id: str
    service_name: str
    status: GroupStatus
    total_groups: int = Field(0, ge=0)
    total_accepted: int = Field(0, ge=0)
    total_rejected: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    plan_warnings: List[str] = Field(default_factory=list)
    groups: List[GroupResult] = Field(default_factory=list)

    def get_group(self, group_id: str) -> Optional[GroupResult]:
        for result in self.groups:
            if result.group_id == group_id:
                return result
        return None


__all__ = [
    "GroupStatus",
    "RepairOutcome",
    "GroupResult",
    "PipelineSummary",
]
