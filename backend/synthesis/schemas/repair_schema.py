"""
Repair Schema - Build errors and repair sessions

The Repair Loop is an explicit state machine:

    VERIFYING ──pass──▶ PASSED
        │
       fail
        ▼
    AWAITING_CORRECTION ──iteration == max──▶ EXHAUSTED
        │
     correct (iteration += 1)
        ▼
    VERIFYING
"""
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class RepairState(str, Enum):
    """Repair session state"""
    VERIFYING = "verifying"
    AWAITING_CORRECTION = "awaiting_correction"
    PASSED = "passed"
    EXHAUSTED = "exhausted"


TERMINAL_STATES = (RepairState.PASSED, RepairState.EXHAUSTED)


class BuildErrorRecord(BaseModel):
    """One structured error extracted from a build log"""
    model_config = ConfigDict(frozen=True)

    file: Optional[str] = Field(None, description="File path as printed by the build tool")
    line: Optional[int] = Field(None)
    column: Optional[int] = Field(None)
    message: str = Field(...)
    category: str = Field("error", description="missing_symbol, missing_package, type_mismatch, syntax_error, test_failure, error")
    symbols: Tuple[str, ...] = Field(default_factory=tuple, description="Symbol names the error mentions")

    def __str__(self) -> str:
        location = ""
        if self.file:
            location = self.file.split("/")[-1]
            if self.line is not None:
                location += f":{self.line}"
            location += " - "
        return f"{location}{self.message}"


class BuildResult(BaseModel):
    """Outcome of one build/verify invocation"""
    passed: bool
    output: str = Field("", description="Combined stdout/stderr")
    exit_code: Optional[int] = Field(None)
    command: List[str] = Field(default_factory=list)


class RepairIteration(BaseModel):
    """Everything that happened at one iteration of a session"""
    iteration: int = Field(..., ge=0)
    passed: bool = Field(False)
    log_file: Optional[str] = Field(None, description="Trace file holding the build output")
    errors: List[BuildErrorRecord] = Field(default_factory=list)
    files_sent: List[str] = Field(default_factory=list)
    files_applied: List[str] = Field(default_factory=list)
    files_created: List[str] = Field(default_factory=list)
    correction_error: Optional[str] = Field(None, description="Why the correction produced no changes")


class RepairSession(BaseModel):
    """One group's bounded repair attempt; never resumed across runs"""
    group_id: str
    max_iterations: int = Field(3, ge=0)
    iteration: int = Field(0, ge=0)
    state: RepairState = Field(RepairState.VERIFYING)
    verify_count: int = Field(0, description="Number of VERIFYING transitions taken")
    history: List[RepairIteration] = Field(default_factory=list)

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def current(self) -> Optional[RepairIteration]:
        return self.history[-1] if self.history else None

    @property
    def last_errors(self) -> List[BuildErrorRecord]:
        for record in reversed(self.history):
            if record.errors:
                return record.errors
        return []


__all__ = [
    "RepairState",
    "TERMINAL_STATES",
    "BuildErrorRecord",
    "BuildResult",
    "RepairIteration",
    "RepairSession",
]
