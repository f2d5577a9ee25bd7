"""
Tools for the Pipeline Coordination Engine

Deterministic filesystem helpers used by the generator and repair loop:
same inputs → same outputs.
"""
from .workspace_tool import (
    WorkspacePathError,
    normalize_content,
    write_project_file,
    read_project_files,
    find_project_files,
)

__all__ = [
    "WorkspacePathError",
    "normalize_content",
    "write_project_file",
    "read_project_files",
    "find_project_files",
]
