"""
Workspace Tool - Reads and writes files of the target project

All paths are project-relative. Paths escaping the project root are refused.
"""
import fnmatch
import os
from pathlib import Path
from typing import Dict, Iterable, List


class WorkspacePathError(ValueError):
    """Raised when a path escapes the project root"""
    pass


def _resolve_inside(project_dir: Path, rel_path: str) -> Path:
    root = Path(project_dir).resolve()
    target = (root / rel_path).resolve()
    if target != root and root not in target.parents:
        raise WorkspacePathError(f"Path escapes project root: {rel_path}")
    return target


def normalize_content(content: str) -> str:
    """Trailing whitespace collapsed to exactly one newline"""
    return content.rstrip() + "\n"


def write_project_file(project_dir: Path, rel_path: str, content: str) -> Dict[str, object]:
    """
    Write one file into the project

    Args:
        project_dir: Target project root
        rel_path: Project-relative path
        content: Full file content (normalized before writing)

    Returns:
        Dictionary with path and whether the file was created
    """
    target = _resolve_inside(project_dir, rel_path)
    created = not target.exists()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(normalize_content(content), encoding="utf-8")
    return {
        "path": Path(rel_path).as_posix(),
        "created": created,
    }


def read_project_files(project_dir: Path, rel_paths: Iterable[str]) -> Dict[str, str]:
    """Current content of each existing file, keyed by path (missing files skipped)"""
    contents = {}
    for rel_path in rel_paths:
        target = _resolve_inside(project_dir, rel_path)
        if target.is_file():
            contents[rel_path] = target.read_text(encoding="utf-8", errors="replace")
    return contents


def find_project_files(project_dir: Path, pattern: str, exclude: Iterable[str] = ()) -> List[str]:
    """
    Project-relative files matching an fnmatch pattern

    Hidden directories (the trace directory among them) are never searched.
    """
    root = Path(project_dir)
    exclude = list(exclude)
    matches = []
    for current, dirs, names in os.walk(root):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(names):
            rel_path = (Path(current) / name).relative_to(root).as_posix()
            if not fnmatch.fnmatch(rel_path, pattern):
                continue
            if any(fnmatch.fnmatch(rel_path, ex) for ex in exclude):
                continue
            matches.append(rel_path)
    return matches


__all__ = [
    "WorkspacePathError",
    "normalize_content",
    "write_project_file",
    "read_project_files",
    "find_project_files",
]
