"""
Trace Store - Write-once audit artifacts

Every trace file lives under <project>/.trace/<job_id>/ and is written
exactly once. Rewriting a trace is a bug, so it raises instead of clobbering.
"""
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel

from config import TRACE_DIR_NAME

logger = logging.getLogger(__name__)


class TraceWriteError(Exception):
    """Raised when a trace file already exists or cannot be written"""
    pass


class TraceStore:
    """Write-once trace directory for one job"""

    def __init__(self, project_dir: Path, job_id: str, trace_dir: Optional[Path] = None):
        self.job_id = job_id
        self.root = Path(trace_dir) if trace_dir else Path(project_dir) / TRACE_DIR_NAME / job_id
        self.root.mkdir(parents=True, exist_ok=True)

    def path(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path(name).exists()

    def write_text(self, name: str, text: str) -> Path:
        """
        Write a text trace

        Raises:
            TraceWriteError: If the file already exists or the write fails
        """
        target = self.path(name)
        try:
            with open(target, "x", encoding="utf-8") as f:
                f.write(text or "")
        except FileExistsError as e:
            raise TraceWriteError(f"Trace file already written: {target}") from e
        except OSError as e:
            raise TraceWriteError(f"Cannot write trace file {target}: {e}") from e
        return target

    def write_json(self, name: str, data: Any) -> Path:
        """Write a JSON trace (pydantic models are dumped in JSON mode)"""
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        return self.write_text(name, json.dumps(data, indent=2, default=str) + "\n")

    def read_json(self, name: str) -> Any:
        return json.loads(self.path(name).read_text(encoding="utf-8"))

    def list(self) -> List[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_file())


__all__ = ["TraceStore", "TraceWriteError"]
