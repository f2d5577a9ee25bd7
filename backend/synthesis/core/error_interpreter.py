"""
Error Interpreter - Build logs → structured error records

Responsibilities:
- Parse Maven, javac/Gradle and Surefire failure lines
- Attach continuation lines (symbol: ...) to the error they follow
- Deduplicate while preserving first-seen order
- Resolve the minimal set of project files the errors reference

Key principle: errors drive TARGETED corrections. Only the files the errors
point at (plus catalogued definitions of the symbols they name) are sent.
"""
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from synthesis.schemas import BuildErrorRecord

logger = logging.getLogger(__name__)

MAVEN_ERROR = re.compile(r"^\[ERROR\]\s+(/?\S+?\.\w+):\[(\d+),(\d+)\]\s+(.*)$")
JAVAC_ERROR = re.compile(r"^(\S+\.\w+):(\d+):(?:(\d+):)?(?!\s*warning:)\s*(?:error:\s*)?(.*)$")
SUREFIRE_FAILURE = re.compile(r"^\[ERROR\]\s+((?:[\w$]+\.)*[\w$]*(?:Test|Tests|IT))\.(\w+):(\d+)\s+(.*)$")
SYMBOL_LINE = re.compile(
    r"^(?:\[ERROR\])?\s*symbol\s*:\s*(?:class|interface|enum|record|variable|method|static)?\s*([\w.$]+)"
)
GENERIC_SYMBOL = re.compile(r"^\[ERROR\].*cannot find symbol.*$")
MISSING_PACKAGE = re.compile(r"package\s+([\w.]+)\s+does not exist")
FQN_PATTERN = re.compile(r"\b((?:[a-z_][\w]*\.)+[A-Z][\w]*)\b")
ERROR_LINE = re.compile(r"^\[ERROR\]\s+(\S.*)$")

# Message pattern → category
ERROR_PATTERNS = {
    r"cannot find symbol": "missing_symbol",
    r"package\s+[\w.]+\s+does not exist": "missing_package",
    r"incompatible types|cannot be converted to|cannot be applied to": "type_mismatch",
    r"expected\s*$|illegal start of|unclosed|reached end of file": "syntax_error",
}

# Noise Maven prints after the real errors
IGNORED_ERROR_LINES = (
    "Failed to execute goal",
    "COMPILATION ERROR",
    "-> [Help",
    "To see the full stack trace",
    "Re-run Maven",
    "For more information about the errors",
    "Help 1",
    "Failures:",
    "Errors:",
    "Tests run:",
)

FALLBACK_LIMIT = 20
SKIPPED_DIRS = {"target", "build", "node_modules"}


def categorize(message: str) -> str:
    for pattern, category in ERROR_PATTERNS.items():
        if re.search(pattern, message):
            return category
    return "error"


def _symbols_in(message: str) -> List[str]:
    symbols = FQN_PATTERN.findall(message)
    package = MISSING_PACKAGE.search(message)
    if package:
        symbols.append(package.group(1))
    return symbols


class ErrorInterpreter:
    """
    Error Interpreter - Deterministic log parsing

    Parses errors into records; never decides how to fix them.
    """

    def parse(self, output: str) -> List[BuildErrorRecord]:
        """
        Extract a deduplicated, order-preserving list of error records

        Args:
            output: Full combined build output

        Returns:
            Error records; a failed build with no recognizable errors yields
            its raw [ERROR] lines as generic records
        """
        records: Dict[Tuple, dict] = {}
        current: Optional[dict] = None

        for raw_line in (output or "").splitlines():
            line = raw_line.rstrip()

            symbol = SYMBOL_LINE.match(line)
            if symbol:
                if current is not None and symbol.group(1) not in current["symbols"]:
                    current["symbols"].append(symbol.group(1))
                continue

            parsed = self._parse_line(line)
            if parsed is None:
                continue

            key = (parsed["file"], parsed["line"], parsed["column"], parsed["message"])
            if key in records:
                current = records[key]
                continue
            records[key] = parsed
            current = parsed

        if not records:
            return self._fallback(output or "")

        return [
            BuildErrorRecord(
                file=r["file"],
                line=r["line"],
                column=r["column"],
                message=r["message"],
                category=r["category"],
                symbols=tuple(r["symbols"]),
            )
            for r in records.values()
        ]

    def _parse_line(self, line: str) -> Optional[dict]:
        match = MAVEN_ERROR.match(line)
        if match:
            path, row, col, message = match.groups()
            return self._record(path, int(row), int(col), message.strip())

        match = SUREFIRE_FAILURE.match(line)
        if match:
            test_class, method, row, message = match.groups()
            path = test_class.replace(".", "/") + ".java"
            record = self._record(path, int(row), None, f"{method}: {message.strip()}")
            record["category"] = "test_failure"
            return record

        match = JAVAC_ERROR.match(line)
        if match:
            path, row, col, message = match.groups()
            return self._record(path, int(row), int(col) if col else None, message.strip())

        if GENERIC_SYMBOL.match(line) or (line.startswith("[ERROR]") and MISSING_PACKAGE.search(line)):
            message = line[len("[ERROR]"):].strip()
            return self._record(None, None, None, message)

        return None

    def _record(self, path: Optional[str], row: Optional[int], col: Optional[int], message: str) -> dict:
        return {
            "file": path,
            "line": row,
            "column": col,
            "message": message,
            "category": categorize(message),
            "symbols": _symbols_in(message),
        }

    def _fallback(self, output: str) -> List[BuildErrorRecord]:
        records = []
        seen = set()
        for line in output.splitlines():
            match = ERROR_LINE.match(line.rstrip())
            if not match:
                continue
            message = match.group(1).strip()
            if message in seen or any(noise in message for noise in IGNORED_ERROR_LINES):
                continue
            seen.add(message)
            records.append(BuildErrorRecord(message=message, category=categorize(message)))
            if len(records) >= FALLBACK_LIMIT:
                break
        return records

    def referenced_files(
        self,
        errors: List[BuildErrorRecord],
        project_dir: Path,
        catalog=None,
    ) -> List[str]:
        """
        Project-relative paths of the files the errors reference

        Error paths are mapped into the project (absolute → relative, else by
        basename). Symbols that resolve to catalogued entries add the file
        that defines them.

        Args:
            errors: Parsed error records
            project_dir: Target project root
            catalog: Optional SymbolCatalog for cross-phase symbol lookup

        Returns:
            Deduplicated paths in first-reference order
        """
        project_dir = Path(project_dir).resolve()
        basename_index: Optional[Dict[str, List[str]]] = None
        files: List[str] = []

        def add(rel_path: Optional[str]):
            if rel_path and rel_path not in files:
                files.append(rel_path)

        for error in errors:
            if error.file:
                rel_path = self._map_into_project(error.file, project_dir)
                if rel_path is None:
                    if basename_index is None:
                        basename_index = self._index_basenames(project_dir)
                    candidates = basename_index.get(Path(error.file).name, [])
                    rel_path = candidates[0] if candidates else None
                add(rel_path)

            if catalog is not None:
                for symbol in error.symbols:
                    for entry in self._catalog_matches(catalog, symbol):
                        if (project_dir / entry.source_path).is_file():
                            add(entry.source_path)

        return files

    def _map_into_project(self, path: str, project_dir: Path) -> Optional[str]:
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(project_dir)
            except ValueError:
                return None
        if ".." in candidate.parts:
            return None
        if (project_dir / candidate).is_file():
            return candidate.as_posix()
        return None

    def _index_basenames(self, project_dir: Path) -> Dict[str, List[str]]:
        index: Dict[str, List[str]] = {}
        for root, dirs, names in os.walk(project_dir):
            dirs[:] = sorted(d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRS)
            for name in sorted(names):
                rel_path = (Path(root) / name).relative_to(project_dir).as_posix()
                index.setdefault(name, []).append(rel_path)
        return index

    def _catalog_matches(self, catalog, symbol: str):
        matches = catalog.lookup(symbol)
        if matches:
            return matches
        # A missing package pulls in everything catalogued under it
        return [e for e in catalog.entries if e.package == symbol]


__all__ = ["ErrorInterpreter", "categorize"]
