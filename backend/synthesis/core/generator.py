"""
Generator - One oracle call per group

Responsibilities:
- Build the GenerationRequest (unit order, allowed paths, prior catalog)
- Collect the existing files a transform group rewrites
- Call the oracle and trace request/response
- Turn the response into GeneratedArtifacts

Scope enforcement happens after this, in the Coordinator.
"""
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from config import SHARED_CONFIG_FILES
from synthesis.core.extraction import extract_structured
from synthesis.core.trace_store import TraceStore
from synthesis.schemas import (
    ActionKind,
    AllowedPathSet,
    GeneratedArtifact,
    GenerationRequest,
    PhaseCatalog,
    UnitGroup,
    files_from_document,
)
from synthesis.tools import find_project_files, read_project_files

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when the oracle fails or its response cannot be parsed"""
    pass


def collect_transform_targets(
    group: UnitGroup,
    project_dir: Path,
    shared_files: Optional[List[str]] = None,
) -> Dict[str, str]:
    """
    Existing files a transform group works on

    Every transform unit's target patterns are matched against the project;
    shared configuration files are added when they exist.

    Returns:
        path → current content, sorted by path
    """
    paths = set()
    for unit in group.units:
        if unit.action != ActionKind.TRANSFORM:
            continue
        for target in unit.targets:
            paths.update(find_project_files(project_dir, target.pattern, target.exclude))

    if not paths and group.action != ActionKind.TRANSFORM:
        return {}

    for shared in SHARED_CONFIG_FILES if shared_files is None else shared_files:
        if (Path(project_dir) / shared).is_file():
            paths.add(shared)

    return read_project_files(project_dir, sorted(paths))


class Generator:
    """
    Generator - Holistic generation of one group

    All units of a group go to the oracle together so the generated files
    agree with each other.
    """

    def __init__(self, oracle: Callable, trace: TraceStore):
        self.oracle = oracle
        self.trace = trace

    def generate(
        self,
        group: UnitGroup,
        unit_order: List[str],
        bindings: Dict[str, str],
        allowed: AllowedPathSet,
        prior_catalog: List[PhaseCatalog],
        existing_files: Optional[Dict[str, str]] = None,
        style_rules: str = "",
    ) -> List[GeneratedArtifact]:
        """
        Ask the oracle for the group's files

        Returns:
            Candidate artifacts (not yet scope-checked)

        Raises:
            GenerationError: If the oracle call fails or the response is unparseable
        """
        gid = group.group_id
        request = GenerationRequest(
            group=group,
            unit_order=unit_order,
            bindings=bindings,
            allowed_paths=list(allowed.prefixes),
            prior_catalog=prior_catalog,
            existing_files=existing_files or {},
            style_rules=style_rules,
        )
        self.trace.write_json(f"codegen-request-{gid}.json", request)

        try:
            response = self.oracle(request)
        except Exception as e:
            raise GenerationError(f"Oracle call failed for group {gid}: {e}") from e
        self.trace.write_text(f"codegen-response-{gid}.txt", response or "")

        extraction = extract_structured(response, expected_key="files")
        if not extraction.ok:
            raise GenerationError(f"Group {gid} response {extraction.error}")
        try:
            entries = files_from_document(extraction.document)
        except ValueError as e:
            raise GenerationError(f"Group {gid} response unusable: {e}") from e

        default_unit = group.units[0].unit_id if len(group.units) == 1 else ""
        artifacts = [
            GeneratedArtifact(
                path=entry.path,
                content=entry.content,
                unit_id=entry.unit_id or default_unit,
                group_id=gid,
            )
            for entry in entries
        ]
        logger.info(f"[Generator] Group {gid}: {len(artifacts)} files returned ({extraction.strategy} parse)")
        return artifacts


__all__ = ["Generator", "GenerationError", "collect_transform_targets"]
