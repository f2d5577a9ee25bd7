"""
Symbol Catalog - Cross-phase symbol knowledge

Responsibilities:
- Extract the primary public declaration of each accepted artifact
- Annotate construction contracts from namespace conventions
- Keep an append-only record of per-group catalogs
- Assemble the catalog visible to a later group

The catalog is an explicit store injected by reference. It is never rebuilt
by re-scanning the output tree.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional

from config import CATALOG_EXTENSIONS, DOMAIN_MODEL_SEGMENT, REPOSITORY_SEGMENT
from synthesis.core.scope_enforcer import ScopeEnforcer
from synthesis.schemas import (
    ActionKind,
    CatalogConflict,
    CatalogEntry,
    CatalogUpdate,
    GeneratedArtifact,
    PhaseCatalog,
    SymbolKind,
    TargetArea,
    UnitGroup,
    group_sort_key,
)

logger = logging.getLogger(__name__)

# Comments and literals (text blocks first), matched in one pass so "//"
# inside a string survives
NOISE_PATTERN = re.compile(
    r'"""(?:\\.|[^\\])*?"""|/\*.*?\*/|//[^\n]*|"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'',
    re.DOTALL,
)
PACKAGE_PATTERN = re.compile(r"^\s*package\s+([\w.]+)\s*;?", re.MULTILINE)
DECLARATION_PATTERN = re.compile(
    r"^\s*(?:@[\w.]+(?:\([^)]*\))?\s+)*public\s+"
    r"(?:(?:abstract|final|sealed|non-sealed|static|strictfp)\s+)*"
    r"(class|interface|enum|record|@interface)\s+(\w+)"
)

KIND_MAP = {
    "class": SymbolKind.TYPE,
    "interface": SymbolKind.INTERFACE,
    "@interface": SymbolKind.INTERFACE,
    "enum": SymbolKind.ENUMERATION,
    "record": SymbolKind.RECORD,
}

RECONSTITUTE_CONTRACT = (
    "Private constructor: obtain instances via the static reconstitute(...) factory; "
    "no new, no builder, no setters"
)
VALUE_ID_CONTRACT = (
    "Identifier parameters are value-typed ids (e.g. CustomerId), not String"
)


class CatalogError(Exception):
    """Raised when a group's catalog is recorded twice"""
    pass


def _strip_noise(content: str) -> str:
    def _sub(match: re.Match) -> str:
        text = match.group(0)
        if text.startswith("/"):
            # Keep line structure so declarations stay at line starts
            return "\n" * text.count("\n") or " "
        return '""' + "\n" * text.count("\n")

    return NOISE_PATTERN.sub(_sub, content)


def find_primary_declaration(content: str) -> Optional[tuple]:
    """
    First public declaration at brace depth zero

    Returns:
        (package, kind keyword, simple name) or None
    """
    code = _strip_noise(content)
    package_match = PACKAGE_PATTERN.search(code)
    package = package_match.group(1) if package_match else ""

    depth = 0
    for line in code.splitlines():
        if depth == 0:
            match = DECLARATION_PATTERN.match(line)
            if match:
                return package, match.group(1), match.group(2)
        depth += line.count("{") - line.count("}")
        depth = max(depth, 0)
    return None


def construction_contract(fqn: str, kind: SymbolKind) -> Optional[str]:
    """Namespace conventions → how later groups must use the symbol"""
    dotted = f".{fqn}."
    if f".{DOMAIN_MODEL_SEGMENT}." in dotted and kind == SymbolKind.TYPE:
        return RECONSTITUTE_CONTRACT
    if f".{REPOSITORY_SEGMENT}." in dotted and kind == SymbolKind.INTERFACE:
        return VALUE_ID_CONTRACT
    return None


class SymbolCatalog:
    """
    Symbol Catalog - Append-only store keyed by group id

    Entries are globally unique by FQN: the first declaration wins.
    """

    def __init__(self, enforcer: Optional[ScopeEnforcer] = None):
        self.enforcer = enforcer or ScopeEnforcer()
        self._catalogs: Dict[str, PhaseCatalog] = {}
        self._index: Dict[str, CatalogEntry] = {}

    def extract(self, group: UnitGroup, accepted: Iterable[GeneratedArtifact]) -> List[CatalogEntry]:
        """
        Scan a group's accepted artifacts for their primary declarations

        Artifacts owned by another group, test-area files, non-source
        extensions and files without a package are skipped. Pure: same
        inputs give the same entries.

        Args:
            group: Group that produced the artifacts
            accepted: Artifacts that passed scope enforcement

        Returns:
            One entry per artifact at most, in artifact order
        """
        entries = []
        for artifact in accepted:
            if artifact.group_id != group.group_id:
                continue
            if not any(artifact.path.endswith(ext) for ext in CATALOG_EXTENSIONS):
                continue
            placement = self.enforcer.classify(artifact.path)
            if placement.area == TargetArea.TEST:
                continue

            declaration = find_primary_declaration(artifact.content)
            if declaration is None:
                continue
            package, keyword, simple_name = declaration
            if not package:
                continue

            kind = KIND_MAP[keyword]
            fqn = f"{package}.{simple_name}"
            entries.append(CatalogEntry(
                fqn=fqn,
                simple_name=simple_name,
                package=package,
                kind=kind,
                construction_contract=construction_contract(fqn, kind),
                source_group=group.group_id,
                source_unit=artifact.unit_id,
                source_path=placement.target_path,
            ))
        return entries

    def record(self, group: UnitGroup, entries: List[CatalogEntry]) -> CatalogUpdate:
        """
        Append a group's catalog

        Redeclaring a catalogued FQN produces a conflict and the existing
        entry is kept, unless the declaring unit is a transform (a unit's own
        action overrides its group's).

        Raises:
            CatalogError: If the group was already recorded
        """
        if group.group_id in self._catalogs:
            raise CatalogError(f"Catalog for group {group.group_id} already recorded")

        unit_actions = {u.unit_id: u.action for u in group.units}
        kept: List[CatalogEntry] = []
        conflicts: List[CatalogConflict] = []
        seen = set()
        for entry in entries:
            if entry.fqn in seen:
                continue
            seen.add(entry.fqn)

            existing = self._index.get(entry.fqn)
            if existing is not None:
                if unit_actions.get(entry.source_unit, group.action) != ActionKind.TRANSFORM:
                    conflict = CatalogConflict(
                        fqn=entry.fqn,
                        existing_group=existing.source_group,
                        existing_path=existing.source_path,
                        redeclaring_group=group.group_id,
                        redeclaring_path=entry.source_path,
                    )
                    logger.warning(f"[SymbolCatalog] ⚠ Catalog conflict: {conflict}")
                    conflicts.append(conflict)
                continue
            kept.append(entry)

        catalog = PhaseCatalog(group_id=group.group_id, phase=group.phase, entries=tuple(kept))
        self._catalogs[group.group_id] = catalog
        for entry in kept:
            self._index[entry.fqn] = entry

        logger.info(f"[SymbolCatalog] ✓ Group {group.group_id}: {len(kept)} symbols catalogued")
        return CatalogUpdate(catalog=catalog, conflicts=conflicts)

    def assemble_context_for(self, group_id: str) -> List[PhaseCatalog]:
        """Every recorded catalog whose group sorts strictly before group_id, ascending"""
        target = group_sort_key(group_id)
        ordered = sorted(self._catalogs.values(), key=lambda c: group_sort_key(c.group_id))
        return [c for c in ordered if group_sort_key(c.group_id) < target]

    def lookup(self, name: str) -> List[CatalogEntry]:
        """Entries matching a fully-qualified or simple name"""
        if name in self._index:
            return [self._index[name]]
        return [e for e in self._index.values() if e.simple_name == name]

    def get(self, group_id: str) -> Optional[PhaseCatalog]:
        return self._catalogs.get(group_id)

    @property
    def entries(self) -> List[CatalogEntry]:
        return list(self._index.values())

    def __len__(self) -> int:
        return len(self._index)


__all__ = [
    "SymbolCatalog",
    "CatalogError",
    "find_primary_declaration",
    "construction_contract",
]
