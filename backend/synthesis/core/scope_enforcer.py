"""
Scope Enforcer - Bounds what each group may write

Responsibilities:
- Classify a path into a target area (source, test, resource, root file)
- Derive a group's allowed path prefixes from its output contracts
- Partition generated artifacts into accepted and rejected

Both operations are total and side-effect-free: the Coordinator does the
logging and writing.
"""
import re
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from config import (
    SOURCE_ROOT,
    TEST_ROOT,
    RESOURCE_ROOT,
    TEST_RESOURCE_ROOT,
    ROOT_FILES,
    TEST_SUFFIXES,
    RESOURCE_EXTENSIONS,
)
from synthesis.schemas import (
    AllowedPathSet,
    GeneratedArtifact,
    OutputContract,
    RejectedArtifact,
    ScopeDecision,
    ScopedPath,
    TargetArea,
    UnitGroup,
)

WILDCARD_SEGMENT = re.compile(r"/\.\.\.(?=/|$)")
NEAREST_LIMIT = 3


class ProjectLayout(BaseModel):
    """Directory conventions of the target project"""
    model_config = ConfigDict(frozen=True)

    source_root: str = Field(SOURCE_ROOT)
    test_root: str = Field(TEST_ROOT)
    resource_root: str = Field(RESOURCE_ROOT)
    test_resource_root: str = Field(TEST_RESOURCE_ROOT)
    root_files: List[str] = Field(default_factory=lambda: list(ROOT_FILES))
    test_suffixes: List[str] = Field(default_factory=lambda: list(TEST_SUFFIXES))
    resource_extensions: List[str] = Field(default_factory=lambda: list(RESOURCE_EXTENSIONS))

    @property
    def roots(self) -> List[str]:
        # Longest first so "src/test/resources" wins over a shorter overlap
        return sorted(
            {self.source_root, self.test_root, self.resource_root, self.test_resource_root},
            key=len,
            reverse=True,
        )


def normalize_path(path: str) -> str:
    """Forward slashes, no leading './' or '/', no empty segments"""
    path = (path or "").strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return "/".join(segment for segment in path.split("/") if segment and segment != ".")


def escapes_root(path: str) -> bool:
    return ".." in normalize_path(path).split("/")


class ScopeEnforcer:
    """
    Scope Enforcer - Path classification and filtering

    Classification mirrors how files are placed on disk: layout roots the
    oracle may have included are stripped, then the remainder is bucketed by
    name heuristics and re-rooted.
    """

    def __init__(self, layout: Optional[ProjectLayout] = None):
        self.layout = layout or ProjectLayout()

    def classify(self, path: str, test_hint: bool = False) -> ScopedPath:
        """
        Classify a path into its target area

        Args:
            path: Path as declared by a contract or returned by the oracle
            test_hint: Treat as test code regardless of name (test-named contract)

        Returns:
            ScopedPath with the scope path used for matching and the
            project-relative path the file is written to
        """
        layout = self.layout
        normalized = normalize_path(path)

        stripped_root = None
        relative = normalized
        for root in layout.roots:
            if normalized.startswith(root + "/"):
                stripped_root = root
                relative = normalized[len(root) + 1:]
                break

        basename = relative.rsplit("/", 1)[-1]
        directories = relative.split("/")[:-1]

        if basename in layout.root_files:
            return ScopedPath(area=TargetArea.ROOT, scope_path=basename, target_path=basename)

        is_test = (
            test_hint
            or stripped_root in (layout.test_root, layout.test_resource_root)
            or any(basename.endswith(suffix) for suffix in layout.test_suffixes)
            or "test" in directories
        )

        if any(basename.endswith(ext) for ext in layout.resource_extensions):
            resource_root = layout.test_resource_root if is_test else layout.resource_root
            return ScopedPath(
                area=TargetArea.RESOURCE,
                scope_path=resource_root,
                target_path=f"{resource_root}/{basename}",
            )

        if is_test:
            target = f"{layout.test_root}/{relative}"
            return ScopedPath(area=TargetArea.TEST, scope_path=target, target_path=target)

        target = f"{layout.source_root}/{relative}"
        return ScopedPath(area=TargetArea.SOURCE, scope_path=target, target_path=target)

    def contract_prefix(self, contract: OutputContract, bindings: Dict[str, str]) -> Optional[str]:
        """
        Resolve one output contract to an allowed prefix

        The filename is dropped; `/.../` wildcards collapse; an unresolved
        placeholder truncates the prefix at its segment.
        """
        resolved = WILDCARD_SEGMENT.sub("", contract.resolve(bindings))
        if not normalize_path(resolved):
            return None

        placement = self.classify(resolved, test_hint="test/" in contract.template.lower())
        if placement.area in (TargetArea.ROOT, TargetArea.RESOURCE):
            return placement.scope_path

        segments = placement.target_path.split("/")[:-1]
        for index, segment in enumerate(segments):
            if "{{" in segment:
                segments = segments[:index]
                break
        return "/".join(segments) or None

    def derive_allowed_paths(
        self,
        group: UnitGroup,
        bindings: Dict[str, str],
        existing_targets: Optional[Iterable[str]] = None,
    ) -> AllowedPathSet:
        """
        Compute the AllowedPathSet for a group

        Args:
            group: The group about to be generated
            bindings: Run-time variable bindings
            existing_targets: Files a transform group rewrites (each added by
                its own scope path)

        Returns:
            Sorted, unique prefixes (the union over all the group's contracts)
        """
        prefixes = set()
        for contract in group.contracts:
            prefix = self.contract_prefix(contract, bindings)
            if prefix:
                prefixes.add(prefix)

        for target in existing_targets or []:
            if normalize_path(target) and not escapes_root(target):
                prefixes.add(self.classify(target).scope_path)

        return AllowedPathSet(group_id=group.group_id, prefixes=tuple(sorted(prefixes)))

    def filter_artifacts(self, candidates: List[GeneratedArtifact], allowed: AllowedPathSet) -> ScopeDecision:
        """
        Partition candidates against the allowed prefixes

        Every candidate lands in exactly one of accepted/rejected. An empty
        allowed set rejects everything.
        """
        decision = ScopeDecision(group_id=allowed.group_id)

        for artifact in candidates:
            if not normalize_path(artifact.path):
                decision.rejected.append(RejectedArtifact(
                    artifact=artifact, scope_path="", reason="empty output path"
                ))
                continue
            if escapes_root(artifact.path):
                decision.rejected.append(RejectedArtifact(
                    artifact=artifact,
                    scope_path=normalize_path(artifact.path),
                    reason=f"{artifact.path} escapes the project root",
                ))
                continue

            placement = self.classify(artifact.path)
            if not artifact.content.strip():
                decision.rejected.append(RejectedArtifact(
                    artifact=artifact,
                    scope_path=placement.scope_path,
                    reason=f"{artifact.path} has empty content",
                ))
                continue

            if not len(allowed):
                decision.rejected.append(RejectedArtifact(
                    artifact=artifact,
                    scope_path=placement.scope_path,
                    reason=f"{artifact.path} rejected: group {allowed.group_id} has no allowed paths",
                ))
                continue

            if allowed.permits(placement.scope_path):
                decision.accepted.append(artifact)
                decision.placements[artifact.path] = placement
            else:
                decision.rejected.append(RejectedArtifact(
                    artifact=artifact,
                    scope_path=placement.scope_path,
                    reason=f"{artifact.path} is out of scope (resolves to {placement.scope_path})",
                    nearest_prefixes=tuple(nearest_prefixes(placement.scope_path, allowed.prefixes)),
                ))

        return decision


def nearest_prefixes(scope_path: str, prefixes: Iterable[str], limit: int = NEAREST_LIMIT) -> List[str]:
    """Allowed prefixes sharing the most leading segments with scope_path"""
    target = scope_path.split("/")

    def shared(prefix: str) -> int:
        count = 0
        for a, b in zip(target, prefix.split("/")):
            if a != b:
                break
            count += 1
        return count

    ranked = sorted(prefixes, key=lambda p: (-shared(p), p))
    return ranked[:limit]


__all__ = ["ScopeEnforcer", "ProjectLayout", "normalize_path", "escapes_root", "nearest_prefixes"]
