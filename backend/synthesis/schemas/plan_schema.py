"""
Plan Schema - Execution Plan

This defines the execution plan format produced upstream (the plan agent)
and consumed by the Pipeline Coordinator.

  ExecutionPlan
    └── Phase (ascending phase number)
          └── UnitGroup (one oracle call, holistic generation)
                └── Unit (one module / capability)
                      └── OutputContract (output path template)

Everything here is read-only once loaded.
"""
import json
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
OUTPUT_HEADER_PATTERN = re.compile(r"(?://|<!--|#)\s*Output:\s*(.+?)(?:\s*-->)?\s*$", re.MULTILINE)


class PlanLoadError(Exception):
    """Raised when the execution plan cannot be parsed at all"""
    pass


class ActionKind(str, Enum):
    """What a unit does to the target project"""
    GENERATE = "generate"
    TRANSFORM = "transform"


def group_sort_key(group_id: str) -> Tuple[Tuple[int, Any], ...]:
    """
    Deterministic phase-major ordering key for group identifiers.

    "1.2" < "1.10" < "2.1". Non-numeric segments sort after numeric ones.
    """
    parts = [p for p in re.split(r"[.\-_]", str(group_id)) if p != ""]
    return tuple((0, int(p)) if p.isdigit() else (1, p) for p in parts)


class OutputContract(BaseModel):
    """A declared output path template bound to a unit"""
    model_config = ConfigDict(frozen=True)

    template: str = Field("", description="Template/contract name (e.g., 'domain/Entity.java.tpl')")
    output: str = Field(..., description="Output path template (e.g., '{{basePackagePath}}/domain/{{Entity}}.java')")

    def resolve(self, bindings: Dict[str, str]) -> str:
        """Substitute known placeholders; unknown ones are left in place"""
        def _sub(match: re.Match) -> str:
            key = match.group(1)
            return bindings[key] if key in bindings else match.group(0)

        return PLACEHOLDER_PATTERN.sub(_sub, self.output)


class TargetPattern(BaseModel):
    """Existing files a transform unit rewrites"""
    model_config = ConfigDict(frozen=True)

    pattern: str = Field(..., description="fnmatch pattern over project-relative paths")
    exclude: Tuple[str, ...] = Field(default_factory=tuple, description="fnmatch patterns to skip")


class Unit(BaseModel):
    """Smallest declared piece of generation/transformation work"""
    model_config = ConfigDict(frozen=True)

    unit_id: str = Field(..., description="Unit identifier (e.g., 'mod-code-015-hexagonal')")
    phase: int = Field(..., ge=0)
    action: ActionKind = Field(ActionKind.GENERATE)
    dependencies: Tuple[str, ...] = Field(default_factory=tuple, description="Unit IDs that must come first")
    contracts: Tuple[OutputContract, ...] = Field(default_factory=tuple)
    capability_id: Optional[str] = Field(None)
    targets: Tuple[TargetPattern, ...] = Field(default_factory=tuple, description="Transform targets")


class UnitGroup(BaseModel):
    """Units generated together in one oracle call"""
    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., description="Group identifier (e.g., '1.1')")
    name: str = Field("")
    phase: int = Field(..., ge=0)
    action: ActionKind = Field(ActionKind.GENERATE)
    units: Tuple[Unit, ...] = Field(default_factory=tuple)
    depends_on: Tuple[str, ...] = Field(default_factory=tuple, description="Prior group IDs")

    @property
    def sort_key(self) -> Tuple[Tuple[int, Any], ...]:
        return group_sort_key(self.group_id)

    @property
    def contracts(self) -> List[OutputContract]:
        return [c for unit in self.units for c in unit.contracts]


class Phase(BaseModel):
    """One phase of the plan"""
    model_config = ConfigDict(frozen=True)

    phase: int = Field(..., ge=0)
    name: str = Field("")
    description: str = Field("")
    groups: Tuple[UnitGroup, ...] = Field(default_factory=tuple)


class ExecutionPlan(BaseModel):
    """
    Complete execution plan

    Built once per run, read-only thereafter.
    """
    model_config = ConfigDict(frozen=True)

    service_name: str = Field("service")
    phases: Tuple[Phase, ...] = Field(default_factory=tuple)
    bindings: Dict[str, str] = Field(default_factory=dict, description="Run-time variable bindings")
    style_rules: str = Field("", description="Style/consistency rules handed to the oracle")

    def ordered_phases(self) -> List[Phase]:
        return sorted(self.phases, key=lambda p: p.phase)

    def all_groups(self) -> List[UnitGroup]:
        return [g for phase in self.ordered_phases() for g in phase.groups]

    def get_group(self, group_id: str) -> Optional[UnitGroup]:
        for group in self.all_groups():
            if group.group_id == group_id:
                return group
        return None

    @classmethod
    def load(
        cls,
        plan_path: Path,
        context_path: Optional[Path] = None,
        templates_root: Optional[Path] = None,
    ) -> "ExecutionPlan":
        """
        Load a plan document (and optionally a generation context) from disk

        Raises:
            PlanLoadError: If either file is missing or not a valid plan
        """
        plan_path = Path(plan_path)
        try:
            data = json.loads(plan_path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise PlanLoadError(f"Cannot read execution plan {plan_path}: {e}") from e

        if context_path is not None:
            try:
                context = json.loads(Path(context_path).read_text())
            except (OSError, json.JSONDecodeError) as e:
                raise PlanLoadError(f"Cannot read generation context {context_path}: {e}") from e
            bindings = bindings_from_context(context)
            bindings.update(data.get("bindings") or {})
            data = {**data, "bindings": bindings}

        return cls.from_dict(data, templates_root=templates_root)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], templates_root: Optional[Path] = None) -> "ExecutionPlan":
        """
        Build a plan from the plan-agent document format

        Raises:
            PlanLoadError: If the document does not describe a plan
        """
        if not isinstance(data, dict):
            raise PlanLoadError("Execution plan must be a JSON object")

        try:
            phases = []
            for phase_data in data.get("phases", []):
                phase_num = int(phase_data["phase"])
                groups = [
                    _parse_group(group_data, phase_num, templates_root)
                    for group_data in phase_data.get("subphases", phase_data.get("groups", []))
                ]
                phases.append(Phase(
                    phase=phase_num,
                    name=phase_data.get("name", ""),
                    description=phase_data.get("description", ""),
                    groups=tuple(groups),
                ))

            return cls(
                service_name=data.get("service_name", "service"),
                phases=tuple(phases),
                bindings={str(k): str(v) for k, v in (data.get("bindings") or {}).items()},
                style_rules=data.get("style_rules", ""),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise PlanLoadError(f"Invalid execution plan: {e}") from e


def _parse_group(group_data: Dict[str, Any], phase_num: int, templates_root: Optional[Path]) -> UnitGroup:
    action = ActionKind(group_data.get("action", ActionKind.GENERATE.value))
    units = []
    for module in group_data.get("modules", group_data.get("units", [])):
        unit_id = module.get("module_id") or module["unit_id"]
        contracts = [OutputContract(**c) for c in module.get("contracts", [])]
        if not contracts and templates_root is not None:
            templates_path = module.get("templates_path", f"modules/{unit_id}/templates")
            contracts = load_contracts_from_templates(Path(templates_root) / templates_path)
        targets = [
            TargetPattern(
                pattern=t.get("pattern", t.get("file_pattern", "")),
                exclude=tuple(t.get("exclude", [])),
            )
            for t in module.get("targets", [])
        ]
        units.append(Unit(
            unit_id=unit_id,
            phase=phase_num,
            action=ActionKind(module.get("action", action.value)),
            dependencies=tuple(module.get("depends_on", module.get("dependencies", []))),
            contracts=tuple(contracts),
            capability_id=module.get("capability_id"),
            targets=tuple(t for t in targets if t.pattern),
        ))

    return UnitGroup(
        group_id=str(group_data["id"]),
        name=group_data.get("name", ""),
        phase=phase_num,
        action=action,
        units=tuple(units),
        depends_on=tuple(str(d) for d in group_data.get("depends_on_subphases", group_data.get("depends_on", []))),
    )


def load_contracts_from_templates(templates_dir: Path) -> List[OutputContract]:
    """
    Read 'Output:' headers from every template under templates_dir

    Skips macOS resource forks and the deprecated pom-*.xml.tpl fragments.
    """
    templates_dir = Path(templates_dir)
    if not templates_dir.is_dir():
        return []

    contracts = []
    for tpl_file in sorted(templates_dir.rglob("*.tpl")):
        name = tpl_file.name
        if name.startswith("._") or (name.startswith("pom-") and name.endswith(".xml.tpl")):
            continue
        match = OUTPUT_HEADER_PATTERN.search(tpl_file.read_text())
        if match:
            contracts.append(OutputContract(
                template=tpl_file.relative_to(templates_dir).as_posix(),
                output=match.group(1).strip(),
            ))
    return contracts


def bindings_from_context(context: Dict[str, Any]) -> Dict[str, str]:
    """Derive the standard output-path bindings from a generation context document"""
    service = context.get("service", {}) or {}
    base_pkg = service.get("basePackage", "")
    base_pkg_path = base_pkg.replace(".", "/")

    entities = context.get("entities") or []
    if entities:
        entity_name = entities[0].get("name", "Entity")
        entity_lower = entities[0].get("nameLower", entity_name.lower())
    else:
        domain = context.get("domain", {}) or {}
        entity_name = domain.get("entityName", "Entity")
        entity_lower = domain.get("entityNameLower", entity_name.lower())

    service_name = service.get("serviceName") or service.get("name") or "service"
    service_pascal = service.get("serviceNamePascal") or "".join(
        word.capitalize() for word in service_name.replace("-", " ").replace("_", " ").split()
    )

    return {
        "basePackage": base_pkg_path,
        "basePackagePath": base_pkg_path,
        "Entity": entity_name,
        "entity": entity_lower,
        "entityName": entity_name,
        "entityNameLower": entity_lower,
        "entityPlural": entity_lower + "s",
        "ServiceName": service_pascal,
    }


__all__ = [
    "ActionKind",
    "OutputContract",
    "TargetPattern",
    "Unit",
    "UnitGroup",
    "Phase",
    "ExecutionPlan",
    "PlanLoadError",
    "group_sort_key",
    "load_contracts_from_templates",
    "bindings_from_context",
]
