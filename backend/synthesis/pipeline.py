"""
Main Pipeline - Coordinates multi-phase artifact synthesis

This module wires together all pipeline components, per group:
Resolver → ScopeEnforcer (derive) → Generator → ScopeEnforcer (filter)
→ SymbolCatalog → RepairLoop

Groups run strictly one after another; group N+1 never starts before
group N's repair loop is terminal.

Usage:
    plan = ExecutionPlan.load(Path("execution-plan.json"))
    pipeline = PipelineCoordinator(job_id="job123", plan=plan, project_dir=Path("out"))
    summary = pipeline.run()
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional

from config import GENERATED_DIR, MAX_REPAIR_ITERATIONS

from synthesis.core.builder import Builder
from synthesis.core.generator import Generator, GenerationError, collect_transform_targets
from synthesis.core.repair_loop import RepairLoop
from synthesis.core.resolver import DependencyResolver
from synthesis.core.scope_enforcer import ProjectLayout, ScopeEnforcer
from synthesis.core.symbol_catalog import SymbolCatalog
from synthesis.core.trace_store import TraceStore
from synthesis.schemas import (
    ExecutionPlan,
    GroupResult,
    GroupStatus,
    PipelineSummary,
    RepairOutcome,
    RepairState,
    UnitGroup,
    group_sort_key,
)
from synthesis.tools import write_project_file

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised when the pipeline cannot run at all"""
    pass


def overall_status(results: List[GroupResult]) -> GroupStatus:
    """success if every group succeeded, failed if every group failed, else partial"""
    if all(r.status == GroupStatus.SUCCESS for r in results):
        return GroupStatus.SUCCESS
    if all(r.status == GroupStatus.FAILED for r in results):
        return GroupStatus.FAILED
    return GroupStatus.PARTIAL


class PipelineCoordinator:
    """
    Complete synthesis pipeline

    This class drives an execution plan phase by phase and rolls every group
    up into one PipelineSummary.
    """

    def __init__(
        self,
        job_id: str,
        plan: ExecutionPlan,
        project_dir: Optional[Path] = None,
        oracle: Optional[Callable] = None,
        builder: Optional[Builder] = None,
        layout: Optional[ProjectLayout] = None,
        max_repair_iterations: int = MAX_REPAIR_ITERATIONS,
        trace_dir: Optional[Path] = None,
    ):
        """
        Initialize pipeline

        Args:
            job_id: Unique job identifier
            plan: Loaded execution plan (read-only)
            project_dir: Target project root (defaults to GENERATED_DIR/job_id)
            oracle: `request -> text` callable (defaults to the configured LLMOracle)
            builder: Build/verify runner (defaults to the configured Builder)
            layout: Target project layout (defaults to config)
            max_repair_iterations: Correction bound per group
            trace_dir: Trace directory (defaults to <project>/.trace/<job_id>)
        """
        self.job_id = job_id
        self.plan = plan
        self.project_dir = Path(project_dir) if project_dir else GENERATED_DIR / job_id
        self.project_dir.mkdir(parents=True, exist_ok=True)

        if oracle is None:
            from synthesis.core.oracle import LLMOracle
            oracle = LLMOracle()
        self.oracle = oracle

        # Initialize components
        self.trace = TraceStore(self.project_dir, job_id, trace_dir=trace_dir)
        self.enforcer = ScopeEnforcer(layout)
        self.catalog = SymbolCatalog(self.enforcer)
        self.group_resolver = DependencyResolver(sort_key=group_sort_key)
        self.unit_resolver = DependencyResolver()
        self.generator = Generator(self.oracle, self.trace)
        self.builder = builder or Builder()
        self.repair_loop = RepairLoop(
            builder=self.builder,
            oracle=self.oracle,
            trace=self.trace,
            max_iterations=max_repair_iterations,
        )

        # Execution log
        self.execution_log = []
        self._ran = False

    @classmethod
    def from_plan_file(
        cls,
        job_id: str,
        plan_path: Path,
        context_path: Optional[Path] = None,
        templates_root: Optional[Path] = None,
        **kwargs,
    ) -> "PipelineCoordinator":
        """Load the plan (PlanLoadError propagates) and build a coordinator"""
        plan = ExecutionPlan.load(plan_path, context_path=context_path, templates_root=templates_root)
        return cls(job_id=job_id, plan=plan, **kwargs)

    def run(self, progress_callback: Optional[Callable[[str], None]] = None) -> PipelineSummary:
        """
        Run every phase of the plan

        Args:
            progress_callback: Optional callback for progress updates (msg: str) -> None

        Returns:
            PipelineSummary (also written to the trace as generation-summary.json)

        Raises:
            PipelineError: If this coordinator already ran
        """
        if self._ran:
            raise PipelineError(f"Pipeline {self.job_id} already ran; traces are write-once")
        self._ran = True

        def log(msg: str):
            self.execution_log.append(msg)
            if progress_callback:
                progress_callback(msg)
            logger.info(f"[Pipeline {self.job_id}] {msg}")

        log("=== Starting Synthesis Pipeline ===")
        log(f"Service: {self.plan.service_name}")
        log(f"Project: {self.project_dir}")

        results: List[GroupResult] = []
        plan_warnings: List[str] = []
        seen_groups = set()

        for phase in self.plan.ordered_phases():
            log(f"Phase {phase.phase}: {phase.name or 'unnamed'} ({len(phase.groups)} groups)")
            groups = {}
            duplicates: List[UnitGroup] = []
            for group in phase.groups:
                if group.group_id in seen_groups:
                    duplicates.append(group)
                else:
                    seen_groups.add(group.group_id)
                    groups[group.group_id] = group

            resolution = self.group_resolver.resolve(
                {gid: g.depends_on for gid, g in groups.items()},
                label=f"groups of phase {phase.phase}",
            )
            for warning in resolution.warnings:
                log(f"⚠ {warning}")
            plan_warnings.extend(resolution.warnings)

            for gid in resolution.order:
                result = self._run_group(groups[gid], gid in resolution.cyclic, plan_warnings, log)
                results.append(result)

            # Traces and catalogs are keyed by group id, so a repeated id never runs
            for group in duplicates:
                warning = f"Duplicate group id {group.group_id} in phase {phase.phase}; declaration not run"
                log(f"✗ {warning}")
                plan_warnings.append(warning)
                results.append(GroupResult(
                    group_id=group.group_id,
                    phase=group.phase,
                    action=group.action.value,
                    status=GroupStatus.FAILED,
                    error=warning,
                ))

        summary = PipelineSummary(
            job_id=self.job_id,
            service_name=self.plan.service_name,
            status=overall_status(results),
            total_groups=len(results),
            total_accepted=sum(r.accepted for r in results),
            total_rejected=sum(r.rejected for r in results),
            failed=sum(1 for r in results if r.status == GroupStatus.FAILED),
            plan_warnings=plan_warnings,
            groups=results,
        )
        self.trace.write_json("generation-summary.json", summary)

        log("=== Pipeline Complete ===")
        log(
            f"Status: {summary.status.value} - {summary.total_groups} groups, "
            f"{summary.total_accepted} files accepted, {summary.total_rejected} rejected, "
            f"{summary.failed} failed"
        )
        return summary

    def _run_group(
        self,
        group: UnitGroup,
        group_degraded: bool,
        plan_warnings: List[str],
        log: Callable[[str], None],
    ) -> GroupResult:
        gid = group.group_id
        result = GroupResult(group_id=gid, phase=group.phase, action=group.action.value)
        log(f"--- Group {gid}: {group.name or gid} ({group.action.value}, {len(group.units)} units) ---")

        try:
            # Order units inside the group
            unit_nodes = {}
            unit_warnings = []
            for unit in group.units:
                if unit.unit_id in unit_nodes:
                    unit_warnings.append(f"Duplicate unit id {unit.unit_id} in group {gid}; ordered once")
                    continue
                unit_nodes[unit.unit_id] = unit.dependencies
            unit_resolution = self.unit_resolver.resolve(unit_nodes, label=f"units of group {gid}")
            unit_warnings.extend(unit_resolution.warnings)
            for warning in unit_warnings:
                log(f"⚠ {warning}")
            plan_warnings.extend(unit_warnings)
            result.unit_order = unit_resolution.order
            result.degraded_order = group_degraded or unit_resolution.degraded or len(unit_nodes) < len(group.units)
            if result.degraded_order:
                log(f"⚠ Group {gid} runs in degraded order; treat its output as reduced-trust")

            # Scope
            existing_files = collect_transform_targets(group, self.project_dir)
            allowed = self.enforcer.derive_allowed_paths(group, self.plan.bindings, existing_files.keys())
            self.trace.write_json(f"allowed-paths-{gid}.json", {
                "group_id": gid,
                "allowed_paths": list(allowed.prefixes),
            })
            if len(allowed):
                log(f"Scope: {len(allowed)} allowed path prefixes")
            else:
                log(f"⚠ Group {gid} has no allowed paths; every file will be rejected")

            # Generate
            artifacts = self.generator.generate(
                group=group,
                unit_order=result.unit_order,
                bindings=self.plan.bindings,
                allowed=allowed,
                prior_catalog=self.catalog.assemble_context_for(gid),
                existing_files=existing_files,
                style_rules=self.plan.style_rules,
            )

            # Enforce scope and write accepted files
            decision = self.enforcer.filter_artifacts(artifacts, allowed)
            self.trace.write_json(f"scope-decision-{gid}.json", decision.audit_record())
            for rejected in decision.rejected:
                nearest = ", ".join(rejected.nearest_prefixes) or "none"
                log(f"✗ REJECTED {rejected.scope_path or rejected.artifact.path}: {rejected.reason} (nearest: {nearest})")
            for artifact in decision.accepted:
                write_project_file(self.project_dir, decision.placement_for(artifact).target_path, artifact.content)
            result.accepted = len(decision.accepted)
            result.rejected = len(decision.rejected)
            result.rejected_paths = [r.artifact.path for r in decision.rejected]
            log(f"Scope: {result.accepted} accepted, {result.rejected} rejected")

            # Catalog
            update = self.catalog.record(group, self.catalog.extract(group, decision.accepted))
            self.trace.write_json(f"phase-catalog-{gid}.json", update.catalog)
            result.catalogued = len(update.catalog.entries)
            result.catalog_conflicts = [str(c) for c in update.conflicts]
            for conflict in update.conflicts:
                log(f"⚠ Catalog conflict: {conflict}")
            log(f"✓ Catalog: {result.catalogued} symbols indexed")

            # Build gate
            if self.builder.is_available(self.project_dir):
                session = self.repair_loop.run(
                    gid,
                    self.project_dir,
                    catalog=self.catalog,
                    style_rules=self.plan.style_rules,
                    progress_callback=log,
                )
                result.repair_iterations = session.iteration
                if session.state == RepairState.EXHAUSTED:
                    result.repair_outcome = RepairOutcome.EXHAUSTED
                elif session.iteration == 0:
                    result.repair_outcome = RepairOutcome.NOT_NEEDED
                else:
                    result.repair_outcome = RepairOutcome.PASSED
            else:
                result.repair_outcome = RepairOutcome.SKIPPED
                self.trace.write_json(f"compile-gate-{gid}.json", {
                    "group_id": gid,
                    "status": "skipped",
                    "iterations": 0,
                    "verifications": 0,
                })
                log(f"⚠ Build gate skipped for group {gid} (build tool or build file unavailable)")

        except GenerationError as e:
            result.status = GroupStatus.FAILED
            result.error = str(e)
            log(f"✗ Group {gid} failed: {e}")
            return result
        except Exception as e:
            logger.exception(f"[Pipeline {self.job_id}] Group {gid} failed unexpectedly")
            result.status = GroupStatus.FAILED
            result.error = f"{type(e).__name__}: {e}"
            log(f"✗ Group {gid} failed: {result.error}")
            return result

        if (
            result.repair_outcome == RepairOutcome.EXHAUSTED
            or result.rejected > 0
            or result.degraded_order
        ):
            result.status = GroupStatus.PARTIAL
            log(f"⚠ Group {gid}: partial")
        else:
            log(f"✓ Group {gid}: success")
        return result


__all__ = ["PipelineCoordinator", "PipelineError", "overall_status"]
