"""
Repair Loop - Bounded build/correct cycle

States and transitions (see synthesis.schemas.repair_schema):

    VERIFYING            build; pass → PASSED, fail → AWAITING_CORRECTION
    AWAITING_CORRECTION  iteration == max → EXHAUSTED
                         else one correction request, apply files,
                         iteration += 1 → VERIFYING

Every transition is a single call to step(), so each one can be tested on
its own. A session verifies at most max_iterations + 1 times.

Key principle: corrections are TARGETED. Only the files the errors reference
are sent, with their full current content.
"""
import logging
from pathlib import Path
from typing import Callable, Optional

from config import MAX_REPAIR_ITERATIONS
from synthesis.core.builder import Builder
from synthesis.core.error_interpreter import ErrorInterpreter
from synthesis.core.extraction import extract_structured
from synthesis.core.trace_store import TraceStore
from synthesis.schemas import (
    CorrectionRequest,
    RepairIteration,
    RepairSession,
    RepairState,
    files_from_document,
)
from synthesis.tools import WorkspacePathError, read_project_files, write_project_file

logger = logging.getLogger(__name__)


class RepairLoop:
    """
    Repair Loop - Drives a failing build back to passing

    One session per group, never resumed.
    """

    def __init__(
        self,
        builder: Builder,
        oracle: Callable,
        trace: TraceStore,
        interpreter: Optional[ErrorInterpreter] = None,
        max_iterations: int = MAX_REPAIR_ITERATIONS,
    ):
        self.builder = builder
        self.oracle = oracle
        self.trace = trace
        self.interpreter = interpreter or ErrorInterpreter()
        self.max_iterations = max_iterations

    def start(self, group_id: str) -> RepairSession:
        return RepairSession(group_id=group_id, max_iterations=self.max_iterations)

    def run(
        self,
        group_id: str,
        project_dir: Path,
        catalog=None,
        style_rules: str = "",
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> RepairSession:
        """
        Run a session to a terminal state

        Args:
            group_id: Owning group
            project_dir: Target project root
            catalog: SymbolCatalog for prior-catalog context and symbol lookup
            style_rules: Passed through to correction requests
            progress_callback: Optional callback for progress updates

        Returns:
            The terminal session (PASSED or EXHAUSTED)
        """
        def log(msg: str):
            if progress_callback:
                progress_callback(msg)
            logger.info(f"[RepairLoop] {msg}")

        session = self.start(group_id)
        while not session.terminal:
            session = self.step(session, project_dir, catalog=catalog, style_rules=style_rules, log=log)

        self.trace.write_json(f"compile-gate-{group_id}.json", {
            "group_id": group_id,
            "status": session.state.value,
            "iterations": session.iteration,
            "verifications": session.verify_count,
        })
        return session

    def step(
        self,
        session: RepairSession,
        project_dir: Path,
        catalog=None,
        style_rules: str = "",
        log: Optional[Callable[[str], None]] = None,
    ) -> RepairSession:
        """Take exactly one transition"""
        log = log or (lambda msg: logger.info(f"[RepairLoop] {msg}"))

        if session.state == RepairState.VERIFYING:
            return self._verify(session, project_dir, log)
        if session.state == RepairState.AWAITING_CORRECTION:
            if session.iteration >= session.max_iterations:
                session.state = RepairState.EXHAUSTED
                log(f"✗ Group {session.group_id}: still failing after {session.iteration} corrections")
                return session
            return self._correct(session, project_dir, catalog, style_rules, log)
        return session

    def _verify(self, session: RepairSession, project_dir: Path, log) -> RepairSession:
        gid = session.group_id
        session.verify_count += 1
        if session.iteration == 0:
            log(f"Group {gid}: verifying (initial)...")
        else:
            log(f"Group {gid}: verifying (after correction {session.iteration})...")

        result = self.builder.build(project_dir)
        log_file = self.trace.write_text(f"compile-{gid}-iter{session.verify_count}.log", result.output)
        record = RepairIteration(iteration=session.iteration, passed=result.passed, log_file=log_file.name)

        if result.passed:
            session.history.append(record)
            session.state = RepairState.PASSED
            if session.iteration == 0:
                log(f"✓ Group {gid}: build passed (clean)")
            else:
                log(f"✓ Group {gid}: build passed after {session.iteration} correction(s)")
            return session

        record.errors = self.interpreter.parse(result.output)
        session.history.append(record)
        session.state = RepairState.AWAITING_CORRECTION
        log(f"✗ Group {gid}: build failed with {len(record.errors)} error(s)")
        return session

    def _correct(self, session: RepairSession, project_dir: Path, catalog, style_rules: str, log) -> RepairSession:
        gid = session.group_id
        attempt = session.iteration + 1
        record = session.current
        errors = record.errors if record is not None else []

        referenced = self.interpreter.referenced_files(errors, project_dir, catalog=catalog)
        files = read_project_files(project_dir, referenced)
        if record is not None:
            record.files_sent = list(files)

        request = CorrectionRequest(
            group_id=gid,
            iteration=attempt,
            errors=errors,
            files=files,
            prior_catalog=catalog.assemble_context_for(gid) if catalog is not None else [],
            style_rules=style_rules,
        )
        self.trace.write_json(f"compile-fix-request-{gid}-iter{attempt}.json", request)
        log(f"Group {gid}: correction {attempt}/{session.max_iterations} ({len(errors)} errors, {len(files)} files)")

        try:
            response = self.oracle(request)
        except Exception as e:
            logger.error(f"[RepairLoop] Oracle failed for group {gid}: {e}", exc_info=True)
            self._consume(session, record, f"oracle failure: {e}", log)
            return session

        self.trace.write_text(f"compile-fix-response-{gid}-iter{attempt}.txt", response or "")
        extraction = extract_structured(response, expected_key="files")
        if not extraction.ok:
            self._consume(session, record, extraction.error, log)
            return session
        try:
            entries = files_from_document(extraction.document)
        except ValueError as e:
            self._consume(session, record, f"unparseable: {e}", log)
            return session

        for entry in entries:
            if not entry.path.strip() or not entry.content.strip():
                continue
            try:
                written = write_project_file(project_dir, entry.path, entry.content)
            except WorkspacePathError as e:
                log(f"⚠ Skipped correction file: {e}")
                continue
            if record is not None:
                if written["created"]:
                    record.files_created.append(written["path"])
                else:
                    record.files_applied.append(written["path"])

        if record is not None:
            log(f"  Applied {len(record.files_applied)} file(s), created {len(record.files_created)}")
        session.iteration = attempt
        session.state = RepairState.VERIFYING
        return session

    def _consume(self, session: RepairSession, record: Optional[RepairIteration], reason: str, log):
        """Failed correction: nothing written, the iteration is still spent"""
        if record is not None:
            record.correction_error = reason
        log(f"⚠ Group {session.group_id}: correction {session.iteration + 1} produced no changes ({reason})")
        session.iteration += 1
        session.state = RepairState.VERIFYING


__all__ = ["RepairLoop"]
