"""
Tests for Repair Loop

The loop is driven with a scripted builder and oracle; no build tool or LLM
is involved.
"""
import json
import shutil
import tempfile
from pathlib import Path

import pytest

from synthesis.core.repair_loop import RepairLoop
from synthesis.core.trace_store import TraceStore
from synthesis.schemas import BuildResult, CorrectionRequest, RepairState

FAILURE_LOG = """[ERROR] /work/src/main/java/app/Gadget.java:[3,12] cannot find symbol
[ERROR]   symbol:   class Widget
[INFO] BUILD FAILURE
"""


class ScriptedBuilder:
    """Returns the scripted pass/fail sequence, then keeps failing"""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def is_available(self, project_dir):
        return True

    def build(self, project_dir):
        self.calls += 1
        passed = self.results.pop(0) if self.results else False
        return BuildResult(passed=passed, output="[INFO] BUILD SUCCESS\n" if passed else FAILURE_LOG)


class ScriptedOracle:
    """Returns scripted responses; an Exception instance is raised instead"""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if self.responses else '{"files": []}'
        if isinstance(response, Exception):
            raise response
        return response


def fix(path, content):
    return json.dumps({"files": [{"path": path, "content": content}]})


class TestRepairLoop:
    """Test suite for RepairLoop"""

    @pytest.fixture
    def project(self):
        temp = Path(tempfile.mkdtemp())
        gadget = temp / "src/main/java/app/Gadget.java"
        gadget.parent.mkdir(parents=True)
        gadget.write_text("package app;\npublic class Gadget { Widget w; }\n")
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.fixture
    def trace(self, project):
        return TraceStore(project, "job-test")

    def make_loop(self, builder, oracle, trace, max_iterations=3):
        return RepairLoop(builder=builder, oracle=oracle, trace=trace, max_iterations=max_iterations)

    def test_clean_pass(self, project, trace):
        oracle = ScriptedOracle([])
        session = self.make_loop(ScriptedBuilder([True]), oracle, trace).run("1.1", project)

        assert session.state == RepairState.PASSED
        assert session.iteration == 0
        assert session.verify_count == 1
        assert oracle.requests == []
        gate = trace.read_json("compile-gate-1.1.json")
        assert gate["status"] == "passed"
        assert gate["iterations"] == 0

    def test_pass_after_one_correction(self, project, trace):
        oracle = ScriptedOracle([fix("src/main/java/app/Gadget.java", "package app;\npublic class Gadget {}   \n\n\n")])
        session = self.make_loop(ScriptedBuilder([False, True]), oracle, trace).run("1.1", project)

        assert session.state == RepairState.PASSED
        assert session.iteration == 1
        assert session.verify_count == 2
        assert (project / "src/main/java/app/Gadget.java").read_text() == "package app;\npublic class Gadget {}\n"

        request = oracle.requests[0]
        assert isinstance(request, CorrectionRequest)
        assert request.iteration == 1
        assert list(request.files) == ["src/main/java/app/Gadget.java"]
        assert request.errors[0].symbols == ("Widget",)
        assert session.history[0].files_applied == ["src/main/java/app/Gadget.java"]

        assert trace.exists("compile-1.1-iter1.log")
        assert trace.exists("compile-fix-request-1.1-iter1.json")
        assert trace.exists("compile-fix-response-1.1-iter1.txt")
        assert trace.exists("compile-1.1-iter2.log")

    def test_exhausted_after_max_corrections(self, project, trace):
        oracle = ScriptedOracle([fix("src/main/java/app/Gadget.java", "class Gadget {}")] * 3)
        builder = ScriptedBuilder([])
        session = self.make_loop(builder, oracle, trace, max_iterations=3).run("1.1", project)

        assert session.state == RepairState.EXHAUSTED
        assert session.iteration == 3
        assert session.verify_count == 4
        assert builder.calls == 4
        assert len(oracle.requests) == 3
        assert trace.read_json("compile-gate-1.1.json")["status"] == "exhausted"

    @pytest.mark.parametrize("max_iterations", [0, 1, 2, 5])
    def test_terminates_within_bound(self, project, trace, max_iterations):
        """At most max_iterations + 1 verifications"""
        builder = ScriptedBuilder([])
        session = self.make_loop(builder, ScriptedOracle([]), trace, max_iterations).run("1.1", project)

        assert session.terminal
        assert session.verify_count == max_iterations + 1
        assert builder.calls <= max_iterations + 1

    def test_unparseable_response_consumes_iteration(self, project, trace):
        original = (project / "src/main/java/app/Gadget.java").read_text()
        oracle = ScriptedOracle(["Sorry, I cannot help with that."])
        session = self.make_loop(ScriptedBuilder([False, True]), oracle, trace).run("1.1", project)

        assert session.state == RepairState.PASSED
        assert session.iteration == 1
        assert session.history[0].correction_error.startswith("unparseable")
        assert (project / "src/main/java/app/Gadget.java").read_text() == original

    def test_oracle_failure_consumes_iteration(self, project, trace):
        oracle = ScriptedOracle([RuntimeError("quota exceeded")])
        session = self.make_loop(ScriptedBuilder([False, True]), oracle, trace).run("1.1", project)

        assert session.iteration == 1
        assert "quota exceeded" in session.history[0].correction_error
        assert not trace.exists("compile-fix-response-1.1-iter1.txt")

    def test_correction_may_create_files(self, project, trace):
        oracle = ScriptedOracle([json.dumps({"files": [
            {"path": "src/main/java/pkg/Widget.java", "content": "package pkg;\npublic class Widget {}"},
            {"path": "../escape.txt", "content": "nope"},
        ]})])
        session = self.make_loop(ScriptedBuilder([False, True]), oracle, trace).run("1.1", project)

        assert session.history[0].files_created == ["src/main/java/pkg/Widget.java"]
        assert (project / "src/main/java/pkg/Widget.java").exists()
        assert not (project.parent / "escape.txt").exists()


class TestRepairTransitions:
    """Each transition on its own"""

    @pytest.fixture
    def project(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    def test_verifying_to_awaiting_correction(self, project):
        loop = RepairLoop(ScriptedBuilder([False]), ScriptedOracle([]), TraceStore(project, "j"))
        session = loop.step(loop.start("1.1"), project)
        assert session.state == RepairState.AWAITING_CORRECTION
        assert session.last_errors[0].category == "missing_symbol"

    def test_verifying_to_passed(self, project):
        loop = RepairLoop(ScriptedBuilder([True]), ScriptedOracle([]), TraceStore(project, "j"))
        session = loop.step(loop.start("1.1"), project)
        assert session.state == RepairState.PASSED

    def test_awaiting_correction_at_max_is_exhausted(self, project):
        oracle = ScriptedOracle([])
        loop = RepairLoop(ScriptedBuilder([False]), oracle, TraceStore(project, "j"), max_iterations=2)
        session = loop.step(loop.start("1.1"), project)
        session.iteration = 2

        session = loop.step(session, project)

        assert session.state == RepairState.EXHAUSTED
        assert oracle.requests == []

    def test_awaiting_correction_to_verifying(self, project):
        oracle = ScriptedOracle([fix("A.java", "class A {}")])
        loop = RepairLoop(ScriptedBuilder([False]), oracle, TraceStore(project, "j"))
        session = loop.step(loop.start("1.1"), project)

        session = loop.step(session, project)

        assert session.state == RepairState.VERIFYING
        assert session.iteration == 1
        assert len(oracle.requests) == 1

    def test_terminal_state_is_stable(self, project):
        loop = RepairLoop(ScriptedBuilder([True]), ScriptedOracle([]), TraceStore(project, "j"))
        session = loop.step(loop.start("1.1"), project)
        assert loop.step(session, project).state == RepairState.PASSED
