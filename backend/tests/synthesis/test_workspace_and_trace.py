"""
Tests for the workspace tool and the trace store
"""
import shutil
import tempfile
from pathlib import Path

import pytest

from synthesis.core.trace_store import TraceStore, TraceWriteError
from synthesis.schemas import AllowedPathSet
from synthesis.tools import (
    WorkspacePathError,
    find_project_files,
    read_project_files,
    write_project_file,
)


@pytest.fixture
def temp_dir():
    """Create temporary directory"""
    temp = Path(tempfile.mkdtemp())
    yield temp
    if temp.exists():
        shutil.rmtree(temp)


class TestWorkspaceTool:
    """Test project file helpers"""

    def test_write_normalizes_trailing_whitespace(self, temp_dir):
        result = write_project_file(temp_dir, "src/main/java/A.java", "class A {}\n\n   \n")
        assert result == {"path": "src/main/java/A.java", "created": True}
        assert (temp_dir / "src/main/java/A.java").read_text() == "class A {}\n"

    def test_overwrite_is_not_created(self, temp_dir):
        write_project_file(temp_dir, "A.java", "one")
        assert write_project_file(temp_dir, "A.java", "two")["created"] is False
        assert (temp_dir / "A.java").read_text() == "two\n"

    def test_traversal_refused(self, temp_dir):
        with pytest.raises(WorkspacePathError):
            write_project_file(temp_dir, "../outside.txt", "x")

    def test_read_skips_missing(self, temp_dir):
        write_project_file(temp_dir, "A.java", "a")
        assert read_project_files(temp_dir, ["A.java", "B.java"]) == {"A.java": "a\n"}

    def test_find_with_exclusions_skips_hidden(self, temp_dir):
        for rel in ["src/Client.java", "src/ClientTest.java", ".trace/job/Client.java", "src/notes.md"]:
            write_project_file(temp_dir, rel, "x")
        assert find_project_files(temp_dir, "*.java", exclude=["*Test.java"]) == ["src/Client.java"]


class TestTraceStore:
    """Test write-once traces"""

    def test_layout(self, temp_dir):
        store = TraceStore(temp_dir, "job-7")
        path = store.write_text("codegen-response-1.1.txt", "raw")
        assert path == temp_dir / ".trace" / "job-7" / "codegen-response-1.1.txt"

    def test_write_once(self, temp_dir):
        store = TraceStore(temp_dir, "job-7")
        store.write_text("compile-1.1-iter1.log", "first")
        with pytest.raises(TraceWriteError):
            store.write_text("compile-1.1-iter1.log", "second")
        assert store.path("compile-1.1-iter1.log").read_text() == "first"

    def test_json_models(self, temp_dir):
        store = TraceStore(temp_dir, "job-7")
        store.write_json("allowed-paths-1.1.json", AllowedPathSet(group_id="1.1", prefixes=("pom.xml",)))
        assert store.read_json("allowed-paths-1.1.json") == {"group_id": "1.1", "prefixes": ["pom.xml"]}
        assert store.list() == ["allowed-paths-1.1.json"]
