"""
Builder - Target project build/verify

Responsibilities:
- Run the configured build command in the project directory
- Capture combined build output
- Report pass/fail by the success marker in the output

A timeout is a failed build, not an error: the repair loop's iteration bound
is the only cancellation mechanism.
"""
import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from config import BUILD_COMMAND, BUILD_SUCCESS_MARKER, BUILD_FILE, BUILD_TIMEOUT_SECONDS
from synthesis.schemas import BuildResult

logger = logging.getLogger(__name__)


class BuildCommandError(Exception):
    """Raised when the build command cannot be launched"""
    pass


class Builder:
    """
    Builder - Compiles and verifies the target project

    Wraps one compile+verify command (Maven by default).
    """

    def __init__(
        self,
        command: Union[str, List[str], None] = None,
        success_marker: str = BUILD_SUCCESS_MARKER,
        build_file: Optional[str] = BUILD_FILE,
        timeout: Optional[float] = BUILD_TIMEOUT_SECONDS,
    ):
        command = command or BUILD_COMMAND
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.success_marker = success_marker
        self.build_file = build_file
        self.timeout = timeout

    def is_available(self, project_dir: Path) -> bool:
        """Whether the build tool is on PATH and the project has its build file"""
        if not self.command or shutil.which(self.command[0]) is None:
            return False
        if self.build_file and not (Path(project_dir) / self.build_file).exists():
            return False
        return True

    def build(self, project_dir: Path) -> BuildResult:
        """
        Run the build

        Args:
            project_dir: Target project root

        Returns:
            BuildResult (passed iff the success marker appears in the output)

        Raises:
            BuildCommandError: If the command cannot be launched
        """
        logger.info(f"[Builder] Running: {' '.join(self.command)}")
        try:
            result = subprocess.run(
                self.command,
                cwd=Path(project_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode(errors="replace")
            logger.warning(f"[Builder] ✗ Build timed out after {self.timeout}s")
            return BuildResult(
                passed=False,
                output=output + f"\n[ERROR] Build timed out after {self.timeout} seconds\n",
                exit_code=None,
                command=self.command,
            )
        except OSError as e:
            raise BuildCommandError(f"Cannot run build command {self.command}: {e}") from e

        output = result.stdout or ""
        passed = self.success_marker in output
        if passed:
            logger.info("[Builder] ✓ Build successful")
        else:
            logger.info(f"[Builder] ✗ Build failed with exit code {result.returncode}")

        return BuildResult(
            passed=passed,
            output=output,
            exit_code=result.returncode,
            command=self.command,
        )


__all__ = ["Builder", "BuildCommandError"]
