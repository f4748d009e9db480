"""
Snippet runner: compiles and/or runs one snippet in an isolated directory.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..core.config import HarnessConfig
from ..core.exceptions import ToolchainNotFoundError
from ..core.logging import get_logger
from ..extraction.snippet import Snippet
from ..toolchains.base import CommandContext, ToolchainSpec
from ..toolchains.registry import create_toolchain
from .process import ProcessResult, run_process, truncate_output

logger = get_logger(__name__)


class Outcome(str, Enum):
    """Observed outcome of running a snippet."""

    SUCCESS = "success"
    COMPILE_ERROR = "compile-error"
    RUNTIME_ERROR = "runtime-error"
    TIMEOUT = "timeout"
    TOOLCHAIN_MISSING = "toolchain-missing"
    TOOLING_ERROR = "tooling-error"


FAILURE_OUTCOMES = frozenset({Outcome.COMPILE_ERROR, Outcome.RUNTIME_ERROR, Outcome.TIMEOUT})


class Stage(str, Enum):
    COMPILE = "compile"
    RUN = "run"
    NONE = "none"


@dataclass(slots=True)
class ExecutionResult:
    """Outcome of compiling and running one snippet."""

    snippet: Snippet
    outcome: Outcome
    exit_code: int | None = None
    compile_exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False
    stage: Stage = Stage.NONE
    detail: str = ""
    # Whether the toolchain has a compile step, i.e. a compile stage could be observed.
    compiled: bool = False

    @property
    def failed(self) -> bool:
        return self.outcome in FAILURE_OUTCOMES

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict[str, object]:
        return {
            "outcome": self.outcome.value,
            "stage": self.stage.value,
            "exit_code": self.exit_code,
            "compile_exit_code": self.compile_exit_code,
            "timed_out": self.timed_out,
            "duration_seconds": round(self.duration_seconds, 4),
            "stdout": self.stdout,
            "stderr": self.stderr,
            "compile_output": self.compile_output,
            "detail": self.detail,
            "compiled": self.compiled,
        }


class SnippetRunner:
    """Runs snippets through their language toolchain with bounded timeouts."""

    BINARY_NAME = "snippet_bin"

    def __init__(self, config: HarnessConfig | None = None):
        self.config = config or HarnessConfig()

    def toolchain_for(self, language: str) -> ToolchainSpec:
        return create_toolchain(language, self.config)

    def check_toolchain(self, spec: ToolchainSpec, env: dict[str, str] | None = None) -> None:
        """
        Verify every executable the toolchain needs is on PATH.

        Raises:
            ToolchainNotFoundError: naming the first missing executable
        """
        search_path = (env or {}).get("PATH") or os.environ.get("PATH", "")
        for executable in spec.executables():
            if shutil.which(executable, path=search_path) is None:
                raise ToolchainNotFoundError(spec.language, executable)

    def execute(self, snippet: Snippet) -> ExecutionResult:
        """
        Compile (when needed) and run a snippet.

        Args:
            snippet: Snippet to execute

        Returns:
            ExecutionResult describing the observed outcome

        Raises:
            ToolchainNotFoundError: when the language's toolchain is not installed
            ConfigurationError: when the language has no usable toolchain
        """
        spec = self.toolchain_for(snippet.language)

        with tempfile.TemporaryDirectory(prefix="snippet-harness-") as temp_dir:
            workdir = Path(temp_dir)
            env = self._get_safe_env(workdir, spec)
            self.check_toolchain(spec, env)

            source_name = spec.source_filename(snippet.source, snippet.filename_hint)
            source_file = workdir / source_name
            source_file.write_text(snippet.source, encoding="utf-8")
            context = CommandContext(
                source=str(source_file),
                binary=str(workdir / self.BINARY_NAME),
                workdir=str(workdir),
                source_name=source_name,
                stem=Path(source_name).stem,
                entry=spec.entry_name(snippet.source, source_name),
            )

            total = 0.0
            compile_exit_code: int | None = None
            compile_output = ""
            if spec.compiled:
                compiled = self._invoke(
                    spec,
                    context.expand(spec.compile),
                    workdir,
                    env,
                    self.config.compile_timeout_seconds,
                )
                total += compiled.duration_seconds
                compile_exit_code = compiled.return_code
                compile_output = self._clip(
                    compiled.stdout + compiled.stderr,
                    compiled.stdout_dropped + compiled.stderr_dropped,
                )
                if compiled.timed_out or compiled.return_code != 0:
                    return ExecutionResult(
                        snippet=snippet,
                        outcome=Outcome.TIMEOUT if compiled.timed_out else Outcome.COMPILE_ERROR,
                        exit_code=compiled.return_code,
                        compile_exit_code=compile_exit_code,
                        stdout=self._clip(compiled.stdout, compiled.stdout_dropped),
                        stderr=self._clip(compiled.stderr, compiled.stderr_dropped),
                        compile_output=compile_output,
                        duration_seconds=total,
                        timed_out=compiled.timed_out,
                        stage=Stage.COMPILE,
                        compiled=True,
                        detail=(
                            f"compile timed out after {self.config.compile_timeout_seconds}s"
                            if compiled.timed_out
                            else ""
                        ),
                    )

            ran = self._invoke(
                spec, context.expand(spec.run), workdir, env, self.config.run_timeout_seconds
            )
            total += ran.duration_seconds
            if ran.timed_out:
                outcome = Outcome.TIMEOUT
                detail = f"run timed out after {self.config.run_timeout_seconds}s"
            elif ran.return_code == 0:
                outcome = Outcome.SUCCESS
                detail = ""
            else:
                outcome = Outcome.RUNTIME_ERROR
                detail = ""

            logger.debug(
                f"{snippet.snippet_id} [{snippet.language}] -> {outcome.value} in {total:.2f}s"
            )
            return ExecutionResult(
                snippet=snippet,
                outcome=outcome,
                exit_code=ran.return_code,
                compile_exit_code=compile_exit_code,
                stdout=self._clip(ran.stdout, ran.stdout_dropped),
                stderr=self._clip(ran.stderr, ran.stderr_dropped),
                compile_output=compile_output,
                duration_seconds=total,
                timed_out=ran.timed_out,
                stage=Stage.RUN,
                detail=detail,
                compiled=spec.compiled,
            )

    def _invoke(
        self,
        spec: ToolchainSpec,
        cmd: list[str],
        workdir: Path,
        env: dict[str, str],
        timeout_seconds: float,
    ) -> ProcessResult:
        try:
            return run_process(
                cmd,
                cwd=workdir,
                env=env,
                timeout_seconds=timeout_seconds,
                max_output_chars=self.config.max_output_chars,
            )
        except FileNotFoundError as exc:
            raise ToolchainNotFoundError(spec.language, cmd[0] if cmd else spec.language) from exc

    def _clip(self, text: str, dropped: int = 0) -> str:
        return truncate_output(text or "", self.config.max_output_chars, dropped)

    def _get_safe_env(self, workdir: Path, spec: ToolchainSpec) -> dict[str, str]:
        """
        Environment for toolchain processes.

        Only PATH is inherited; HOME and TMPDIR point into the snippet's work directory.
        """
        safe_env = {
            "PATH": os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin"),
            "HOME": str(workdir),
            "TMPDIR": str(workdir),
            "LANG": "C.UTF-8",
            "LC_ALL": "C.UTF-8",
        }
        safe_env.update(spec.extra_env)

        for key in self.config.env_allowlist:
            normalized_key = str(key).strip()
            if not normalized_key:
                continue
            value = os.getenv(normalized_key)
            if value is None:
                continue
            safe_env[normalized_key] = value.replace("\n", "").replace("\r", "")
        return safe_env
