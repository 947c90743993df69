from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import psutil

from orchestrator.errors import MaliocUnavailableError
from schemas.strict_base import ShaderStage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
# How long to wait for the pipes to drain after the process tree is killed.
KILL_GRACE_SECONDS = 5.0


def build_malioc_cmd(
    compiler_path: str,
    file_path: Path | str,
    gpu_model: Optional[str] = None,
    verbose: bool = False,
) -> List[str]:
    """Build the malioc argv: ``<compiler> <file> [-c <gpu>] [-d]``."""
    cmd = [str(compiler_path), str(file_path)]
    if gpu_model:
        cmd.extend(["-c", gpu_model])
    if verbose:
        cmd.append("-d")
    return cmd


@dataclass
class MaliocRunOutput:
    stdout: str
    stderr: str
    exit_code: Optional[int]
    timed_out: bool = False
    runtime_seconds: float = 0.0
    cmd: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    def labeled_text(self, stage: ShaderStage) -> str:
        """Raw result block shown to the user and fed to the metrics scraper."""
        if self.timed_out:
            return (
                f"=== {stage} Shader compile timed out ===\n\n"
                f"Error: {self.stderr}\n\nOutput: {self.stdout}"
            )
        if self.ok:
            return f"=== {stage} Shader compile succeeded ===\n\n{self.stdout}"
        return (
            f"=== {stage} Shader compile failed (exit code {self.exit_code}) ===\n\n"
            f"Error: {self.stderr}\n\nOutput: {self.stdout}"
        )


def _kill_process_tree(proc: psutil.Popen) -> None:
    """Kill malioc and anything it spawned; orphans would hold the pipes open."""
    try:
        children = proc.children(recursive=True)
    except psutil.Error:
        children = []
    for child in children + [proc]:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.Error as exc:
            logger.warning("could not kill pid %s: %s", child.pid, exc)


def run_malioc(
    compiler_path: str,
    file_path: Path | str,
    gpu_model: Optional[str] = None,
    verbose: bool = False,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    cwd: Optional[Path] = None,
) -> MaliocRunOutput:
    """Run malioc on one stage source file and capture its output.

    A non-zero exit or a timeout is returned as a failed ``MaliocRunOutput``
    carrying whatever output was captured; only a process that cannot be
    started at all raises.
    """
    cmd = build_malioc_cmd(compiler_path, file_path, gpu_model, verbose)
    logger.info("running %s", " ".join(cmd))
    start = time.monotonic()
    try:
        proc = psutil.Popen(
            cmd,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise MaliocUnavailableError(f"cannot start Mali compiler {compiler_path!r}: {exc}") from exc

    timed_out = False
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        logger.warning("malioc timed out after %.1fs on %s", timeout, file_path)
        _kill_process_tree(proc)
        try:
            stdout, stderr = proc.communicate(timeout=KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("malioc output pipes still open after kill; dropping partial output")
            stdout, stderr = "", ""
    runtime = time.monotonic() - start

    exit_code = None if timed_out else proc.returncode
    if exit_code not in (0, None):
        logger.warning("malioc exited with code %s on %s", exit_code, file_path)
    return MaliocRunOutput(
        stdout=stdout or "",
        stderr=stderr or "",
        exit_code=exit_code,
        timed_out=timed_out,
        runtime_seconds=runtime,
        cmd=cmd,
    )


def malioc_version(compiler_path: str, timeout: float = 10.0) -> str:
    """First line of ``malioc --version``, or "" when it cannot be determined."""
    try:
        result = subprocess.run(
            [compiler_path, "--version"],
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired):
        return ""
    text = (result.stdout or result.stderr or "").strip()
    return text.splitlines()[0] if text else ""
