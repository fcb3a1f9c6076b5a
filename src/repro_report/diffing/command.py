"""
repro-report — subprocess runner for external diff tools.

File: src/repro_report/diffing/command.py

Purpose
- Launch a diff command without a shell, capture its raw stdout (the
  rendered diff) and decoded stderr (for error messages).
- Enforce a wall-clock timeout; a timed-out or cancelled tool is killed
  and reaped before control returns.

Failures to launch, non-accepted exit codes and timeouts are reported in
the returned ``CommandResult`` rather than raised; callers decide what a
failure means for them.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One invocation: argv, working directory, extra env and accepted exit codes."""

    argv: tuple[str, ...]
    cwd: str | None = None
    extra_env: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None
    ok_exit_codes: frozenset[int] = frozenset({0})

    def __post_init__(self) -> None:
        if not self.argv or any(not isinstance(part, str) or not part for part in self.argv):
            raise ValueError(f"argv must be non-empty strings, got {self.argv!r}")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout_seconds}")

    def environment(self) -> dict[str, str] | None:
        """Full child environment, or ``None`` to inherit ours unchanged."""

        if not self.extra_env:
            return None
        return {**os.environ, **self.extra_env}


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int | None
    stdout: bytes
    stderr: str
    elapsed_seconds: float
    timed_out: bool = False
    launch_error: str | None = None

    def accepted(self, spec: CommandSpec | None = None) -> bool:
        """True when the process ran to completion with an accepted exit code."""

        if self.returncode is None:
            return False
        codes = spec.ok_exit_codes if spec is not None else frozenset({0})
        return self.returncode in codes

    def explain(self) -> str:
        """Short, single-line reason for a failed run."""

        if self.launch_error is not None:
            return f"could not start {self.argv[0]}: {self.launch_error}"
        if self.timed_out:
            return f"timed out after {self.elapsed_seconds:.1f}s"
        lines = [line for line in self.stderr.splitlines() if line.strip()]
        last = lines[-1].strip() if lines else "no stderr output"
        return f"exit code {self.returncode}: {last}"


@runtime_checkable
class CommandExecutor(Protocol):
    async def run(self, spec: CommandSpec) -> CommandResult: ...


class SubprocessExecutor(CommandExecutor):
    """Runs commands as local child processes via ``asyncio``."""

    async def run(self, spec: CommandSpec) -> CommandResult:
        started = time.perf_counter()

        def finish(**fields: object) -> CommandResult:
            fields.setdefault("stdout", b"")
            fields.setdefault("stderr", "")
            return CommandResult(
                argv=spec.argv,
                elapsed_seconds=time.perf_counter() - started,
                **fields,  # type: ignore[arg-type]
            )

        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                cwd=spec.cwd,
                env=spec.environment(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return finish(returncode=None, launch_error=exc.strerror or str(exc))

        try:
            async with asyncio.timeout(spec.timeout_seconds):
                out, err = await process.communicate()
        except TimeoutError:
            out, err = await _kill(process)
            return finish(returncode=None, stdout=out, stderr=_text(err), timed_out=True)
        except asyncio.CancelledError:
            await _kill(process)
            raise

        return finish(returncode=process.returncode, stdout=out, stderr=_text(err))


async def _kill(process: asyncio.subprocess.Process) -> tuple[bytes, bytes]:
    with suppress(ProcessLookupError):
        process.kill()
    return await process.communicate()


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


__all__ = [
    "CommandExecutor",
    "CommandResult",
    "CommandSpec",
    "SubprocessExecutor",
]
