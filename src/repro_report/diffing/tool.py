"""
External diff tool adapter.

Both inputs are staged into a scratch directory as ``a/<name>`` and
``b/<name>`` before the tool runs, so the rendered diff is labelled with the
real output name instead of the opaque blob hash.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath
from typing import Final, Protocol, runtime_checkable

from repro_report.diffing.command import CommandExecutor, CommandSpec, SubprocessExecutor
from repro_report.domain.errors import DiffComputationError
from repro_report.utils.fs import link_or_copy, temp_directory

DEFAULT_DIFF_COMMAND: Final[tuple[str, ...]] = ("diffoscope", "--html", "-")

# diffoscope exits 1 when inputs differ, which is the expected case here.
_DIFFOSCOPE_EXIT_CODES: Final[tuple[int, ...]] = (0, 1)


@runtime_checkable
class DiffTool(Protocol):
    """Render a human-readable diff of two blobs for one output."""

    async def diff(self, output_name: str, location_a: Path, location_b: Path) -> bytes: ...


class DiffoscopeTool(DiffTool):
    """Run diffoscope (or a compatible command) and capture its rendered output from stdout."""

    def __init__(
        self,
        *,
        command: Sequence[str] = DEFAULT_DIFF_COMMAND,
        timeout_seconds: float | None = None,
        ok_exit_codes: Iterable[int] = _DIFFOSCOPE_EXIT_CODES,
        executor: CommandExecutor | None = None,
    ) -> None:
        if not command:
            raise ValueError("diff command must not be empty")
        self._command = tuple(command)
        self._timeout_seconds = timeout_seconds
        self._ok_exit_codes = frozenset(ok_exit_codes)
        self._executor = executor if executor is not None else SubprocessExecutor()

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    async def diff(self, output_name: str, location_a: Path, location_b: Path) -> bytes:
        label = _staging_name(output_name)
        with temp_directory(prefix="repro-diff-") as scratch:
            try:
                side_a = link_or_copy(location_a, scratch / "a" / label)
                side_b = link_or_copy(location_b, scratch / "b" / label)
            except OSError as exc:
                raise DiffComputationError(
                    f"unable to stage {output_name} for diffing: {exc}", output_name=output_name
                ) from exc

            spec = CommandSpec(
                argv=(*self._command, str(side_a), str(side_b)),
                cwd=str(scratch),
                timeout_seconds=self._timeout_seconds,
                ok_exit_codes=self._ok_exit_codes,
            )
            result = await self._executor.run(spec)

        if not result.accepted(spec):
            raise DiffComputationError(
                f"diff of {output_name} failed: {result.explain()}",
                output_name=output_name,
            )
        if not result.stdout:
            raise DiffComputationError(
                f"diff of {output_name} produced no output", output_name=output_name
            )
        return result.stdout


def _staging_name(output_name: str) -> str:
    name = PurePosixPath(output_name).name
    if name in {"", ".", ".."}:
        return "output"
    return name


__all__ = ["DEFAULT_DIFF_COMMAND", "DiffTool", "DiffoscopeTool"]
