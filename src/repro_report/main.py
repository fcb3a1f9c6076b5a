"""Process entrypoint: runs the CLI and turns its outcome into an exit code."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Exit statuses of ``repro-report``."""

    SUCCESS = 0
    INCOMPLETE_VERIFICATION = 1
    CONFIG_ERROR = 2
    DIFF_ERROR = 3
    DEFINITION_ERROR = 4
    INTERNAL_ERROR = 5


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m repro_report`` and the console script."""

    try:
        from repro_report.ui.cli import run_cli

        return _as_exit_code(run_cli(argv))
    except SystemExit as exc:
        # argparse exits with 2 on usage errors, which is already CONFIG_ERROR.
        return _as_exit_code(exc.code)
    except BaseException as exc:  # noqa: BLE001 - last line before the process exits.
        code = _route_exception(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            message = str(exc).strip() or type(exc).__name__
            print(f"error: {message}", file=sys.stderr)
        return int(code)


def _as_exit_code(value: object) -> int:
    if value is None:
        return int(ExitCode.SUCCESS)
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return int(ExitCode(value))
        except ValueError:
            return int(ExitCode.INTERNAL_ERROR)
    if isinstance(value, str) and value.strip():
        print(value.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _routes() -> tuple[tuple[tuple[type[BaseException], ...], ExitCode], ...]:
    from repro_report.config import ConfigLoadError, ConfigValidationError
    from repro_report.domain.errors import (
        DefinitionParseError,
        DiffComputationError,
        IncompleteVerificationError,
        OutcomeFormatError,
    )

    # Ordered: the first matching row wins for each exception in the chain.
    return (
        ((IncompleteVerificationError,), ExitCode.INCOMPLETE_VERIFICATION),
        ((DefinitionParseError,), ExitCode.DEFINITION_ERROR),
        ((DiffComputationError,), ExitCode.DIFF_ERROR),
        ((ConfigLoadError, ConfigValidationError, OutcomeFormatError), ExitCode.CONFIG_ERROR),
    )


# Bad input from the user's environment, matched only when nothing more specific is.
_INPUT_ERRORS: tuple[type[BaseException], ...] = (
    FileNotFoundError,
    NotADirectoryError,
    PermissionError,
    ValueError,
)


def _route_exception(exc: BaseException) -> ExitCode:
    chain = list(_causes(exc))
    for item in chain:
        for types, code in _routes():
            if isinstance(item, types):
                return code
    if any(isinstance(item, _INPUT_ERRORS) for item in chain):
        return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and the exceptions it was raised from, outermost first."""

    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__


__all__ = ["ExitCode", "cli_entrypoint"]
