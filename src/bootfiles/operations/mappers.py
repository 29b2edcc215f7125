"""
Error policy and CLI utilities.

Provides the single table that decides what an error means for a provisioning
run (severity) and for the process (exit code), plus the wrapper that applies
it to Typer commands.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, TypeVar

import typer

T = TypeVar('T')


class Severity(str, Enum):
    """How far an error reaches."""
    FATAL = "fatal"   # abort the whole run
    ENTRY = "entry"   # only this file/link failed; the caller may continue


# Keyed by exception class name; the most specific class in the MRO wins
SEVERITY = {
    "ConfigurationError": Severity.FATAL,
    "ValidationError": Severity.FATAL,
    "ValueError": Severity.FATAL,
    "FetchError": Severity.ENTRY,
    "OSError": Severity.ENTRY,
}

EXIT_CODES = {
    "ConfigurationError": 2,
    "ValidationError": 2,
    "ValueError": 2,
    "UsageError": 2,
    "FetchError": 3,
    "DigestMismatchError": 4,
    "OSError": 5,
}

FALLBACK_EXIT_CODE = 1


def _lookup(table: dict, exc: BaseException, default: Any) -> Any:
    for cls in type(exc).__mro__:
        if cls.__name__ in table:
            return table[cls.__name__]
    return default


def severity_for(exc: BaseException) -> Severity:
    """
    Map exception to its severity.

    - FATAL: configuration errors (unknown user/group, bad checksum string,
      invalid config) and anything unrecognized
    - ENTRY: fetch failures (including digest mismatch) and filesystem errors

    Args:
        exc: Exception to classify

    Returns:
        Severity of the exception
    """
    return _lookup(SEVERITY, exc, Severity.FATAL)


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    - 0: Success
    - 1: Unknown error
    - 2: Configuration or usage error (ConfigurationError, ValidationError,
      ValueError, click UsageError such as typer.BadParameter)
    - 3: Fetch error (FetchError)
    - 4: Digest mismatch (DigestMismatchError)
    - 5: Filesystem error (OSError)

    Args:
        exc: Exception to map

    Returns:
        Exit code (1 as fallback for unknown exceptions)
    """
    return _lookup(EXIT_CODES, exc, FALLBACK_EXIT_CODE)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except (typer.Exit, typer.Abort):
        raise
    except Exception as e:
        from .printers import print_error
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
