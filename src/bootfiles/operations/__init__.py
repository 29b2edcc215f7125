"""
Operations package - Application service layer between CLI and the core.

This package provides the Operations facade that orchestrates provisioning
runs, the error policy table and output formatting while keeping CLI
commands thin and testable.
"""
from .facade import ApplyResult, Operations, OpsConfig
from .mappers import Severity, exit_code_for, run_and_exit, severity_for

__all__ = [
    "ApplyResult",
    "Operations",
    "OpsConfig",
    "Severity",
    "exit_code_for",
    "run_and_exit",
    "severity_for",
]
