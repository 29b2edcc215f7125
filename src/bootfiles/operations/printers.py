"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin.
"""
from __future__ import annotations

from typing import List

import typer

from ..fetch_types import FetchPlan, LinkPlan, Verify
from .facade import ApplyResult


def print_plans(plans: List[FetchPlan], verbose: bool = False) -> None:
    """
    Print resolved fetch plans, one block per file.

    Args:
        plans: Plans from Operations.plan()
        verbose: Also show expected digests in full
    """
    if not plans:
        typer.echo("No files to write")
        return

    for plan in plans:
        typer.echo(f"{plan.path}")
        typer.echo(f"  Source: {plan.source.geturl() or '(empty)'}")
        typer.echo(f"  Mode: {plan.mode:04o}")
        typer.echo(f"  Owner: {plan.uid}:{plan.gid}")
        if plan.compression:
            typer.echo(f"  Compression: {plan.compression}")
        if isinstance(plan.verification, Verify):
            digest = plan.expected_sum.hex()
            if not verbose:
                digest = digest[:16] + "…"
            typer.echo(f"  Verify: {plan.verification.algorithm} {digest}")
        else:
            typer.echo("  Verify: none")


def print_link_plans(plans: List[LinkPlan]) -> None:
    """Print resolved link plans, one line per link."""
    for plan in plans:
        if plan.hard:
            typer.echo(f"{plan.path} => {plan.target} (hard)")
        else:
            typer.echo(f"{plan.path} -> {plan.target} (owner {plan.identity.uid}:{plan.identity.gid})")


def print_apply_summary(result: ApplyResult, root: str) -> None:
    """Print the outcome of an apply run."""
    typer.echo(f"Applied to {root}")
    typer.echo(f"Files: {len(result.files)}")
    for path in result.files:
        typer.echo(f"  {path}")
    typer.echo(f"Links: {len(result.links)}")
    for path in result.links:
        typer.echo(f"  {path}")
    if result.failures:
        typer.echo(f"Failed: {len(result.failures)}", err=True)
        for path, exc in result.failures:
            typer.echo(f"  {path}: {exc}", err=True)


def print_fetch_summary(plan: FetchPlan, root: str) -> None:
    """Print the outcome of a single-file fetch."""
    typer.echo(f"Wrote {plan.path} under {root} (mode {plan.mode:04o}, owner {plan.uid}:{plan.gid})")


def print_error(exc: BaseException) -> None:
    """Print an error message to stderr."""
    typer.echo(f"Error: {exc}", err=True)
