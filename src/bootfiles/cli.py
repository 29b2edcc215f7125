"""
bootfiles CLI

Implements 3 CLI verbs with Operations facade integration:
- apply: Write every file and link of a provisioning config
- plan: Resolve a config and show what would be written
- fetch: Write a single file given on the command line
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional

import typer

from .models import FileContents, FileDescriptor, NodeGroup, NodeUser, ProvisioningConfig, Verification
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import print_apply_summary, print_fetch_summary, print_link_plans, print_plans
from .settings import Settings, create_settings_from_env

app = typer.Typer(name="bootfiles", help="Atomic, verified file provisioning")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_settings(root: Optional[str]) -> Settings:
    settings = create_settings_from_env()
    if root is not None:
        settings = dataclasses.replace(settings, root=root)
    return settings


def _parse_mode(value: str) -> int:
    """
    Parse a permission mode given in octal ("644", "0644", "0o644").

    Raises:
        typer.BadParameter: If value is not an octal mode
    """
    s = value.strip().lower()
    if s.startswith("0o"):
        s = s[2:]
    try:
        mode = int(s, 8)
    except ValueError:
        raise typer.BadParameter(f"Invalid mode '{value}', expected octal like 0644")
    if not 0 <= mode <= 0o7777:
        raise typer.BadParameter(f"Mode '{value}' out of range")
    return mode


@app.command()
def apply(
    config_path: Path = typer.Argument(..., help="Provisioning config (YAML or JSON)"),
    root: Optional[str] = typer.Option(None, "--root", envvar="BOOTFILES_ROOT", help="Destination root"),
    keep_going: bool = typer.Option(False, "--keep-going", help="Continue past per-file failures"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output")
) -> None:
    """Write every file and link in a provisioning config."""
    _configure_logging(verbose)

    def _apply() -> None:
        config = ProvisioningConfig.from_file(config_path)
        settings = _load_settings(root)
        ops = Operations(OpsConfig(keep_going=keep_going, verbose=verbose), settings=settings)

        result = ops.apply(config)
        print_apply_summary(result, settings.root)
        if not result.ok:
            raise typer.Exit(code=1)

    run_and_exit(_apply)


@app.command()
def plan(
    config_path: Path = typer.Argument(..., help="Provisioning config (YAML or JSON)"),
    root: Optional[str] = typer.Option(None, "--root", envvar="BOOTFILES_ROOT", help="Destination root"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output")
) -> None:
    """Resolve a provisioning config and show what would be written."""
    _configure_logging(verbose)

    def _plan() -> None:
        config = ProvisioningConfig.from_file(config_path)
        settings = _load_settings(root)
        ops = Operations(OpsConfig(verbose=verbose), settings=settings)

        plans = ops.plan(config)
        link_plans = ops.plan_links(config)
        print_plans(plans, verbose=verbose)
        print_link_plans(link_plans)

    run_and_exit(_plan)


@app.command()
def fetch(
    path: str = typer.Argument(..., help="Absolute path of the file on the target system"),
    source: str = typer.Option("", "--source", help="Source URL (http, https, data, file); empty writes an empty file"),
    mode: str = typer.Option("0644", "--mode", help="Octal permission mode"),
    verify: Optional[str] = typer.Option(None, "--verify", help="Expected digest, e.g. sha512-<hex>"),
    compression: str = typer.Option("", "--compression", help="Source compression: gzip or zstd"),
    user: Optional[str] = typer.Option(None, "--user", help="Owning user name"),
    uid: Optional[int] = typer.Option(None, "--uid", help="Owning uid"),
    group: Optional[str] = typer.Option(None, "--group", help="Owning group name"),
    gid: Optional[int] = typer.Option(None, "--gid", help="Owning gid"),
    root: Optional[str] = typer.Option(None, "--root", envvar="BOOTFILES_ROOT", help="Destination root"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output")
) -> None:
    """Write a single file."""
    _configure_logging(verbose)

    def _fetch() -> None:
        descriptor = FileDescriptor(
            path=path,
            mode=_parse_mode(mode),
            user=NodeUser(id=uid, name=user),
            group=NodeGroup(id=gid, name=group),
            contents=FileContents(
                source=source,
                compression=compression,
                verification=Verification(hash=verify),
            ),
        )
        settings = _load_settings(root)
        ops = Operations(OpsConfig(verbose=verbose), settings=settings)

        executed = ops.fetch_one(descriptor)
        print_fetch_summary(executed, settings.root)

    run_and_exit(_fetch)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
