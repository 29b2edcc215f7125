"""
Operations Facade - Application service layer.

Provides a clean interface between CLI and the fetch/link core, centralizing
run orchestration and the per-entry error policy while keeping CLI commands
thin and testable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..fetch import execute_fetch, resolve_fetch
from ..fetch_types import FetchPlan, LinkPlan, Transport
from ..identity import IdentityDatabase, identity_database_for
from ..links import execute_link, resolve_link
from ..models import FileDescriptor, ProvisioningConfig
from .mappers import Severity, severity_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes run policy so the CLI and library callers behave the same.
    """
    keep_going: bool = False      # Continue past per-entry (ENTRY) failures
    verbose: bool = False         # Show detailed output


@dataclass
class ApplyResult:
    """Outcome of applying a provisioning config."""
    files: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    failures: List[Tuple[str, BaseException]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class Operations:
    """
    Application service facade for provisioning runs.

    Design Notes: Operations Facade

    The core functions (resolve_fetch, execute_fetch, resolve_link,
    execute_link) handle one entry each and report failures by raising. This
    facade owns everything about a whole run:

    - Ordering: all files and links are resolved before anything is written,
      so a configuration error leaves the filesystem untouched; files are
      written before links so hard links can point at them
    - Policy: severity_for() decides whether an error aborts the run; only
      ENTRY errors may be skipped, and only with keep_going
    - Injection: transport and identity database can be replaced with fakes
    """

    def __init__(
        self,
        config: OpsConfig,
        *,
        settings=None,
        transport: Optional[Transport] = None,
        database: Optional[IdentityDatabase] = None,
    ):
        """
        Initialize Operations facade.

        Args:
            config: Run policy
            settings: Optional settings (if None, loaded from environment)
            transport: Transport for fetches (if None, built from settings)
            database: Identity database (if None, chosen by settings)
        """
        self.cfg = config

        if settings is None:
            from ..settings import create_settings_from_env
            settings = create_settings_from_env()
        self.settings = settings

        if transport is None:
            from ..transport import create_fetcher
            transport = create_fetcher(settings)
        self.transport = transport

        if database is None:
            database = identity_database_for(settings)
        self.database = database

    def plan(self, config: ProvisioningConfig) -> List[FetchPlan]:
        """
        Resolve every file in the config without touching the filesystem.

        Raises:
            ConfigurationError: If any file cannot be resolved
        """
        return [resolve_fetch(f, database=self.database) for f in config.storage.files]

    def plan_links(self, config: ProvisioningConfig) -> List[LinkPlan]:
        """
        Resolve every link in the config without touching the filesystem.

        Raises:
            ConfigurationError: If a symlink owner cannot be resolved
        """
        return [resolve_link(link, database=self.database) for link in config.storage.links]

    def apply(self, config: ProvisioningConfig) -> ApplyResult:
        """
        Materialize every file and link in the config.

        Returns:
            ApplyResult listing written paths and skipped failures

        Raises:
            ConfigurationError: If any file or link cannot be resolved
                (nothing written)
            FetchError, OSError: On the first per-entry failure unless keep_going
        """
        plans = self.plan(config)
        link_plans = self.plan_links(config)
        result = ApplyResult()

        for plan in plans:
            try:
                execute_fetch(plan, transport=self.transport, root=self.settings.root)
            except Exception as e:
                self._record_or_raise(result, plan.path, e)
                continue
            result.files.append(plan.path)

        for link_plan in link_plans:
            try:
                execute_link(link_plan, root=self.settings.root)
            except Exception as e:
                self._record_or_raise(result, link_plan.path, e)
                continue
            result.links.append(link_plan.path)

        return result

    def fetch_one(self, descriptor: FileDescriptor) -> FetchPlan:
        """Resolve and materialize a single file; returns the executed plan."""
        plan = resolve_fetch(descriptor, database=self.database)
        execute_fetch(plan, transport=self.transport, root=self.settings.root)
        return plan

    def _record_or_raise(self, result: ApplyResult, path: str, exc: Exception) -> None:
        if severity_for(exc) is Severity.FATAL or not self.cfg.keep_going:
            raise exc
        logger.error(f"Skipping {path}: {exc}")
        result.failures.append((path, exc))
