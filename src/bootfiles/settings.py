"""
Settings and configuration for bootfiles.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at construction time.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from . import __version__

__all__ = ["Settings", "create_settings_from_env", "IDENTITY_SOURCES"]

IDENTITY_SOURCES = ("system", "root")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for a provisioning run.

    Filesystem Settings:
        root: Destination root that descriptor paths are joined onto
            ("/" normally, "/sysroot" from an initramfs)
        identity_source: Where user/group names are looked up: "root" reads
            <root>/etc/passwd and <root>/etc/group, "system" uses the running
            system's database

    HTTP Transport Settings:
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Number of extra attempts on connection errors (0=no retry)
        http_insecure: Skip TLS certificate verification
        user_agent: User-Agent header sent with HTTP requests
    """
    root: str = "/"
    identity_source: str = "root"
    http_timeout_s: float = 30.0
    http_retry: int = 0
    http_insecure: bool = False
    user_agent: str = f"bootfiles/{__version__}"

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.root or not os.path.isabs(self.root):
            raise ValueError(f"root must be an absolute path, got {self.root!r}")

        if self.identity_source not in IDENTITY_SOURCES:
            raise ValueError(
                f"identity_source must be one of {', '.join(IDENTITY_SOURCES)}, got {self.identity_source!r}"
            )

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - BOOTFILES_ROOT (default: /)
        - BOOTFILES_IDENTITY_SOURCE (default: root)
        - BOOTFILES_HTTP_TIMEOUT (default: 30.0)
        - BOOTFILES_HTTP_RETRY (default: 0)
        - BOOTFILES_HTTP_INSECURE (default: false)
        - BOOTFILES_USER_AGENT (default: bootfiles/<version>)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        root=os.getenv("BOOTFILES_ROOT") or "/",
        identity_source=os.getenv("BOOTFILES_IDENTITY_SOURCE") or "root",
        http_timeout_s=get_float("BOOTFILES_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("BOOTFILES_HTTP_RETRY", 0),
        http_insecure=str_to_bool(os.getenv("BOOTFILES_HTTP_INSECURE", "false")),
        user_agent=os.getenv("BOOTFILES_USER_AGENT") or f"bootfiles/{__version__}",
    )
