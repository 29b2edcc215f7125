"""
Data models for provisioning configs.

These Pydantic models describe the declarative input: which files and links
should exist on the target system, where their content comes from and who
owns them. Models are frozen; resolution produces new values instead of
filling in fields on these.
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = [
    "NodeUser",
    "NodeGroup",
    "Verification",
    "FileContents",
    "FileDescriptor",
    "LinkDescriptor",
    "Storage",
    "ProvisioningConfig",
    "Compression",
]

Compression = Literal["", "gzip", "zstd"]

_HASH_RE = re.compile(r"^(?P<function>[a-z0-9]+)[-:](?P<sum>.*)$")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class NodeUser(_Frozen):
    """Owning user: a name looked up on the target system, or an explicit uid."""
    id: Optional[int] = Field(default=None, description="Numeric uid")
    name: Optional[str] = Field(default=None, description="User name")


class NodeGroup(_Frozen):
    """Owning group: a name looked up on the target system, or an explicit gid."""
    id: Optional[int] = Field(default=None, description="Numeric gid")
    name: Optional[str] = Field(default=None, description="Group name")


class Verification(_Frozen):
    """Expected content digest, written as "<function>-<hex digest>"."""
    hash: Optional[str] = Field(default=None, description="e.g. sha512-0123abcd...")

    def hash_parts(self) -> Tuple[str, str]:
        """
        Split the hash string into function name and hex digest.

        Raises:
            ValueError: If the string has no function prefix
        """
        match = _HASH_RE.match(self.hash or "")
        if not match:
            raise ValueError(f"malformed verification hash: {self.hash!r}")
        return match.group("function"), match.group("sum")


class FileContents(_Frozen):
    source: str = Field(default="", description="Source URL; empty means an empty file")
    compression: Compression = Field(default="", description="Compression of the source")
    verification: Verification = Field(default_factory=Verification)


class FileDescriptor(_Frozen):
    """A regular file that should exist on the target system."""
    path: str = Field(..., description="Absolute path on the target system")
    mode: int = Field(default=0o644, ge=0, le=0o7777, description="Permission bits")
    user: NodeUser = Field(default_factory=NodeUser)
    group: NodeGroup = Field(default_factory=NodeGroup)
    contents: FileContents = Field(default_factory=FileContents)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"path must be absolute: {v}")
        return v


class LinkDescriptor(_Frozen):
    """
    A hard or symbolic link that should exist on the target system.

    Owner fields only matter for symbolic links; a hard link shares the
    inode, and therefore the owner, of its target.
    """
    path: str = Field(..., description="Absolute path of the link itself")
    target: str = Field(..., description="Link target, stored verbatim for symlinks")
    hard: bool = Field(default=False, description="Create a hard link instead of a symlink")
    user: NodeUser = Field(default_factory=NodeUser)
    group: NodeGroup = Field(default_factory=NodeGroup)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"path must be absolute: {v}")
        return v

    @model_validator(mode="after")
    def validate_hard_target(self) -> LinkDescriptor:
        # Hard link targets are re-rooted like paths; symlink targets are not
        if self.hard and not self.target.startswith("/"):
            raise ValueError(f"hard link target must be absolute: {self.target}")
        return self


class Storage(_Frozen):
    files: List[FileDescriptor] = Field(default_factory=list)
    links: List[LinkDescriptor] = Field(default_factory=list)


class ProvisioningConfig(_Frozen):
    """
    Top-level provisioning document.

    Only the storage section is consumed here; other sections belong to
    other stages and are ignored.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    storage: Storage = Field(default_factory=Storage)

    @classmethod
    def from_dict(cls, data: dict) -> ProvisioningConfig:
        return cls.model_validate(data or {})

    @classmethod
    def from_file(cls, path: Path) -> ProvisioningConfig:
        """Load a config from a YAML or JSON file."""
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Provisioning config not found: {path}")

        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
        return cls.from_dict(data)
