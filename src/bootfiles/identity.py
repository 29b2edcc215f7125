"""
User and group resolution.

Descriptors name owners either symbolically or by numeric id. Names are looked
up in an identity database; by default the one belonging to the target system
(its /etc/passwd and /etc/group below the destination root), since the system
running the provisioning may have a different set of accounts.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import IdentityResolutionError
from .fetch_types import Identity
from .models import NodeGroup, NodeUser

__all__ = [
    "IdentityRecord",
    "IdentityDatabase",
    "SystemIdentityDatabase",
    "RootedIdentityDatabase",
    "identity_database_for",
    "parse_id",
    "resolve_identity",
]

logger = logging.getLogger(__name__)

_LEGACY_OCTAL = re.compile(r"^[+-]?0[0-7_]+$")


@dataclass(frozen=True)
class IdentityRecord:
    """An identity database entry; ``id`` is kept as the database's string."""
    name: str
    id: str


class IdentityDatabase(Protocol):
    """Protocol for user/group lookups. Unknown names raise LookupError."""

    def lookup_user(self, name: str) -> IdentityRecord:
        ...

    def lookup_group(self, name: str) -> IdentityRecord:
        ...


class SystemIdentityDatabase:
    """Looks names up in the running system's database via pwd/grp."""

    def lookup_user(self, name: str) -> IdentityRecord:
        import pwd

        try:
            entry = pwd.getpwnam(name)
        except KeyError:
            raise LookupError(f"unknown user {name!r}") from None
        return IdentityRecord(name=name, id=str(entry.pw_uid))

    def lookup_group(self, name: str) -> IdentityRecord:
        import grp

        try:
            entry = grp.getgrnam(name)
        except KeyError:
            raise LookupError(f"unknown group {name!r}") from None
        return IdentityRecord(name=name, id=str(entry.gr_gid))


class RootedIdentityDatabase:
    """
    Looks names up in the passwd and group files of a system mounted at root.

    Both files use the colon-separated layout ``name:password:id:...``; the id
    is the third field. Files are read on every lookup.
    """

    def __init__(self, root: str = "/"):
        self.root = root

    def lookup_user(self, name: str) -> IdentityRecord:
        return self._lookup(os.path.join(self.root, "etc", "passwd"), name, "user")

    def lookup_group(self, name: str) -> IdentityRecord:
        return self._lookup(os.path.join(self.root, "etc", "group"), name, "group")

    def _lookup(self, db_path: str, name: str, kind: str) -> IdentityRecord:
        try:
            with open(db_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    fields = line.split(":")
                    if len(fields) >= 3 and fields[0] == name:
                        return IdentityRecord(name=name, id=fields[2])
        except FileNotFoundError:
            raise LookupError(f"unknown {kind} {name!r}: {db_path} does not exist") from None
        raise LookupError(f"unknown {kind} {name!r}")


def identity_database_for(settings) -> IdentityDatabase:
    """Pick the identity database named by settings.identity_source."""
    if settings.identity_source == "system":
        return SystemIdentityDatabase()
    return RootedIdentityDatabase(settings.root)


def parse_id(value: str) -> int:
    """
    Parse a numeric id string, autodetecting its base.

    Accepts decimal, 0x/0o/0b prefixed forms and legacy leading-zero octal
    ("0755"), with an optional sign. Surrounding whitespace is not accepted.

    Raises:
        ValueError: If the string is not a number in any of those notations
    """
    if value != value.strip():
        raise ValueError(f"invalid id {value!r}: surrounding whitespace")
    if _LEGACY_OCTAL.match(value):
        return int(value, 8)
    return int(value, 0)


def _resolve_half(kind: str, name: Optional[str], explicit: Optional[int], lookup) -> int:
    if name:
        try:
            record = lookup(name)
        except LookupError as e:
            logger.critical(f"No such {kind} {name!r}: {e}")
            raise IdentityResolutionError(f"No such {kind} {name!r}: {e}") from e
        try:
            return parse_id(record.id)
        except ValueError as e:
            logger.critical(f"Couldn't parse {kind} id {record.id!r}: {e}")
            raise IdentityResolutionError(f"Couldn't parse {kind} id {record.id!r}") from e
    if explicit is not None:
        return explicit
    return 0


def resolve_identity(
    user: NodeUser,
    group: NodeGroup,
    *,
    database: Optional[IdentityDatabase] = None,
) -> Identity:
    """
    Resolve user and group owners into a numeric (uid, gid) pair.

    Precedence per half (user and group independently):
    1. Name, looked up in the identity database
    2. Explicit numeric id
    3. 0 (root)

    Args:
        user: Owning user
        group: Owning group
        database: Identity database for name lookups (defaults to the
            running system's)

    Returns:
        Identity with both ids resolved

    Raises:
        IdentityResolutionError: If a name is unknown or its id is unparsable.
            Nothing partial is ever returned.
    """
    if database is None:
        database = SystemIdentityDatabase()

    uid = _resolve_half("user", user.name, user.id, database.lookup_user)
    gid = _resolve_half("group", group.name, group.id, database.lookup_group)
    return Identity(uid=uid, gid=gid)
