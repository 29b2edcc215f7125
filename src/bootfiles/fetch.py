"""
bootfiles fetch pipeline.

resolve_fetch() turns a file descriptor into a FetchPlan; execute_fetch()
materializes a plan. The target path only ever changes through one rename of
a fully written, verified, correctly owned staging file that lives in the same
directory as the target.
"""
from __future__ import annotations

import binascii
import logging
import os
import tempfile
from typing import Optional
from urllib.parse import urlsplit

from .errors import FetchError, VerificationConfigError
from .fetch_types import FetchPlan, NoVerification, Transport, Verify, VerificationChoice
from .hashing import get_hasher
from .identity import IdentityDatabase, resolve_identity
from .models import FileDescriptor
from .path_safety import join_root

__all__ = [
    "DEFAULT_DIRECTORY_PERMISSIONS",
    "DEFAULT_FILE_PERMISSIONS",
    "STAGING_PREFIX",
    "StagingFile",
    "mkdir_for_file",
    "resolve_fetch",
    "execute_fetch",
]

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY_PERMISSIONS = 0o755
DEFAULT_FILE_PERMISSIONS = 0o644
STAGING_PREFIX = ".bootfiles.tmp."


def mkdir_for_file(path: str) -> None:
    """
    Create the missing parent directories of path with mode 0755.

    Every directory created gets exactly 0755 regardless of the umask;
    directories that already exist are left alone.
    """
    missing = []
    directory = os.path.dirname(path)
    while directory and not os.path.isdir(directory):
        missing.append(directory)
        parent = os.path.dirname(directory)
        if parent == directory:
            break
        directory = parent

    for directory in reversed(missing):
        try:
            os.mkdir(directory, DEFAULT_DIRECTORY_PERMISSIONS)
        except FileExistsError:
            if os.path.isdir(directory):
                continue
            raise
        # mkdir's mode is filtered through the umask
        os.chmod(directory, DEFAULT_DIRECTORY_PERMISSIONS)


class StagingFile:
    """
    Temporary file next to ``target`` that either becomes ``target`` or vanishes.

    Use as a context manager. ``commit()`` renames the staging file onto the
    target; leaving the block without a successful commit removes it. Removal
    failures are logged and swallowed so they never replace the error that
    caused the rollback.

    Example:
        >>> with StagingFile("/etc/hostname") as staging:
        ...     staging.file.write(b"node1\\n")
        ...     staging.commit()
    """

    def __init__(self, target: str, *, prefix: str = STAGING_PREFIX):
        self.target = target
        self.prefix = prefix
        self.path: Optional[str] = None
        self.file = None
        self.committed = False

    def __enter__(self) -> StagingFile:
        # Same directory as the target so commit() is a rename, not a copy
        fd, self.path = tempfile.mkstemp(prefix=self.prefix, dir=os.path.dirname(self.target))
        self.file = os.fdopen(fd, "wb")
        return self

    def fileno(self) -> int:
        return self.file.fileno()

    def commit(self) -> None:
        """Flush to disk and atomically rename onto the target."""
        self.file.flush()
        os.fsync(self.file.fileno())
        self.file.close()
        os.replace(self.path, self.target)
        self.committed = True

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.committed:
            return False
        try:
            self.file.close()
        except OSError as e:
            logger.debug(f"Failed to close staging file {self.path}: {e}")
        try:
            os.unlink(self.path)
        except OSError as e:
            logger.debug(f"Failed to remove staging file {self.path}: {e}")
        return False


def _resolve_verification(f: FileDescriptor) -> VerificationChoice:
    if not f.contents.verification.hash:
        return NoVerification()

    try:
        algorithm, expected_hex = f.contents.verification.hash_parts()
        hasher = get_hasher(algorithm)
    except VerificationConfigError as e:
        logger.critical(f"Error verifying file {f.path!r}: {e}")
        raise
    except ValueError as e:
        logger.critical(f"Error verifying file {f.path!r}: {e}")
        raise VerificationConfigError(f"Error verifying file {f.path!r}: {e}") from e

    try:
        expected = binascii.unhexlify(expected_hex)
        return Verify(algorithm=algorithm, hasher=hasher, expected=expected)
    except ValueError as e:
        logger.critical(f"Error parsing verification string {expected_hex!r}: {e}")
        raise VerificationConfigError(
            f"Error parsing verification string {expected_hex!r} for {f.path!r}: {e}"
        ) from e


def resolve_fetch(f: FileDescriptor, *, database: Optional[IdentityDatabase] = None) -> FetchPlan:
    """
    Resolve a file descriptor into an executable FetchPlan.

    This function:
    - Parses the source URL (the config is already validated)
    - Builds the digest accumulator and decodes the expected digest
    - Resolves the owning user and group to numeric ids

    Failures are logged at CRITICAL: the config asks for something that
    cannot be done, and carrying on could skip verification or write with the
    wrong owner.

    Args:
        f: File descriptor to resolve (not modified)
        database: Identity database for user/group names

    Returns:
        FetchPlan for execute_fetch()

    Raises:
        VerificationConfigError: Unknown hash function or malformed digest
        IdentityResolutionError: Unknown user/group or unparsable id
    """
    source = urlsplit(f.contents.source)
    verification = _resolve_verification(f)
    identity = resolve_identity(f.user, f.group, database=database)

    return FetchPlan(
        path=f.path,
        mode=f.mode,
        uid=identity.uid,
        gid=identity.gid,
        source=source,
        verification=verification,
        compression=f.contents.compression,
    )


def execute_fetch(plan: FetchPlan, *, transport: Transport, root: str = "/") -> None:
    """
    Materialize a FetchPlan below root.

    Steps:
    1. Create missing parent directories (0755)
    2. Stage a temporary file in the target's directory
    3. Stream the source into it through the transport, which verifies the
       digest
    4. Apply ownership and mode to the staging file
    5. Rename the staging file onto the target

    On any failure the staging file is removed and the target is left as it
    was before the call.

    Args:
        plan: Plan from resolve_fetch(); consumed by this call
        transport: Transport used for the byte transfer
        root: Destination root the plan's path is joined onto

    Raises:
        FetchError: Transfer or verification failed
        OSError: Directory creation, ownership, mode or rename failed
    """
    path = join_root(root, plan.path)
    mkdir_for_file(path)

    with StagingFile(path) as staging:
        try:
            transport.fetch(plan.source, staging.file, plan.options)
        except FetchError as e:
            logger.error(f"Error fetching file {plan.path!r}: {e}")
            raise

        # Descriptor-based calls act on exactly the file we wrote; chown
        # before chmod since chown may clear setuid/setgid bits
        os.fchown(staging.fileno(), plan.uid, plan.gid)
        os.fchmod(staging.fileno(), plan.mode)
        staging.commit()

    logger.info(f"Wrote {path} (mode {plan.mode:04o}, owner {plan.uid}:{plan.gid})")
