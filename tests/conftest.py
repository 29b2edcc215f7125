"""Root pytest configuration for bootfiles tests."""
import os

import pytest

from bootfiles.fetch_types import Identity
from bootfiles.models import FileContents, FileDescriptor, NodeGroup, NodeUser, Verification
from bootfiles.settings import Settings

from .fakes.fake_identity import FakeIdentityDatabase
from .fakes.fake_transport import FakeTransport


# Keep the developer's environment out of the tests
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically clear bootfiles environment variables."""
    for key in list(os.environ):
        if key.startswith("BOOTFILES_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def root(tmp_path):
    """Destination root standing in for /sysroot."""
    path = tmp_path / "sysroot"
    path.mkdir()
    return path


@pytest.fixture
def settings(root):
    """Standard test settings rooted at the temporary sysroot."""
    return Settings(root=str(root), identity_source="root")


@pytest.fixture
def me():
    """Identity of the user running the tests; chown to it needs no privileges."""
    return Identity(uid=os.getuid(), gid=os.getgid())


@pytest.fixture
def database(me):
    """Fake identity database whose names map onto the current user."""
    return FakeIdentityDatabase(
        users={"core": str(me.uid), "hexuser": hex(me.uid)},
        groups={"core": str(me.gid), "octgroup": "0" + oct(me.gid)[2:] if me.gid else "0"},
    )


@pytest.fixture
def transport():
    """Fake transport serving a fixed payload."""
    return FakeTransport(b"hello from the fake transport\n")


@pytest.fixture
def make_file(me):
    """Factory for file descriptors owned by the current user."""
    def _make(path="/etc/motd", *, source="http://example.com/motd", mode=0o644, hash=None,
              compression="", user=None, group=None):
        return FileDescriptor(
            path=path,
            mode=mode,
            user=user if user is not None else NodeUser(id=me.uid),
            group=group if group is not None else NodeGroup(id=me.gid),
            contents=FileContents(
                source=source,
                compression=compression,
                verification=Verification(hash=hash),
            ),
        )
    return _make
