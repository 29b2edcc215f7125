"""
Tests for joining descriptor paths onto the destination root.
"""
from __future__ import annotations

import pytest

from bootfiles.path_safety import join_root


class TestJoinRoot:
    """Test join_root directly."""

    def test_plain_join(self):
        assert join_root("/sysroot", "/etc/hostname") == "/sysroot/etc/hostname"
        assert join_root("/", "/etc/hostname") == "/etc/hostname"
        assert join_root("/sysroot/", "/var/lib/x") == "/sysroot/var/lib/x"

    def test_normalizes(self):
        assert join_root("/sysroot", "/etc/./ssh//sshd_config") == "/sysroot/etc/ssh/sshd_config"
        assert join_root("/sysroot", "//etc/hostname") == "/sysroot/etc/hostname"

    def test_parent_references_cannot_escape(self):
        assert join_root("/sysroot", "/../../etc/shadow") == "/sysroot/etc/shadow"
        assert join_root("/sysroot", "/etc/../../root/x") == "/sysroot/root/x"

    @pytest.mark.parametrize("path", ["", "etc/hostname", "./etc", "\\etc\\hostname", "/etc\\hostname"])
    def test_rejected(self, path):
        with pytest.raises(ValueError, match="unsafe path"):
            join_root("/sysroot", path)

    @pytest.mark.parametrize("path", ["/", "/.", "/.."])
    def test_root_itself_rejected(self, path):
        with pytest.raises(ValueError, match="unsafe path"):
            join_root("/sysroot", path)
