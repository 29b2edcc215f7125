"""
Hard and symbolic link creation.

resolve_link() does every lookup a link needs and touches nothing;
execute_link() only does filesystem work. write_link() runs both.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from .fetch import mkdir_for_file
from .fetch_types import LinkPlan
from .identity import IdentityDatabase, resolve_identity
from .models import LinkDescriptor
from .path_safety import join_root

__all__ = ["resolve_link", "execute_link", "write_link"]

logger = logging.getLogger(__name__)


def resolve_link(link: LinkDescriptor, *, database: Optional[IdentityDatabase] = None) -> LinkPlan:
    """
    Resolve a link descriptor into a LinkPlan.

    Hard links take no owner, so their owner fields are never looked up.

    Raises:
        IdentityResolutionError: If the symlink owner cannot be resolved
    """
    if link.hard:
        return LinkPlan(path=link.path, target=link.target, hard=True)

    identity = resolve_identity(link.user, link.group, database=database)
    return LinkPlan(path=link.path, target=link.target, identity=identity)


def execute_link(plan: LinkPlan, *, root: str = "/") -> None:
    """
    Create the link described by ``plan`` below root.

    Hard links point at ``plan.target`` re-rooted like any other path, and
    take no ownership step since they share the target's inode. Symbolic links
    store ``plan.target`` verbatim and get the resolved owner applied to the
    link itself, without following it.

    Raises:
        OSError: If any filesystem call fails
    """
    path = join_root(root, plan.path)

    if plan.hard:
        mkdir_for_file(path)
        os.link(join_root(root, plan.target), path, follow_symlinks=False)
        logger.info(f"Linked {path} => {plan.target} (hard)")
        return

    mkdir_for_file(path)
    os.symlink(plan.target, path)
    os.lchown(path, plan.identity.uid, plan.identity.gid)
    logger.info(f"Linked {path} -> {plan.target} (owner {plan.identity.uid}:{plan.identity.gid})")


def write_link(
    link: LinkDescriptor,
    *,
    root: str = "/",
    database: Optional[IdentityDatabase] = None,
) -> None:
    """
    Resolve and create a single link.

    Args:
        link: Link descriptor (not modified)
        root: Destination root
        database: Identity database for symlink owner names

    Raises:
        IdentityResolutionError: If the symlink owner cannot be resolved
            (nothing is created)
        OSError: If any filesystem call fails
    """
    execute_link(resolve_link(link, database=database), root=root)
