# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
import shutil
from os.path import isdir, islink

from ..exceptions import FileSystemError, MoveConflictError
from ..utils import get_logger, merge_tree
from .base import ExtractionRequest, UnpackStrategy

log = get_logger(__name__)


def _is_real_dir(path):
    return isdir(path) and not islink(path)


def plan_moves(src_root, dst_root):
    """Yield ``(src, dst, replace)`` for every entry of ``src_root`` to move.

    Entries are visited parent before children, in name order.  A directory
    whose destination already is a directory is not moved itself; its children
    are visited instead.  Anything else is moved whole and nothing below it is
    visited.  ``replace`` is True when ``dst`` has to be removed first.

    :raises MoveConflictError: a directory would replace a non-directory or the
        reverse.
    """
    with os.scandir(src_root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        src = entry.path
        dst = os.path.join(dst_root, entry.name)
        src_real_dir = entry.is_dir(follow_symlinks=False)
        if os.path.lexists(dst):
            dst_real_dir = _is_real_dir(dst)
            # This is similar to `cp` which fails with errors like
            # 'cp: <dst>: Is a directory', but we fail before moving anything.
            if src_real_dir != dst_real_dir:
                raise MoveConflictError(src, dst, src_real_dir)
            if dst_real_dir:
                # merged later on; the copy pass carries the attributes over
                yield from plan_moves(src, dst)
                continue
            yield src, dst, True
        else:
            yield src, dst, False


def move_to_dir(src_root, dst_root, verbose=False):
    """Move files and non-conflicting directories from ``src_root`` to ``dst_root``."""
    moves = list(plan_moves(src_root, dst_root))
    for src, dst, replace in moves:
        if replace:
            os.unlink(dst)
        if verbose:
            log.info("mv %s %s", src, dst)
        shutil.move(src, dst)
    return moves


class DirectoryStrategy(UnpackStrategy):
    """Strategy for sources that already are an uncompressed directory."""

    name = "directory"

    def can_extract(self, path):
        return isdir(path)

    def extract(self, request: ExtractionRequest) -> None:
        src = request.source_path
        dst = request.destination_path
        action = "Moving" if request.move else "Copying"
        if request.verbose:
            log.info("%s %s to %s", action, src, dst)
        else:
            log.debug("%s %s to %s", action, src, dst)
        try:
            os.makedirs(dst, exist_ok=True)
            if request.move:
                move_to_dir(src, dst, verbose=request.verbose)
            # whatever was not moved (existing directories) is merged by copying
            merge_tree(
                src,
                dst,
                xattrs=request.merge_xattrs,
                timeout=request.timeout,
                locking=request.locking and not request.move,
            )
        except OSError as e:
            raise FileSystemError(
                f"{action} {src} to {dst} failed: {e}", src=src, dst=dst
            ) from e
