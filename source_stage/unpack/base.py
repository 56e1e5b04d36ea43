# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

from typing import NamedTuple


class ExtractionRequest(NamedTuple):
    """Everything a strategy needs to materialize one source."""

    source_path: str
    destination_path: str
    # only version control strategies look at these
    ref_type: str | None = None
    ref: str | None = None
    merge_xattrs: bool = False
    move: bool = False
    verbose: bool = False
    # archives holding a single top-level folder get its contents moved up
    hoist: bool = True
    locking: bool = True
    timeout: int = 900
    tools_prefix: str | None = None


class UnpackStrategy:
    """A way of turning one kind of source into a directory tree.

    Subclasses answer :meth:`can_extract` by looking at the content of a path
    (magic bytes, file type), never at its name.
    """

    name = "unknown"

    def can_extract(self, path: str) -> bool:
        raise NotImplementedError

    def extract(self, request: ExtractionRequest) -> None:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


def read_magic(path, size=512):
    """Return the first ``size`` bytes of ``path``, or ``b""`` if unreadable."""
    try:
        with open(path, "rb") as f:
            return f.read(size)
    except OSError:
        return b""


def looks_like_text(path, blocksize=8192):
    block = read_magic(path, blocksize)
    return bool(block) and b"\x00" not in block
