# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Selection of the strategy that turns a fetched source into a directory tree.

Strategies are tried in a fixed order, most specific first: version control
checkouts, plain directories, then archives by their magic bytes and finally
anything libarchive can read.  The first one whose ``can_extract`` accepts the
path wins.
"""
from __future__ import annotations

import os

from ..exceptions import FileSystemError, UnsupportedSourceError
from ..utils import get_logger
from .archive import GenericArchiveStrategy, TarStrategy, ZipStrategy
from .base import ExtractionRequest, UnpackStrategy
from .directory import DirectoryStrategy
from .vcs import GitStrategy, MercurialStrategy, SubversionStrategy

log = get_logger(__name__)

STRATEGIES: tuple[UnpackStrategy, ...] = (
    GitStrategy(),
    MercurialStrategy(),
    SubversionStrategy(),
    DirectoryStrategy(),
    ZipStrategy(),
    TarStrategy(),
    GenericArchiveStrategy(),
)


def select_strategy(path, strategies=STRATEGIES) -> UnpackStrategy:
    for strategy in strategies:
        if strategy.can_extract(path):
            log.debug("Using %s strategy for %s", strategy.name, path)
            return strategy
    raise UnsupportedSourceError(path)


def is_archive(path, strategies=STRATEGIES) -> bool:
    """Whether ``path`` is something a strategy unpacks, rather than a plain file."""
    try:
        select_strategy(path, strategies)
    except UnsupportedSourceError:
        return False
    return True


def extract(request: ExtractionRequest, strategies=STRATEGIES) -> UnpackStrategy:
    """Unpack ``request.source_path`` into ``request.destination_path``."""
    if not os.path.lexists(request.source_path):
        raise FileSystemError(
            f"Source {request.source_path} does not exist", src=request.source_path
        )
    if not os.access(request.source_path, os.R_OK):
        raise FileSystemError(
            f"Source {request.source_path} is not readable", src=request.source_path
        )
    strategy = select_strategy(request.source_path, strategies)
    strategy.extract(request)
    return strategy


__all__ = [
    "STRATEGIES",
    "DirectoryStrategy",
    "ExtractionRequest",
    "GenericArchiveStrategy",
    "GitStrategy",
    "MercurialStrategy",
    "SubversionStrategy",
    "TarStrategy",
    "UnpackStrategy",
    "ZipStrategy",
    "extract",
    "is_archive",
    "select_strategy",
]
