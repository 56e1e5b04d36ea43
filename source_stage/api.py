# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
This file defines the public API for source-stage.  Adding or removing functions,
or changing arguments to anything in here should also mean changing the major
version number.

Design philosophy: put variability into config.  Make each function here accept kwargs,
but only use those kwargs in config.  Config must change to support new features elsewhere.
"""

from __future__ import annotations

# make the Config class available in the api namespace
from .config import Config, get_or_merge_config
from .exceptions import (
    FileSystemError,
    InvalidApplyListError,
    MissingApplyError,
    MoveConflictError,
    PatchApplyError,
    PatchMemberNotFoundError,
    SourceStageException,
    UnsupportedSourceError,
)
from .patch import PatchSpecification
from .source import Resource
from .utils import LoggingContext


def stage(
    resource, patch_specs=None, variables=None, config=None, work_dir=None, **kwargs
):
    """Unpack a fetched resource into a working tree and apply its patches in order.

    Returns the path of the staged tree.
    """
    from .source import stage as _stage

    config = get_or_merge_config(config, **kwargs)
    if isinstance(resource, dict):
        resource = Resource.from_dict(resource)
    return _stage(
        resource,
        patch_specs=patch_specs,
        variables=variables,
        config=config,
        work_dir=work_dir,
    )


def provide(resources, variables=None, config=None, **kwargs):
    """Stage a list of resources into the configured work dir."""
    from .source import provide as _provide

    config = get_or_merge_config(config, **kwargs)
    return _provide(resources, config=config, variables=variables)


def resolve_patch(spec, variables=None, config=None, **kwargs):
    """Return the ordered patch bodies of a specification, without applying them."""
    from .patch import resolve_patch as _resolve_patch

    config = get_or_merge_config(config, **kwargs)
    if isinstance(spec, dict):
        spec = PatchSpecification.from_dict(spec)
    return _resolve_patch(spec, variables, config)


def apply_patch(src_dir, spec, variables=None, config=None, **kwargs):
    """Resolve one patch specification and apply it to ``src_dir``."""
    from .apply import apply_patches

    config = get_or_merge_config(config, **kwargs)
    bodies = resolve_patch(spec, variables, config)
    return apply_patches(src_dir, bodies, config)


def select_strategy(path):
    """Return the extraction strategy that would unpack ``path``."""
    from .unpack import select_strategy as _select_strategy

    return _select_strategy(path)


__all__ = [
    "Config",
    "FileSystemError",
    "InvalidApplyListError",
    "LoggingContext",
    "MissingApplyError",
    "MoveConflictError",
    "PatchApplyError",
    "PatchMemberNotFoundError",
    "PatchSpecification",
    "Resource",
    "SourceStageException",
    "UnsupportedSourceError",
    "apply_patch",
    "provide",
    "resolve_patch",
    "select_strategy",
    "stage",
]
