# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
from typing import NamedTuple, Union

from . import unpack
from .apply import apply_patches
from .config import get_or_merge_config
from .exceptions import FileSystemError
from .patch import PatchSpecification, resolve_patch
from .utils import get_logger, url_to_path

log = get_logger(__name__)


class Resource(NamedTuple):
    """A fetched source as handed over by the fetcher.

    ``path`` is where the fetcher put it; a ``file://`` url (or an absolute
    path) needs no fetching at all.  The checksum has already been verified.
    """

    url: str
    path: Union[str, None] = None
    sha256: Union[str, None] = None
    # sub-folder of the work dir to stage into
    folder: Union[str, None] = None
    patches: tuple = ()
    no_hoist: bool = False
    ref_type: Union[str, None] = None
    ref: Union[str, None] = None

    @classmethod
    def from_dict(cls, source_dict):
        patches = tuple(
            p if isinstance(p, PatchSpecification) else PatchSpecification.from_dict(p)
            for p in source_dict.get("patches") or ()
        )
        return cls(
            url=source_dict.get("url") or source_dict.get("path"),
            path=source_dict.get("path"),
            sha256=source_dict.get("sha256"),
            folder=source_dict.get("folder"),
            patches=patches,
            no_hoist=bool(source_dict.get("no_hoist", False)),
            ref_type=source_dict.get("ref_type"),
            ref=source_dict.get("ref"),
        )

    @property
    def local_path(self):
        path = self.path or url_to_path(self.url)
        if not path:
            raise FileSystemError(f"Source {self.url} has not been fetched")
        return os.path.expanduser(path)


def stage(
    resource: Resource, patch_specs=None, variables=None, config=None, work_dir=None
):
    """
    given a fetched resource:
      - unpack it into the work dir (or the resource's folder within it)
      - apply patches (if any), in order

    ``patch_specs`` defaults to the patches attached to the resource.  The
    first failure propagates as is; the tree is left as it was at that point.
    Returns the staged directory.
    """
    config = get_or_merge_config(config)
    work_dir = work_dir or config.work_dir
    src_dir = os.path.join(work_dir, resource.folder) if resource.folder else work_dir
    try:
        os.makedirs(src_dir, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"Could not create {src_dir}: {e}", dst=src_dir) from e

    request = unpack.ExtractionRequest(
        resource.local_path,
        src_dir,
        ref_type=resource.ref_type,
        ref=resource.ref,
        merge_xattrs=config.merge_xattrs,
        verbose=config.verbose,
        hoist=not resource.no_hoist,
        locking=config.locking,
        timeout=config.timeout,
        tools_prefix=config.tools_prefix,
    )
    strategy = unpack.extract(request)
    if config.verbose:
        log.info("Staged %s into %s (%s)", resource.url, src_dir, strategy.name)

    if patch_specs is None:
        patch_specs = resource.patches
    for spec in patch_specs:
        if not isinstance(spec, PatchSpecification):
            spec = PatchSpecification.from_dict(spec)
        apply_patches(src_dir, resolve_patch(spec, variables, config), config)
    return src_dir


def provide(resources, config=None, variables=None):
    """Stage several resources, in order, into the same work dir.

    Each one lands in its own ``folder`` if it has one; sources sharing a
    folder are merged.
    """
    config = get_or_merge_config(config)
    if isinstance(resources, (Resource, dict)):
        resources = [resources]
    for resource in resources:
        if not isinstance(resource, Resource):
            resource = Resource.from_dict(resource)
        stage(resource, variables=variables, config=config, work_dir=config.work_dir)
    return config.work_dir
