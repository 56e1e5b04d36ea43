# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
import subprocess
from os.path import isdir, join
from subprocess import CalledProcessError

from ..exceptions import MissingDependency, VCSCheckoutError
from ..os_utils.external import find_executable
from ..utils import check_call_env, get_logger
from .base import ExtractionRequest
from .directory import DirectoryStrategy

log = get_logger(__name__)

ref_types = ("branch", "tag", "revision")


class VCSStrategy(DirectoryStrategy):
    """A checkout is copied (or moved) like a directory, then set to ``ref``."""

    metadata_dir = ""
    tool = ""
    supported_ref_types = ref_types

    def can_extract(self, path):
        return isdir(path) and os.path.lexists(join(path, self.metadata_dir))

    def checkout_args(self, ref_type, ref):
        raise NotImplementedError

    def extract(self, request: ExtractionRequest) -> None:
        ref_type = request.ref_type
        if ref_type is not None and ref_type not in self.supported_ref_types:
            raise ValueError(
                f"{self.tool} ref_type must be one of {self.supported_ref_types}, "
                f"not {ref_type!r}"
            )
        super().extract(request)
        if request.ref:
            self.checkout(request)

    def checkout(self, request: ExtractionRequest):
        exe = find_executable(self.tool, request.tools_prefix)
        if not exe:
            raise MissingDependency(f"Failed to find dependency: '{self.tool}'")
        args = [exe] + self.checkout_args(request.ref_type, request.ref)
        if request.verbose:
            log.info(
                "Checking out %s %s in %s",
                request.ref_type or "ref",
                request.ref,
                request.destination_path,
            )
            stdout = stderr = None
        else:
            stdout = stderr = subprocess.DEVNULL
        try:
            check_call_env(
                args, cwd=request.destination_path, stdout=stdout, stderr=stderr
            )
        except CalledProcessError as e:
            raise VCSCheckoutError(
                "{} could not check out {} {} in {}".format(
                    self.tool, request.ref_type or "ref", request.ref,
                    request.destination_path,
                )
            ) from e


class GitStrategy(VCSStrategy):
    name = "git"
    metadata_dir = ".git"
    tool = "git"

    def checkout_args(self, ref_type, ref):
        if ref_type == "tag":
            ref = f"tags/{ref}"
        return ["checkout", "--quiet", ref]


class MercurialStrategy(VCSStrategy):
    name = "hg"
    metadata_dir = ".hg"
    tool = "hg"

    def checkout_args(self, ref_type, ref):
        return ["update", "--clean", "-r", ref]


class SubversionStrategy(VCSStrategy):
    name = "svn"
    metadata_dir = ".svn"
    tool = "svn"
    supported_ref_types = ("revision",)

    def checkout_args(self, ref_type, ref):
        return ["update", "--quiet", "-r", ref]
