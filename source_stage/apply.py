# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
import subprocess
from subprocess import CalledProcessError
from typing import Iterable

from .config import get_or_merge_config
from .exceptions import FileSystemError, MissingDependency, PatchApplyError
from .os_utils import external
from .patch import ResolvedPatchBody
from .utils import TemporaryDirectory, check_output_env, codec, get_logger

# every application is reported, even of two patches with the same name
log = get_logger(__name__, dedupe=False)


def find_patch_exe(config):
    patch_exe = external.find_executable(config.patch_exe, config.tools_prefix)
    if not patch_exe:
        raise MissingDependency(f"Failed to find dependency: '{config.patch_exe}'")
    return patch_exe


def _run_patch(patch_exe, args, cwd):
    env = os.environ.copy()
    env["LC_ALL"] = "C"
    return check_output_env(
        [patch_exe] + args, cwd=cwd, stderr=subprocess.STDOUT, env=env
    ).decode(codec, errors="replace")


def apply_one_patch(src_dir, body: ResolvedPatchBody, config=None, patch_exe=None):
    """Apply a single patch body to ``src_dir`` at its strip level.

    The patch is dry-run first so that one which does not apply leaves the tree
    untouched.  Calls to a raw 'patch' are not atomic: if hunks fail, the ones
    that succeeded stay.  Strip levels are never guessed.
    """
    config = get_or_merge_config(config)
    patch_exe = patch_exe or find_patch_exe(config)
    if config.verbose:
        log.info("Applying patch: %s (p%d)", body.name, body.strip)
    else:
        log.debug("Applying patch: %s (p%d)", body.name, body.strip)

    with TemporaryDirectory(prefix="patch-") as tmpdir:
        path = os.path.join(tmpdir, f"{body.index:04d}.patch")
        with open(path, "wb") as f:
            f.write(body.content)
        # -f keeps patch from asking questions or assuming a reversed patch,
        # -g 0 keeps it away from RCS/SCCS checkouts.
        patch_args = [
            "-g",
            "0",
            "-f",
            "--no-backup-if-mismatch",
            f"-p{body.strip}",
            "-i",
            path,
        ]
        output = ""
        try:
            output = _run_patch(patch_exe, patch_args + ["--dry-run"], cwd=src_dir)
            log.debug("dry-run of %s:\n%s", body.name, output)
            output = _run_patch(patch_exe, patch_args, cwd=src_dir)
        except CalledProcessError as e:
            output = (e.output or b"").decode(codec, errors="replace")
            raise PatchApplyError(
                body.name, body.strip, src_dir, returncode=e.returncode, output=output
            ) from e
        except OSError as e:
            raise FileSystemError(
                f"Could not run {patch_exe} in {src_dir}: {e}", dst=src_dir
            ) from e
    if config.verbose and output:
        log.info(output)
    return output


def apply_patches(src_dir, bodies: Iterable[ResolvedPatchBody], config=None):
    """Apply ``bodies`` to ``src_dir`` in order, stopping at the first failure."""
    bodies = list(bodies)
    if not bodies:
        return []
    config = get_or_merge_config(config)
    patch_exe = find_patch_exe(config)
    outputs = []
    for body in bodies:
        outputs.append(apply_one_patch(src_dir, body, config, patch_exe=patch_exe))
    return outputs
