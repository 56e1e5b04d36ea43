# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path

import pytest

tests_path = Path(__file__).parent
patches_path = tests_path / "patches"

# backport
thisdir = str(tests_path)
patches_dir = str(patches_path)

TESTING_PREFIX = "/opt/testing-prefix"
NOOP = "#!/bin/sh\necho NOOP\n"
NOOP_PATCHES = ("noop-a.diff", "noop-b.diff", "noop-c.diff", "noop-d.diff")

requires_patch = pytest.mark.skipif(
    not shutil.which("patch"), reason="the patch program is not installed"
)
requires_git = pytest.mark.skipif(
    not shutil.which("git"), reason="git is not installed"
)


def make_testball(parent: Path | str, name: str = "testball-0.1") -> Path:
    """A tiny source tree: ``<name>/libexec/NOOP``."""
    root = Path(parent, name)
    (root / "libexec").mkdir(parents=True)
    noop = root / "libexec" / "NOOP"
    noop.write_text(NOOP)
    noop.chmod(0o755)
    return root


def make_tarball(path: Path | str, root: Path | str, mode: str = "w:gz") -> Path:
    root = Path(root)
    with tarfile.open(path, mode) as tar:
        tar.add(root, arcname=root.name)
    return Path(path)


def make_zip(path: Path | str, root: Path | str, extra=None) -> Path:
    root = Path(root)
    with zipfile.ZipFile(path, "w") as zf:
        for dirpath, _, filenames in os.walk(root):
            for filename in sorted(filenames):
                full = Path(dirpath, filename)
                info = zipfile.ZipInfo(str(full.relative_to(root.parent)))
                info.external_attr = (stat.S_IFREG | 0o755) << 16
                zf.writestr(info, full.read_bytes())
        for name, data in (extra or {}).items():
            zf.writestr(name, data)
    return Path(path)


def make_patch_archive(path: Path | str, name: str = "noop-patches") -> Path:
    """A gzipped tarball holding every noop patch under a single folder."""
    path = Path(path)
    folder = path.parent / name
    folder.mkdir()
    for patch in NOOP_PATCHES:
        shutil.copy(patches_path / patch, folder / patch)
    make_tarball(path, folder)
    shutil.rmtree(folder)
    return path


def read_noop(root: Path | str) -> str:
    return Path(root, "libexec", "NOOP").read_text()
