# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

from pathlib import Path

import pytest

from source_stage.apply import apply_one_patch, apply_patches, find_patch_exe
from source_stage.exceptions import MissingDependency, PatchApplyError
from source_stage.patch import ResolvedPatchBody

from .utils import NOOP, patches_path, read_noop, requires_patch


def body(name: str, strip: int = 1, index: int = 0) -> ResolvedPatchBody:
    return ResolvedPatchBody((patches_path / name).read_bytes(), strip, name, index)


def test_missing_patch_program(testing_config):
    testing_config.patch_exe = "no-such-patch-program"
    with pytest.raises(MissingDependency, match="no-such-patch-program"):
        find_patch_exe(testing_config)


def test_no_patches_needs_no_patch_program(testball: Path, testing_config, mocker):
    find = mocker.patch("source_stage.apply.find_patch_exe")
    assert apply_patches(str(testball), [], testing_config) == []
    find.assert_not_called()


@requires_patch
def test_apply_p1(testball: Path, testing_config):
    apply_one_patch(str(testball), body("noop-a.diff"), testing_config)
    assert read_noop(testball) == "#!/bin/sh\necho ABCD\n"


@requires_patch
def test_apply_p0(testball: Path, testing_config):
    apply_one_patch(str(testball), body("noop-b.diff", strip=0), testing_config)
    assert read_noop(testball) == "#!/bin/sh\necho ZYXW\n"


@requires_patch
def test_apply_in_order(testball: Path, testing_config):
    bodies = [body("noop-a.diff"), body("noop-c.diff", index=1)]
    apply_patches(str(testball), bodies, testing_config)
    assert read_noop(testball) == "#!/bin/sh\necho 1234\n"
    # no backup or reject files are left behind
    assert sorted(p.name for p in (testball / "libexec").iterdir()) == ["NOOP"]


@requires_patch
@pytest.mark.parametrize(
    "name,strip",
    [
        # wrong strip levels are never corrected
        ("noop-a.diff", 0),
        ("noop-a.diff", 2),
        ("noop-b.diff", 1),
        # does not match the file it targets
        ("noop-c.diff", 1),
    ],
)
def test_patch_that_does_not_apply(
    testball: Path, testing_config, name: str, strip: int
):
    with pytest.raises(PatchApplyError) as exc:
        apply_one_patch(str(testball), body(name, strip), testing_config)
    assert exc.value.name == name
    assert exc.value.strip == strip
    assert exc.value.returncode
    assert f"p{strip}" in exc.value.msg
    # the tree is left as it was
    assert read_noop(testball) == NOOP
    assert sorted(p.name for p in testball.rglob("*")) == ["NOOP", "libexec"]


@requires_patch
def test_first_failure_stops(testball: Path, testing_config):
    bodies = [body("noop-a.diff"), body("noop-b.diff", 1, 1), body("noop-c.diff", 1, 2)]
    with pytest.raises(PatchApplyError) as exc:
        apply_patches(str(testball), bodies, testing_config)
    assert exc.value.name == "noop-b.diff"
    # the patch applied before the failing one stays, the one after never ran
    assert read_noop(testball) == "#!/bin/sh\necho ABCD\n"


def test_patches_sharing_a_name_are_each_logged(
    testball: Path, testing_config, mocker, caplog
):
    mocker.patch("source_stage.apply.find_patch_exe", return_value="patch")
    run = mocker.patch("source_stage.apply._run_patch", return_value="")
    bodies = [ResolvedPatchBody(b"", 1, "inline patch", i) for i in range(2)]
    assert apply_patches(str(testball), bodies, testing_config) == ["", ""]
    # a dry run and a real run per patch
    assert run.call_count == 4
    assert caplog.text.count("Applying patch: inline patch (p1)") == 2
