# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from pytest import MonkeyPatch

import source_stage
from source_stage.config import Config, croot_env
from source_stage.context import rc_settings
from source_stage.utils import reset_deduplicator

from .utils import TESTING_PREFIX, make_patch_archive, make_tarball, make_testball

if TYPE_CHECKING:
    from typing import Iterator


@pytest.hookimpl
def pytest_report_header(config: pytest.Config):
    # ensuring the expected development source_stage is being run
    expected = Path(__file__).parent.parent / "source_stage" / "__init__.py"
    assert expected.samefile(source_stage.__file__)
    return f"source_stage.__file__: {source_stage.__file__}"


@pytest.fixture(scope="function", autouse=True)
def isolated_settings(monkeypatch: MonkeyPatch) -> Iterator[None]:
    """Keep a user's rc file and environment out of the tests."""
    saved = dict(rc_settings)
    rc_settings.clear()
    monkeypatch.delenv(croot_env, raising=False)
    reset_deduplicator()
    yield
    rc_settings.clear()
    rc_settings.update(saved)


@pytest.fixture(scope="function")
def testing_workdir(monkeypatch: MonkeyPatch, tmp_path: Path) -> Iterator[str]:
    """Create a workdir in a safe temporary folder; cd into dir above before test, cd out after

    :param tmp_path: py.test fixture, will be injected
    """
    monkeypatch.chdir(tmp_path)
    yield str(tmp_path)


@pytest.fixture(scope="function")
def testing_config(testing_workdir: str) -> Config:
    # locking is exercised on its own; here it would write to the user's home
    return Config(
        croot=testing_workdir,
        prefix=TESTING_PREFIX,
        variables={},
        verbose=True,
        debug=False,
        locking=False,
        merge_xattrs=False,
    )


@pytest.fixture(scope="function")
def testball(testing_workdir: str) -> Path:
    """``testball-0.1/libexec/NOOP`` in a folder of its own."""
    parent = Path(testing_workdir, "sources")
    parent.mkdir()
    return make_testball(parent)


@pytest.fixture(scope="function")
def testball_tarball(testball: Path) -> Path:
    return make_tarball(testball.parent / "testball-0.1.tar.gz", testball)


@pytest.fixture(scope="function")
def patch_archive(testing_workdir: str) -> Path:
    parent = Path(testing_workdir, "patch-downloads")
    parent.mkdir()
    return make_patch_archive(parent / "noop-patches.tar.gz")
