# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from source_stage import context
from source_stage.config import Config, croot_env, get_or_merge_config


def test_defaults(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("HOME", str(tmp_path))
    config = Config()
    assert config.croot == os.path.join(str(tmp_path), "source-stage")
    assert config.work_dir == os.path.join(config.croot, "work")
    assert config.prefix == sys.prefix
    assert config.patch_exe == "patch"
    assert config.locking is True
    assert config.merge_xattrs is False
    assert config.timeout == 900


def test_croot_from_environment(monkeypatch, tmp_path: Path):
    monkeypatch.setenv(croot_env, str(tmp_path / "env-root"))
    monkeypatch.setitem(context.rc_settings, "croot", str(tmp_path / "rc-root"))
    assert Config().croot == str(tmp_path / "env-root")


def test_croot_from_rc(monkeypatch, tmp_path: Path):
    monkeypatch.setitem(context.rc_settings, "croot", str(tmp_path / "rc-root"))
    assert Config().croot == str(tmp_path / "rc-root")
    # explicit beats both
    assert Config(croot=str(tmp_path / "mine")).croot == str(tmp_path / "mine")


def test_rc_settings(monkeypatch):
    monkeypatch.setitem(context.rc_settings, "locking", "false")
    monkeypatch.setitem(context.rc_settings, "merge_xattrs", True)
    monkeypatch.setitem(context.rc_settings, "prefix", "/opt/rc")
    monkeypatch.setitem(context.rc_settings, "variables", {"NAME": "value"})
    monkeypatch.setitem(context.rc_settings, "timeout", 10)
    config = Config()
    assert config.locking is False
    assert config.merge_xattrs is True
    assert config.timeout == 10
    assert config.placeholders == {"PREFIX": "/opt/rc", "NAME": "value"}


def test_work_dir_override(testing_workdir: str):
    config = Config(croot=testing_workdir)
    config.work_dir = os.path.join(testing_workdir, "elsewhere")
    assert config.work_dir == os.path.join(testing_workdir, "elsewhere")


def test_placeholders():
    config = Config(prefix="/opt/p", variables={"PREFIX": "/other", "VERSION": 1})
    # variables come last, so they can override the prefix
    assert config.placeholders == {"PREFIX": "/other", "VERSION": "1"}


def test_get_or_merge_config_never_changes_its_argument(testing_config: Config):
    merged = get_or_merge_config(testing_config, verbose=False, patch_exe="gpatch")
    assert merged is not testing_config
    assert merged.patch_exe == "gpatch"
    assert merged.verbose is False
    assert testing_config.patch_exe == "patch"
    assert testing_config.verbose is True

    merged.variables["NAME"] = "value"
    assert "NAME" not in testing_config.variables


def test_get_or_merge_config_without_config():
    config = get_or_merge_config(None, prefix="/opt/p")
    assert isinstance(config, Config)
    assert config.prefix == "/opt/p"


def test_load_rc(tmp_path: Path, monkeypatch):
    rc = tmp_path / "rc.yaml"
    rc.write_text("croot: ~/stage\nvariables:\n  NAME: value\n")
    monkeypatch.setenv(context.rc_path_env, str(rc))
    assert context.get_rc_path() == str(rc)
    assert context.load_rc() == {"croot": "~/stage", "variables": {"NAME": "value"}}
    assert context.load_rc(str(tmp_path / "missing.yaml")) == {}

    context.reset_rc()
    assert context.rc_settings["variables"] == {"NAME": "value"}
    assert Config().placeholders["NAME"] == "value"


def test_load_rc_needs_a_mapping(tmp_path: Path):
    rc = tmp_path / "rc.yaml"
    rc.write_text("- croot\n- prefix\n")
    with pytest.raises(ValueError):
        context.load_rc(str(rc))
