# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
User-level settings read from a YAML rc file.

The file is located through ``$SOURCE_STAGE_RC`` and falls back to
``~/.source_stage.yaml``.  Its top-level mapping provides defaults for
:class:`source_stage.config.Config` (``croot``, ``prefix``, ``variables``,
``locking``, ...) plus ``log_config_file`` for the loggers.
"""
import os
from os.path import abspath, expanduser, expandvars, isfile

import yaml

rc_path_env = "SOURCE_STAGE_RC"
default_rc_path = os.path.join("~", ".source_stage.yaml")


def get_rc_path():
    return abspath(expanduser(expandvars(os.getenv(rc_path_env) or default_rc_path)))


def load_rc(path=None):
    path = path or get_rc_path()
    if not isfile(path):
        return {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a mapping of settings, not {type(data)}")
    return data


rc_settings = load_rc()


def reset_rc(path=None):
    """Re-read the rc file, e.g. after ``$SOURCE_STAGE_RC`` changed."""
    rc_settings.clear()
    rc_settings.update(load_rc(path))
    return rc_settings
