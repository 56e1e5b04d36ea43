# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Module to store source staging settings.
"""

import copy
import os
import sys
from collections import namedtuple
from os.path import abspath, expanduser, expandvars, join

from .context import rc_settings
from .utils import get_logger

# Don't "save" an attribute of this module for later, like work_dir =
# source_stage.config.config.work_dir, as that won't reflect any mutated
# changes.

croot_env = "SOURCE_STAGE_ROOT"
prefix_placeholder = "PREFIX"
locking_default = True
merge_xattrs_default = False


def _rc_bool(key, default):
    value = rc_settings.get(key, default)
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


Setting = namedtuple("ConfigSetting", "name, default")


def _get_default_settings():
    return [
        Setting("verbose", False),
        Setting("debug", False),
        Setting("timeout", rc_settings.get("timeout", 900)),
        Setting("locking", _rc_bool("locking", locking_default)),
        # extended attributes are only carried over when asked for
        Setting("merge_xattrs", _rc_bool("merge_xattrs", merge_xattrs_default)),
        Setting("_croot", None),
        Setting("_work_dir", None),
        # the installation prefix substituted for @@PREFIX@@ in patches
        Setting("prefix", rc_settings.get("prefix", sys.prefix)),
        # further @@NAME@@ placeholders, keyed by NAME
        Setting("variables", dict(rc_settings.get("variables") or {})),
        # name or absolute path of the program applying text patches
        Setting("patch_exe", rc_settings.get("patch_exe", "patch")),
        # directory searched (bin/) before PATH for patch and VCS tools
        Setting("tools_prefix", rc_settings.get("tools_prefix")),
    ]


class Config:
    def __init__(self, **kwargs):
        super().__init__()
        self.set_keys(**kwargs)

    def _set_attribute_from_kwargs(self, kwargs, attr, default):
        value = kwargs.get(
            attr, getattr(self, attr) if hasattr(self, attr) else default
        )
        setattr(self, attr, value)
        if attr in kwargs:
            del kwargs[attr]

    def set_keys(self, **kwargs):
        for name, default in _get_default_settings():
            # copy mutable defaults so configs never share them
            self._set_attribute_from_kwargs(kwargs, name, copy.copy(default))

        for attr, value in kwargs.items():
            setattr(self, attr, value)

    @property
    def croot(self):
        """This is where work folders live"""
        if not self._croot:
            _root_env = os.getenv(croot_env)
            _root_rc = rc_settings.get("croot")
            if _root_env:
                self._croot = abspath(expanduser(_root_env))
            elif _root_rc:
                self._croot = abspath(expanduser(expandvars(_root_rc)))
            else:
                self._croot = abspath(expanduser(join("~", "source-stage")))
        return self._croot

    @croot.setter
    def croot(self, croot):
        """Set croot - if None is passed, then the default value will be used"""
        self._croot = croot

    @property
    def work_dir(self):
        return self._work_dir or join(self.croot, "work")

    @work_dir.setter
    def work_dir(self, value):
        self._work_dir = value

    @property
    def placeholders(self):
        """All @@NAME@@ substitutions known to this config."""
        result = {prefix_placeholder: str(self.prefix)}
        result.update({str(k): str(v) for k, v in self.variables.items()})
        return result

    def copy(self):
        new = copy.copy(self)
        new.variables = copy.deepcopy(self.variables)
        return new

    def __repr__(self):
        return "Config(croot={!r}, work_dir={!r}, prefix={!r})".format(
            self.croot, self.work_dir, self.prefix
        )


def get_or_merge_config(config, **kwargs):
    """Always returns a new object - never changes the config that might be passed in."""
    if not config:
        config = Config()
    else:
        # decouple this config from whatever was fed in.  People must change config by
        #    accessing and changing this attribute.
        config = config.copy()
    if kwargs:
        config.set_keys(**kwargs)
    log = get_logger(__name__)
    log.debug("Using %r", config)
    return config
