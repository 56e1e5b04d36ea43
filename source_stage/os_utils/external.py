# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause

from __future__ import annotations

import os
import stat
from os.path import expanduser, isfile, join

from ..utils import on_win


def _prefix_dirs(prefix):
    if on_win:
        return [
            join(prefix, "Scripts"),
            join(prefix, "Library\\mingw-w64\\bin"),
            join(prefix, "Library\\usr\\bin"),
            join(prefix, "Library\\bin"),
        ]
    return [join(prefix, "bin")]


def find_executable(executable, prefix=None, all_matches=False):
    """Look ``executable`` up in ``prefix`` (if given), then on ``PATH``.

    An absolute path is returned as-is when it points at an executable file.
    """
    if os.path.isabs(executable):
        return executable if isfile(executable) else None

    dir_paths: list[str] = []
    if prefix:
        dir_paths.extend(_prefix_dirs(prefix))
    dir_paths.extend(os.environ.get("PATH", "").split(os.pathsep))
    if on_win:
        exts = (".exe", ".bat", "")
    else:
        exts = ("",)

    all_matches_found = []
    for dir_path in dir_paths:
        if not dir_path:
            continue
        for ext in exts:
            path = expanduser(join(dir_path, executable + ext))
            if isfile(path):
                st = os.stat(path)
                if on_win or st.st_mode & stat.S_IEXEC:
                    if not all_matches:
                        return path
                    all_matches_found.append(path)
    return all_matches_found if all_matches else None
