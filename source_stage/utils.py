# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import contextlib
import hashlib
import logging
import logging.config
import os
import shutil
import stat
import subprocess
import sys
import tarfile
import tempfile
import time
from locale import getpreferredencoding
from os.path import abspath, expanduser, expandvars, isdir, islink
from typing import Iterable
from urllib.parse import urlparse
from urllib.request import url2pathname

import filelock
import libarchive
import yaml

from .context import rc_settings
from .exceptions import BuildLockError

on_win = sys.platform == "win32"

codec = getpreferredencoding() or "utf-8"

TemporaryDirectory = tempfile.TemporaryDirectory


def _func_defaulting_env_to_os_environ(func, *popenargs, **kwargs):
    if "env" not in kwargs:
        kwargs = kwargs.copy()
        env_copy = os.environ.copy()
        kwargs.update({"env": env_copy})
    kwargs["env"] = {str(key): str(value) for key, value in kwargs["env"].items()}
    _args = []
    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL
    for arg in popenargs:
        # arguments to subprocess need to be strings
        if hasattr(arg, "decode"):
            arg = arg.decode(codec)
        _args.append(str(arg))

    out = None
    if func == "call":
        subprocess.check_call(_args, **kwargs)
    else:
        if "stdout" in kwargs:
            del kwargs["stdout"]
        out = subprocess.check_output(_args, **kwargs)
    return out


def check_call_env(popenargs, **kwargs):
    return _func_defaulting_env_to_os_environ("call", *popenargs, **kwargs)


def check_output_env(popenargs, **kwargs):
    return _func_defaulting_env_to_os_environ(
        "output", stdout=subprocess.PIPE, *popenargs, **kwargs
    ).rstrip()


@contextlib.contextmanager
def try_acquire_locks(locks, timeout):
    """Try to acquire all locks.

    If any lock can't be immediately acquired, free all locks.
    If the timeout is reached without acquiring all locks, free all locks and raise.
    """
    t = time.time()
    while time.time() - t < timeout:
        try:
            for lock in locks:
                lock.acquire(timeout=0.1)
        except filelock.Timeout:
            # release what we hold so another process can finish its set
            for lock in locks:
                lock.release()
        else:
            break
    else:
        raise BuildLockError("Failed to acquire all locks")

    try:
        yield
    finally:
        for lock in locks:
            lock.release()


_lock_folders = (
    os.path.expanduser(os.path.join("~", ".source_stage_locks")),
    os.path.join(tempfile.gettempdir(), "source_stage_locks"),
)


def get_lock(folder, timeout=900):
    fl = None
    try:
        location = os.path.abspath(os.path.normpath(folder))
    except OSError:
        location = folder

    # Hash the entire filename to avoid collisions.
    lock_filename = hashlib.sha256(location.encode()).hexdigest()

    for locks_dir in _lock_folders:
        try:
            os.makedirs(locks_dir, exist_ok=True)
            lock_file = os.path.join(locks_dir, lock_filename)
            with open(lock_file, "w") as f:
                f.write("")
            fl = filelock.FileLock(lock_file, timeout)
            break
        except OSError:
            continue
    else:
        raise RuntimeError(
            "Could not write locks folder to either user location ({}) "
            "or temporary location ({}).  Aborting.".format(*_lock_folders)
        )
    return fl


def copy_attributes(src, dst, xattrs=True):
    """Copy permission bits and timestamps (and extended attributes if asked)."""
    if xattrs:
        shutil.copystat(src, dst, follow_symlinks=False)
        return
    st = os.lstat(src)
    if not islink(dst):
        os.chmod(dst, stat.S_IMODE(st.st_mode))
        os.utime(dst, ns=(st.st_atime_ns, st.st_mtime_ns))
    elif os.utime in os.supports_follow_symlinks:
        os.utime(dst, ns=(st.st_atime_ns, st.st_mtime_ns), follow_symlinks=False)


# with each of these, we are copying less metadata.  This seems to be necessary
#   to cope with some shared filesystems with some virtual machine setups.
def _copy_with_fallback(src, dst, xattrs=True):
    copiers = (shutil.copy2, shutil.copy, shutil.copyfile) if xattrs else ()
    for func in copiers:
        try:
            func(src, dst)
            return
        except PermissionError:
            continue
    shutil.copyfile(src, dst)
    copy_attributes(src, dst, xattrs=False)


def _copy_symlink(src, dst, xattrs=True):
    if os.path.lexists(dst):
        if isdir(dst) and not islink(dst):
            raise IsADirectoryError(
                f"cannot overwrite directory {dst} with non-directory {src}"
            )
        os.remove(dst)
    os.symlink(os.readlink(src), dst)
    try:
        copy_attributes(src, dst, xattrs=xattrs)
    except (NotImplementedError, OSError):
        pass  # lchmod/lutimes not available


def copytree(src, dst, symlinks=True, xattrs=True, root_attributes=True):
    """Merge the contents of ``src`` into ``dst``, the way ``cp -pR src/. dst`` does.

    Existing files are overwritten; a directory never replaces a non-directory
    (or the reverse).  Directory attributes are copied after their contents so
    timestamps survive; ``root_attributes=False`` leaves ``dst`` itself alone.
    Returns the list of destination paths of ``src``'s children.
    """
    lst = sorted(os.listdir(src))
    dst_lst = [os.path.join(dst, item) for item in lst]
    if os.path.lexists(dst) and not (isdir(dst) and not islink(dst)):
        raise NotADirectoryError(
            f"cannot overwrite non-directory {dst} with directory {src}"
        )
    os.makedirs(dst, exist_ok=True)

    for item, d in zip(lst, dst_lst):
        s = os.path.join(src, item)
        if symlinks and islink(s):
            _copy_symlink(s, d, xattrs=xattrs)
        elif isdir(s):
            copytree(s, d, symlinks=symlinks, xattrs=xattrs)
        else:
            if isdir(d) and not islink(d):
                raise IsADirectoryError(
                    f"cannot overwrite directory {d} with non-directory {s}"
                )
            if os.path.lexists(d):
                os.remove(d)
            _copy_with_fallback(s, d, xattrs=xattrs)
    if root_attributes:
        copy_attributes(src, dst, xattrs=xattrs)
    return dst_lst


def merge_tree(src, dst, xattrs=True, timeout=900, lock=None, locking=True):
    """
    Merge the children of src into the existing directory dst, holding a lock
    on src while doing so.  Like copytree(src, dst), but dst keeps its own
    attributes.
    """
    dst = os.path.abspath(dst)
    src = os.path.abspath(src)
    if dst == src or dst.startswith(src + os.sep):
        raise OSError(
            "Can't merge/copy source into subdirectory of itself.  "
            "Please create separate spaces for these things.\n"
            "  src: {}\n"
            "  dst: {}".format(src, dst)
        )

    locks = []
    if locking:
        if not lock:
            lock = get_lock(src, timeout=timeout)
        locks = [lock]
    with try_acquire_locks(locks, timeout):
        return copytree(src, dst, symlinks=True, xattrs=xattrs, root_attributes=False)


def _tar_xf_fallback(tarball, dir_path, mode="r:*"):
    # the data filter refuses absolute names, "..", links leaving dir_path and
    # members written through such links
    with tarfile.open(tarball, mode) as t:
        t.extractall(path=dir_path, filter=tarfile.data_filter)


class UnsafeArchiveError(libarchive.exception.ArchiveError):
    """An archive member would land outside the extraction directory."""


def _member_target(root, name):
    """Absolute path of archive member ``name`` below ``root``."""
    normalized = name.replace("\\", "/") if on_win else name
    parts = [p for p in normalized.split("/") if p not in ("", ".")]
    if normalized.startswith("/") or os.path.isabs(name) or ".." in parts:
        raise UnsafeArchiveError(f"archive member has an unsafe path: {name}")
    return os.path.join(root, *parts) if parts else root


def _secure_entries(archive, root):
    for entry in archive:
        entry.pathname = _member_target(root, entry.pathname)
        if entry.islnk:
            entry.linkpath = _member_target(root, entry.linkpath)
        yield entry


def tar_xf(tarball, dir_path, fallback=True):
    """Extract any archive libarchive understands into ``dir_path``.

    Every member is written to an absolute path below ``dir_path``, so the
    process working directory is never changed and concurrent extractions do
    not interfere.  Members named with ``..`` or an absolute path are refused
    with :class:`UnsafeArchiveError`; libarchive refuses to write through a
    symlink.
    """
    flags = (
        libarchive.extract.EXTRACT_TIME
        | libarchive.extract.EXTRACT_PERM
        | libarchive.extract.EXTRACT_SECURE_NODOTDOT
        | libarchive.extract.EXTRACT_SECURE_SYMLINKS
    )
    tarball = os.path.abspath(tarball)
    root = os.path.realpath(dir_path)
    try:
        with libarchive.file_reader(tarball) as archive:
            libarchive.extract.extract_entries(_secure_entries(archive, root), flags)
    except UnsafeArchiveError:
        raise
    except libarchive.exception.ArchiveError:
        # try again, maybe we are on Windows and the archive contains symlinks
        if fallback and on_win and tarfile.is_tarfile(tarball):
            _tar_xf_fallback(tarball, dir_path)
        else:
            raise


def archive_first_entry(path):
    """Return the name of the first entry libarchive finds in ``path``, or None."""
    try:
        with libarchive.file_reader(os.path.abspath(path)) as archive:
            for entry in archive:
                return entry.name
    except libarchive.exception.ArchiveError:
        return None
    return None


def hoist_single_extracted_folder(nested_folder):
    """Moves all files/folders one level up.

    This is for when your archive extracts into its own folder, so that we don't need to
    know exactly what that folder is called."""
    parent = os.path.dirname(nested_folder)
    flist = os.listdir(nested_folder)
    with TemporaryDirectory(dir=parent) as tmpdir:
        for entry in flist:
            shutil.move(os.path.join(nested_folder, entry), os.path.join(tmpdir, entry))
        rm_rf(nested_folder)
        for entry in flist:
            shutil.move(os.path.join(tmpdir, entry), os.path.join(parent, entry))


def url_to_path(url):
    """Local path of a ``file://`` url or an absolute path, else None."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return url2pathname(parsed.path)
    if os.path.isabs(url):
        return url
    return None


def ensure_list(arg, include_dict=True):
    """
    Ensure the object is a list. If not return it in a list.

    :param arg: Object to ensure is a list
    :type arg: any
    :param include_dict: Whether to treat `dict` as a `list`
    :type include_dict: bool, optional
    :return: `arg` as a `list`
    :rtype: list
    """
    if arg is None:
        return []
    elif islist(arg, include_dict=include_dict):
        return list(arg)
    else:
        return [arg]


def islist(arg, include_dict=True):
    if isinstance(arg, (str, bytes)) or not isinstance(arg, Iterable):
        # str and non-iterables are not lists
        return False
    elif not include_dict and isinstance(arg, dict):
        return False
    return True


@contextlib.contextmanager
def tmp_chdir(dest):
    curdir = os.getcwd()
    try:
        os.chdir(dest)
        yield
    finally:
        os.chdir(curdir)


def rm_rf(path):
    if islink(path) or os.path.isfile(path):
        os.unlink(path)
    elif isdir(path):
        shutil.rmtree(path)


class LoggingContext:
    default_loggers = [
        "source_stage",
        "source_stage.source",
        "source_stage.patch",
        "source_stage.apply",
        "source_stage.unpack",
        "source_stage.unpack.archive",
        "source_stage.unpack.directory",
        "source_stage.unpack.vcs",
        "filelock",
    ]

    def __init__(self, level=logging.WARN, handler=None, close=True, loggers=None):
        self.level = level
        self.old_levels = {}
        self.handler = handler
        self.close = close
        if not loggers:
            self.loggers = LoggingContext.default_loggers
        else:
            self.loggers = loggers

    def __enter__(self):
        for logger in self.loggers:
            log = logging.getLogger(logger)
            self.old_levels[logger] = log.level
            log.setLevel(self.level)
            if self.handler:
                log.addHandler(self.handler)

    def __exit__(self, et, ev, tb):
        for logger, level in self.old_levels.items():
            log = logging.getLogger(logger)
            log.setLevel(level)
            if self.handler:
                log.removeHandler(self.handler)
        if self.handler and self.close:
            self.handler.close()

        # implicit return of None => don't swallow exceptions


# https://stackoverflow.com/a/31459386/1170370
class LessThanFilter(logging.Filter):
    def __init__(self, exclusive_maximum, name=""):
        super().__init__(name)
        self.max_level = exclusive_maximum

    def filter(self, record):
        # non-zero return means we log this message
        return 1 if record.levelno < self.max_level else 0


class GreaterThanFilter(logging.Filter):
    def __init__(self, exclusive_minimum, name=""):
        super().__init__(name)
        self.min_level = exclusive_minimum

    def filter(self, record):
        # non-zero return means we log this message
        return 1 if record.levelno > self.min_level else 0


# unclutter logs - show messages only once
class DuplicateFilter(logging.Filter):
    def __init__(self):
        self.msgs = set()

    def filter(self, record):
        msg = record.getMessage()
        log = msg not in self.msgs
        self.msgs.add(msg)
        return int(log)


dedupe_filter = DuplicateFilter()
info_debug_stdout_filter = LessThanFilter(logging.WARNING)
warning_error_stderr_filter = GreaterThanFilter(logging.INFO)
level_formatter = logging.Formatter("%(levelname)s: %(message)s")

# set filelock's logger to only show warnings by default
logging.getLogger("filelock").setLevel(logging.WARN)


def reset_deduplicator():
    """Most of the time, we want the deduplication.  There are some cases (tests especially)
    where we want to be able to control the duplication."""
    dedupe_filter.msgs.clear()


def get_logger(name, level=logging.INFO, dedupe=True, add_stdout_stderr_handlers=True):
    config_file = None
    if rc_settings.get("log_config_file"):
        config_file = abspath(expanduser(expandvars(rc_settings.get("log_config_file"))))
    # by loading config file here, and then only adding handlers later, people
    # should be able to override our logger settings here.
    if config_file:
        with open(config_file) as f:
            config_dict = yaml.safe_load(f)
        logging.config.dictConfig(config_dict)
        level = config_dict.get("loggers", {}).get(name, {}).get("level", level)
    log = logging.getLogger(name)
    log.setLevel(level)
    if dedupe:
        log.addFilter(dedupe_filter)

    # these are defaults.  They can be overridden by configuring a log config yaml file.
    top_pkg = name.split(".")[0]
    if top_pkg == "source_stage":
        # we don't want propagation in normal use, but we do want it in tests
        # this is a pytest limitation: https://github.com/pytest-dev/pytest/issues/3697
        logging.getLogger(top_pkg).propagate = "PYTEST_CURRENT_TEST" in os.environ
    if add_stdout_stderr_handlers and not log.handlers:
        stdout_handler = logging.StreamHandler(sys.stdout)
        stderr_handler = logging.StreamHandler(sys.stderr)
        stdout_handler.addFilter(info_debug_stdout_filter)
        stderr_handler.addFilter(warning_error_stderr_filter)
        stderr_handler.setFormatter(level_formatter)
        stdout_handler.setLevel(level)
        stderr_handler.setLevel(level)
        log.addHandler(stdout_handler)
        log.addHandler(stderr_handler)
    return log
