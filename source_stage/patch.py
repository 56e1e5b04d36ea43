# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Patch declarations and their resolution into concrete patch bodies.

A patch is either inline text or a fetched file.  A fetched file may itself be
an archive holding several patches, in which case the ones to apply are named,
in order, by an apply list.
"""
from __future__ import annotations

import os
import re
from os.path import isdir, isfile
from typing import Iterable, NamedTuple, Union

from . import unpack
from .config import get_or_merge_config
from .exceptions import (
    FileSystemError,
    InvalidApplyListError,
    MissingApplyError,
    PatchMemberNotFoundError,
    PatchNotFetchedError,
)
from .utils import TemporaryDirectory, ensure_list, get_logger, url_to_path

log = get_logger(__name__)

DEFAULT_STRIP = 1

_strip_re = re.compile(r"^p(\d+)$")
_placeholder_re = re.compile(rb"@@([A-Za-z_][A-Za-z0-9_]*)@@")


def parse_strip_level(value) -> int:
    """Turn ``"p1"`` (or ``1``) into ``1``."""
    if isinstance(value, bool):
        raise TypeError(f"Invalid strip level {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Invalid strip level {value!r}; expected p0, p1, ...")
        return value
    m = _strip_re.match(str(value).strip())
    if not m:
        raise ValueError(f"Invalid strip level {value!r}; expected p0, p1, ...")
    return int(m.group(1))


class InlineText(NamedTuple):
    text: Union[str, bytes]


class Fetched(NamedTuple):
    url: str
    sha256: Union[str, None] = None
    # filled in by whoever downloaded url
    path: Union[str, None] = None


class PatchSpecification(NamedTuple):
    origin: Union[InlineText, Fetched]
    strip: int = DEFAULT_STRIP
    apply: tuple = ()

    @classmethod
    def inline(cls, text, strip=DEFAULT_STRIP):
        return cls(InlineText(text), parse_strip_level(strip))

    @classmethod
    def fetched(cls, url, sha256=None, path=None, strip=DEFAULT_STRIP, apply=()):
        return cls(
            Fetched(url, sha256, path),
            parse_strip_level(strip),
            tuple(ensure_list(apply)),
        )

    @classmethod
    def from_dict(cls, data):
        """Build a specification from a mapping such as a parsed YAML entry.

        Recognized keys are ``text`` or ``url`` (with ``sha256`` and ``path``),
        ``strip`` and ``apply``.
        """
        strip = data.get("strip", DEFAULT_STRIP)
        if "text" in data:
            if data.get("url"):
                raise ValueError("A patch has either inline text or a url, not both")
            spec = cls.inline(data["text"], strip)
            if data.get("apply"):
                raise InvalidApplyListError("inline patch", ensure_list(data["apply"]))
            return spec
        if "url" in data:
            return cls.fetched(
                data["url"],
                sha256=data.get("sha256"),
                path=data.get("path"),
                strip=strip,
                apply=data.get("apply", ()),
            )
        raise ValueError(f"A patch needs either text or a url: {data!r}")

    def describe(self):
        if isinstance(self.origin, InlineText):
            return "inline patch"
        return self.origin.url


class ResolvedPatchBody(NamedTuple):
    content: bytes
    strip: int
    name: str
    index: int = 0


def substitute_variables(content: bytes, variables) -> bytes:
    """Replace each ``@@NAME@@`` whose NAME is in ``variables``, in a single pass.

    Unknown placeholders are left alone.
    """
    values = {str(k).encode(): str(v).encode("utf-8") for k, v in variables.items()}

    def _replace(m):
        return values.get(m.group(1), m.group(0))

    return _placeholder_re.sub(_replace, content)


def fetched_path(origin: Fetched) -> str:
    if origin.path:
        return origin.path
    path = url_to_path(origin.url)
    if not path:
        raise PatchNotFetchedError(origin.url)
    return path


def _read_members(patch_dir, members: Iterable[str], url):
    root = os.path.realpath(patch_dir)
    contents = []
    for member in members:
        member_path = os.path.realpath(os.path.join(root, member))
        if (
            os.path.isabs(member)
            or not member_path.startswith(root + os.sep)
            or not isfile(member_path)
        ):
            raise PatchMemberNotFoundError(member, url)
        with open(member_path, "rb") as f:
            contents.append((member, f.read()))
    return contents


def _read_archive(path, apply, url, config):
    if isdir(path):
        return _read_members(path, apply, url)
    with TemporaryDirectory(prefix="patches-") as tmpdir:
        request = unpack.ExtractionRequest(
            path,
            tmpdir,
            verbose=config.verbose,
            locking=False,
            timeout=config.timeout,
            tools_prefix=config.tools_prefix,
        )
        unpack.extract(request)
        return _read_members(tmpdir, apply, url)


def resolve_patch(
    spec: PatchSpecification, variables=None, config=None
) -> list[ResolvedPatchBody]:
    """Turn one patch declaration into the ordered bodies to apply.

    :param variables: ``NAME -> value`` placeholders, on top of the ones the
        config provides (``PREFIX`` and ``config.variables``)
    :raises MissingApplyError: a patch archive without an apply list
    :raises InvalidApplyListError: an apply list for something that is not an archive
    :raises PatchMemberNotFoundError: an apply list entry missing from the archive
    """
    config = get_or_merge_config(config)
    placeholders = config.placeholders
    placeholders.update({str(k): str(v) for k, v in (variables or {}).items()})
    strip = parse_strip_level(spec.strip)
    apply = tuple(ensure_list(spec.apply))
    origin = spec.origin

    if isinstance(origin, InlineText):
        if apply:
            raise InvalidApplyListError(spec.describe(), apply)
        text = origin.text
        if isinstance(text, str):
            text = text.encode("utf-8")
        contents = [(spec.describe(), text)]
    elif isinstance(origin, Fetched):
        path = fetched_path(origin)
        if not os.path.lexists(path):
            raise FileSystemError(f"Fetched patch {path} does not exist", src=path)
        if unpack.is_archive(path):
            if not apply:
                raise MissingApplyError(origin.url)
            contents = _read_archive(path, apply, origin.url, config)
        else:
            if apply:
                raise InvalidApplyListError(origin.url, apply)
            try:
                with open(path, "rb") as f:
                    contents = [(origin.url, f.read())]
            except OSError as e:
                raise FileSystemError(
                    f"Could not read patch {path}: {e}", src=path
                ) from e
    else:
        raise TypeError(f"Unknown patch origin {origin!r}")

    log.debug(
        "Resolved %s into %d patch(es) at p%d", spec.describe(), len(contents), strip
    )
    return [
        ResolvedPatchBody(substitute_variables(content, placeholders), strip, name, i)
        for i, (name, content) in enumerate(contents)
    ]
