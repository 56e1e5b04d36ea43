# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import textwrap

SEPARATOR = "-" * 70

indent = lambda s: textwrap.fill(textwrap.dedent(s))


class SourceStageException(Exception):
    pass


class UnsupportedSourceError(SourceStageException):
    def __init__(self, path, *args):
        self.path = path
        super().__init__(f"No extraction strategy can unpack {path}", *args)


class FileSystemError(SourceStageException):
    """A copy, move or extraction step failed for reasons other than a conflict."""

    def __init__(self, message, src=None, dst=None):
        self.src = src
        self.dst = dst
        super().__init__(message)


class MoveConflictError(SourceStageException):
    def __init__(self, src, dst, src_is_dir):
        self.src = src
        self.dst = dst
        if src_is_dir:
            msg = f"Cannot move directory {src} to non-directory {dst}"
        else:
            msg = f"Cannot move non-directory {src} to directory {dst}"
        super().__init__(msg)


class MissingDependency(SourceStageException):
    pass


class BuildLockError(SourceStageException):
    """Raised when we failed to acquire a lock."""


class VCSCheckoutError(SourceStageException):
    pass


class PatchError(SourceStageException):
    pass


class MissingApplyError(PatchError):
    def __init__(self, url):
        self.url = url
        super().__init__(
            "\n".join(
                [
                    SEPARATOR,
                    f"Patch archive {url} needs an apply list.",
                    indent(
                        """\
                    A patch archive can hold any number of patch files, so the
                    ones to apply (and their order) must be named explicitly.
                    """
                    ),
                ]
            )
        )


class InvalidApplyListError(PatchError):
    def __init__(self, url, apply):
        self.url = url
        self.apply = tuple(apply)
        super().__init__(
            "Apply list {} given for {}, which is a single patch file, "
            "not a patch archive".format(list(self.apply), url)
        )


class PatchMemberNotFoundError(PatchError):
    def __init__(self, member, url):
        self.member = member
        self.url = url
        super().__init__(f"No such patch in {url}: {member}")


class PatchNotFetchedError(PatchError):
    def __init__(self, url):
        self.url = url
        super().__init__(f"Patch {url} has not been fetched to a local path")


class PatchApplyError(PatchError):
    def __init__(self, name, strip, src_dir, returncode=None, output=""):
        self.name = name
        self.strip = strip
        self.src_dir = src_dir
        self.returncode = returncode
        self.output = output
        self.msg = "Patch {} does not apply to {} at strip level p{}".format(
            name, src_dir, strip
        )
        if output:
            self.msg += "\n" + output
        super().__init__(self.msg)
