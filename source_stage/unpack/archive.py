# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os
import tarfile
from os.path import isdir, isfile, islink, join

import libarchive

from ..exceptions import FileSystemError
from ..utils import (
    TemporaryDirectory,
    archive_first_entry,
    get_logger,
    hoist_single_extracted_folder,
    rm_rf,
    tar_xf,
)
from .base import ExtractionRequest, UnpackStrategy, looks_like_text, read_magic
from .directory import DirectoryStrategy

log = get_logger(__name__)

# gzip, bzip2, xz, zstd, compress (.Z) and legacy lzma streams
compression_magic = (
    b"\x1f\x8b",
    b"BZh",
    b"\xfd7zXZ\x00",
    b"\x28\xb5\x2f\xfd",
    b"\x1f\x9d",
    b"\x5d\x00\x00",
)
zip_magic = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")


class ArchiveStrategy(UnpackStrategy):
    """Extracts into a scratch folder, then moves the result into place.

    The scratch folder lives next to the destination so the final move is a
    rename.  A lone top-level folder is hoisted unless the request says not
    to.
    """

    def extract_to_dir(self, path, unpack_dir, request: ExtractionRequest):
        tar_xf(path, unpack_dir)

    def extract(self, request: ExtractionRequest) -> None:
        src = request.source_path
        dst = os.path.abspath(request.destination_path)
        if request.verbose:
            log.info("Extracting %s (%s) to %s", src, self.name, dst)
        else:
            log.debug("Extracting %s (%s) to %s", src, self.name, dst)
        try:
            os.makedirs(dst, exist_ok=True)
            with TemporaryDirectory(
                dir=os.path.dirname(dst), prefix=".extract-"
            ) as tmpdir:
                self.extract_to_dir(src, tmpdir, request)
                flist = os.listdir(tmpdir)
                folder = join(tmpdir, flist[0]) if flist else None
                # Hoisting is destructive of information, some archives need
                # their single top level folder kept.
                if (
                    request.hoist
                    and len(flist) == 1
                    and isdir(folder)
                    and not islink(folder)
                ):
                    hoist_single_extracted_folder(folder)
                DirectoryStrategy().extract(
                    request._replace(
                        source_path=tmpdir, move=True, hoist=False, locking=False
                    )
                )
        except (libarchive.exception.ArchiveError, tarfile.TarError) as e:
            raise FileSystemError(
                f"Extracting {src} failed: {e}", src=src, dst=dst
            ) from e
        except OSError as e:
            raise FileSystemError(
                f"Extracting {src} to {dst} failed: {e}", src=src, dst=dst
            ) from e


class ZipStrategy(ArchiveStrategy):
    name = "zip"

    def can_extract(self, path):
        return isfile(path) and read_magic(path, 4).startswith(zip_magic)

    def extract_to_dir(self, path, unpack_dir, request):
        tar_xf(path, unpack_dir, fallback=False)
        # AppleDouble files are how zip carries extended attributes
        if not request.merge_xattrs:
            rm_rf(join(unpack_dir, "__MACOSX"))


class TarStrategy(ArchiveStrategy):
    name = "tar"

    def can_extract(self, path):
        if not isfile(path):
            return False
        magic = read_magic(path, 512)
        if magic[257:262] == b"ustar":
            return True
        # a compressed stream is only ours if libarchive finds entries in it
        return magic.startswith(compression_magic) and (
            archive_first_entry(path) is not None
        )


class GenericArchiveStrategy(ArchiveStrategy):
    """Anything else libarchive can read (7z, rpm, deb, cpio, iso, ...)."""

    name = "libarchive"

    def can_extract(self, path):
        if not isfile(path) or looks_like_text(path):
            return False
        return archive_first_entry(path) is not None

    def extract_to_dir(self, path, unpack_dir, request):
        tar_xf(path, unpack_dir, fallback=False)
