"""
Archive builder implementation.

Walks a directory tree and writes it into a new ZIP archive: directories as empty
"name/" entries, files deflate-compressed and streamed from disk.
"""

import logging
import os
import shutil
import struct
import zipfile
from typing import Iterator, Optional, Tuple

from ipsw_lite.ipsw_lite_config import DEFAULT_BUFFER_SIZE
from ipsw_lite.ipsw_lite_exceptions import ArchiveWriteError, LocalIOError
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger


class ArchiveBuilder:
    """
    Builds a ZIP archive from a directory tree.
    """

    def __init__(self, logger: IpswLiteLogger, buffer_size: int = DEFAULT_BUFFER_SIZE):
        self.logger = logger
        self.buffer_size = buffer_size

    def build(
        self, source_dir: str, dest_path: str, base_name: Optional[str] = None
    ) -> int:
        """
        Write every directory and file under `source_dir` into a new archive.

        Entry names are relative to `source_dir`, use forward slashes and are prefixed
        with `base_name`, which defaults to the base name of `source_dir`. A base name
        of "" or "." writes the tree's contents at the archive root.

        The archive is complete when this returns. On failure a truncated file may be
        left at `dest_path` and must be discarded.

        Returns:
            Number of entries written

        Raises:
            LocalIOError: On filesystem read or write errors
            ArchiveWriteError: If the archive structure cannot be written
        """
        if not os.path.isdir(source_dir):
            raise LocalIOError(f"Unable to create zip: {source_dir} is not a directory")

        if base_name is None:
            base_name = os.path.basename(os.path.normpath(source_dir))
        if base_name == ".":
            base_name = ""

        self.logger.log(f"Building archive {dest_path} from {source_dir}", logging.INFO)

        count = 0
        try:
            with zipfile.ZipFile(dest_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for path, arcname, is_dir in self._walk(source_dir, base_name):
                    if is_dir:
                        self._write_directory(zf, path, arcname)
                    else:
                        self._write_file(zf, path, arcname)
                    count += 1
        except OSError as e:
            raise LocalIOError(f"Error creating archive {dest_path}: {e}") from e
        except (zipfile.LargeZipFile, struct.error, ValueError) as e:
            raise ArchiveWriteError(f"Error creating archive {dest_path}: {e}") from e

        self.logger.log(f"Wrote {count} entries to {dest_path}", logging.INFO)
        return count

    def _walk(self, source_dir: str, base_name: str) -> Iterator[Tuple[str, str, bool]]:
        """
        Yield (path, archive name, is_dir) in lexical order per directory level.
        """

        def _raise(error: OSError) -> None:
            raise error

        for root, dirs, files in os.walk(source_dir, onerror=_raise):
            dirs.sort()
            relative = os.path.relpath(root, source_dir)
            prefix = self._archive_name(base_name, relative)

            if prefix:
                yield root, prefix + "/", True

            for name in sorted(files):
                arcname = f"{prefix}/{name}" if prefix else name
                yield os.path.join(root, name), arcname, False

    @staticmethod
    def _archive_name(base_name: str, relative: str) -> str:
        parts = [] if relative == os.curdir else relative.split(os.sep)
        if base_name:
            parts.insert(0, base_name)
        return "/".join(parts)

    def _write_directory(self, zf: zipfile.ZipFile, path: str, arcname: str) -> None:
        info = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
        info.compress_type = zipfile.ZIP_STORED
        zf.writestr(info, b"")

    def _write_file(self, zf: zipfile.ZipFile, path: str, arcname: str) -> None:
        info = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
        info.compress_type = zipfile.ZIP_DEFLATED
        with open(path, "rb") as src, zf.open(info, "w") as dst:
            shutil.copyfileobj(src, dst, self.buffer_size)
