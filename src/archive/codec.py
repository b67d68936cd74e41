"""gzip'ed tar codec used to store and restore package directories."""

from __future__ import annotations

import logging
import os
import tarfile

from common.errors import CodecError

logger = logging.getLogger(__name__)


def _safe_extract(tf: tarfile.TarFile, dest: str) -> None:
    """Extract every member, rejecting paths that escape ``dest``."""
    dest = os.path.realpath(dest)
    for member in tf.getmembers():
        target = os.path.realpath(os.path.join(dest, member.name))
        if target != dest and not target.startswith(dest + os.sep):
            raise CodecError(f"unsafe archive member path: {member.name}")
        if member.issym() or member.islnk():
            base = os.path.dirname(target) if member.issym() else dest
            link_target = os.path.realpath(os.path.join(base, member.linkname))
            if not link_target.startswith(dest + os.sep):
                raise CodecError(f"unsafe archive link: {member.name} -> {member.linkname}")
    if hasattr(tarfile, "data_filter"):
        tf.extractall(dest, filter="data")
    else:
        tf.extractall(dest)


class TarGzCodec:
    """Compresses a directory into a ``.tgz`` and extracts it back."""

    def compress(self, source_dir: str, dest_file: str, arcname: str) -> None:
        """Write ``source_dir`` into ``dest_file`` with its contents under ``arcname``.

        Raises:
            CodecError: If the source is not a directory or the archive cannot be written.
        """
        if not os.path.isdir(source_dir):
            raise CodecError(f"Cannot pack {source_dir}: not a directory")
        try:
            with tarfile.open(dest_file, "w:gz") as tf:
                tf.add(os.path.realpath(source_dir), arcname=arcname)
        except (OSError, tarfile.TarError) as e:
            # remove the partial archive
            if os.path.exists(dest_file):
                os.remove(dest_file)
            raise CodecError(f"Failed to pack {source_dir} into {dest_file}: {e}") from e

    def extract(self, archive_file: str, dest_parent_dir: str) -> None:
        """Extract ``archive_file`` into ``dest_parent_dir``.

        Raises:
            CodecError: If the archive is unreadable or holds unsafe members.
        """
        try:
            with tarfile.open(archive_file, "r:gz") as tf:
                _safe_extract(tf, dest_parent_dir)
        except (OSError, tarfile.TarError) as e:
            raise CodecError(f"Failed to extract {archive_file}: {e}") from e
