"""Archive extraction for downloaded plugins.

Materializes tar/gzip content onto disk, reproducing each member's permission
bits and refusing members that would land outside the destination.
"""

import gzip
import logging
import os
import shutil
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO
from typing import Protocol
from urllib.parse import urlsplit

from .exceptions import ArchiveError
from .exceptions import CorruptArchiveError
from .exceptions import PathTraversalError
from .exceptions import UnsupportedArchiveEntryError
from .exceptions import UnsupportedArchiveFormatError

logger = logging.getLogger(__name__)

DEFAULT_DIR_MODE = 0o755

# Errors raised by tarfile/gzip/zlib while reading a damaged stream
_STREAM_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)

_ENTRY_TYPES = {
    tarfile.SYMTYPE: "symbolic link",
    tarfile.LNKTYPE: "hard link",
    tarfile.CHRTYPE: "character device",
    tarfile.BLKTYPE: "block device",
    tarfile.FIFOTYPE: "FIFO",
}


class Extractor(Protocol):
    """Unpacks an archive stream into a directory."""

    def extract(self, stream: BinaryIO, destination: Path) -> None: ...


def _member_path(destination: Path, name: str) -> Path:
    """Join name onto destination, rejecting anything that escapes it.

    Returns the destination itself for names such as "." or "./".
    """
    root = os.path.abspath(destination)
    target = os.path.normpath(os.path.join(root, name))
    if target != root and os.path.commonpath([root, target]) != root:
        raise PathTraversalError(
            f"archive entry {name!r} resolves outside {destination}",
            context={"entry": name, "destination": str(destination)},
        )
    return Path(target)


class TarGzExtractor:
    """Extractor for gzip-compressed tarballs (.tar.gz, .tgz)."""

    def extract(self, stream: BinaryIO, destination: Path) -> None:
        """
        Extract a gzip tar stream into destination.

        Members are processed in stream order and extraction stops at the
        first error. Regular files get exactly the permission bits recorded
        in their header; directories get theirs (0o755 when absent) with the
        owner's bits kept so later members can be written.

        Args:
            stream: Readable binary stream of the compressed archive
            destination: Existing directory to extract into

        Raises:
            CorruptArchiveError: If the gzip or tar layer is malformed
            PathTraversalError: If a member resolves outside destination
            UnsupportedArchiveEntryError: If a member is a link or special file
            ArchiveError: If a member cannot be written to disk
        """
        root = os.path.abspath(destination)
        count = 0
        entry = None
        try:
            with tarfile.open(fileobj=stream, mode="r|gz") as tar:
                for member in tar:
                    entry = member.name
                    target = _member_path(destination, member.name)

                    if member.isdir():
                        if str(target) == root:
                            continue
                        target.mkdir(mode=DEFAULT_DIR_MODE, parents=True, exist_ok=True)
                        os.chmod(target, (member.mode & 0o777 or DEFAULT_DIR_MODE) | 0o700)

                    elif member.isreg():
                        if str(target) == root:
                            raise PathTraversalError(
                                f"archive entry {member.name!r} resolves to the destination itself",
                                context={"entry": member.name, "destination": str(destination)},
                            )
                        target.parent.mkdir(mode=DEFAULT_DIR_MODE, parents=True, exist_ok=True)
                        source = tar.extractfile(member)
                        with open(target, "wb") as f:
                            shutil.copyfileobj(source, f)
                        os.chmod(target, member.mode & 0o777)

                    else:
                        kind = _ENTRY_TYPES.get(member.type, "unknown")
                        raise UnsupportedArchiveEntryError(
                            f"archive entry {member.name!r} is a {kind}, only files and directories are supported",
                            context={"entry": member.name, "type": kind},
                        )

                    count += 1
        except _STREAM_ERRORS as e:
            raise CorruptArchiveError(
                f"corrupt archive: {e}",
                context={"destination": str(destination)},
            ) from e
        except OSError as e:
            raise ArchiveError(
                f"failed to write archive entry {entry!r}: {e}",
                context={"entry": entry, "destination": str(destination)},
            ) from e

        logger.debug(f"Extracted {count} entries into {destination}")


# Keyed by filename suffix, longest suffixes first
EXTRACTORS: dict[str, type[TarGzExtractor]] = {
    ".tar.gz": TarGzExtractor,
    ".tgz": TarGzExtractor,
}


def new_extractor(source_name: str) -> Extractor:
    """
    Select an extractor from the archive's name.

    Args:
        source_name: Archive filename or URL (query and fragment are ignored)

    Returns:
        Extractor for the recognized suffix

    Raises:
        UnsupportedArchiveFormatError: If no extractor handles the suffix

    Example:
        >>> type(new_extractor("https://example.com/plugins/fake-plugin-0.0.1.tar.gz")).__name__
        'TarGzExtractor'
    """
    path = urlsplit(source_name).path if "://" in source_name else source_name
    for suffix, extractor_cls in EXTRACTORS.items():
        if path.endswith(suffix):
            return extractor_cls()

    raise UnsupportedArchiveFormatError(
        f"no extractor implemented yet for {source_name}",
        context={"source": source_name},
    )
