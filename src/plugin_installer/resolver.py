"""Source resolver - classify a plugin source and build its installer.

Classification only looks at the string, plus an existence check for local
paths. Nothing is downloaded or cloned here.

Per source form:
- existing local path -> LocalInstaller
- any other http(s) URL -> HTTPInstaller (unknown archive suffixes fail there)
- git+<scheme>://, git://, ssh://, user@host:path and http(s) repository
  URLs (no file extension, or .git) -> VCSInstaller
"""

import logging
import os
import re
from pathlib import Path
from urllib.parse import SplitResult
from urllib.parse import urlsplit

from .exceptions import UnsupportedSourceKindError
from .extractor import EXTRACTORS
from .installer import HTTPInstaller
from .installer import Installer
from .installer import LocalInstaller
from .installer import VCSInstaller
from .protocols import GetterProtocol
from .protocols import VCSBackendProtocol
from .source import PluginSource
from .source import SourceKind

logger = logging.getLogger(__name__)

_VCS_SCHEMES = ("git", "ssh", "git+http", "git+https", "git+ssh", "git+file")
_SCP_LIKE = re.compile(r"^[\w.\-]+@[\w.\-]+:[^/].*")


def _local_path(source: str) -> Path | None:
    try:
        # RuntimeError: ~user naming an unknown user
        path = Path(source).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        # ValueError: embedded NUL byte
        if path.exists():
            return path.resolve()
    except (RuntimeError, ValueError) as e:
        logger.debug(f"{source!r} is not a usable local path: {e}")
    return None


def _is_repository_url(parts: SplitResult) -> bool:
    # https://host/org/repo or https://host/org/repo.git: no file extension
    last = parts.path.rstrip("/").rsplit("/", 1)[-1]
    return bool(last) and (last.endswith(".git") or "." not in last)


def _is_http_archive(source: str) -> bool:
    parts = urlsplit(source)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False
    return parts.path.endswith(tuple(EXTRACTORS)) or not _is_repository_url(parts)


def _is_vcs_reference(source: str) -> bool:
    parts = urlsplit(source)
    if parts.scheme in _VCS_SCHEMES and (parts.netloc or parts.path):
        return True
    if parts.scheme in ("http", "https") and parts.netloc and _is_repository_url(parts):
        return True
    return bool(_SCP_LIKE.match(source))


def classify(source: str, version: str | None = None) -> PluginSource:
    """
    Classify a user-supplied source string.

    Args:
        source: Local path, archive URL or VCS reference
        version: Optional version constraint (exact version or specifier set)

    Returns:
        Immutable PluginSource

    Raises:
        UnsupportedSourceKindError: If the source matches no known form
    """
    local = _local_path(source) if source.strip() else None
    if local is not None:
        kind, location = SourceKind.LOCAL, str(local)
    elif _is_http_archive(source):
        kind, location = SourceKind.HTTP_ARCHIVE, source
    elif _is_vcs_reference(source):
        kind, location = SourceKind.VCS, source
    else:
        raise UnsupportedSourceKindError(
            f"unsupported plugin source {source!r}: not a local path, archive URL or VCS reference",
            context={"source": source},
        )

    logger.debug(f"Classified {source!r} as {kind.value}")
    return PluginSource(raw=source, kind=kind, location=location, version_constraint=version or None)


def resolve(
    source: str,
    version: str | None,
    plugins_home: Path,
    *,
    getter: GetterProtocol | None = None,
    vcs: VCSBackendProtocol | None = None,
) -> Installer:
    """
    Build the installer for a plugin source.

    Args:
        source: Local path, archive URL or VCS reference
        version: Optional version constraint
        plugins_home: Directory holding all installed plugins (app policy)
        getter: HTTP transport for archive sources (defaults to HttpxGetter)
        vcs: Backend for version-control sources

    Returns:
        LocalInstaller, HTTPInstaller or VCSInstaller

    Raises:
        UnsupportedSourceKindError: If the source matches no known form

    Example:
        >>> installer = resolve(
        ...     "https://example.com/plugins/fake-plugin-0.0.1.tar.gz",
        ...     "0.0.1",
        ...     plugins_home=Path("/var/app/plugins"),
        ... )
        >>> installer.path
        PosixPath('/var/app/plugins/fake-plugin')
    """
    plugin_source = classify(source, version)

    if plugin_source.kind is SourceKind.LOCAL:
        return LocalInstaller(plugin_source, plugins_home)
    if plugin_source.kind is SourceKind.HTTP_ARCHIVE:
        return HTTPInstaller(plugin_source, plugins_home, getter=getter)
    return VCSInstaller(plugin_source, plugins_home, vcs=vcs)


def find_source(
    location: Path,
    plugins_home: Path,
    *,
    vcs: VCSBackendProtocol | None = None,
) -> Installer:
    """
    Rebuild the installer for an already installed plugin, for update().

    Symlinked plugins came from a local directory; directories holding a
    `.git` checkout came from a VCS. Archive installs leave neither trace and
    cannot be updated.

    Args:
        location: Installed plugin directory (a child of plugins_home)
        plugins_home: Directory holding all installed plugins
        vcs: Backend for version-control sources

    Raises:
        UnsupportedSourceKindError: If the plugin's origin cannot be determined
    """
    # The link or checkout name is the installed name, whatever its origin is called
    if location.is_symlink():
        target = Path(os.path.realpath(location))
        plugin_source = PluginSource(raw=str(location), kind=SourceKind.LOCAL, location=str(target))
        logger.debug(f"{location} links to local directory {target}")
        return LocalInstaller(plugin_source, plugins_home, name=location.name)

    if (location / ".git").exists():
        plugin_source = PluginSource(raw=str(location), kind=SourceKind.VCS, location=str(location))
        logger.debug(f"{location} is a VCS checkout")
        return VCSInstaller(plugin_source, plugins_home, vcs=vcs, name=location.name)

    raise UnsupportedSourceKindError(
        "cannot get information about plugin source",
        context={"location": str(location)},
    )
