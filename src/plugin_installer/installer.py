"""Plugin installers (one variant per source kind).

Per variant:
- LocalInstaller: symlinks a local plugin directory into the plugins home
- HTTPInstaller: downloads an archive, extracts it into a staging directory
  and renames the result into place
- VCSInstaller: delegates checkout and update to an injected VCS backend

Apps inject policy: the plugins home, the HTTP getter and the VCS backend.
`install()` and `update()` are the two entry points; both take an installer
built by `resolve()` or `find_source()`.
"""

import io
import logging
import os
import shutil
import tempfile
from pathlib import Path
from urllib.parse import urlsplit

from packaging.specifiers import InvalidSpecifier
from packaging.specifiers import SpecifierSet
from packaging.version import InvalidVersion
from packaging.version import Version

from .exceptions import PluginAlreadyExistsError
from .exceptions import PluginError
from .exceptions import PluginInstallError
from .exceptions import PluginNotFoundError
from .exceptions import UnsupportedSourceKindError
from .exceptions import UpdateNotSupportedError
from .exceptions import VersionNotFoundError
from .extractor import DEFAULT_DIR_MODE
from .extractor import new_extractor
from .getter import HttpxGetter
from .protocols import GetterProtocol
from .protocols import VCSBackendProtocol
from .source import PluginSource
from .utils import archive_version
from .utils import strip_plugin_name

logger = logging.getLogger(__name__)

_SPECIFIER_OPERATORS = ("<", ">", "=", "!", "~")


def _version_matches(version: str, constraint: str) -> bool:
    """Check an archive version against an exact version or a specifier set."""
    version = version.removeprefix("v")
    constraint = constraint.strip()

    if constraint.startswith(_SPECIFIER_OPERATORS):
        try:
            return SpecifierSet(constraint).contains(Version(version), prereleases=True)
        except (InvalidSpecifier, InvalidVersion) as e:
            logger.debug(f"Cannot compare {version!r} against {constraint!r}: {e}")
            return False

    constraint = constraint.removeprefix("v")
    try:
        return Version(version) == Version(constraint)
    except InvalidVersion:
        return version == constraint


class Installer:
    """
    Base for all installer variants.

    Carries the source, the canonical plugin name and the plugins home. The
    install path is always `plugins_home / name`; the name is validated here so
    nothing a source contains can point the path elsewhere.
    """

    def __init__(self, source: PluginSource, plugins_home: Path, name: str):
        if not name or name in (".", "..") or "/" in name or os.sep in name:
            raise UnsupportedSourceKindError(
                f"cannot derive a plugin name from {source.raw!r}",
                context={"source": source.raw, "name": name},
            )
        self.source = source
        self.plugins_home = plugins_home
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        """Managed install directory, whether or not it exists yet."""
        return self.plugins_home / self._name

    def _ensure_absent(self) -> None:
        # lexists: a dangling symlink still counts as installed
        if os.path.lexists(self.path):
            raise PluginAlreadyExistsError(context={"name": self.name, "path": str(self.path)})

    def _ensure_present(self) -> None:
        if not os.path.lexists(self.path):
            raise PluginNotFoundError(context={"name": self.name, "path": str(self.path)})

    async def install(self) -> None:
        raise NotImplementedError

    async def update(self) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, source={self.source.location!r})"


class LocalInstaller(Installer):
    """Installs a plugin from a local directory by symlinking it."""

    def __init__(self, source: PluginSource, plugins_home: Path, name: str | None = None):
        super().__init__(source, plugins_home, name or Path(source.location).name)

    async def install(self) -> None:
        self._ensure_absent()

        location = Path(self.source.location)
        if not location.is_dir():
            raise PluginInstallError(
                f"{location} is not a directory",
                context={"source": self.source.raw},
            )

        try:
            self.plugins_home.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Symlinking {location} to {self.path}")
            os.symlink(location, self.path, target_is_directory=True)
        except OSError as e:
            raise PluginInstallError(f"Failed to link plugin: {e}", context={"path": str(self.path)}) from e

    async def update(self) -> None:
        self._ensure_present()
        logger.debug(f"{self.name} is a local repository, it is auto-updated")


class HTTPInstaller(Installer):
    """
    Installs a plugin from a remote tarball.

    The getter is injected (defaults to HttpxGetter) and may be replaced on the
    instance, which is how tests supply canned archives.
    """

    def __init__(
        self,
        source: PluginSource,
        plugins_home: Path,
        getter: GetterProtocol | None = None,
    ):
        self.filename = os.path.basename(urlsplit(source.location).path)
        super().__init__(source, plugins_home, strip_plugin_name(self.filename))
        self.extractor = new_extractor(self.filename)
        self.getter = getter if getter is not None else HttpxGetter()

    def _check_version(self) -> None:
        constraint = self.source.version_constraint
        if not constraint:
            return

        version = archive_version(self.filename)
        logger.debug(f"Archive version {version!r}, requested {constraint!r}")
        if version is None or not _version_matches(version, constraint):
            raise VersionNotFoundError(
                f"version {constraint} of plugin {self.name} not found at {self.source.location} "
                "(constraints are an exact version or a PEP 440 specifier set such as '>=1.0,<2.0')",
                context={"name": self.name, "version": constraint, "url": self.source.location},
            )

    async def install(self) -> None:
        """
        Download, extract and move the plugin into place.

        The archive is unpacked into a hidden staging directory next to the
        install path and renamed onto it only after extraction succeeds, so the
        install path is either absent or complete.

        Raises:
            PluginAlreadyExistsError: If the install path exists
            VersionNotFoundError: If the archive does not match the requested version
            PluginInstallError: If the download or the final move fails
            ArchiveError: If the archive cannot be extracted safely
        """
        self._ensure_absent()
        self._check_version()

        url = self.source.location
        try:
            data = await self.getter.get(url)
        except Exception as e:
            raise PluginInstallError(f"Failed to download plugin: {e}", context={"url": url}) from e

        self.plugins_home.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{self.name}-", suffix=".staging", dir=self.plugins_home))
        logger.debug(f"Extracting {self.filename} into {staging}")

        try:
            os.chmod(staging, DEFAULT_DIR_MODE)
            stream = data if hasattr(data, "read") else io.BytesIO(data)
            self.extractor.extract(stream, staging)
            os.rename(staging, self.path)
        except Exception as e:
            shutil.rmtree(staging, ignore_errors=True)
            if isinstance(e, PluginError):
                raise
            raise PluginInstallError(
                f"Failed to install plugin {self.name}: {e}",
                context={"path": str(self.path), "staging": str(staging)},
            ) from e

    async def update(self) -> None:
        """Always fails: archive plugins are removed and reinstalled instead."""
        raise UpdateNotSupportedError(
            f"update is not supported for plugin {self.name} installed from an archive, "
            "uninstall and install it again",
            context={"name": self.name},
        )


def _repository_name(location: str) -> str:
    tail = location.rstrip("/")
    tail = tail.rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    return tail.removesuffix(".git")


class VCSInstaller(Installer):
    """Installs a plugin from a version-control repository via an injected backend."""

    def __init__(
        self,
        source: PluginSource,
        plugins_home: Path,
        vcs: VCSBackendProtocol | None = None,
        name: str | None = None,
    ):
        super().__init__(source, plugins_home, name or _repository_name(source.location))
        self.vcs = vcs

    def _backend(self) -> VCSBackendProtocol:
        if self.vcs is None:
            raise PluginInstallError(
                "no VCS backend configured",
                context={"source": self.source.raw},
            )
        return self.vcs

    async def install(self) -> None:
        self._ensure_absent()
        backend = self._backend()

        try:
            self.plugins_home.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Cloning {self.source.location} into {self.path}")
            await backend.clone(self.source.location, self.source.version_constraint, self.path)
        except Exception as e:
            if os.path.lexists(self.path):
                shutil.rmtree(self.path, ignore_errors=True)
            if isinstance(e, PluginError):
                raise
            raise PluginInstallError(f"Failed to clone plugin: {e}", context={"source": self.source.raw}) from e

    async def update(self) -> None:
        self._ensure_present()
        backend = self._backend()

        try:
            logger.debug(f"Updating checkout at {self.path}")
            await backend.update(self.path)
        except Exception as e:
            if isinstance(e, PluginError):
                raise
            raise PluginInstallError(f"Failed to update plugin: {e}", context={"path": str(self.path)}) from e


async def install(installer: Installer) -> None:
    """
    Install a plugin (dispatches on the installer variant).

    Args:
        installer: Installer built by resolve()

    Raises:
        PluginError: Any installation failure; see the installer variants

    Example:
        >>> installer = resolve(
        ...     "https://example.com/plugins/diff-1.2.0.tgz",
        ...     "1.2.0",
        ...     plugins_home=Path("~/.local/share/app/plugins").expanduser(),
        ... )
        >>> await install(installer)
    """
    logger.info(f"Installing plugin {installer.name} to {installer.path}")
    await installer.install()
    logger.info(f"Successfully installed plugin: {installer.name}")


async def update(installer: Installer) -> None:
    """Update an installed plugin (dispatches on the installer variant)."""
    logger.info(f"Updating plugin {installer.name}")
    await installer.update()
    logger.info(f"Successfully updated plugin: {installer.name}")
