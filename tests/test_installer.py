"""Tests for plugin installers (HTTP, local, VCS)."""

import io
import os
import tarfile
from pathlib import Path

import pytest
from plugin_installer import HTTPInstaller
from plugin_installer import LocalInstaller
from plugin_installer import PathTraversalError
from plugin_installer import PluginAlreadyExistsError
from plugin_installer import PluginInstallError
from plugin_installer import PluginNotFoundError
from plugin_installer import UpdateNotSupportedError
from plugin_installer import VCSInstaller
from plugin_installer import VersionNotFoundError
from plugin_installer import install
from plugin_installer import resolve
from plugin_installer import update


def make_tgz(files: dict[str, str]) -> bytes:
    """Build a gzip tarball of regular files (mode 0644)."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, body in files.items():
            data = body.encode()
            info = tarfile.TarInfo(name)
            info.mode = 0o644
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


FAKE_PLUGIN = make_tgz({"plugin.yaml": "name: fake-plugin\nversion: 0.0.1\n", "bin/run.sh": "#!/bin/sh\n"})


class MockGetter:
    """Mock transport returning canned bytes or raising a canned error."""

    def __init__(self, response: bytes | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[str] = []

    async def get(self, href: str) -> bytes:
        self.calls.append(href)
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


class MockVCS:
    """Mock VCS backend that writes a checkout with a .git directory."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.cloned: list[tuple[str, str | None, Path]] = []
        self.updated: list[Path] = []

    async def clone(self, url: str, version: str | None, target_dir: Path) -> None:
        self.cloned.append((url, version, target_dir))
        target_dir.mkdir(parents=True)
        (target_dir / ".git").mkdir()
        if self.error is not None:
            raise self.error
        (target_dir / "plugin.yaml").write_text("name: helm-diff\n")

    async def update(self, target_dir: Path) -> None:
        self.updated.append(target_dir)
        if self.error is not None:
            raise self.error


def http_installer(
    plugins_home: Path,
    version: str | None,
    getter: MockGetter,
    filename: str = "fake-plugin-0.0.1.tar.gz",
) -> HTTPInstaller:
    installer = resolve(f"https://repo.localdomain/plugins/{filename}", version, plugins_home, getter=getter)
    assert isinstance(installer, HTTPInstaller)
    return installer


@pytest.mark.asyncio
async def test_http_installer(tmp_path):
    """Fresh install lands at plugins_home/<name>; a second install is refused."""
    plugins_home = tmp_path / "plugins"
    getter = MockGetter(response=FAKE_PLUGIN)
    installer = http_installer(plugins_home, "0.0.1", getter)

    await install(installer)

    assert installer.path == plugins_home / "fake-plugin"
    assert (installer.path / "plugin.yaml").read_text() == "name: fake-plugin\nversion: 0.0.1\n"
    assert (installer.path / "bin" / "run.sh").exists()
    assert getter.calls == ["https://repo.localdomain/plugins/fake-plugin-0.0.1.tar.gz"]

    original = (installer.path / "plugin.yaml").stat().st_mtime_ns
    with pytest.raises(PluginAlreadyExistsError) as exc_info:
        await install(installer)

    assert str(exc_info.value) == "plugin already exists"
    assert (installer.path / "plugin.yaml").stat().st_mtime_ns == original
    assert len(getter.calls) == 1


@pytest.mark.asyncio
async def test_http_installer_leaves_no_staging_dirs(tmp_path):
    plugins_home = tmp_path / "plugins"
    installer = http_installer(plugins_home, None, MockGetter(response=FAKE_PLUGIN))

    await install(installer)

    assert sorted(p.name for p in plugins_home.iterdir()) == ["fake-plugin"]
    assert (plugins_home / "fake-plugin").stat().st_mode & 0o777 == 0o755


@pytest.mark.asyncio
async def test_http_installer_transport_error(tmp_path):
    """Transport failures are wrapped, keep their cause and leave nothing behind."""
    plugins_home = tmp_path / "plugins"
    cause = ConnectionError("failed to download plugin for some reason")
    installer = http_installer(plugins_home, "0.0.2", MockGetter(error=cause), "fake-plugin-0.0.2.tar.gz")

    with pytest.raises(PluginInstallError, match="failed to download plugin for some reason") as exc_info:
        await install(installer)

    assert exc_info.value.__cause__ is cause
    assert not installer.path.exists()


@pytest.mark.asyncio
async def test_http_installer_version_not_found(tmp_path):
    """A version mismatch fails before any fetch or filesystem write."""
    plugins_home = tmp_path / "plugins"
    getter = MockGetter(response=FAKE_PLUGIN)
    installer = http_installer(plugins_home, "0.0.2", getter)

    with pytest.raises(VersionNotFoundError, match="PEP 440"):
        await install(installer)

    assert getter.calls == []
    assert not plugins_home.exists()


@pytest.mark.asyncio
async def test_http_installer_version_missing_from_filename(tmp_path):
    getter = MockGetter(response=FAKE_PLUGIN)
    installer = http_installer(tmp_path / "plugins", "1.0.0", getter, "fake-plugin.tgz")

    with pytest.raises(VersionNotFoundError):
        await install(installer)

    assert getter.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("constraint", ["0.0.1", "v0.0.1", ">=0.0.1,<0.1.0", "~=0.0.1"])
async def test_http_installer_version_constraints(tmp_path, constraint):
    installer = http_installer(tmp_path / "plugins", constraint, MockGetter(response=FAKE_PLUGIN))

    await install(installer)

    assert installer.path.is_dir()


@pytest.mark.asyncio
async def test_http_installer_corrupt_archive_is_atomic(tmp_path):
    """Archive failures surface as-is and leave neither target nor staging dir."""
    plugins_home = tmp_path / "plugins"
    bad = make_tgz({"plugin.yaml": "ok", "../../escape.sh": "boom"})
    installer = http_installer(plugins_home, None, MockGetter(response=bad))

    with pytest.raises(PathTraversalError):
        await install(installer)

    assert not installer.path.exists()
    assert list(plugins_home.iterdir()) == []
    assert not (tmp_path / "escape.sh").exists()


@pytest.mark.asyncio
async def test_http_installer_update(tmp_path):
    """Update always fails for archive installs, installed or not."""
    installer = http_installer(tmp_path / "plugins", "0.0.1", MockGetter(response=FAKE_PLUGIN))

    with pytest.raises(UpdateNotSupportedError):
        await update(installer)

    await install(installer)

    with pytest.raises(UpdateNotSupportedError):
        await update(installer)
    with pytest.raises(NotImplementedError):
        await update(installer)


def test_http_installer_path_is_pure(tmp_path):
    plugins_home = tmp_path / "plugins"
    installer = http_installer(plugins_home, None, MockGetter(response=FAKE_PLUGIN))

    assert installer.path == plugins_home / "fake-plugin"
    assert installer.name == "fake-plugin"
    assert not plugins_home.exists()


@pytest.mark.asyncio
async def test_local_installer(tmp_path):
    source_dir = tmp_path / "src" / "my-plugin"
    source_dir.mkdir(parents=True)
    (source_dir / "plugin.yaml").write_text("name: my-plugin\n")
    plugins_home = tmp_path / "plugins"

    installer = resolve(str(source_dir), None, plugins_home)
    assert isinstance(installer, LocalInstaller)

    await install(installer)

    assert installer.path == plugins_home / "my-plugin"
    assert installer.path.is_symlink()
    assert os.path.realpath(installer.path) == str(source_dir.resolve())

    with pytest.raises(PluginAlreadyExistsError):
        await install(installer)

    # Local plugins follow their source directory, update is a no-op
    await update(installer)
    assert installer.path.is_symlink()


@pytest.mark.asyncio
async def test_local_installer_rejects_file(tmp_path):
    archive = tmp_path / "plugin.tgz"
    archive.write_bytes(FAKE_PLUGIN)

    installer = resolve(str(archive), None, tmp_path / "plugins")

    with pytest.raises(PluginInstallError, match="not a directory"):
        await install(installer)


@pytest.mark.asyncio
async def test_local_installer_update_missing(tmp_path):
    source_dir = tmp_path / "my-plugin"
    source_dir.mkdir()
    installer = resolve(str(source_dir), None, tmp_path / "plugins")

    with pytest.raises(PluginNotFoundError, match="plugin does not exist"):
        await update(installer)


@pytest.mark.asyncio
async def test_vcs_installer(tmp_path):
    plugins_home = tmp_path / "plugins"
    vcs = MockVCS()
    installer = resolve("https://github.com/databus23/helm-diff", "v3.1.0", plugins_home, vcs=vcs)
    assert isinstance(installer, VCSInstaller)

    await install(installer)

    assert installer.path == plugins_home / "helm-diff"
    assert vcs.cloned == [("https://github.com/databus23/helm-diff", "v3.1.0", plugins_home / "helm-diff")]

    await update(installer)
    assert vcs.updated == [plugins_home / "helm-diff"]


@pytest.mark.asyncio
async def test_vcs_installer_clone_failure_cleans_up(tmp_path):
    plugins_home = tmp_path / "plugins"
    vcs = MockVCS(error=RuntimeError("auth failed"))
    installer = resolve("git@github.com:databus23/helm-diff.git", None, plugins_home, vcs=vcs)

    with pytest.raises(PluginInstallError, match="auth failed"):
        await install(installer)

    assert not installer.path.exists()


@pytest.mark.asyncio
async def test_vcs_installer_without_backend(tmp_path):
    installer = resolve("git+https://example.com/org/plugin.git", None, tmp_path / "plugins")

    with pytest.raises(PluginInstallError, match="no VCS backend configured"):
        await install(installer)

    assert not installer.path.exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("constraint", ["^0.0.1", "0.0.x"])
async def test_http_installer_semver_ranges_not_understood(tmp_path, constraint):
    """Only exact versions and PEP 440 specifier sets are understood, and the error says so."""
    getter = MockGetter(response=FAKE_PLUGIN)
    installer = http_installer(tmp_path / "plugins", constraint, getter)

    with pytest.raises(VersionNotFoundError, match="PEP 440 specifier set"):
        await install(installer)

    assert getter.calls == []
