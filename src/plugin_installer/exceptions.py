"""Plugin installation exceptions.

Every failure is raised as one of these; the CLI decides how to render them.
"""


class PluginError(Exception):
    """Base exception for plugin operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (paths, URLs, names)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class PluginInstallError(PluginError):
    """Plugin installation failed."""


class PluginAlreadyExistsError(PluginInstallError):
    """Plugin directory already exists."""

    def __init__(self, context: dict | None = None):
        super().__init__("plugin already exists", context=context)


class PluginNotFoundError(PluginInstallError):
    """Plugin to update is not installed."""

    def __init__(self, context: dict | None = None):
        super().__init__("plugin does not exist", context=context)


class VersionNotFoundError(PluginInstallError):
    """No artifact matches the requested version."""


class UpdateNotSupportedError(PluginError, NotImplementedError):
    """Installer variant has no update semantics."""


class UnsupportedSourceKindError(PluginError):
    """Source is not a local path, archive URL or VCS reference."""


class ArchiveError(PluginError):
    """Archive could not be extracted."""


class UnsupportedArchiveFormatError(ArchiveError):
    """No extractor registered for the archive suffix."""


class CorruptArchiveError(ArchiveError):
    """Compressed or tar stream is malformed."""


class PathTraversalError(ArchiveError):
    """Archive member resolves outside the destination directory."""


class UnsupportedArchiveEntryError(ArchiveError):
    """Archive member is neither a regular file nor a directory."""
