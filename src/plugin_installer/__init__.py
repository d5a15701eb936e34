"""plugin-installer - Resolve, fetch and safely unpack command-line tool plugins.

Library mechanism only: apps inject policy (plugins home, HTTP getter, VCS backend).
"""

from .exceptions import ArchiveError
from .exceptions import CorruptArchiveError
from .exceptions import PathTraversalError
from .exceptions import PluginAlreadyExistsError
from .exceptions import PluginError
from .exceptions import PluginInstallError
from .exceptions import PluginNotFoundError
from .exceptions import UnsupportedArchiveEntryError
from .exceptions import UnsupportedArchiveFormatError
from .exceptions import UnsupportedSourceKindError
from .exceptions import UpdateNotSupportedError
from .exceptions import VersionNotFoundError
from .extractor import Extractor
from .extractor import TarGzExtractor
from .extractor import new_extractor
from .getter import HttpxGetter
from .installer import HTTPInstaller
from .installer import Installer
from .installer import LocalInstaller
from .installer import VCSInstaller
from .installer import install
from .installer import update
from .protocols import GetterProtocol
from .protocols import VCSBackendProtocol
from .resolver import classify
from .resolver import find_source
from .resolver import resolve
from .source import PluginSource
from .source import SourceKind
from .utils import strip_plugin_name

__all__ = [
    # Sources
    "PluginSource",
    "SourceKind",
    "classify",
    # Resolution
    "resolve",
    "find_source",
    # Installation
    "Installer",
    "LocalInstaller",
    "HTTPInstaller",
    "VCSInstaller",
    "install",
    "update",
    "GetterProtocol",
    "VCSBackendProtocol",
    "HttpxGetter",
    # Extraction
    "Extractor",
    "TarGzExtractor",
    "new_extractor",
    # Exceptions
    "PluginError",
    "PluginInstallError",
    "PluginAlreadyExistsError",
    "PluginNotFoundError",
    "VersionNotFoundError",
    "UpdateNotSupportedError",
    "UnsupportedSourceKindError",
    "ArchiveError",
    "UnsupportedArchiveFormatError",
    "CorruptArchiveError",
    "PathTraversalError",
    "UnsupportedArchiveEntryError",
    # Utilities
    "strip_plugin_name",
]

__version__ = "0.1.0"
