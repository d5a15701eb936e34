"""Plugin source reference - immutable value built from user input."""

from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict


class SourceKind(str, Enum):
    """How a plugin source is fetched."""

    LOCAL = "local"
    HTTP_ARCHIVE = "http_archive"
    VCS = "vcs"


class PluginSource(BaseModel):
    """
    Classified plugin source (immutable data structure).

    Created once per install or update from the user's source string, then
    handed to exactly one installer.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    kind: SourceKind
    location: str
    version_constraint: str | None = None
