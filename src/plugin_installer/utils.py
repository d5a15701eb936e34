"""Plugin name and version utilities.

Install directory names come from archive filenames, so the resolver and the
installers share one way of turning `fake-plugin-0.0.1.tar.gz` into
`fake-plugin`.
"""

import re

# Longest first so ".tar.gz" wins over a hypothetical ".gz"
ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")

_VERSION_SUFFIX = re.compile(r"-(v?\d+\.\d+\.\d+[0-9A-Za-z.+\-]*)$")


def strip_archive_suffix(filename: str) -> str:
    """Remove a recognized archive suffix, if any."""
    for suffix in ARCHIVE_SUFFIXES:
        if filename.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def strip_plugin_name(filename: str) -> str:
    """Derive the canonical plugin name from an archive filename.

    Strips the archive suffix first, then a trailing `-<major>.<minor>.<patch>...`
    version segment, repeating until neither is left. Applying it to an already
    stripped name is a no-op.

    Args:
        filename: Archive basename (no directory or URL components)

    Returns:
        Canonical plugin name

    Examples:
        >>> strip_plugin_name("fake-plugin-0.0.1.tar.gz")
        'fake-plugin'
        >>> strip_plugin_name("fake-plugin.tgz")
        'fake-plugin'
    """
    name = filename
    while True:
        stripped = _VERSION_SUFFIX.sub("", strip_archive_suffix(name))
        if stripped == name:
            return name
        name = stripped


def archive_version(filename: str) -> str | None:
    """Return the version segment embedded in an archive filename.

    Examples:
        >>> archive_version("fake-plugin-0.0.1.tgz")
        '0.0.1'
        >>> archive_version("fake-plugin.tgz") is None
        True
    """
    match = _VERSION_SUFFIX.search(strip_archive_suffix(filename))
    if match is None:
        return None
    return match.group(1)
