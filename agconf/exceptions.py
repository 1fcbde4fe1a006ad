"""Errors raised by agconf.

Parsing of markdown content never raises; these cover configuration,
lockfile and source problems that must stop a sync.
"""


class AgconfError(Exception):
    """Base class for all agconf errors."""


class ConfigError(AgconfError):
    """A canonical or downstream config file is invalid."""


class LockfileError(AgconfError):
    """The lockfile is unreadable or uses an unsupported schema."""


class SourceError(AgconfError):
    """The canonical source cannot be resolved."""
