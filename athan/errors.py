"""Error types raised by the prayer-schedule core."""


class ConfigurationError(Exception):
    """
    Raised when the geographic or calculation configuration cannot produce
    a valid schedule: bad coordinates, unknown method or madhab, unknown
    time zone, or a malformed config file.

    This is always fatal. The configuration is fixed at startup, so a
    failure here cannot correct itself by retrying.
    """
