"""
SRI Escape Planner — Error Types
Configuration errors are fatal at load time; the rest are raised at the
update / confirm boundary and leave engine state untouched.
"""


class ConfigurationError(ValueError):
    """Malformed topology or settings."""


class ObservationError(ValueError):
    """Rejected observation patch."""


class UnknownSiteError(KeyError):
    def __init__(self, site_id):
        super().__init__(site_id)
        self.site_id = site_id

    def __str__(self):
        return f"Unknown site: {self.site_id}"


class NavigationError(RuntimeError):
    """Hop confirmation with no hop available."""
