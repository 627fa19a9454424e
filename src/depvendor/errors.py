"""
Error taxonomy for depvendor.

Every error is fatal to the run. Library code raises; the CLI is the
only place that catches DepVendorError, reports it, and exits nonzero.
"""

from __future__ import annotations


class DepVendorError(Exception):
    """Base class for all depvendor failures."""


class ConfigError(DepVendorError):
    """Home directory unresolvable, or malformed config/manifest text."""


class ManifestError(DepVendorError):
    """Manifest missing on update, or already present on init."""


class ResolutionError(DepVendorError):
    """Insufficient or ambiguous source information for a dependency."""


class AuthError(DepVendorError):
    """SSH credentials cannot be built for a remote."""


class BackendError(DepVendorError):
    """A git clone/fetch/checkout/reset operation failed."""


class MissingEnvironmentError(DepVendorError):
    """A path expression references an unset environment variable."""

    def __init__(self, variable: str):
        super().__init__(f"environment variable '{variable}' is not set")
        self.variable = variable
