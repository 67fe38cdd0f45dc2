"""
Exception types raised by kubeship.

Discovery problems never surface as exceptions; only configuration misuse
and deploy failures cross the package boundary.
"""


class KubeshipError(Exception):
    """Base class for all kubeship errors."""


class ConfigurationError(KubeshipError):
    """Raised when a task is constructed or invoked with invalid settings."""


class FatalDeploymentError(KubeshipError):
    """Raised when a deploy cannot continue."""


class InvalidManifestError(FatalDeploymentError):
    """Raised when a manifest file cannot be read or is not a valid resource."""

    def __init__(self, message: str, filename: str = ""):
        self.filename = filename
        if filename:
            message = f"{filename}: {message}"
        super().__init__(message)
