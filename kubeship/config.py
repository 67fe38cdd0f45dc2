"""
Centralized configuration management for kubeship.

Provides a unified interface for accessing environment variables and
configuration with defaults and validation.
"""

import os
from typing import FrozenSet, Optional

# Substrings of kind names that are never pruned, whatever discovery reports
DEFAULT_PROTECTED_KINDS = frozenset({"node", "namespace"})


class Config:
    """
    Centralized configuration management.

    Provides access to environment variables and configuration with
    sensible defaults and validation.
    """

    @staticmethod
    def get(key: str, default: Optional[str] = None, required: bool = False) -> str:
        """
        Get an environment variable with optional default and validation.

        Args:
            key: Environment variable name
            default: Default value if not set
            required: If True, raise ValueError if not set

        Returns:
            Environment variable value or default

        Raises:
            ValueError: If required=True and variable is not set
        """
        value = os.getenv(key, default)
        if required and value is None:
            raise ValueError(f"Required environment variable {key} is not set")
        return value or ""

    @staticmethod
    def get_int(key: str, default: int) -> int:
        """
        Get an integer environment variable.

        Raises:
            ValueError: If the variable is set but is not a positive integer
        """
        raw = os.getenv(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"Environment variable {key} must be an integer, got {raw!r}")
        if value < 1:
            raise ValueError(f"Environment variable {key} must be at least 1, got {value}")
        return value

    @staticmethod
    def get_float(key: str, default: float) -> float:
        """
        Get a non-negative float environment variable.

        Raises:
            ValueError: If the variable is set but is not a non-negative number
        """
        raw = os.getenv(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            value = float(raw)
        except ValueError:
            raise ValueError(f"Environment variable {key} must be a number, got {raw!r}")
        if value < 0:
            raise ValueError(f"Environment variable {key} must not be negative, got {value}")
        return value

    @staticmethod
    def kubectl_binary() -> str:
        """
        Get the kubectl executable to invoke.

        Returns:
            Executable name or path (defaults to "kubectl")
        """
        return Config.get("KUBECTL_BINARY", "kubectl")

    @staticmethod
    def context() -> Optional[str]:
        """
        Get the default cluster context from environment.

        Returns:
            Context name or None if not set
        """
        return Config.get("KUBESHIP_CONTEXT") or None

    @staticmethod
    def discovery_attempts() -> int:
        """Number of attempts for each discovery call (defaults to 5)."""
        return Config.get_int("KUBESHIP_DISCOVERY_ATTEMPTS", 5)

    @staticmethod
    def request_timeout() -> str:
        """Value passed to kubectl --request-timeout (defaults to "30s")."""
        return Config.get("KUBESHIP_REQUEST_TIMEOUT", "30s")

    @staticmethod
    def retry_delay() -> float:
        """Seconds to wait between kubectl attempts (defaults to 1.0)."""
        return Config.get_float("KUBESHIP_RETRY_DELAY", 1.0)

    @staticmethod
    def protected_kinds() -> FrozenSet[str]:
        """
        Get the protected kind blacklist.

        KUBESHIP_PROTECTED_KINDS is a comma separated list of extra substrings.
        Entries are added to the defaults, never substituted for them.

        Returns:
            Lower-cased substrings that exclude a kind from pruning
        """
        extra = Config.get("KUBESHIP_PROTECTED_KINDS", "")
        entries = {item.strip().lower() for item in extra.split(",") if item.strip()}
        return DEFAULT_PROTECTED_KINDS | entries


# Global config instance for convenience
config = Config()
