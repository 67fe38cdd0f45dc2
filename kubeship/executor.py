"""
Subprocess execution for kubectl invocations.

Commands always run with captured text output and never raise on a
non-zero exit code; the caller inspects the returncode.
"""

import subprocess
import logging
from typing import Optional, List

from kubeship.output import get_output

logger = logging.getLogger(__name__)


class CommandExecutor:
    """
    Runs external commands and captures their output.

    Kept as a separate object so cluster clients can be tested with a
    mocked executor.
    """

    def run_silent(self, cmd: List[str], timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        """
        Execute a command, capturing stdout and stderr.

        Args:
            cmd: Command to execute as a list of strings
            timeout: Seconds before the process is killed (None for no limit)

        Returns:
            CompletedProcess instance with stdout, stderr, and returncode

        Raises:
            subprocess.TimeoutExpired: If the command exceeds timeout
            OSError: If the executable cannot be started
        """
        output = get_output()
        logger.debug(f"Executing command: {' '.join(cmd)}")
        output.verbose(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False, timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Command timed out after {timeout}s: {' '.join(cmd)}")
            raise
        except OSError as e:
            logger.debug(f"Could not start {cmd[0]}: {e}")
            raise

        logger.debug(f"Command completed with return code: {result.returncode}")
        return result


_default_executor = CommandExecutor()


def get_executor() -> CommandExecutor:
    """Get the default command executor instance."""
    return _default_executor
