"""
Cluster access through the kubectl binary.

ClusterClient is the capability the discovery and apply layers consume:
run a kubectl subcommand, get back its raw output and whether it succeeded.
Kubectl is the subprocess-backed implementation.
"""

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

from kubeship.config import Config
from kubeship.errors import ConfigurationError
from kubeship.executor import CommandExecutor, get_executor

if TYPE_CHECKING:
    from kubeship.task_config import TaskConfig

logger = logging.getLogger(__name__)

# Exit code reported when kubectl was killed for exceeding its time budget
TIMEOUT_RETURNCODE = 124
# Exit code reported when the kubectl binary could not be started
NOT_EXECUTABLE_RETURNCODE = 127


@dataclass(frozen=True)
class CommandStatus:
    """Outcome of a cluster command."""

    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ClusterClient(ABC):
    """Executes cluster commands and reports raw output plus outcome."""

    @abstractmethod
    def run(
        self,
        *args: str,
        attempts: int = 1,
        use_namespace: bool = True,
        output: Optional[str] = None,
        log_failure: Optional[bool] = None,
    ) -> Tuple[str, str, CommandStatus]:
        """
        Run a cluster command.

        Args:
            *args: Subcommand and its arguments, e.g. ("api-resources", "--namespaced=false")
            attempts: Maximum number of tries before giving up
            use_namespace: Scope the command to the task's namespace
            output: Output format (e.g. "wide", "json")
            log_failure: Log failed attempts (defaults to the client's setting)

        Returns:
            Tuple of (stdout, stderr, status)
        """

    def client_available(self) -> bool:
        """Whether commands can be issued at all."""
        return True


class Kubectl(ClusterClient):
    """
    ClusterClient that shells out to kubectl.

    Context and namespace come from the owning TaskConfig. Failed attempts
    are retried with a fixed delay; the last attempt's result is returned
    whether or not it succeeded.
    A binary that cannot be started is reported as a failed command and
    is not retried.
    """

    def __init__(
        self,
        task_config: "TaskConfig",
        executor: Optional[CommandExecutor] = None,
        log_failure_by_default: bool = True,
        retry_delay: Optional[float] = None,
        request_timeout: Optional[str] = None,
        process_timeout: Optional[float] = None,
    ):
        """
        Initialize the kubectl client.

        Args:
            task_config: TaskConfig supplying context, namespace and logger
            executor: CommandExecutor instance (defaults to global executor)
            log_failure_by_default: Log failed attempts unless a call says otherwise
            retry_delay: Seconds between attempts (defaults to KUBESHIP_RETRY_DELAY)
            request_timeout: kubectl --request-timeout value (defaults to KUBESHIP_REQUEST_TIMEOUT)
            process_timeout: Seconds before a kubectl process is killed (None for no limit)
        """
        self.task_config = task_config
        self.executor = executor or get_executor()
        self.log_failure_by_default = log_failure_by_default
        self.retry_delay = Config.retry_delay() if retry_delay is None else retry_delay
        self.request_timeout = request_timeout or Config.request_timeout()
        self.process_timeout = process_timeout
        self.binary = Config.kubectl_binary()

    @property
    def logger(self):
        return self.task_config.logger

    def build_command(
        self, *args: str, use_namespace: bool = True, output: Optional[str] = None
    ) -> List[str]:
        """
        Assemble the full kubectl command line.

        Raises:
            ConfigurationError: If a namespaced command is requested without a namespace
        """
        cmd = [self.binary, *args]
        if self.task_config.context:
            cmd.append(f"--context={self.task_config.context}")
        if use_namespace:
            if not self.task_config.namespace:
                raise ConfigurationError(
                    f"Namespace is required to run 'kubectl {' '.join(args)}'"
                )
            cmd.append(f"--namespace={self.task_config.namespace}")
        if output:
            cmd.append(f"--output={output}")
        if self.request_timeout:
            cmd.append(f"--request-timeout={self.request_timeout}")
        return cmd

    def run(
        self,
        *args: str,
        attempts: int = 1,
        use_namespace: bool = True,
        output: Optional[str] = None,
        log_failure: Optional[bool] = None,
    ) -> Tuple[str, str, CommandStatus]:
        if attempts < 1:
            raise ConfigurationError(f"attempts must be at least 1, got {attempts}")
        if log_failure is None:
            log_failure = self.log_failure_by_default

        cmd = self.build_command(*args, use_namespace=use_namespace, output=output)
        stdout, stderr, status = "", "", CommandStatus(1)

        for attempt in range(1, attempts + 1):
            try:
                result = self.executor.run_silent(cmd, timeout=self.process_timeout)
                stdout, stderr = result.stdout or "", result.stderr or ""
                status = CommandStatus(result.returncode)
            except subprocess.TimeoutExpired:
                stdout, stderr = "", f"Timed out after {self.process_timeout}s"
                status = CommandStatus(TIMEOUT_RETURNCODE)
            except OSError as e:
                stdout, stderr = "", f"Could not run {self.binary}: {e}"
                status = CommandStatus(NOT_EXECUTABLE_RETURNCODE)

            if status.success:
                break

            if log_failure:
                self.logger.warning(
                    "The following command failed (attempt %d/%d): %s",
                    attempt,
                    attempts,
                    " ".join(cmd),
                )
                if stderr.strip():
                    self.logger.warning(stderr.strip())
            if status.returncode == NOT_EXECUTABLE_RETURNCODE:
                break
            if attempt < attempts and self.retry_delay:
                time.sleep(self.retry_delay)

        return stdout, stderr, status

    def client_available(self) -> bool:
        """Check that the kubectl binary can be executed at all."""
        try:
            result = self.executor.run_silent([self.binary, "version", "--client"])
        except OSError:
            return False
        return result.returncode == 0
