"""
Applies manifests with `kubectl apply`, pruning what is no longer declared.
"""

from pathlib import Path
from typing import List, Optional, Sequence

from kubeship.errors import FatalDeploymentError
from kubeship.kubectl import ClusterClient
from kubeship.output import get_output


class KubectlApplier:
    """
    Runs a single `kubectl apply` over every manifest of a deploy.

    Pruning only considers objects applied in the same invocation, so all
    files go into one call.
    """

    def __init__(self, kubectl: ClusterClient, logger=None):
        self.kubectl = kubectl
        self.logger = logger

    def build_args(
        self,
        files: Sequence[Path],
        namespaced: bool,
        prune_whitelist: Sequence[str],
        selector: Optional[str] = None,
        prune: bool = True,
    ) -> List[str]:
        """
        Build the apply arguments.

        --prune is only passed with an explicit allowlist; with no allowlist
        kubectl falls back to its own built-in list of kinds.
        """
        args = ["apply"]
        for path in files:
            args.extend(["--filename", str(path)])

        if prune and prune_whitelist:
            args.append("--prune")
            if selector:
                args.append(f"--selector={selector}")
            elif namespaced:
                args.append("--all")
            args.extend(f"--prune-allowlist={resource}" for resource in prune_whitelist)
        elif selector:
            args.append(f"--selector={selector}")
        return args

    def apply(
        self,
        files: Sequence[Path],
        namespaced: bool,
        prune_whitelist: Sequence[str],
        selector: Optional[str] = None,
        prune: bool = True,
    ) -> str:
        """
        Apply the files.

        Returns:
            kubectl's stdout

        Raises:
            FatalDeploymentError: If kubectl apply fails
        """
        output = get_output()
        if prune and not prune_whitelist and self.logger is not None:
            self.logger.warning("Prune whitelist is empty; applying without pruning")

        args = self.build_args(files, namespaced, prune_whitelist, selector=selector, prune=prune)
        stdout, stderr, status = self.kubectl.run(*args, use_namespace=namespaced, log_failure=False)
        if not status.success:
            output.error(
                "kubectl apply failed",
                suggestion="Check kubectl configuration and cluster connectivity",
            )
            raise FatalDeploymentError(f"Command failed: kubectl {' '.join(args)}\n{stderr.strip()}")

        for line in stdout.splitlines():
            if line.strip():
                output.verbose(line)
        return stdout
