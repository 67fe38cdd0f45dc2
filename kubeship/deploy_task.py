"""
Deploy entry points.

DeployTask deploys into one namespace and GlobalDeployTask deploys
cluster-scoped resources. They are separate types sharing one internal
runner: a DeployTask has no way to ask for the global prune whitelist, and
asking it for global permissions fails before anything touches the cluster.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from kubeship.applier import KubectlApplier
from kubeship.errors import ConfigurationError, FatalDeploymentError, KubeshipError
from kubeship.kubectl import ClusterClient
from kubeship.manifests import Manifest, find_manifest_files, load_manifests
from kubeship.output import get_output
from kubeship.resource_utils import Scope
from kubeship.task_config import TaskConfig

PathLike = Union[str, Path]


def parse_selector(selector: Optional[str]) -> Dict[str, str]:
    """
    Parse an equality label selector such as "app=web,team=infra".

    Raises:
        ConfigurationError: If the selector is not a comma separated list of key=value pairs
    """
    if not selector:
        return {}
    labels: Dict[str, str] = {}
    for term in selector.split(","):
        key, sep, value = term.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or value.startswith("=") or "!" in key:
            raise ConfigurationError(
                f"Invalid selector {selector!r}: only key=value terms joined by commas are supported"
            )
        labels[key] = value
    return labels


class _DeployRunner:
    """Deploy steps shared by both entry points."""

    def __init__(
        self,
        task_config: TaskConfig,
        filenames: Sequence[PathLike],
        scope: Scope,
        selector: Optional[str],
        prune: bool,
        applier: Optional[KubectlApplier],
    ):
        self.task_config = task_config
        self.filenames = list(filenames)
        self.scope = scope
        self.selector = selector
        self.labels = parse_selector(selector)
        self.prune = prune
        self.applier = applier or KubectlApplier(task_config.kubectl, logger=task_config.logger)

    @property
    def namespaced(self) -> bool:
        return self.scope is Scope.NAMESPACED

    @property
    def logger(self):
        return self.task_config.logger

    def validate_configuration(self) -> None:
        if not self.task_config.context:
            raise ConfigurationError("Context must be specified")
        if self.namespaced and not self.task_config.namespace:
            raise ConfigurationError("Namespace must be specified")
        if not self.filenames:
            raise ConfigurationError("At least one manifest file or directory must be given")
        if not self.task_config.kubectl.client_available():
            raise ConfigurationError(
                "kubectl not found. Please install kubectl and ensure it's in your PATH."
            )

    def validate_manifests(self, manifests: List[Manifest]) -> None:
        """
        Check that every manifest belongs to this deploy's scope.

        Uses the kind lists memoized on the TaskConfig. When discovery failed
        those lists are empty and only the namespace and label checks apply.
        """
        if self.namespaced:
            global_kinds = set(self.task_config.global_kinds)
            for manifest in manifests:
                if manifest.kind in global_kinds:
                    raise FatalDeploymentError(
                        f"{manifest.id} is a global resource. This command is namespaced and "
                        "cannot be used to deploy global resources. Use GlobalDeployTask instead."
                    )
                if manifest.namespace and manifest.namespace != self.task_config.namespace:
                    raise FatalDeploymentError(
                        f"{manifest.id} declares namespace '{manifest.namespace}' but the deploy "
                        f"targets '{self.task_config.namespace}'"
                    )
        else:
            namespaced_kinds = set(self.task_config.namespaced_kinds)
            for manifest in manifests:
                if manifest.kind in namespaced_kinds:
                    raise FatalDeploymentError(
                        f"{manifest.id} is a namespaced resource. GlobalDeployTask only deploys "
                        "global resources; use DeployTask for namespaced ones."
                    )

        for manifest in manifests:
            labels = manifest.document.get("metadata", {}).get("labels") or {}
            missing = {k: v for k, v in self.labels.items() if labels.get(k) != v}
            if missing:
                raise FatalDeploymentError(
                    f"{manifest.id} does not match selector '{self.selector}'"
                )

    def run(self, prune_whitelist: Callable[[], List[str]]) -> List[Manifest]:
        output = get_output()
        target = self.task_config.namespace if self.namespaced else "cluster scope"
        output.section(f"Deploying to {target} in context {self.task_config.context}")

        self.validate_configuration()
        files = find_manifest_files(self.filenames)
        manifests = load_manifests(files)
        output.info(f"Loaded {len(manifests)} resource(s) from {len(files)} file(s)")
        self.validate_manifests(manifests)

        whitelist: List[str] = []
        if self.prune:
            with output.spinner("Discovering prunable resource types"):
                whitelist = prune_whitelist()
            self.logger.debug("Prune whitelist: %s", ", ".join(whitelist))
            output.verbose(f"{len(whitelist)} resource type(s) eligible for pruning")

        self.applier.apply(
            files,
            namespaced=self.namespaced,
            prune_whitelist=whitelist,
            selector=self.selector,
            prune=self.prune,
        )
        output.success(f"Successfully deployed {len(manifests)} resource(s)")
        return manifests

    def run_safely(self, prune_whitelist: Callable[[], List[str]]) -> bool:
        try:
            self.run(prune_whitelist)
        except KubeshipError as e:
            self.logger.error("Deploy failed: %s", e)
            return False
        return True


class DeployTask:
    """
    Deploys manifests into a single namespace.

    Global resources are refused, and pruning only ever considers
    namespaced kinds.
    """

    def __init__(
        self,
        namespace: str,
        context: Optional[str],
        filenames: Sequence[PathLike],
        selector: Optional[str] = None,
        prune: bool = True,
        logger=None,
        kubectl: Optional[ClusterClient] = None,
        applier: Optional[KubectlApplier] = None,
        allow_globals: bool = False,
    ):
        if allow_globals:
            raise ConfigurationError("Use GlobalDeployTask to deploy global resources")
        self.task_config = TaskConfig(context, namespace, logger=logger, kubectl=kubectl)
        self._runner = _DeployRunner(
            self.task_config, filenames, Scope.NAMESPACED, selector, prune, applier
        )

    @property
    def allow_globals(self) -> bool:
        return False

    def prune_whitelist(self) -> List[str]:
        return self.task_config.discovery().prunable_resources(namespaced=True)

    def run(self) -> List[Manifest]:
        """
        Deploy and prune.

        Returns:
            The manifests that were applied

        Raises:
            ConfigurationError: If the task is misconfigured
            FatalDeploymentError: If validation or kubectl apply fails
        """
        return self._runner.run(self.prune_whitelist)

    def run_safely(self) -> bool:
        """Deploy, logging instead of raising on failure."""
        return self._runner.run_safely(self.prune_whitelist)


class GlobalDeployTask:
    """
    Deploys cluster-scoped manifests.

    A label selector is required so that pruning cannot reach global
    resources this deploy does not own.
    """

    def __init__(
        self,
        context: Optional[str],
        filenames: Sequence[PathLike],
        selector: str,
        prune: bool = True,
        logger=None,
        kubectl: Optional[ClusterClient] = None,
        applier: Optional[KubectlApplier] = None,
    ):
        if not selector:
            raise ConfigurationError("A selector is required to deploy global resources")
        self.task_config = TaskConfig(context, None, logger=logger, kubectl=kubectl)
        self._runner = _DeployRunner(self.task_config, filenames, Scope.GLOBAL, selector, prune, applier)

    @property
    def allow_globals(self) -> bool:
        return True

    def prune_whitelist(self) -> List[str]:
        return self.task_config.discovery().prunable_resources(namespaced=False)

    def run(self) -> List[Manifest]:
        return self._runner.run(self.prune_whitelist)

    def run_safely(self) -> bool:
        return self._runner.run_safely(self.prune_whitelist)
