"""
Per-deploy configuration shared by every step of one deploy run.
"""

import threading
from typing import List, Optional

from kubeship.discovery import ClusterResourceDiscovery
from kubeship.kubectl import ClusterClient, Kubectl
from kubeship.logger import FormattedLogger
from kubeship.resource_utils import ResourceFilter, kinds_of


class TaskConfig:
    """
    Target cluster context, namespace and logger for one deploy.

    The global and namespaced kind lists are discovered on first use and
    then kept for the rest of the run, so every step validates and prunes
    against the same snapshot of the cluster. A failed discovery is kept
    too, as an empty list.
    """

    def __init__(
        self,
        context: Optional[str],
        namespace: Optional[str],
        logger=None,
        kubectl: Optional[ClusterClient] = None,
    ):
        """
        Initialize the task configuration.

        Args:
            context: Cluster context name (None for kubectl's current context)
            namespace: Target namespace (None for global deploys)
            logger: Logger to use (defaults to FormattedLogger.build(namespace, context))
            kubectl: ClusterClient to use (defaults to a Kubectl bound to this config)
        """
        self.context = context
        self.namespace = namespace
        self.logger = logger or FormattedLogger.build(namespace, context)
        self._kubectl = kubectl
        self._lock = threading.Lock()
        self._global_kinds: Optional[List[str]] = None
        self._namespaced_kinds: Optional[List[str]] = None

    @property
    def kubectl(self) -> ClusterClient:
        if self._kubectl is None:
            self._kubectl = Kubectl(task_config=self)
        return self._kubectl

    def discovery(self) -> ClusterResourceDiscovery:
        """Return a discovery object bound to this configuration."""
        return ClusterResourceDiscovery(task_config=self)

    @property
    def global_kinds(self) -> List[str]:
        with self._lock:
            if self._global_kinds is None:
                self._global_kinds = self._discover_kinds(ResourceFilter.ONLY_GLOBAL)
            return list(self._global_kinds)

    @property
    def namespaced_kinds(self) -> List[str]:
        with self._lock:
            if self._namespaced_kinds is None:
                self._namespaced_kinds = self._discover_kinds(ResourceFilter.ONLY_NAMESPACED)
            return list(self._namespaced_kinds)

    def _discover_kinds(self, resource_filter: ResourceFilter) -> List[str]:
        return kinds_of(self.discovery().fetch_resources(resource_filter))

    def __repr__(self) -> str:
        return f"TaskConfig(context={self.context!r}, namespace={self.namespace!r})"
