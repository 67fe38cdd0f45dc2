"""
Kubeship - Deploy Kubernetes manifests with scope-aware pruning.
"""

from kubeship.config import Config, config
from kubeship.errors import (
    KubeshipError,
    ConfigurationError,
    FatalDeploymentError,
    InvalidManifestError,
)
from kubeship.executor import CommandExecutor, get_executor
from kubeship.kubectl import ClusterClient, CommandStatus, Kubectl
from kubeship.resource_utils import ResourceFilter, ResourceKindInfo, Scope
from kubeship.discovery import ClusterResourceDiscovery
from kubeship.task_config import TaskConfig
from kubeship.logger import FormattedLogger
from kubeship.applier import KubectlApplier
from kubeship.deploy_task import DeployTask, GlobalDeployTask

__all__ = [
    "Config",
    "config",
    "KubeshipError",
    "ConfigurationError",
    "FatalDeploymentError",
    "InvalidManifestError",
    "CommandExecutor",
    "get_executor",
    "ClusterClient",
    "CommandStatus",
    "Kubectl",
    "ResourceFilter",
    "ResourceKindInfo",
    "Scope",
    "ClusterResourceDiscovery",
    "TaskConfig",
    "FormattedLogger",
    "KubectlApplier",
    "DeployTask",
    "GlobalDeployTask",
]

__version__ = "0.1.0"
