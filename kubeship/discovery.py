"""
Cluster resource discovery and prune whitelist computation.

Asks the cluster which resource kinds it serves, classifies them as
namespaced or global, and turns them into the group/version/kind
identifiers that `kubectl apply --prune` may delete.

Every failure in here degrades to an empty result. An empty kind list
means nothing is validated against it and an empty whitelist means
nothing is pruned.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from kubeship.config import DEFAULT_PROTECTED_KINDS, Config
from kubeship.errors import ConfigurationError
from kubeship.kubectl import ClusterClient
from kubeship.resource_utils import (
    ResourceFilter,
    ResourceKindInfo,
    Scope,
    is_protected,
    kinds_of,
    latest_version,
    prunable_id,
)

if TYPE_CHECKING:
    from kubeship.task_config import TaskConfig

_COLUMN_PATTERN = re.compile(r"\S+\s*")
_KIND_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")

# The core group is served at /api/v1 and does not appear by name in api-versions
CORE_VERSIONS = ["v1"]


def _column_spans(header: str) -> Dict[str, Tuple[int, Optional[int]]]:
    """
    Map lower-cased column names to their character spans.

    kubectl pads every column to a fixed width, so a column's values start
    where its header starts. The last column runs to the end of the line.
    """
    matches = list(_COLUMN_PATTERN.finditer(header))
    spans: Dict[str, Tuple[int, Optional[int]]] = {}
    for index, match in enumerate(matches):
        end = match.end() if index < len(matches) - 1 else None
        spans[match.group().strip().lower()] = (match.start(), end)
    return spans


def parse_api_resources(
    raw: str, resource_filter: ResourceFilter = ResourceFilter.ALL
) -> List[ResourceKindInfo]:
    """
    Parse `kubectl api-resources -o wide` output.

    Understands both header layouts kubectl has shipped: an APIGROUP column
    (older clients) and an APIVERSION column holding "group/version"
    (newer clients). Rows that do not fit the header are skipped.

    Args:
        raw: Output of the command, header line first
        resource_filter: Filter the command was run with, used for the scope
            of rows when no NAMESPACED column is present

    Returns:
        One ResourceKindInfo per well-formed row, in output order
    """
    lines = raw.splitlines() if raw else []
    if not lines:
        return []

    spans = _column_spans(lines[0])
    if "kind" not in spans:
        return []

    kind_start = spans["kind"][0]
    resources: List[ResourceKindInfo] = []
    for line in lines[1:]:
        if len(line.rstrip()) <= kind_start:
            continue
        fields = {name: line[start:end].strip() for name, (start, end) in spans.items()}

        kind = fields["kind"]
        if not _KIND_PATTERN.match(kind):
            continue

        namespaced = fields.get("namespaced")
        if namespaced == "true":
            scope = Scope.NAMESPACED
        elif namespaced == "false":
            scope = Scope.GLOBAL
        elif namespaced is None and resource_filter.scope is not None:
            scope = resource_filter.scope
        else:
            continue

        if "apiversion" in spans:
            group, _, version = fields["apiversion"].rpartition("/")
        else:
            group, version = fields.get("apigroup", ""), ""

        verbs: Optional[Tuple[str, ...]] = None
        if "verbs" in spans:
            verbs = tuple(fields["verbs"].strip("[]").split())

        resources.append(
            ResourceKindInfo(
                kind=kind,
                api_group=group,
                api_version=version,
                scope=scope,
                name=fields.get("name", ""),
                verbs=verbs,
            )
        )
    return resources


def parse_api_versions(raw: str) -> Dict[str, List[str]]:
    """
    Parse `kubectl api-versions` output into {group: [versions]}.

    The core group is keyed by the empty string.
    """
    versions: Dict[str, List[str]] = {}
    for line in (raw or "").splitlines():
        entry = line.strip()
        if not entry or " " in entry:
            continue
        group, _, version = entry.rpartition("/")
        versions.setdefault(group, [])
        if version not in versions[group]:
            versions[group].append(version)
    if versions:
        versions.setdefault("", list(CORE_VERSIONS))
    return versions


class ClusterResourceDiscovery:
    """
    Discovers the resource kinds a cluster serves.

    Bound to one TaskConfig; cluster calls go through its ClusterClient
    unless another one is passed in.
    """

    def __init__(
        self,
        task_config: "TaskConfig",
        kubectl: Optional[ClusterClient] = None,
        protected_kinds: Optional[Iterable[str]] = None,
        attempts: Optional[int] = None,
    ):
        """
        Initialize discovery.

        Args:
            task_config: TaskConfig of the current deploy
            kubectl: ClusterClient to use (defaults to the task config's client)
            protected_kinds: Extra kind substrings never pruned (defaults to Config.protected_kinds())
            attempts: Attempts per discovery call (defaults to KUBESHIP_DISCOVERY_ATTEMPTS)
        """
        self.task_config = task_config
        self.kubectl = kubectl or task_config.kubectl
        self.protected_kinds = DEFAULT_PROTECTED_KINDS | frozenset(
            entry.lower() for entry in (protected_kinds or Config.protected_kinds())
        )
        self.attempts = Config.discovery_attempts() if attempts is None else attempts
        if self.attempts < 1:
            raise ConfigurationError(f"Discovery attempts must be at least 1, got {self.attempts}")

    @property
    def logger(self):
        return self.task_config.logger

    def fetch_resources(
        self, resource_filter: ResourceFilter = ResourceFilter.ALL
    ) -> List[ResourceKindInfo]:
        """
        List the resource kinds the cluster serves.

        Returns:
            Discovered kinds, or an empty list if the cluster call failed
        """
        raw, _, status = self.kubectl.run(
            "api-resources",
            *resource_filter.kubectl_args,
            attempts=self.attempts,
            use_namespace=False,
            output="wide",
        )
        if not status.success:
            self.logger.debug("Resource discovery failed for filter %s", resource_filter.value)
            return []

        resources = parse_api_resources(raw, resource_filter)
        skipped = max(len(raw.splitlines()) - 1, 0) - len(resources)
        if skipped:
            self.logger.debug("Skipped %d unparseable api-resources line(s)", skipped)
        return resources

    def global_resource_kinds(self) -> List[str]:
        return kinds_of(self.fetch_resources(ResourceFilter.ONLY_GLOBAL))

    def namespaced_resource_kinds(self) -> List[str]:
        return kinds_of(self.fetch_resources(ResourceFilter.ONLY_NAMESPACED))

    def fetch_api_versions(self) -> Dict[str, List[str]]:
        """
        List the API group versions the cluster serves.

        Returns:
            {group: [versions]} with the core group under "", or {} on failure
        """
        raw, _, status = self.kubectl.run("api-versions", attempts=self.attempts, use_namespace=False)
        if not status.success:
            self.logger.debug("API version discovery failed")
            return {}
        return parse_api_versions(raw)

    def prunable_resources(self, namespaced: bool) -> List[str]:
        """
        Compute the prune whitelist for one scope.

        Kind discovery and version discovery run concurrently. Protected
        kinds and kinds that cannot be deleted are left out. A kind served
        by several groups yields one entry per group.

        Args:
            namespaced: True for namespaced kinds, False for global kinds

        Returns:
            "group/version/kind" identifiers, or an empty list when either
            discovery call failed
        """
        resource_filter = ResourceFilter.ONLY_NAMESPACED if namespaced else ResourceFilter.ONLY_GLOBAL
        with ThreadPoolExecutor(max_workers=2) as pool:
            resources_future = pool.submit(self.fetch_resources, resource_filter)
            versions_future = pool.submit(self.fetch_api_versions)
            resources = resources_future.result()
            api_versions = versions_future.result()

        if not resources or not api_versions:
            self.logger.warning(
                "Could not discover %s resource types; nothing will be pruned",
                resource_filter.scope.value,
            )
            return []

        whitelist: List[str] = []
        for resource in resources:
            if is_protected(resource.kind, self.protected_kinds):
                continue
            if not resource.deletable:
                continue
            version = self._version_for(resource, api_versions)
            if version is None:
                self.logger.debug(
                    "No served version for %s in group '%s'; not pruning it",
                    resource.kind,
                    resource.api_group,
                )
                continue
            whitelist.append(prunable_id(resource.api_group, version, resource.kind))
        return whitelist

    @staticmethod
    def _version_for(resource: ResourceKindInfo, api_versions: Dict[str, List[str]]) -> Optional[str]:
        served = api_versions.get(resource.api_group)
        if not served:
            return None
        if resource.api_version in served:
            return resource.api_version
        return latest_version(served)
