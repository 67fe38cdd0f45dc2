"""
Types and helpers for Kubernetes resource classification.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

CORE_GROUP_NAME = "core"

_VERSION_PATTERN = re.compile(r"^v(?P<major>\d+)(?:(?P<pre>alpha|beta)(?P<minor>\d+)?)?$")
_STABILITY = {"alpha": 0, "beta": 1, None: 2}


class Scope(Enum):
    """Whether a kind lives inside a namespace or at cluster level."""

    NAMESPACED = "namespaced"
    GLOBAL = "global"


class ResourceFilter(Enum):
    """Which kinds a discovery call asks for."""

    ALL = "all"
    ONLY_GLOBAL = "only_global"
    ONLY_NAMESPACED = "only_namespaced"

    @property
    def kubectl_args(self) -> Tuple[str, ...]:
        if self is ResourceFilter.ONLY_GLOBAL:
            return ("--namespaced=false",)
        if self is ResourceFilter.ONLY_NAMESPACED:
            return ("--namespaced=true",)
        return ()

    @property
    def scope(self) -> Optional[Scope]:
        if self is ResourceFilter.ONLY_GLOBAL:
            return Scope.GLOBAL
        if self is ResourceFilter.ONLY_NAMESPACED:
            return Scope.NAMESPACED
        return None


@dataclass(frozen=True)
class ResourceKindInfo:
    """One row of `kubectl api-resources` output."""

    kind: str
    api_group: str
    api_version: str
    scope: Scope
    name: str = ""
    # None when the discovery output carried no VERBS column
    verbs: Optional[Tuple[str, ...]] = field(default=None)

    @property
    def namespaced(self) -> bool:
        return self.scope is Scope.NAMESPACED

    @property
    def deletable(self) -> bool:
        return self.verbs is None or "delete" in self.verbs


def version_sort_key(version: str) -> Tuple[int, int, int]:
    """
    Sort key ordering Kubernetes API versions from oldest to newest.

    v1alpha1 < v1beta1 < v1beta2 < v1 < v2alpha1 < v2. Strings that are not
    Kubernetes versions sort before everything else.
    """
    match = _VERSION_PATTERN.match(version)
    if not match:
        return (-1, -1, -1)
    return (
        int(match.group("major")),
        _STABILITY[match.group("pre")],
        int(match.group("minor") or 0),
    )


def latest_version(versions: Iterable[str]) -> Optional[str]:
    """Return the newest version in versions, or None if it is empty."""
    ordered = sorted(versions, key=version_sort_key)
    return ordered[-1] if ordered else None


def is_protected(kind: str, protected_kinds: Iterable[str]) -> bool:
    """
    Check whether a kind must never be pruned.

    Matching is a case-insensitive substring test, so "node" protects both
    Node and CSINode.
    """
    lowered = kind.lower()
    return any(entry.lower() in lowered for entry in protected_kinds if entry)


def prunable_id(api_group: str, api_version: str, kind: str) -> str:
    """
    Format the group/version/kind identifier kubectl's prune allowlist expects.

    The core group has no name in the API, so it is written as "core".
    """
    return "/".join([api_group or CORE_GROUP_NAME, api_version, kind])


def kinds_of(resources: Sequence[ResourceKindInfo]) -> list:
    """Project discovered resources onto their kind names."""
    return [resource.kind for resource in resources]
