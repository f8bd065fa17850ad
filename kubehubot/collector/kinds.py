"""Registry of the resource kinds kubehubot can watch."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceKind:
    """A watchable resource kind.

    ``label`` keys the per-kind notification policy and configuration.
    Core kinds are listed through ``CoreV1Api.<list_method>``; extended kinds
    are OpenShift custom resources listed through ``CustomObjectsApi`` using
    ``group``/``version``/``plural``.
    """

    label: str
    kind: str
    list_method: str = ""
    group: str = ""
    version: str = ""
    plural: str = ""
    extended: bool = False


SERVICE = ResourceKind(label="service", kind="Service", list_method="list_namespaced_service")
POD = ResourceKind(label="pod", kind="Pod", list_method="list_namespaced_pod")
REPLICATION_CONTROLLER = ResourceKind(
    label="rc",
    kind="ReplicationController",
    list_method="list_namespaced_replication_controller",
)
BUILD_CONFIG = ResourceKind(
    label="buildConfig",
    kind="BuildConfig",
    group="build.openshift.io",
    version="v1",
    plural="buildconfigs",
    extended=True,
)
DEPLOYMENT_CONFIG = ResourceKind(
    label="dc",
    kind="DeploymentConfig",
    group="apps.openshift.io",
    version="v1",
    plural="deploymentconfigs",
    extended=True,
)

CORE_KINDS: tuple[ResourceKind, ...] = (SERVICE, POD, REPLICATION_CONTROLLER)
EXTENDED_KINDS: tuple[ResourceKind, ...] = (BUILD_CONFIG, DEPLOYMENT_CONFIG)
ALL_KINDS: tuple[ResourceKind, ...] = CORE_KINDS + EXTENDED_KINDS

# API groups that must be served for the extended kinds to be watchable.
EXTENDED_API_GROUPS = frozenset(kind.group for kind in EXTENDED_KINDS)
