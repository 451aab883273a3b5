from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union


Component = Literal["kubePrometheusStack", "loki", "tempo", "k8sMonitoring", "grafanaOperator"]

# Output order of the releases follows this tuple.
COMPONENTS: tuple[Component, ...] = (
    "kubePrometheusStack",
    "loki",
    "tempo",
    "k8sMonitoring",
    "grafanaOperator",
)

ProviderConfigKind = Literal["ProviderConfig", "ClusterProviderConfig"]

Datasource = Literal["prometheus", "loki", "tempo"]

DATASOURCES: tuple[Datasource, ...] = ("prometheus", "loki", "tempo")


@dataclass(frozen=True)
class ProviderConfigRef:
    name: Optional[str] = None
    kind: ProviderConfigKind = "ProviderConfig"


@dataclass(frozen=True)
class ComponentSpec:
    name: Optional[str] = None
    namespace: Optional[str] = None
    values: dict[str, Any] = field(default_factory=dict)
    override_all_values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ObserveSpec:
    cluster_name: str
    namespace: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)
    management_policies: Optional[list[str]] = None
    helm_provider_config_ref: ProviderConfigRef = field(default_factory=ProviderConfigRef)
    kubernetes_provider_config_ref: ProviderConfigRef = field(default_factory=ProviderConfigRef)
    components: dict[Component, ComponentSpec] = field(default_factory=dict)

    # XR name, carried for reporting only.
    xr_name: Optional[str] = None

    def component(self, component: Component) -> ComponentSpec:
        return self.components.get(component, ComponentSpec())


@dataclass(frozen=True)
class ResolvedComponent:
    component: Component
    name: str
    namespace: str
    values: dict[str, Any]


@dataclass(frozen=True)
class Chart:
    repository: str
    name: str
    version: str


@dataclass(frozen=True)
class ResourceRef:
    api_version: str
    kind: str
    name: str
    namespace: Optional[str] = None


@dataclass(frozen=True)
class HelmRelease:
    key: str
    name: str
    release_name: str
    namespace: str
    chart: Chart
    values: dict[str, Any]
    labels: dict[str, str]
    management_policies: list[str]
    provider_config_ref: ProviderConfigRef

    kind: Literal["HelmRelease"] = "HelmRelease"

    def ref(self) -> ResourceRef:
        return ResourceRef("helm.crossplane.io/v1beta1", "Release", self.name, self.namespace)


@dataclass(frozen=True)
class KubernetesObject:
    key: str
    name: str
    manifest: dict[str, Any]
    labels: dict[str, str]
    management_policies: list[str]
    provider_config_ref: ProviderConfigRef

    kind: Literal["KubernetesObject"] = "KubernetesObject"

    def ref(self) -> ResourceRef:
        namespace = self.manifest.get("metadata", {}).get("namespace")
        return ResourceRef("kubernetes.crossplane.io/v1alpha2", "Object", self.name, namespace)


@dataclass(frozen=True)
class UsageProtection:
    key: str
    name: str
    of: ResourceRef
    by: ResourceRef
    labels: dict[str, str]

    kind: Literal["UsageProtection"] = "UsageProtection"


OutputResource = Union[HelmRelease, KubernetesObject, UsageProtection]


@dataclass(frozen=True)
class Expansion:
    spec: ObserveSpec  # defaulted
    components: dict[Component, ResolvedComponent]
    resources: list[OutputResource]

    @property
    def releases(self) -> list[HelmRelease]:
        return [r for r in self.resources if isinstance(r, HelmRelease)]

    @property
    def objects(self) -> list[KubernetesObject]:
        return [r for r in self.resources if isinstance(r, KubernetesObject)]

    @property
    def usages(self) -> list[UsageProtection]:
        return [r for r in self.resources if isinstance(r, UsageProtection)]

    def by_key(self, key: str) -> OutputResource:
        for r in self.resources:
            if r.key == key:
                return r
        raise KeyError(key)
