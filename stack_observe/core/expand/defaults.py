from __future__ import annotations

from dataclasses import replace

from stack_observe.core.errors import ValidationError
from stack_observe.core.expand.chart_config import (
    DEFAULT_CHARTS,
    DEFAULT_MANAGEMENT_POLICIES,
    DEFAULT_NAMESPACE,
)
from stack_observe.core.model import COMPONENTS, Component, ComponentSpec, ObserveSpec, ProviderConfigRef


def apply_defaults(spec: ObserveSpec) -> ObserveSpec:
    """Return a copy of spec with every optional field filled in.

    Explicitly-set fields are never touched. Component names default to the
    chart name, not to any overridden chart name from a chart file, so release
    identities stay stable across chart upgrades.
    """

    if not isinstance(spec.cluster_name, str) or not spec.cluster_name.strip():
        raise ValidationError(
            code="E_REQUIRED_FIELD",
            message="clusterName is required and must be a non-empty string",
            path="spec.clusterName",
        )

    namespace = spec.namespace or DEFAULT_NAMESPACE

    components: dict[Component, ComponentSpec] = {}
    for c in COMPONENTS:
        cs = spec.component(c)
        components[c] = replace(
            cs,
            name=cs.name or DEFAULT_CHARTS[c].name,
            namespace=cs.namespace or namespace,
        )

    return replace(
        spec,
        namespace=namespace,
        labels=dict(spec.labels),
        management_policies=(
            list(spec.management_policies)
            if spec.management_policies
            else list(DEFAULT_MANAGEMENT_POLICIES)
        ),
        helm_provider_config_ref=_default_ref(spec.helm_provider_config_ref, spec.cluster_name),
        kubernetes_provider_config_ref=_default_ref(spec.kubernetes_provider_config_ref, spec.cluster_name),
        components=components,
    )


def _default_ref(ref: ProviderConfigRef, cluster_name: str) -> ProviderConfigRef:
    return ProviderConfigRef(name=ref.name or cluster_name, kind=ref.kind or "ProviderConfig")


def component_identity(spec: ObserveSpec, component: Component) -> tuple[str, str]:
    """(name, namespace) of a component in a defaulted spec."""
    cs: ComponentSpec = spec.component(component)
    if cs.name is None or cs.namespace is None:
        raise ValueError(f"component {component} is not defaulted; call apply_defaults first")
    return cs.name, cs.namespace
