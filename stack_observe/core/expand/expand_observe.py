from __future__ import annotations

from typing import Any, Mapping, Optional

from stack_observe.core.errors import ValidationError
from stack_observe.core.expand.chart_config import DEFAULT_CHARTS, chart_defaults
from stack_observe.core.expand.defaults import apply_defaults
from stack_observe.core.expand.merge import materialize
from stack_observe.core.expand.render import dump_manifests_json, dump_manifests_yaml, render_manifests
from stack_observe.core.expand.usages import build_usage_edges
from stack_observe.core.expand.wiring import Wiring, resolve_wiring
from stack_observe.core.io.load_spec import normalize_document
from stack_observe.core.model import (
    COMPONENTS,
    DATASOURCES,
    Chart,
    Component,
    Expansion,
    HelmRelease,
    KubernetesObject,
    ObserveSpec,
    OutputResource,
    ResolvedComponent,
)
from stack_observe.core.validate.validate_spec import validate_observe
from stack_observe.observability.logging import get_logger


log = get_logger("expand")

GRAFANA_API_VERSION = "grafana.integreatly.org/v1beta1"
GRAFANA_INSTANCE_NAME = "grafana"
GRAFANA_INSTANCE_LABELS: dict[str, str] = {"dashboards": "grafana"}


def expand_observe(spec: ObserveSpec, *, charts: Optional[Mapping[Component, Chart]] = None) -> Expansion:
    """Expand an Observe spec into its 16 output resources.

    Pure and deterministic: the same spec (and chart catalog) always yields
    equal output. Any error aborts the whole expansion.
    """

    chart_map = charts or DEFAULT_CHARTS
    defaulted = apply_defaults(spec)
    wiring = resolve_wiring(defaulted)

    components: dict[Component, ResolvedComponent] = {}
    for c in COMPONENTS:
        cs = defaulted.component(c)
        assert cs.name is not None and cs.namespace is not None
        values = materialize(c, chart_defaults(c), wiring.values[c], cs)
        components[c] = ResolvedComponent(component=c, name=cs.name, namespace=cs.namespace, values=values)
        log.debug(
            "component.resolved",
            component=c,
            name=cs.name,
            namespace=cs.namespace,
            override=bool(cs.override_all_values),
        )

    releases = [_release(defaulted, components[c], chart_map[c]) for c in COMPONENTS]
    objects = _grafana_objects(defaulted, components["grafanaOperator"], wiring)

    by_key: dict[str, HelmRelease | KubernetesObject] = {r.key: r for r in [*releases, *objects]}
    usages = build_usage_edges(by_key, cluster_name=defaulted.cluster_name, labels=defaulted.labels)

    resources: list[OutputResource] = [*releases, *objects, *usages]
    log.info(
        "expansion.complete",
        cluster=defaulted.cluster_name,
        releases=len(releases),
        objects=len(objects),
        usages=len(usages),
    )
    return Expansion(spec=defaulted, components=components, resources=resources)


def expand_observe_dict(
    data: Any, *, charts: Optional[Mapping[Component, Chart]] = None, file: Optional[str] = None
) -> Expansion:
    """Validate a raw document (bare spec or Observe envelope) and expand it.

    Raises the first ValidationError when the document is invalid.
    """

    doc = normalize_document(data, file=file)
    spec, errors = validate_observe(doc)
    if errors or spec is None:
        log.warning("expansion.invalid", errors=[str(e) for e in errors])
        raise errors[0] if errors else ValidationError(code="E_INVALID", message="invalid document", file=file)
    return expand_observe(spec, charts=charts)


def serialize_expansion(expansion: Expansion, *, format: str = "yaml") -> str:
    manifests = render_manifests(expansion.resources)
    if format == "json":
        return dump_manifests_json(manifests)
    return dump_manifests_yaml(manifests)


def _release(spec: ObserveSpec, rc: ResolvedComponent, chart: Chart) -> HelmRelease:
    assert spec.management_policies is not None
    return HelmRelease(
        key=_release_key(rc.component),
        name=f"{spec.cluster_name}-{rc.name}",
        release_name=rc.name,
        namespace=rc.namespace,
        chart=chart,
        values=rc.values,
        labels=dict(spec.labels),
        management_policies=list(spec.management_policies),
        provider_config_ref=spec.helm_provider_config_ref,
    )


def _release_key(component: Component) -> str:
    # Composition resource names are the chart names and never follow renames.
    return DEFAULT_CHARTS[component].name


def _grafana_objects(spec: ObserveSpec, operator: ResolvedComponent, wiring: Wiring) -> list[KubernetesObject]:
    """The Grafana instance and its datasources, next to the operator."""

    assert spec.management_policies is not None
    namespace = operator.namespace

    def obj(key: str, manifest: dict[str, Any]) -> KubernetesObject:
        return KubernetesObject(
            key=key,
            name=f"{spec.cluster_name}-{key}",
            manifest=manifest,
            labels=dict(spec.labels),
            management_policies=list(spec.management_policies or []),
            provider_config_ref=spec.kubernetes_provider_config_ref,
        )

    out = [
        obj(
            "grafana-instance",
            {
                "apiVersion": GRAFANA_API_VERSION,
                "kind": "Grafana",
                "metadata": {
                    "name": GRAFANA_INSTANCE_NAME,
                    "namespace": namespace,
                    "labels": {**spec.labels, **GRAFANA_INSTANCE_LABELS},
                },
                "spec": {
                    "config": {
                        "log": {"mode": "console"},
                        "auth": {"disable_login_form": "false"},
                    },
                },
            },
        )
    ]

    for ds in DATASOURCES:
        out.append(
            obj(
                f"datasource-{ds}",
                {
                    "apiVersion": GRAFANA_API_VERSION,
                    "kind": "GrafanaDatasource",
                    "metadata": {
                        "name": ds,
                        "namespace": namespace,
                        **({"labels": dict(spec.labels)} if spec.labels else {}),
                    },
                    "spec": {
                        "instanceSelector": {"matchLabels": dict(GRAFANA_INSTANCE_LABELS)},
                        "datasource": wiring.datasources[ds],
                    },
                },
            )
        )
    return out
