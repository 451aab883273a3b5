from __future__ import annotations

import datetime
import json
from typing import Any, Iterable

import yaml

from stack_observe.core.model import (
    HelmRelease,
    KubernetesObject,
    OutputResource,
    ProviderConfigRef,
    ResourceRef,
    UsageProtection,
)


COMPOSITION_RESOURCE_NAME = "crossplane.io/composition-resource-name"
EXTERNAL_NAME = "crossplane.io/external-name"


def render_manifest(resource: OutputResource) -> dict[str, Any]:
    """Render one output resource as the manifest the controller applies."""

    if isinstance(resource, HelmRelease):
        return _render_release(resource)
    if isinstance(resource, KubernetesObject):
        return _render_object(resource)
    if isinstance(resource, UsageProtection):
        return _render_usage(resource)
    raise TypeError(f"unsupported resource type: {type(resource).__name__}")


def render_manifests(resources: Iterable[OutputResource]) -> list[dict[str, Any]]:
    return [render_manifest(r) for r in resources]


def dump_manifests_yaml(manifests: list[dict[str, Any]]) -> str:
    return yaml.safe_dump_all(
        manifests, sort_keys=False, default_flow_style=False, allow_unicode=True
    )


def dump_manifests_json(manifests: list[dict[str, Any]]) -> str:
    return json.dumps(manifests, indent=2, default=_json_default) + "\n"


def _json_default(value: Any) -> Any:
    # YAML loads unquoted timestamps as date/datetime.
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _metadata(name: str, key: str, labels: dict[str, str], annotations: dict[str, str] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "name": name,
        "annotations": {COMPOSITION_RESOURCE_NAME: key, **(annotations or {})},
    }
    if labels:
        meta["labels"] = dict(labels)
    return meta


def _provider_ref(ref: ProviderConfigRef) -> dict[str, Any]:
    return {"name": ref.name, "kind": ref.kind}


def _render_release(r: HelmRelease) -> dict[str, Any]:
    return {
        "apiVersion": "helm.crossplane.io/v1beta1",
        "kind": "Release",
        "metadata": _metadata(r.name, r.key, r.labels, {EXTERNAL_NAME: r.release_name}),
        "spec": {
            "managementPolicies": list(r.management_policies),
            "providerConfigRef": _provider_ref(r.provider_config_ref),
            "forProvider": {
                "chart": {
                    "name": r.chart.name,
                    "repository": r.chart.repository,
                    "version": r.chart.version,
                },
                "namespace": r.namespace,
                "values": r.values,
            },
        },
    }


def _render_object(o: KubernetesObject) -> dict[str, Any]:
    return {
        "apiVersion": "kubernetes.crossplane.io/v1alpha2",
        "kind": "Object",
        "metadata": _metadata(o.name, o.key, o.labels),
        "spec": {
            "managementPolicies": list(o.management_policies),
            "providerConfigRef": _provider_ref(o.provider_config_ref),
            "forProvider": {"manifest": o.manifest},
        },
    }


def _usage_ref(ref: ResourceRef) -> dict[str, Any]:
    return {
        "apiVersion": ref.api_version,
        "kind": ref.kind,
        "resourceRef": {"name": ref.name},
    }


def _render_usage(u: UsageProtection) -> dict[str, Any]:
    return {
        "apiVersion": "apiextensions.crossplane.io/v1beta1",
        "kind": "Usage",
        "metadata": _metadata(u.name, u.key, u.labels),
        "spec": {
            "replayDeletion": True,
            "of": _usage_ref(u.of),
            "by": _usage_ref(u.by),
        },
    }
