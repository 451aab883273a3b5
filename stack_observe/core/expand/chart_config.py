from __future__ import annotations

import copy
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from stack_observe.core.model import COMPONENTS, Chart, Component


DEFAULT_NAMESPACE = "monitoring"
DEFAULT_MANAGEMENT_POLICIES: tuple[str, ...] = ("*",)

PROMETHEUS_PORT = 9090
LOKI_GATEWAY_PORT = 80
TEMPO_QUERY_PORT = 3200
OTLP_GRPC_PORT = 4317
OTLP_HTTP_PORT = 4318
JAEGER_GRPC_PORT = 14250
ZIPKIN_PORT = 9411

PROMETHEUS_COMMUNITY_REPO = "https://prometheus-community.github.io/helm-charts"
GRAFANA_REPO = "https://grafana.github.io/helm-charts"

DEFAULT_CHARTS: Mapping[Component, Chart] = MappingProxyType(
    {
        "kubePrometheusStack": Chart(PROMETHEUS_COMMUNITY_REPO, "kube-prometheus-stack", "82.2.0"),
        "loki": Chart(GRAFANA_REPO, "loki", "6.53.0"),
        "tempo": Chart(GRAFANA_REPO, "tempo", "1.24.4"),
        "k8sMonitoring": Chart(GRAFANA_REPO, "k8s-monitoring", "3.8.0"),
        "grafanaOperator": Chart(GRAFANA_REPO, "grafana-operator", "5.21.4"),
    }
)

# Baseline values for each chart. Read through chart_defaults(), which hands
# out a copy.
_CHART_DEFAULTS: dict[Component, dict[str, Any]] = {
    "kubePrometheusStack": {
        # Grafana is run by grafana-operator instead.
        "grafana": {"enabled": False},
        "alertmanager": {"enabled": True},
        "prometheus": {
            "prometheusSpec": {
                "retention": "15d",
                "serviceMonitorSelectorNilUsesHelmValues": False,
                "podMonitorSelectorNilUsesHelmValues": False,
                "ruleSelectorNilUsesHelmValues": False,
            }
        },
    },
    "loki": {
        "deploymentMode": "SingleBinary",
        "loki": {
            "auth_enabled": False,
            "commonConfig": {"replication_factor": 1},
            "storage": {"type": "filesystem"},
            "schemaConfig": {
                "configs": [
                    {
                        "from": "2024-04-01",
                        "store": "tsdb",
                        "object_store": "filesystem",
                        "schema": "v13",
                        "index": {"prefix": "loki_index_", "period": "24h"},
                    }
                ]
            },
        },
        "singleBinary": {"replicas": 1},
        "read": {"replicas": 0},
        "write": {"replicas": 0},
        "backend": {"replicas": 0},
        "chunksCache": {"enabled": False},
        "resultsCache": {"enabled": False},
        "gateway": {"enabled": True, "service": {"port": LOKI_GATEWAY_PORT}},
        "minio": {"enabled": False},
    },
    "tempo": {
        "tempo": {
            "retention": "24h",
            "server": {"http_listen_port": TEMPO_QUERY_PORT},
            "receivers": {
                "otlp": {
                    "protocols": {
                        "grpc": {"endpoint": f"0.0.0.0:{OTLP_GRPC_PORT}"},
                        "http": {"endpoint": f"0.0.0.0:{OTLP_HTTP_PORT}"},
                    }
                },
                "jaeger": {"protocols": {"grpc": {"endpoint": f"0.0.0.0:{JAEGER_GRPC_PORT}"}}},
                "zipkin": {"endpoint": f"0.0.0.0:{ZIPKIN_PORT}"},
            },
        },
        "persistence": {"enabled": False},
    },
    "k8sMonitoring": {
        "clusterMetrics": {"enabled": True},
        "clusterEvents": {"enabled": True},
        "podLogs": {"enabled": True},
        "applicationObservability": {
            "enabled": True,
            "receivers": {
                "otlp": {
                    "grpc": {"enabled": True, "port": OTLP_GRPC_PORT},
                    "http": {"enabled": True, "port": OTLP_HTTP_PORT},
                },
                "jaeger": {"grpc": {"enabled": True, "port": JAEGER_GRPC_PORT}},
                "zipkin": {"enabled": True, "port": ZIPKIN_PORT},
            },
        },
        "alloy-metrics": {"enabled": True},
        "alloy-singleton": {"enabled": True},
        "alloy-logs": {"enabled": True},
        "alloy-receiver": {"enabled": True},
    },
    "grafanaOperator": {
        "serviceMonitor": {"enabled": True},
    },
}


class ChartConfigError(ValueError):
    pass


def chart_defaults(component: Component) -> dict[str, Any]:
    return copy.deepcopy(_CHART_DEFAULTS[component])


def load_chart_file(path: str | Path) -> dict[Component, dict[str, str]]:
    """Load chart overrides from a YAML file.

    Format:
      <component>:
        version: "1.2.3"
        repository: https://...   (optional)
        chart: name               (optional)

    Returns a mapping of component -> overridden fields.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as e:
        raise ChartConfigError(f"cannot read chart file: {e}") from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ChartConfigError(f"invalid YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ChartConfigError("chart file must be a mapping of component -> chart fields")

    out: dict[Component, dict[str, str]] = {}
    for k, v in raw.items():
        if k not in COMPONENTS:
            raise ChartConfigError(f"unknown component '{k}' (choose one of: {', '.join(COMPONENTS)})")
        if not isinstance(v, dict) or not v:
            raise ChartConfigError(f"chart '{k}' must be a non-empty mapping")
        fields: dict[str, str] = {}
        for fk, fv in v.items():
            if fk not in ("version", "repository", "chart"):
                raise ChartConfigError(f"chart '{k}' has unknown field '{fk}'")
            if not isinstance(fv, str) or not fv.strip():
                raise ChartConfigError(f"chart '{k}' field '{fk}' must be a non-empty string")
            fields[fk] = fv.strip()
        out[k] = fields
    return out


def merged_charts(overrides: dict[Component, dict[str, str]] | None = None) -> dict[Component, Chart]:
    """Return DEFAULT_CHARTS with optional per-field overrides applied."""
    merged = dict(DEFAULT_CHARTS)
    if overrides:
        for k, fields in overrides.items():
            base = merged[k]
            merged[k] = Chart(
                repository=fields.get("repository", base.repository),
                name=fields.get("chart", base.name),
                version=fields.get("version", base.version),
            )
    return merged


def load_and_merge(chart_file: str | None) -> dict[Component, Chart]:
    if not chart_file:
        return merged_charts()
    overrides = load_chart_file(chart_file)
    return merged_charts(overrides)
