"""Cross-component wiring.

Every endpoint here is built from release names and namespaces alone, so the
same defaulted spec always yields the same wiring.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from stack_observe.core.expand.chart_config import (
    LOKI_GATEWAY_PORT,
    OTLP_GRPC_PORT,
    PROMETHEUS_PORT,
    TEMPO_QUERY_PORT,
)
from stack_observe.core.expand.defaults import component_identity
from stack_observe.core.model import Component, Datasource, ObserveSpec


PROMETHEUS_REMOTE_WRITE_PATH = "/api/v1/write"
LOKI_PUSH_PATH = "/loki/api/v1/push"

# Matches trace ids in logfmt and JSON log lines: traceID=abc, "trace_id":"abc".
TRACE_ID_MATCHER = r'(?:[Tt]race_?[Ii][Dd])"?[:=]\s*"?(\w+)'


@dataclass(frozen=True)
class Endpoints:
    prometheus: str
    prometheus_remote_write: str
    loki: str
    loki_push: str
    tempo: str
    tempo_otlp_grpc: str


@dataclass(frozen=True)
class Wiring:
    endpoints: Endpoints
    values: dict[Component, dict[str, Any]]
    datasources: dict[Datasource, dict[str, Any]]


def resolve_endpoints(spec: ObserveSpec) -> Endpoints:
    kps_name, kps_ns = component_identity(spec, "kubePrometheusStack")
    loki_name, loki_ns = component_identity(spec, "loki")
    tempo_name, tempo_ns = component_identity(spec, "tempo")

    prometheus = f"http://{kps_name}-prometheus.{kps_ns}:{PROMETHEUS_PORT}"
    loki = f"http://{loki_name}-gateway.{loki_ns}:{LOKI_GATEWAY_PORT}"
    return Endpoints(
        prometheus=prometheus,
        prometheus_remote_write=prometheus + PROMETHEUS_REMOTE_WRITE_PATH,
        loki=loki,
        loki_push=loki + LOKI_PUSH_PATH,
        tempo=f"http://{tempo_name}.{tempo_ns}:{TEMPO_QUERY_PORT}",
        tempo_otlp_grpc=f"http://{tempo_name}.{tempo_ns}:{OTLP_GRPC_PORT}",
    )


def resolve_wiring(spec: ObserveSpec) -> Wiring:
    """Compute wiring values for a defaulted spec."""

    ep = resolve_endpoints(spec)

    values: dict[Component, dict[str, Any]] = {
        "kubePrometheusStack": {
            # Tempo and k8s-monitoring push samples over remote-write.
            "prometheus": {"prometheusSpec": {"enableRemoteWriteReceiver": True}},
        },
        "loki": {},
        "tempo": {
            "tempo": {
                "metricsGenerator": {
                    "enabled": True,
                    "remoteWriteUrl": ep.prometheus_remote_write,
                }
            }
        },
        "k8sMonitoring": {
            "cluster": {"name": spec.cluster_name},
            "destinations": [
                {
                    "name": "prometheus",
                    "type": "prometheus",
                    "url": ep.prometheus_remote_write,
                },
                {
                    "name": "loki",
                    "type": "loki",
                    "url": ep.loki_push,
                },
                {
                    "name": "tempo",
                    "type": "otlp",
                    "protocol": "grpc",
                    "url": ep.tempo_otlp_grpc,
                    "tls": {"insecure": True},
                    "metrics": {"enabled": False},
                    "logs": {"enabled": False},
                    "traces": {"enabled": True},
                },
            ],
            "clusterMetrics": {
                # OpenCost appends its own query path to this base URL.
                "opencost": {
                    "enabled": True,
                    "opencost": {"prometheus": {"external": {"url": ep.prometheus}}},
                }
            },
        },
        "grafanaOperator": {},
    }

    return Wiring(endpoints=ep, values=values, datasources=_datasources(ep))


def _datasources(ep: Endpoints) -> dict[Datasource, dict[str, Any]]:
    return {
        "prometheus": {
            "name": "Prometheus",
            "type": "prometheus",
            "uid": "prometheus",
            "access": "proxy",
            "url": ep.prometheus,
            "isDefault": True,
            "jsonData": {"httpMethod": "POST", "timeInterval": "30s"},
        },
        "loki": {
            "name": "Loki",
            "type": "loki",
            "uid": "loki",
            "access": "proxy",
            "url": ep.loki,
            "isDefault": False,
            "jsonData": {
                "derivedFields": [
                    {
                        "name": "TraceID",
                        "datasourceUid": "tempo",
                        "matcherRegex": TRACE_ID_MATCHER,
                        "url": "${__value.raw}",
                    }
                ]
            },
        },
        "tempo": {
            "name": "Tempo",
            "type": "tempo",
            "uid": "tempo",
            "access": "proxy",
            "url": ep.tempo,
            "isDefault": False,
            "jsonData": {
                "tracesToLogsV2": {
                    "datasourceUid": "loki",
                    "spanStartTimeShift": "-1h",
                    "spanEndTimeShift": "1h",
                    "filterByTraceID": True,
                    "filterBySpanID": False,
                },
                "serviceMap": {"datasourceUid": "prometheus"},
                "nodeGraph": {"enabled": True},
                "lokiSearch": {"datasourceUid": "loki"},
            },
        },
    }
