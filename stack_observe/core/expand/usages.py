from __future__ import annotations

from collections import defaultdict
from typing import Mapping, Sequence, Union

from stack_observe.core.errors import GraphError
from stack_observe.core.model import HelmRelease, KubernetesObject, UsageProtection


UsedResource = Union[HelmRelease, KubernetesObject]

# (by, of): "of" must not be deleted while "by" exists. Keys are composition
# resource names, independent of release names.
USAGE_EDGES: tuple[tuple[str, str], ...] = (
    ("datasource-prometheus", "grafana-instance"),
    ("datasource-loki", "grafana-instance"),
    ("datasource-tempo", "grafana-instance"),
    ("grafana-instance", "grafana-operator"),
    ("grafana-operator", "kube-prometheus-stack"),
    ("k8s-monitoring", "loki"),
    ("k8s-monitoring", "tempo"),
)


def build_usage_edges(
    resources: Mapping[str, UsedResource],
    *,
    cluster_name: str,
    labels: Mapping[str, str] | None = None,
    edges: Sequence[tuple[str, str]] = USAGE_EDGES,
) -> list[UsageProtection]:
    """Emit one Usage per edge, pointing at the resolved resource identities.

    Raises GraphError when an edge names an unknown resource or the edges
    form a cycle.
    """

    check_acyclic(edges)

    out: list[UsageProtection] = []
    for by_key, of_key in edges:
        for k in (by_key, of_key):
            if k not in resources:
                raise GraphError(
                    code="E_GRAPH_UNKNOWN_RESOURCE",
                    message=f"usage edge references unknown resource: {k}",
                    path=f"usages.{by_key}->{of_key}",
                )
        out.append(
            UsageProtection(
                key=f"usage-{by_key}-{of_key}",
                name=f"{cluster_name}-{by_key}-uses-{of_key}",
                of=resources[of_key].ref(),
                by=resources[by_key].ref(),
                labels=dict(labels or {}),
            )
        )
    return out


def check_acyclic(edges: Sequence[tuple[str, str]]) -> None:
    cycles = _detect_cycles(edges)
    if cycles:
        node, msg = cycles[0]
        raise GraphError(code="E_GRAPH_CYCLE", message=msg, path=f"usages.{node}")


def deletion_order(keys: Sequence[str], edges: Sequence[tuple[str, str]] = USAGE_EDGES) -> list[str]:
    """Return keys in an order that is safe to delete.

    A resource comes after every resource that uses it. Ties keep the order of
    `keys`, so the result is deterministic.
    """

    check_acyclic(edges)

    known = set(keys)
    users: dict[str, set[str]] = defaultdict(set)
    for by_key, of_key in edges:
        if by_key in known and of_key in known:
            users[of_key].add(by_key)

    remaining = list(keys)
    deleted: set[str] = set()
    out: list[str] = []
    while remaining:
        for k in remaining:
            if users[k] <= deleted:
                break
        else:  # pragma: no cover
            raise GraphError(code="E_GRAPH_CYCLE", message="no deletable resource left", path="usages")
        remaining.remove(k)
        deleted.add(k)
        out.append(k)
    return out


def _detect_cycles(edges: Sequence[tuple[str, str]]) -> list[tuple[str, str]]:
    uses: dict[str, list[str]] = defaultdict(list)
    for by_key, of_key in edges:
        uses[by_key].append(of_key)
        uses.setdefault(of_key, [])

    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {k: WHITE for k in uses.keys()}
    stack: list[str] = []
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    def dfs(u: str) -> None:
        state[u] = GRAY
        stack.append(u)
        for v in uses.get(u, []):
            if state[v] == GRAY:
                cycle = stack[stack.index(v):] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "usage cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                dfs(v)
        stack.pop()
        state[u] = BLACK

    for k in list(state.keys()):
        if state[k] == WHITE:
            dfs(k)

    return out
