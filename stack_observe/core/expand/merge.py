from __future__ import annotations

import copy
from typing import Any, Mapping, Optional

from stack_observe.core.errors import MergeError
from stack_observe.core.model import Component, ComponentSpec


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any], *, path: str = "") -> dict[str, Any]:
    """Return base with override merged on top.

    - mapping + mapping: merged key by key
    - scalar or sequence: the override value wins outright (sequences are
      replaced, never concatenated)
    - None in override: the key is removed
    - mapping against non-mapping: MergeError

    Neither input is mutated.
    """

    out: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        key_path = f"{path}.{key}" if path else str(key)

        if value is None:
            out.pop(key, None)
            continue

        if key not in out or out[key] is None:
            out[key] = copy.deepcopy(value)
            continue

        current = out[key]
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            out[key] = deep_merge(current, value, path=key_path)
        elif isinstance(current, Mapping) or isinstance(value, Mapping):
            raise MergeError(
                code="E_MERGE_TYPE_MISMATCH",
                message=f"cannot merge {_kind(value)} onto {_kind(current)}",
                path=key_path,
            )
        else:
            out[key] = copy.deepcopy(value)
    return out


def merge_all(*layers: Mapping[str, Any], path: str = "") -> dict[str, Any]:
    """Merge layers in ascending precedence."""
    out: dict[str, Any] = {}
    for layer in layers:
        out = deep_merge(out, layer, path=path)
    return out


def materialize(
    component: Component,
    chart_defaults: Mapping[str, Any],
    wiring: Mapping[str, Any],
    user_spec: ComponentSpec,
    *,
    path: Optional[str] = None,
) -> dict[str, Any]:
    """Helm values for one component.

    A non-empty overrideAllValues is returned as-is: no chart default and no
    wiring value reaches the output.
    """

    if user_spec.override_all_values:
        return copy.deepcopy(user_spec.override_all_values)

    return merge_all(
        chart_defaults,
        wiring,
        user_spec.values,
        path=path or f"spec.{component}.values",
    )


def _kind(value: Any) -> str:
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, (list, tuple)):
        return "sequence"
    return "scalar"
