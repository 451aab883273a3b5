from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer

from stack_observe.config import load_config, validate_log_level
from stack_observe.core.errors import LoadError, ObserveError, ValidationError
from stack_observe.core.expand.chart_config import ChartConfigError, load_and_merge
from stack_observe.core.expand.defaults import apply_defaults
from stack_observe.core.expand.expand_observe import expand_observe, serialize_expansion
from stack_observe.core.expand.usages import USAGE_EDGES, deletion_order
from stack_observe.core.io.load_spec import load_observe
from stack_observe.core.model import Chart, Component, ObserveSpec
from stack_observe.core.validate.validate_spec import summarize_spec, validate_observe
from stack_observe.observability.logging import get_logger, setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)

log = get_logger("cli")


@app.callback()
def _callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level: debug|info|warning|error (default from STACK_OBSERVE_LOG_LEVEL)"
    ),
) -> None:
    """Observe stack CLI."""
    try:
        config = load_config()
        level = validate_log_level(log_level) if log_level else config.log_level
    except ValueError as e:
        typer.echo(f"<config>: E_CONFIG_INVALID: {e}", err=True)
        raise typer.Exit(code=2)
    setup_logging(level)


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to an Observe document (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate an Observe document."""
    if format not in ("text", "json"):
        err = ValidationError(
            code="E_VALIDATE_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)

    def _to_item(e: ObserveError) -> dict:
        source = "load" if isinstance(e, LoadError) else "validate"
        return {
            "code": e.code,
            "message": e.message,
            "file": e.file,
            "path": e.path,
            "severity": "error",
            "source": source,
        }

    def _emit_json(ok: bool, *, exit_code: int, errors: list[ObserveError], summary: dict | None) -> None:
        payload = {
            "tool": "stack-observe",
            "command": "validate",
            "ok": ok,
            "error_count": len(errors),
            "errors": [_to_item(e) for e in errors],
            "summary": summary,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_observe(path)
    except LoadError as e:
        if format == "json":
            _emit_json(False, exit_code=1, errors=[e], summary=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    spec, errors = validate_observe(doc)
    if errors or spec is None:
        if format == "json":
            _emit_json(False, exit_code=2, errors=list(errors), summary=None)
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    defaulted = apply_defaults(spec)

    if format == "text":
        typer.echo(summarize_spec(defaulted))
        return

    summary = {
        "xr_name": defaulted.xr_name,
        "cluster_name": defaulted.cluster_name,
        "namespace": defaulted.namespace,
        "components": {
            c: {"name": cs.name, "namespace": cs.namespace, "override": bool(cs.override_all_values)}
            for c, cs in defaulted.components.items()
        },
    }
    _emit_json(True, exit_code=0, errors=[], summary=summary)


@app.command("render")
def render(
    path: str = typer.Argument(..., help="Path to an Observe document (.yaml/.yml/.json)"),
    out: Optional[str] = typer.Option(None, "--out", help="Write manifests here instead of stdout"),
    format: str = typer.Option("yaml", "--format", help="Output format: yaml|json"),
    chart_file: Optional[str] = typer.Option(
        None,
        "--chart-file",
        help="Optional YAML file to override chart repositories/versions",
    ),
) -> None:
    """Expand an Observe document into Releases, Objects and Usages."""
    if format not in ("yaml", "json"):
        _print_errors(
            [
                ValidationError(
                    code="E_RENDER_UNKNOWN_FORMAT",
                    message=f"unknown format: {format} (choose one of: yaml, json)",
                    file=None,
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)

    spec, doc_file = _load_valid_spec(path)
    charts = _load_charts(chart_file, doc_file)

    try:
        expansion = expand_observe(spec, charts=charts)
    except ObserveError as e:
        if e.file is None:
            e = replace(e, file=doc_file)
        _print_errors([e])
        raise typer.Exit(code=2)

    text = serialize_expansion(expansion, format=format)
    if out is None:
        typer.echo(text, nl=False)
        return

    _write_text(out, text)
    typer.echo(f"OK: wrote {len(expansion.resources)} resources to {out}")


@app.command("charts")
def charts(
    chart_file: Optional[str] = typer.Option(
        None,
        "--chart-file",
        help="Optional YAML file to override chart repositories/versions",
    ),
) -> None:
    """List the chart catalog."""
    charts_map = _load_charts(chart_file, None)

    typer.echo("Charts:")
    for c, chart in charts_map.items():
        typer.echo(f"- {c}: {chart.name}@{chart.version} ({chart.repository})")


@app.command("order")
def order(
    path: str = typer.Argument(..., help="Path to an Observe document (.yaml/.yml/.json)"),
) -> None:
    """Print the order in which composed resources can be deleted safely."""
    spec, doc_file = _load_valid_spec(path)

    try:
        expansion = expand_observe(spec)
    except ObserveError as e:
        _print_errors([e])
        raise typer.Exit(code=2)

    keys = [r.key for r in expansion.resources if r.kind != "UsageProtection"]
    by_key = {r.key: r for r in expansion.resources}
    for i, key in enumerate(deletion_order(keys, USAGE_EDGES), start=1):
        typer.echo(f"{i:2d}. {key} ({by_key[key].name})")


def _load_valid_spec(path: str) -> tuple[ObserveSpec, Optional[str]]:
    try:
        doc = load_observe(path)
    except LoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    spec, errors = validate_observe(doc)
    if errors or spec is None:
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return spec, doc.get("__file__")


def _load_charts(chart_file: Optional[str], doc_file: Optional[str]) -> dict[Component, Chart]:
    chart_file = chart_file or load_config().chart_file
    try:
        return load_and_merge(chart_file)
    except FileNotFoundError:
        _print_errors(
            [
                LoadError(
                    code="E_CHART_FILE_NOT_FOUND",
                    message=f"chart file not found: {chart_file}",
                    file=doc_file,
                    path="chart_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except ChartConfigError as e:
        _print_errors(
            [
                ValidationError(
                    code="E_CHART_FILE_INVALID",
                    message=str(e),
                    file=doc_file,
                    path="chart_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _write_text(path: str, text: str) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")


def _print_errors(errors: list[ObserveError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        log.debug("error", code=e.code, path=e.path)
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="stack-observe")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
