from pathlib import Path

from stack_observe.core.expand.chart_config import (
    DEFAULT_CHARTS,
    ChartConfigError,
    chart_defaults,
    load_and_merge,
    load_chart_file,
    merged_charts,
)


def test_default_catalog_is_read_only():
    try:
        DEFAULT_CHARTS["loki"] = DEFAULT_CHARTS["tempo"]  # type: ignore[index]
        assert False, "expected TypeError"
    except TypeError:
        pass
    assert merged_charts() == dict(DEFAULT_CHARTS)


def test_chart_defaults_are_copies():
    values = chart_defaults("kubePrometheusStack")
    values["grafana"]["enabled"] = True
    assert chart_defaults("kubePrometheusStack")["grafana"] == {"enabled": False}


def test_load_chart_file_overrides_fields():
    charts = load_and_merge("examples/charts-override.yaml")
    assert charts["loki"].version == "6.54.0"
    assert charts["loki"].repository == DEFAULT_CHARTS["loki"].repository
    assert charts["grafanaOperator"].repository == "oci://ghcr.io/grafana/helm-charts"
    assert charts["grafanaOperator"].version == "5.21.4"
    assert charts["tempo"] == DEFAULT_CHARTS["tempo"]


def test_load_and_merge_without_file():
    assert load_and_merge(None) == dict(DEFAULT_CHARTS)


def test_empty_chart_file(tmp_path: Path):
    p = tmp_path / "charts.yaml"
    p.write_text("", encoding="utf-8")
    assert load_chart_file(p) == {}


def test_invalid_chart_files(tmp_path: Path):
    cases = [
        "- loki",
        "mimir: {version: 1.0.0}",
        "loki: 6.54.0",
        "loki: {digest: abc}",
        "loki: {version: 6}",
    ]
    for i, text in enumerate(cases):
        p = tmp_path / f"charts-{i}.yaml"
        p.write_text(text, encoding="utf-8")
        try:
            load_chart_file(p)
            assert False, f"expected ChartConfigError for {text!r}"
        except ChartConfigError:
            pass


def test_malformed_chart_file(tmp_path: Path):
    p = tmp_path / "charts.yaml"
    p.write_text("loki: [unclosed", encoding="utf-8")
    try:
        load_chart_file(p)
        assert False, "expected ChartConfigError"
    except ChartConfigError as e:
        assert "invalid YAML" in str(e)


def test_chart_file_is_directory(tmp_path: Path):
    try:
        load_chart_file(tmp_path)
        assert False, "expected ChartConfigError"
    except ChartConfigError as e:
        assert "cannot read chart file" in str(e)


def test_missing_chart_file_is_not_found(tmp_path: Path):
    try:
        load_chart_file(tmp_path / "nope.yaml")
        assert False, "expected FileNotFoundError"
    except FileNotFoundError:
        pass
