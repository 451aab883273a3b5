from stack_observe.core.io.load_spec import load_observe
from stack_observe.core.validate.validate_spec import validate_observe


def _doc(spec) -> dict:
    return {"spec": spec, "name": None, "__file__": None}


def test_validate_minimal_ok():
    spec, errors = validate_observe(load_observe("examples/minimal.yaml"))
    assert errors == []
    assert spec is not None
    assert spec.cluster_name == "dev-cluster"
    assert spec.namespace is None
    assert spec.xr_name == "minimal"


def test_validate_standard_reads_every_field():
    spec, errors = validate_observe(load_observe("examples/standard.yaml"))
    assert errors == []
    assert spec is not None
    assert spec.labels == {"team": "platform", "env": "prod"}
    assert spec.helm_provider_config_ref.name == "prod-helm"
    assert spec.helm_provider_config_ref.kind == "ClusterProviderConfig"
    assert spec.kubernetes_provider_config_ref.kind == "ProviderConfig"
    assert spec.component("loki").namespace == "logging"
    assert spec.component("grafanaOperator").name == "grafana-op"
    assert spec.component("tempo").values == {"tempo": {"retention": "72h"}}


def test_validate_invalid_example_collects_all_errors():
    spec, errors = validate_observe(load_observe("examples/invalid-missing-cluster.yaml"))
    assert spec is None
    codes = {(e.code, e.path) for e in errors}
    assert ("E_REQUIRED_FIELD", "spec.clusterName") in codes
    assert ("E_INVALID_TYPE", "spec.loki.values") in codes


def test_validate_missing_spec():
    spec, errors = validate_observe(_doc(None))
    assert spec is None
    assert [e.code for e in errors] == ["E_REQUIRED_FIELD"]


def test_validate_unknown_fields():
    _, errors = validate_observe(_doc({"clusterName": "c", "mimir": {}, "loki": {"replicas": 2}}))
    paths = {e.path for e in errors if e.code == "E_UNKNOWN_FIELD"}
    assert paths == {"spec.mimir", "spec.loki.replicas"}


def test_validate_provider_config_kind_enum():
    _, errors = validate_observe(_doc({"clusterName": "c", "helmProviderConfigRef": {"kind": "Secret"}}))
    assert [(e.code, e.path) for e in errors] == [("E_INVALID_ENUM", "spec.helmProviderConfigRef.kind")]


def test_validate_management_policies():
    _, errors = validate_observe(_doc({"clusterName": "c", "managementPolicies": ["Observe", "Destroy"]}))
    assert [(e.code, e.path) for e in errors] == [("E_INVALID_ENUM", "spec.managementPolicies[1]")]

    _, errors = validate_observe(_doc({"clusterName": "c", "managementPolicies": "*"}))
    assert [e.code for e in errors] == ["E_INVALID_TYPE"]


def test_validate_labels_must_be_strings():
    _, errors = validate_observe(_doc({"clusterName": "c", "labels": {"tier": 1}}))
    assert [(e.code, e.path) for e in errors] == [("E_INVALID_TYPE", "spec.labels")]


def test_validate_names_are_dns_labels():
    _, errors = validate_observe(
        _doc({"clusterName": "c", "namespace": "Monitoring", "tempo": {"name": "tempo_1"}})
    )
    assert {(e.code, e.path) for e in errors} == {
        ("E_INVALID_NAME", "spec.namespace"),
        ("E_INVALID_NAME", "spec.tempo.name"),
    }


def test_validate_errors_are_sorted():
    _, errors = validate_observe(
        _doc({"tempo": {"values": []}, "labels": "x", "kubePrometheusStack": {"overrideAllValues": 1}})
    )
    paths = [e.path or "" for e in errors]
    assert paths == sorted(paths)
    assert len(errors) == 4
