from stack_observe.core.errors import ValidationError
from stack_observe.core.expand.defaults import apply_defaults, component_identity
from stack_observe.core.model import COMPONENTS, ComponentSpec, ObserveSpec, ProviderConfigRef


def test_defaults_fill_every_optional_field():
    spec = apply_defaults(ObserveSpec(cluster_name="dev"))

    assert spec.namespace == "monitoring"
    assert spec.labels == {}
    assert spec.management_policies == ["*"]
    assert spec.helm_provider_config_ref == ProviderConfigRef(name="dev", kind="ProviderConfig")
    assert spec.kubernetes_provider_config_ref == ProviderConfigRef(name="dev", kind="ProviderConfig")

    names = {c: component_identity(spec, c) for c in COMPONENTS}
    assert names == {
        "kubePrometheusStack": ("kube-prometheus-stack", "monitoring"),
        "loki": ("loki", "monitoring"),
        "tempo": ("tempo", "monitoring"),
        "k8sMonitoring": ("k8s-monitoring", "monitoring"),
        "grafanaOperator": ("grafana-operator", "monitoring"),
    }


def test_defaults_keep_explicit_fields():
    spec = apply_defaults(
        ObserveSpec(
            cluster_name="prod",
            namespace="observability",
            management_policies=["Observe"],
            helm_provider_config_ref=ProviderConfigRef(name="helm", kind="ClusterProviderConfig"),
            components={"loki": ComponentSpec(name="logs", namespace="logging")},
        )
    )

    assert spec.namespace == "observability"
    assert spec.management_policies == ["Observe"]
    assert spec.helm_provider_config_ref == ProviderConfigRef(name="helm", kind="ClusterProviderConfig")
    assert spec.kubernetes_provider_config_ref.name == "prod"
    assert component_identity(spec, "loki") == ("logs", "logging")
    # Components without their own namespace follow ObserveSpec.namespace.
    assert component_identity(spec, "tempo") == ("tempo", "observability")


def test_defaults_do_not_mutate_input():
    original = ObserveSpec(cluster_name="dev", labels={"a": "b"})
    apply_defaults(original)
    assert original.namespace is None
    assert original.components == {}
    assert original.management_policies is None


def test_defaults_require_cluster_name():
    for bad in ("", "   "):
        try:
            apply_defaults(ObserveSpec(cluster_name=bad))
            assert False, "expected ValidationError"
        except ValidationError as e:
            assert e.code == "E_REQUIRED_FIELD"
            assert e.path == "spec.clusterName"


def test_component_identity_requires_defaulted_spec():
    try:
        component_identity(ObserveSpec(cluster_name="dev"), "loki")
        assert False, "expected ValueError"
    except ValueError:
        pass
