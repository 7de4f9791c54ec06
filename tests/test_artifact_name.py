"""Tests for canonical artifact names."""

import pytest

from docket.domain.artifact_name import (
    ALL_TYPES, PLUGIN_TYPES, ArtifactName, is_canonical_name,
)
from docket.errors import DocketError, ValidationError


class TestArtifactNameParse:
    """Tests for ArtifactName.parse."""

    @pytest.mark.parametrize("text,plugin_type,name", [
        ("logstash-filter-mutate", "filter", "mutate"),
        ("logstash-codec-json_lines", "codec", "json_lines"),
        ("logstash-input-java_input_example", "input", "java_input_example"),
        ("logstash-output-elastic-app-search", "output", "elastic-app-search"),
        ("logstash-integration-kafka", "integration", "kafka"),
    ])
    def test_valid_names(self, text, plugin_type, name):
        artifact = ArtifactName.parse(text)
        assert artifact.prefix == "logstash"
        assert artifact.type == plugin_type
        assert artifact.name == name
        assert artifact.canonical_name == text
        assert str(artifact) == text

    @pytest.mark.parametrize("text", [
        "",
        "logstash",
        "logstash-filter",
        "logstash-filter-",
        "logstash-filter-has space",
        "Logstash-filter-mutate",
        "logstash-Filter-mutate",
    ])
    def test_malformed_names(self, text):
        with pytest.raises(ValidationError):
            ArtifactName.parse(text)

    def test_wrong_prefix(self):
        with pytest.raises(ValidationError, match="expected prefix"):
            ArtifactName.parse("fluentd-filter-mutate")

    def test_custom_prefix(self):
        artifact = ArtifactName.parse("acme-filter-mutate", prefix="acme")
        assert artifact.canonical_name == "acme-filter-mutate"

    def test_prefix_with_dash(self):
        artifact = ArtifactName.parse("my-org-output-s3", prefix="my-org")
        assert (artifact.prefix, artifact.type, artifact.name) == ("my-org", "output", "s3")
        assert artifact.canonical_name == "my-org-output-s3"

    def test_prefix_is_matched_literally(self):
        with pytest.raises(ValidationError, match="expected prefix"):
            ArtifactName.parse("myxorg-output-s3", prefix="my.org")

    def test_unknown_type(self):
        with pytest.raises(ValidationError, match="unsupported plugin type"):
            ArtifactName.parse("logstash-patterns-core")

    def test_integration_rejected_when_only_plugin_types_allowed(self):
        with pytest.raises(ValidationError):
            ArtifactName.parse("logstash-integration-kafka", allowed_types=PLUGIN_TYPES)

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            ArtifactName.parse("nope")
        assert issubclass(ValidationError, DocketError)

    def test_equality(self):
        assert ArtifactName.parse("logstash-codec-json") == ArtifactName("logstash", "codec", "json")
        assert ArtifactName.parse("logstash-codec-json") != ArtifactName.parse("logstash-codec-plain")


class TestTypeSets:
    """Tests for the type vocabularies."""

    def test_plugin_types(self):
        assert PLUGIN_TYPES == {"input", "output", "filter", "codec"}

    def test_all_types_adds_integration(self):
        assert ALL_TYPES == PLUGIN_TYPES | {"integration"}


def test_is_canonical_name():
    assert is_canonical_name("logstash-filter-mutate")
    assert not is_canonical_name("logstash-core")
    assert not is_canonical_name("logstash-filter-mutate", prefix="acme")
