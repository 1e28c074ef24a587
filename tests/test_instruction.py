"""Tests for migration instruction decoding."""

import json

import pytest
from pydantic import ValidationError

from hub_handoff.core.exceptions import DecodeError
from hub_handoff.models.instruction import decode_instruction

from .conftest import (
    BOOTSTRAP_NAMESPACE,
    BOOTSTRAP_SECRET,
    KLUSTERLET_CONFIG,
    KUBECONFIG_BYTES,
    make_payload,
)


class TestDecodeInstruction:
    """Test decode_instruction."""

    def test_decodes_full_payload(self):
        instruction = decode_instruction(make_payload(["c1", "c2"]))

        assert instruction.bootstrap_secret.name == BOOTSTRAP_SECRET
        assert instruction.bootstrap_secret.namespace == BOOTSTRAP_NAMESPACE
        assert instruction.bootstrap_secret.data == {"kubeconfig": KUBECONFIG_BYTES}
        assert instruction.klusterlet_config.name == KLUSTERLET_CONFIG
        assert instruction.managed_clusters == ("c1", "c2")

    def test_accepts_str_payload(self):
        instruction = decode_instruction(make_payload(["c1"]).decode())
        assert instruction.managed_clusters == ("c1",)

    def test_duplicate_clusters_keep_first_occurrence(self):
        instruction = decode_instruction(make_payload(["c2", "c1", "c2", "c3", "c1"]))
        assert instruction.managed_clusters == ("c2", "c1", "c3")

    def test_missing_cluster_list_is_empty(self):
        document = json.loads(make_payload([]))
        del document["managedClusters"]

        instruction = decode_instruction(json.dumps(document))

        assert instruction.managed_clusters == ()

    def test_instruction_is_immutable(self):
        instruction = decode_instruction(make_payload(["c1"]))
        with pytest.raises(ValidationError):
            instruction.managed_clusters = ("other",)

    @pytest.mark.parametrize(
        "payload",
        [
            b"",
            b"not json",
            b"[]",
            b'{"managedClusters": ["c1"]}',
        ],
    )
    def test_malformed_payload_raises_decode_error(self, payload):
        with pytest.raises(DecodeError, match="Invalid migration instruction"):
            decode_instruction(payload)

    def test_invalid_base64_secret_data(self):
        document = json.loads(make_payload(["c1"]))
        document["bootstrapSecret"]["data"]["kubeconfig"] = "%%% not base64 %%%"

        with pytest.raises(DecodeError):
            decode_instruction(json.dumps(document))

    @pytest.mark.parametrize("clusters", [[""], ["  "], [None], "c1"])
    def test_invalid_cluster_names(self, clusters):
        document = json.loads(make_payload([]))
        document["managedClusters"] = clusters

        with pytest.raises(DecodeError):
            decode_instruction(json.dumps(document))

    def test_secret_without_name_is_rejected(self):
        document = json.loads(make_payload(["c1"]))
        document["bootstrapSecret"]["metadata"] = {"namespace": BOOTSTRAP_NAMESPACE}

        with pytest.raises(DecodeError):
            decode_instruction(json.dumps(document))
