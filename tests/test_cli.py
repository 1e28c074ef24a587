"""Tests for the hub-handoff command line."""

import asyncio
from unittest.mock import patch

import pytest

from hub_handoff.cli import main, parse_args, run_handoff
from hub_handoff.constants import CONDITION_UNKNOWN, EXIT_FAILURE, EXIT_INTERRUPT, EXIT_SUCCESS
from hub_handoff.core.migration import MigrationFromSyncer
from hub_handoff.store.interface import ResourceKind
from hub_handoff.store.memory import InMemoryResourceStore

from .conftest import KLUSTERLET_CONFIG, make_cluster, make_payload


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Run the CLI against the in-memory backend with no config files or .env."""
    for var in ("HANDOFF_CONFIG", "HANDOFF_DETACH_TIMEOUT", "LOG_DIR", "KUBECONFIG"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("HANDOFF_STORE", "memory")
    monkeypatch.setenv("HANDOFF_POLL_INTERVAL", "0.01")
    monkeypatch.chdir(tmp_path)
    with patch("hub_handoff.core.config_loader.load_dotenv"):
        yield tmp_path


def write_payload(directory, clusters) -> str:
    path = directory / "instruction.json"
    path.write_bytes(make_payload(clusters))
    return str(path)


def test_parse_args_defaults():
    args = parse_args(["instruction.json"])

    assert args.payload == "instruction.json"
    assert args.timeout is None
    assert args.no_wait is False
    assert args.validate is False


def test_validate_accepts_good_instruction(cli_env):
    assert main(["--validate", write_payload(cli_env, ["c1"])]) == EXIT_SUCCESS


def test_validate_rejects_bad_instruction(cli_env):
    path = cli_env / "bad.json"
    path.write_text('{"managedClusters": "c1"}')

    assert main(["--validate", str(path)]) == EXIT_FAILURE


def test_missing_payload_file(cli_env):
    assert main([str(cli_env / "missing.json")]) == EXIT_FAILURE


def test_bad_config_file(cli_env):
    assert main(["--config", str(cli_env / "nope.yml"), "x.json"]) == EXIT_FAILURE


def test_empty_batch_completes(cli_env):
    assert main([write_payload(cli_env, [])]) == EXIT_SUCCESS


def test_missing_cluster_fails(cli_env):
    assert main([write_payload(cli_env, ["not-on-this-hub"])]) == EXIT_FAILURE


def test_detaches_seeded_clusters(cli_env):
    store = InMemoryResourceStore()
    store.add(make_cluster("c1", available=CONDITION_UNKNOWN))

    with patch("hub_handoff.cli.build_store", return_value=store):
        code = main([write_payload(cli_env, ["c1"])])

    assert code == EXIT_SUCCESS
    assert store.peek(ResourceKind.MANAGED_CLUSTER, "c1") is None


def test_timeout_exit_code(cli_env):
    store = InMemoryResourceStore()
    store.add(make_cluster("c1"))

    with patch("hub_handoff.cli.build_store", return_value=store):
        code = main(["--timeout", "0.05", write_payload(cli_env, ["c1"])])

    assert code == EXIT_FAILURE
    assert store.peek(ResourceKind.MANAGED_CLUSTER, "c1") is not None


def test_no_wait_only_prepares(cli_env):
    store = InMemoryResourceStore()
    store.add(make_cluster("c1", available=CONDITION_UNKNOWN))

    with patch("hub_handoff.cli.build_store", return_value=store):
        code = main(["--no-wait", write_payload(cli_env, ["c1"])])

    assert code == EXIT_SUCCESS
    cluster = store.peek(ResourceKind.MANAGED_CLUSTER, "c1")
    assert cluster is not None
    assert store.peek(ResourceKind.KLUSTERLET_CONFIG, KLUSTERLET_CONFIG) is not None


class TestRunHandoff:
    """Test run_handoff exit codes."""

    @pytest.mark.asyncio
    async def test_stop_event_gives_interrupt_code(self):
        store = InMemoryResourceStore()
        store.add(make_cluster("c1"))
        syncer = MigrationFromSyncer(store, poll_interval=0.01, detach_timeout=None)
        stop_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, stop_event.set)

        code = await asyncio.wait_for(
            run_handoff(syncer, make_payload(["c1"]), True, stop_event), timeout=5
        )

        assert code == EXIT_INTERRUPT
