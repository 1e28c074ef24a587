"""
hub-handoff command line

Runs one migration-from instruction against the source hub: propagates the
bootstrap secrets, provisions the klusterlet config, annotates the managed
clusters and waits for them to detach.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from .constants import EXIT_FAILURE, EXIT_INTERRUPT, EXIT_SUCCESS
from .core.config_loader import HandoffConfig, load_config
from .core.exceptions import ConfigurationError, HandoffError
from .core.logging_config import get_handoff_logger, setup_logging
from .core.migration import MigrationFromSyncer
from .models.instruction import decode_instruction
from .store.interface import ResourceStore
from .store.memory import InMemoryResourceStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="hub-handoff",
        description="Hand managed clusters off from this hub to another",
    )
    parser.add_argument(
        "payload", help="Migration instruction JSON file ('-' reads standard input)"
    )
    parser.add_argument("--config", default=None, help="Configuration file path")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for detachment (default: until interrupted)",
    )
    parser.add_argument(
        "--no-wait", action="store_true", help="Prepare only; do not wait for detachment"
    )
    parser.add_argument(
        "--validate", action="store_true", help="Validate the instruction and exit"
    )
    return parser.parse_args(argv)


def read_payload(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()
    return Path(source).read_bytes()


def build_store(config: HandoffConfig) -> ResourceStore:
    """Create the resource store selected by configuration."""
    if config.store.backend == "memory":
        return InMemoryResourceStore()

    from .store.kubernetes import KubernetesResourceStore

    return KubernetesResourceStore.from_config(config.store.kubeconfig, config.store.context)


async def run_handoff(
    syncer: MigrationFromSyncer, payload: bytes, wait: bool, stop_event: asyncio.Event
) -> int:
    """Run one instruction; returns the process exit code."""
    logger = get_handoff_logger()

    if not wait:
        prepare = await syncer.prepare(decode_instruction(payload))
        logger.info("Migration prepared", **prepare.model_dump(mode="json"))
        return EXIT_SUCCESS

    run = await syncer.start(payload, stop_event)
    logger.info("Migration prepared", **run.prepare.model_dump(mode="json"))

    outcome = await run.detachment
    logger.info(
        "Detachment finished",
        status=outcome.status.value,
        detached=outcome.detached,
        ticks=outcome.ticks,
        error=outcome.error,
    )
    if outcome.succeeded:
        return EXIT_SUCCESS
    if stop_event.is_set():
        return EXIT_INTERRUPT
    return EXIT_FAILURE


async def _main_async(args: argparse.Namespace, config: HandoffConfig, payload: bytes) -> int:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # Windows
            pass

    timeout = args.timeout if args.timeout is not None else config.detachment.timeout
    store = build_store(config)
    syncer = MigrationFromSyncer(
        store,
        poll_interval=config.detachment.poll_interval,
        detach_timeout=timeout,
        exclusive=config.detachment.exclusive,
    )
    try:
        return await run_handoff(syncer, payload, not args.no_wait, stop_event)
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    log_level = args.log_level or config.logging.level
    setup_logging(
        log_dir=config.logging.dir,
        log_level=log_level,
        max_file_size_mb=config.logging.max_file_size_mb,
    )
    logger = get_handoff_logger()

    try:
        payload = read_payload(args.payload)
    except OSError as e:
        logger.error("Failed to read instruction", source=args.payload, error=str(e))
        return EXIT_FAILURE

    if args.validate:
        try:
            instruction = decode_instruction(payload)
        except HandoffError as e:
            logger.error("Instruction is invalid", error=str(e))
            return EXIT_FAILURE
        logger.info(
            "Instruction is valid",
            config=instruction.klusterlet_config.name,
            clusters=list(instruction.managed_clusters),
        )
        return EXIT_SUCCESS

    try:
        return asyncio.run(_main_async(args, config, payload))
    except HandoffError as e:
        logger.error("Migration failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Migration interrupted")
        return EXIT_INTERRUPT


if __name__ == "__main__":
    sys.exit(main())
