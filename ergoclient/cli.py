"""Command line access to the live session.

Usage:
    ergoclient watch [--count N] [--status]
    ergoclient status
    ergoclient start --type fixed_distance --distance 2000
    ergoclient stop

The endpoint comes from the client settings (``ERGO_CLIENT_*`` environment
variables or the YAML config file) unless ``--url`` is given.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from shared.models.commands import (
    COMMAND_REPLIES,
    ERROR,
    INBOUND_MESSAGE_TYPES,
    WorkoutParams,
    WorkoutType,
    get_status,
    start_workout,
    stop_workout,
)
from shared.models.envelope import MessageEnvelope
from shared.protocol.codec import encode_envelope

from ergoclient.bootstrap import build_registry
from ergoclient.config import get_settings
from ergoclient.network.errors import InvalidEndpoint, NotConnected
from ergoclient.network.subscription import ConsumerSubscription

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ergoclient", description="Talk to an ergometer.live server.")
    parser.add_argument("--url", help="WebSocket endpoint (default: from client settings).")
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for the connection and for command replies (default: 10).",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    watch = commands.add_parser("watch", help="Print received envelopes as JSON lines.")
    watch.add_argument("--count", type=int, default=0, help="Stop after N envelopes (default: run forever).")
    watch.add_argument("--status", action="store_true", help="Request a status envelope once connected.")

    commands.add_parser("status", help="Request and print the device status.")

    start = commands.add_parser("start", help="Start a workout.")
    start.add_argument("--type", dest="workout_type", required=True, choices=[item.value for item in WorkoutType])
    start.add_argument("--distance", type=int, help="Target distance in meters (fixed_distance).")
    start.add_argument("--time", type=int, help="Target time in seconds (fixed_time).")
    start.add_argument("--split-distance", type=int, help="Split distance in meters.")
    start.add_argument("--split-time", type=int, help="Split time in seconds.")

    commands.add_parser("stop", help="Stop the current workout.")
    return parser.parse_args(argv)


def _emit(envelope: MessageEnvelope) -> None:
    if envelope.type not in INBOUND_MESSAGE_TYPES:
        LOGGER.debug("Unrecognised message type %r", envelope.type)
    print(encode_envelope(envelope), flush=True)


async def _await_reply(
    inbox: asyncio.Queue[MessageEnvelope],
    reply_types: frozenset[str],
    timeout: float,
) -> Optional[MessageEnvelope]:
    """Print envelopes until one of ``reply_types`` arrives; None on timeout."""

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            return None
        try:
            envelope = await asyncio.wait_for(inbox.get(), remaining)
        except asyncio.TimeoutError:
            return None
        _emit(envelope)
        if envelope.type in reply_types:
            return envelope


async def _watch(sub: ConsumerSubscription, inbox: asyncio.Queue[MessageEnvelope], args: argparse.Namespace) -> int:
    if args.status:
        sub.send(get_status())
    seen = 0
    while not args.count or seen < args.count:
        _emit(await inbox.get())
        seen += 1
    return EXIT_OK


async def _command(
    sub: ConsumerSubscription,
    inbox: asyncio.Queue[MessageEnvelope],
    command: MessageEnvelope,
    reply_types: frozenset[str],
    timeout: float,
) -> int:
    sub.send(command)
    reply = await _await_reply(inbox, reply_types, timeout)
    if reply is None:
        LOGGER.error("No %s reply within %.1fs", "/".join(sorted(reply_types)), timeout)
        return EXIT_FAILED
    return EXIT_FAILED if reply.type == ERROR else EXIT_OK


def _build_command(args: argparse.Namespace) -> Optional[MessageEnvelope]:
    if args.command == "status":
        return get_status()
    if args.command == "stop":
        return stop_workout()
    if args.command == "start":
        params = WorkoutParams(
            workout_type=args.workout_type,
            distance=args.distance,
            time=args.time,
            split_distance=args.split_distance,
            split_time=args.split_time,
        )
        return start_workout(params)
    return None


async def run(args: argparse.Namespace) -> int:
    """Attach to a fresh session, run one subcommand and disconnect."""

    try:
        command = _build_command(args)
    except ValidationError as exc:
        LOGGER.error("Invalid workout parameters: %s", exc)
        return EXIT_USAGE

    registry = build_registry(get_settings())
    inbox: asyncio.Queue[MessageEnvelope] = asyncio.Queue()
    with registry.subscribe() as sub:
        sub.on_message(inbox.put_nowait)
        try:
            sub.connect(args.url)
        except InvalidEndpoint as exc:
            LOGGER.error("%s", exc)
            return EXIT_USAGE
        try:
            try:
                await sub.wait_connected(args.timeout)
            except asyncio.TimeoutError:
                LOGGER.error("Could not connect within %.1fs: %s", args.timeout, sub.error or "no response")
                return EXIT_FAILED
            if command is None:
                return await _watch(sub, inbox, args)
            return await _command(sub, inbox, command, COMMAND_REPLIES[command.type], args.timeout)
        except NotConnected as exc:
            LOGGER.error("Connection dropped: %s", exc)
            return EXIT_FAILED
        finally:
            sub.disconnect()
            await registry.wait_closed()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    level = args.log_level or settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
