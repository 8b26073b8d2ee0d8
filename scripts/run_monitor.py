#!/usr/bin/env python
"""Log inbound packets for the given opcodes until interrupted.

Usage:
    python scripts/run_monitor.py 0x9c 0x9d [--log-level DEBUG]

Connects through the configured transport (see ``ACKLESS_TRANSPORT`` and
``ACKLESS_BRIDGE_WS_URL``) and prints one log line per matching frame.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging

from ackless.bootstrap import resolve_transport
from ackless.config import get_settings
from ackless.network.client import PacketClient
from ackless.protocol.command import InboundMessage

LOGGER = logging.getLogger("ackless.monitor")


def parse_opcode(value: str) -> int:
    try:
        opcode = int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer opcode: {value!r}") from exc
    if not 0 <= opcode <= 0xFF:
        raise argparse.ArgumentTypeError(f"opcode out of range: {value!r}")
    return opcode


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument(
        "opcodes",
        nargs="+",
        type=parse_opcode,
        help="Inbound opcode(s) to watch, decimal or 0x-prefixed hex.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level (default: ACKLESS_LOG_LEVEL or INFO).",
    )
    return parser.parse_args()


def log_message(message: InboundMessage) -> None:
    LOGGER.info("opcode=%#04x len=%s payload=%s", message.opcode, len(message.payload), message.payload.hex())


async def monitor(opcodes: list[int]) -> None:
    settings = get_settings()
    client = PacketClient(settings=settings, transport_factory=resolve_transport(settings))
    await client.start()
    client.subscribe(opcodes, log_message)
    LOGGER.info("Watching opcodes %s", ", ".join(f"{opcode:#04x}" for opcode in opcodes))
    try:
        await asyncio.Event().wait()
    finally:
        await client.stop()


def main() -> None:
    args = parse_args()
    settings = get_settings()
    level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(monitor(sorted(set(args.opcodes))))


if __name__ == "__main__":
    main()
