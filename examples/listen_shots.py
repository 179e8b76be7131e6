"""Connect to a BLE shot timer and print shots as they arrive.

Usage:
    uv run python examples/listen_shots.py --duration 60
    uv run python examples/listen_shots.py --name COMMANDER --start
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from shottimer import (
    BLETimeoutError,
    ShotFrame,
    ShotTimer,
    ShotTimerError,
    discover_devices,
)


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_shot(frame: ShotFrame) -> None:
    """Print one decoded shot frame."""
    state = frame.shot_state.name
    if frame.is_state_defaulted:
        state += f"(raw=0x{frame.raw_state_code:02x})"
    print(
        f"[{_timestamp()}] shot {frame.current_shot_index}/{frame.total_shots} "
        f"state={state} split={frame.split_time_seconds:.2f}s "
        f"first={frame.first_shot_time_seconds:.2f}s "
        f"time={frame.current_shot_time_seconds:.2f}s "
        f"last={frame.last_shot_time_seconds:.2f}s round={frame.current_round}"
    )


async def listen(duration: float, name: str | None, scan_timeout: float, start: bool) -> None:
    """Find a timer, connect and print shots."""
    print(f"Scanning for shot timers ({scan_timeout:.1f}s)...")
    devices = await discover_devices(timeout=scan_timeout, name_filter=name)
    if not devices:
        print("No shot timer found")
        return

    for device in devices:
        print(f"  {device.display_name} ({device.identifier})")
    target = devices[0]

    async with ShotTimer() as timer:
        print(f"Connecting to {target.display_name}...")
        await timer.connect(target)
        print("Ready")

        if start:
            await timer.start_timer()

        shots = 0

        async def collect() -> None:
            nonlocal shots
            async for frame in timer.shots():
                shots += 1
                _print_shot(frame)

        try:
            if duration > 0:
                await asyncio.wait_for(collect(), timeout=duration)
            else:
                await collect()
        except (asyncio.TimeoutError, BLETimeoutError):
            pass
        finally:
            await timer.disconnect()

    print("\nSummary:")
    print(f"  shots_seen={shots}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Connect to a BLE shot timer and print decoded shot frames."
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=60.0,
        help="Listen duration in seconds (0 = run until Ctrl+C). Default: 60",
    )
    parser.add_argument(
        "--name",
        default=None,
        help="Only connect to timers whose name contains this text.",
    )
    parser.add_argument(
        "--scan-timeout",
        type=float,
        default=10.0,
        help="Scan duration in seconds. Default: 10",
    )
    parser.add_argument(
        "--start",
        action="store_true",
        help="Send the start command once connected.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        asyncio.run(
            listen(
                duration=args.duration,
                name=args.name,
                scan_timeout=args.scan_timeout,
                start=args.start,
            )
        )
    except KeyboardInterrupt:
        pass
    except ShotTimerError as err:
        print(f"Error: {err}")


if __name__ == "__main__":
    main()
