#!/usr/bin/env python3
"""Fire click bursts from several threads and report single-flight metrics."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, cast

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.logging import configure_logging

from clickgate import ClickGate, GateSubscription, Lifetime, ManualEventSource

MODES = ("sync", "async")


class ProbeError(RuntimeError):
    """Raised when the probe arguments are unusable."""


class _ConcurrencyTracker:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.runs = 0

    def enter(self) -> None:
        with self._lock:
            self.active += 1
            self.runs += 1
            self.max_active = max(self.max_active, self.active)

    def exit(self) -> None:
        with self._lock:
            self.active -= 1


def _fire(source: ManualEventSource, threads: int, events: int, interval_s: float) -> None:
    def _worker() -> None:
        for _ in range(events):
            source.emit()
            if interval_s > 0:
                time.sleep(interval_s)

    workers = [
        threading.Thread(target=_worker, name=f"burst-{index}", daemon=True)
        for index in range(threads)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()


def _metrics(subscription: GateSubscription, tracker: _ConcurrencyTracker, **params: Any) -> Dict[str, Any]:
    stats = subscription.stats
    return {
        **params,
        "received": stats.received,
        "throttled": stats.throttled,
        "busy": stats.busy,
        "admitted": stats.admitted,
        "dropped": stats.dropped,
        "completed": stats.completed,
        "failed": stats.failed,
        "canceled": stats.canceled,
        "handler_runs": tracker.runs,
        "max_concurrency": tracker.max_active,
    }


def run_probe(
    *,
    mode: str = "sync",
    threads: int = 4,
    events: int = 50,
    interval_s: float = 0.001,
    cooldown_s: float = 0.0,
    handler_s: float = 0.005,
) -> Dict[str, Any]:
    """Run one burst and return the metrics dictionary."""

    if mode not in MODES:
        raise ProbeError(f"Unknown mode {mode!r}; expected one of {', '.join(MODES)}")
    if threads < 1 or events < 1:
        raise ProbeError("threads and events must be positive")

    params = {
        "mode": mode,
        "threads": threads,
        "events": events,
        "interval_s": interval_s,
        "cooldown_s": cooldown_s,
        "handler_s": handler_s,
    }
    source = ManualEventSource("burst-probe")
    gate = ClickGate(cooldown_s)
    tracker = _ConcurrencyTracker()

    if mode == "sync":

        def _handler() -> None:
            tracker.enter()
            try:
                time.sleep(handler_s)
            finally:
                tracker.exit()

        subscription = cast(GateSubscription, gate.subscribe(source, _handler))
        _fire(source, threads, events, interval_s)
        subscription.dispose()
        return _metrics(subscription, tracker, **params)

    async def _handler_async(token: Lifetime) -> None:
        tracker.enter()
        try:
            await asyncio.sleep(handler_s)
        finally:
            tracker.exit()

    async def _main() -> Dict[str, Any]:
        subscription = cast(GateSubscription, gate.subscribe_await(source, _handler_async))
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _fire, source, threads, events, interval_s)
        # let the last admitted handler finish
        await asyncio.sleep(handler_s)
        while not subscription.gate.value:
            await asyncio.sleep(max(handler_s, 0.001))
        # flush the done callback recording the last outcome
        await asyncio.sleep(0)
        subscription.dispose()
        return _metrics(subscription, tracker, **params)

    return asyncio.run(_main())


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--mode", choices=MODES, default="sync")
    parser.add_argument("--threads", type=int, default=4, help="Concurrent emitting threads")
    parser.add_argument("--events", type=int, default=50, help="Clicks fired per thread")
    parser.add_argument(
        "--interval",
        type=float,
        default=0.001,
        help="Pause between clicks of one thread, in seconds",
    )
    parser.add_argument("--cooldown", type=float, default=0.0, help="Throttle window in seconds")
    parser.add_argument(
        "--handler",
        type=float,
        default=0.005,
        help="Time each handler invocation takes, in seconds",
    )
    parser.add_argument(
        "--json",
        type=Path,
        help="Optional path to write the JSON metrics. If omitted, metrics are printed to stdout.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress the human-readable summary output",
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging("WARNING")
    metrics = run_probe(
        mode=args.mode,
        threads=args.threads,
        events=args.events,
        interval_s=max(0.0, args.interval),
        cooldown_s=max(0.0, args.cooldown),
        handler_s=max(0.0, args.handler),
    )

    if not args.quiet:
        print("Burst probe")
        print(f"  Mode: {metrics['mode']}")
        print(f"  Received: {metrics['received']}")
        print(f"  Admitted: {metrics['admitted']}")
        print(f"  Throttled: {metrics['throttled']}")
        print(f"  Busy: {metrics['busy']}")
        print(f"  Max concurrency: {metrics['max_concurrency']}")

    json_payload = json.dumps(metrics, indent=2)
    if args.json:
        args.json.write_text(json_payload, encoding="utf-8")
    else:
        print(json_payload)
    return 0 if metrics["max_concurrency"] <= 1 else 1


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except ProbeError as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)
    except KeyboardInterrupt:
        raise SystemExit(130)
