"""
Replay a file of chain events into the entity store.

How to run:
    From project root (with .env configured):
        python -m usdfc_analytics.tools.replay_events events.jsonl
        usdfc-replay events.jsonl --db sqlite:///replay.db

Input: one JSON event per line (blank lines ignored). Events are applied in
file order; replaying the same file twice applies nothing new.

Env vars:
    USDFC_DB_URL / DATABASE_URL / USDFC_DB_PATH  (store location when --db is not given)
    USDFC_ADDRESS_BOOK                           (optional address book JSON)
"""

from __future__ import annotations

import argparse
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Iterator

from usdfc_analytics.config.env import load_usdfc_env
from usdfc_analytics.core.enums import ProcessStatus
from usdfc_analytics.core.exceptions import ConfigurationError
from usdfc_analytics.database.sql_store import SqlEntityStore
from usdfc_analytics.engine.processor import EventProcessor
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)


def read_events(path: Path) -> Iterator[dict[str, Any] | None]:
    """Yield each line's JSON object; None for a line that is not a JSON object."""
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("replay_line_unparseable", line=line_number, error=str(e))
                yield None
                continue
            if not isinstance(payload, dict):
                logger.warning("replay_line_not_object", line=line_number)
                yield None
                continue
            yield payload


def replay(path: Path, processor: EventProcessor) -> Counter:
    """Apply every event in the file; unparseable lines count as SKIPPED."""
    summary: Counter = Counter()
    for payload in read_events(path):
        if payload is None:
            summary[ProcessStatus.SKIPPED] += 1
            continue
        summary[processor.process(payload).status] += 1
    return summary


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replay USDFC chain events (JSON lines) into the entity store.")
    parser.add_argument("events", type=Path, help="Path to a JSON-lines file of events")
    parser.add_argument("--db", default=None, help="SQLAlchemy URL (default: from USDFC_DB_URL / USDFC_DB_PATH)")
    args = parser.parse_args(argv)

    load_usdfc_env()
    if not args.events.exists():
        print(f"ERROR: no such file: {args.events}", file=sys.stderr)
        return 2

    store = SqlEntityStore(args.db)
    store.init_db()
    try:
        summary = replay(args.events, EventProcessor(store))
    except ConfigurationError as e:
        logger.exception("replay_configuration_error", error=str(e))
        print("ERROR:", e, file=sys.stderr)
        return 1
    finally:
        store.dispose()

    logger.info("replay_done", path=str(args.events), **{s.value.lower(): n for s, n in summary.items()})
    print(
        "APPLIED: {0}  DUPLICATE: {1}  SKIPPED: {2}".format(
            summary[ProcessStatus.APPLIED], summary[ProcessStatus.DUPLICATE], summary[ProcessStatus.SKIPPED]
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
