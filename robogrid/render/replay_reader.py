"""Read run logs back into TurnPayloads."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator

from robogrid.sim.contracts import TurnPayload

logger = logging.getLogger(__name__)


def read_header(path: Path) -> dict[str, Any] | None:
    for record in _records(path):
        if record.get("type") == "header":
            return record.get("metadata", {})
    return None


def read_turn_payloads(path: Path) -> Iterator[TurnPayload]:
    for record in _records(path):
        if record.get("type") != "turn":
            continue
        payload = record.get("payload")
        if payload is None:
            continue
        yield TurnPayload.model_validate(payload)


def _records(path: Path) -> Iterator[dict]:
    with path.open("r", encoding="utf-8") as handle:
        for number, line in enumerate(handle, start=1):
            record = _parse_record(line)
            if record is None:
                logger.debug("Skipping unreadable record %s in %s", number, path)
                continue
            yield record


def _parse_record(line: str) -> dict | None:
    try:
        return json.loads(line)
    except json.JSONDecodeError:
        return None
