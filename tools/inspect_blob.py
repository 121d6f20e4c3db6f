#!/usr/bin/env python3
"""Show the decoded fields of captured Night Light blobs."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
from typing import List, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from nightlight.blob import Blob  # noqa: E402
from nightlight.clock import unix_to_datetime  # noqa: E402
from nightlight.settings import SettingsBlob  # noqa: E402
from nightlight.state import StateBlob  # noqa: E402
from roundtrip_blob import BLOB_TYPES, collect_paths, guess_kind, load_capture  # noqa: E402


def fmt_value(value: object) -> str:
    if value is None:
        return "-"
    return str(value)


def fmt_timestamp(seconds: int) -> str:
    try:
        return f"{seconds} ({unix_to_datetime(seconds).isoformat()})"
    except ValueError:
        return f"{seconds} (out of datetime range)"


def describe(blob: Blob) -> List[Tuple[str, str]]:
    rows = [("timestamp", fmt_timestamp(blob.timestamp))]
    for spec in blob.FIELDS:
        if spec.framing:
            continue
        value = blob.get(spec.name)
        if value is True:
            rows.append((spec.name, "set"))
        elif value is None:
            rows.append((spec.name, "-"))
        else:
            rows.append((spec.name, fmt_value(value)))

    if isinstance(blob, SettingsBlob):
        warmth = blob.warmth
        rows.append(("schedule_type", blob.schedule_type.value))
        rows.append(("scheduled_night", str(blob.scheduled_night)))
        rows.append(("sunset_to_sunrise", fmt_value(blob.sunset_to_sunrise)))
        rows.append(("warmth", "-" if warmth is None else f"{warmth:.3f}"))
    elif isinstance(blob, StateBlob):
        rows.append(("transition_cause", blob.transition_cause.value))
        try:
            changed_at = blob.changed_at
        except ValueError:
            rows.append(("changed_at", f"{blob.change_filetime} (out of datetime range)"))
        else:
            rows.append(("changed_at", "-" if changed_at is None else changed_at.isoformat()))

    rows.append(("tail", blob.tail.hex(" ") or "(empty)"))
    return rows


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Print the fields of Night Light settings/state blobs."
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Capture files (raw or .hex dumps) or glob patterns.",
    )
    parser.add_argument("--hex", dest="hex_values", action="append", default=[], help="Inline hex value.")
    parser.add_argument(
        "--kind",
        choices=["auto", *BLOB_TYPES],
        default="auto",
        help="Blob kind; 'auto' picks state for file names containing 'state'.",
    )
    args = parser.parse_args(argv)

    sources: List[Tuple[str, str, bytes]] = []
    for idx, text in enumerate(args.hex_values):
        try:
            data = bytes.fromhex(text)
        except ValueError as exc:
            parser.error(f"--hex #{idx + 1}: {exc}")
        sources.append((f"<hex #{idx + 1}>", "settings" if args.kind == "auto" else args.kind, data))

    targets = collect_paths(args.paths)
    if args.paths and not targets:
        parser.error("No files matched the provided paths/patterns.")
    for path in targets:
        kind = guess_kind(path) if args.kind == "auto" else args.kind
        sources.append((str(path), kind, load_capture(path)))
    if not sources:
        parser.error("Nothing to inspect; pass paths or --hex.")

    errors = 0
    for label, kind, data in sources:
        try:
            blob = BLOB_TYPES[kind].from_bytes(data)
        except ValueError as exc:
            errors += 1
            print(f"{label}: ERR {exc}")
            continue

        print(f"{label}: {type(blob).__name__}")
        rows = describe(blob)
        width = max(len(name) for name, _ in rows)
        for name, value in rows:
            print(f"  {name.ljust(width)}  {value}")

    return 1 if errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
