#!/usr/bin/env python3
"""Round-trip captured Night Light blobs via the codec."""

from __future__ import annotations

import argparse
import glob
from pathlib import Path
import sys
from typing import Dict, Iterable, List, Tuple, Type

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from nightlight.blob import Blob  # noqa: E402
from nightlight.settings import SettingsBlob  # noqa: E402
from nightlight.state import StateBlob  # noqa: E402


BLOB_TYPES: Dict[str, Type[Blob]] = {"settings": SettingsBlob, "state": StateBlob}
HEX_SUFFIXES = {".hex", ".txt"}


def collect_paths(patterns: Iterable[str]) -> List[Path]:
    paths: List[Path] = []
    for pattern in patterns:
        matches = sorted(Path(p) for p in glob.glob(pattern, recursive=True))
        if matches:
            paths.extend(matches)
        elif Path(pattern).exists():
            paths.append(Path(pattern))
    seen: set[Path] = set()
    unique_paths: List[Path] = []
    for path in paths:
        if path.resolve() not in seen:
            seen.add(path.resolve())
            unique_paths.append(path)
    return unique_paths


def load_capture(path: Path) -> bytes:
    """Raw bytes, or a hex dump for .hex/.txt files (``#`` starts a comment)."""
    if path.suffix.lower() not in HEX_SUFFIXES:
        return path.read_bytes()
    lines = [line.split("#", 1)[0] for line in path.read_text().splitlines()]
    return bytes.fromhex(" ".join(lines))


def guess_kind(path: Path) -> str:
    return "state" if "state" in path.name.lower() else "settings"


def first_diff(a: bytes, b: bytes) -> Tuple[int | None, int | None, int | None]:
    limit = min(len(a), len(b))
    for idx in range(limit):
        if a[idx] != b[idx]:
            return idx, a[idx], b[idx]
    if len(a) != len(b):
        return limit, None, None
    return None, None, None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Decode + re-encode captured Night Light blobs and report mismatches."
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="Capture files (raw or .hex dumps) or glob patterns.",
    )
    parser.add_argument(
        "--kind",
        choices=["auto", *BLOB_TYPES],
        default="auto",
        help="Blob kind; 'auto' picks state for file names containing 'state'.",
    )
    args = parser.parse_args(argv)

    targets = collect_paths(args.paths)
    if not targets:
        parser.error("No files matched the provided paths/patterns.")

    failures = 0
    for path in targets:
        kind = guess_kind(path) if args.kind == "auto" else args.kind
        try:
            data = load_capture(path)
            blob = BLOB_TYPES[kind].from_bytes(data)
        except ValueError as exc:
            failures += 1
            print(f"ERR  {path}: {exc}")
            continue

        rebuilt = blob.to_bytes()
        offset, left, right = first_diff(data, rebuilt)
        if offset is None:
            opaque = " (opaque tail kept)" if blob.has_opaque_data else ""
            print(f"OK   {path} [{kind}]{opaque}")
            continue

        failures += 1
        if left is None and right is None:
            print(f"FAIL {path}: size mismatch (orig={len(data)} new={len(rebuilt)})")
        else:
            print(f"FAIL {path}: diff at 0x{offset:04X} (orig=0x{left:02X} new=0x{right:02X})")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
