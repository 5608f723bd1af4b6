from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable


def canonical_json_bytes(payload: dict[str, object]) -> bytes:
    return (json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


def read_jsonl(path: Path) -> list[dict[str, object]]:
    """Parse every non-blank line of *path*; a malformed line raises ValueError naming it."""

    out: list[dict[str, object]] = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        text = line.strip()
        if not text:
            continue
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}:{lineno}: invalid JSON ({exc.msg})") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"{path}:{lineno}: expected a JSON object")
        out.append(payload)
    return out


def write_jsonl_atomic(path: Path, rows: Iterable[dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("wb") as handle:
        for row in rows:
            handle.write(canonical_json_bytes(row))
    os.replace(tmp_path, path)
