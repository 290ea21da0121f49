# shiftboard/logging_utils.py
from __future__ import annotations
import json, sys, time
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

_err = Console(stderr=True, highlight=False)


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S%z")


def warn(msg: str) -> None:
    """Non-fatal problem (best-effort write failed, optional fetch came back empty)."""
    _err.print(f"[yellow]\\[warn][/yellow] {msg}", markup=True)


class HeartbeatLogger:
    """NDJSON breadcrumbs to file + one-line console echo."""
    def __init__(self, run_dir: Path, console: Optional[Console] = None):
        self.run_dir = Path(run_dir)
        self.file = self.run_dir / "heartbeat.log"
        self.console = console or Console(highlight=False)

    def ping(self, stage: str, **kv: Any) -> Dict[str, Any]:
        rec: Dict[str, Any] = {"ts": _now_iso(), "stage": stage, **kv}
        try:
            self.run_dir.mkdir(parents=True, exist_ok=True)
            with self.file.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(rec, ensure_ascii=False) + "\n")
        except (OSError, TypeError, ValueError) as e:
            print(f"[heartbeat] write failed: {e}", file=sys.stderr)
        parts = " ".join(f"{k}={v}" for k, v in kv.items() if v is not None)
        self.console.print(f"[dim]\\[HB][/dim] {stage} {parts}".strip(), markup=True)
        return rec


def make_heartbeat(run_dir: Path) -> HeartbeatLogger:
    return HeartbeatLogger(run_dir)
