# shiftboard/cli.py
from __future__ import annotations
import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .backend import Backend
from .config import Config
from .logging_utils import make_heartbeat, warn
from .production import best_by, lot_code, production_day, production_day_key
from .products import ProductCache, format_main_line, products_from_rows, search_products
from .rotation import pick_next_extra, preview_next_extra, reset_rotation
from .schedule import load_schedule, shift_for_week, week_monday_iso
from .store import JsonStateStore
from .timers import TONES, TimerBoard, poll_due
from .timeutils import advance_with_phase, format_clock, infer_next_phase, normalize_time12

console = Console(highlight=False)


def _csv(s: Optional[str]) -> List[str]:
    return [x.strip() for x in (s or "").split(",") if x.strip()]


def _at(s: Optional[str]) -> Optional[datetime]:
    """--at accepts 'HH:MM' (today) or a full ISO timestamp."""
    if not s:
        return None
    try:
        if len(s) <= 5 and ":" in s:
            hh, mm = s.split(":")
            return datetime.now().replace(hour=int(hh), minute=int(mm), second=0, microsecond=0)
        return datetime.fromisoformat(s)
    except ValueError as e:
        raise SystemExit(f"bad --at value {s!r}: {e}")


def _phase(is_am: Optional[bool]) -> str:
    if is_am is None:
        return "-"
    return "AM" if is_am else "PM"


# --- rotation ---

def cmd_rotation(args, cfg: Config) -> int:
    store = JsonStateStore(Path(args.state)) if args.state else JsonStateStore.from_config(cfg)
    if args.action == "reset":
        reset_rotation(store)
        console.print("rotation reset")
        return 0
    active = _csv(args.active)
    availability: Dict[str, bool] = {i: False for i in _csv(args.unavailable)}
    fn = pick_next_extra if args.action == "pick" else preview_next_extra
    res = fn(active, availability, store=store)
    if args.action == "pick":
        make_heartbeat(Path(cfg.heartbeat_dir)).ping("rotation.pick", next=res.next, pending=len(res.state.pending))
    console.print(f"next extra: [bold]{res.next or '-'}[/bold]")
    console.print(f"pending:   {', '.join(res.state.pending) or '-'}")
    console.print(f"completed: {', '.join(res.state.completed) or '-'}")
    return 0 if res.next else 1


# --- time ---

def cmd_time(args, cfg: Config) -> int:
    now = _at(args.at)
    if args.action == "normalize":
        console.print(normalize_time12(args.value))
    elif args.action == "phase":
        t12 = normalize_time12(args.value)
        console.print(f"{t12} {_phase(infer_next_phase(t12, now))}")
    elif args.action == "advance":
        new_time, new_is_am = advance_with_phase(args.value, not args.pm, args.minutes)
        console.print(f"{new_time} {_phase(new_is_am)}")
    return 0


# --- lot / shift ---

def cmd_lot(args, cfg: Config) -> int:
    now = _at(args.at) or datetime.now()
    start = cfg.production_day_start_hour
    day = production_day(now, start)
    key = production_day_key(now, start)
    t = Table(show_header=False, box=None)
    t.add_row("production day", day.isoformat())
    t.add_row("lot code", lot_code(day))
    t.add_row("best by", best_by(day))
    t.add_row("shift", str(key.shift_number))
    console.print(t)
    return 0


def cmd_shift(args, cfg: Config) -> int:
    path = Path(args.schedule or cfg.peanut_schedule_path)
    try:
        schedule = load_schedule(path)
    except (OSError, ValueError) as e:
        warn(f"schedule not loaded: {e}")
        return 1
    now = _at(args.at)
    monday = week_monday_iso(now)
    shift = shift_for_week(schedule, now)
    console.print(f"week of {monday}: [bold]{shift or 'No shift scheduled'}[/bold]")
    return 0


# --- products ---

def cmd_products(args, cfg: Config) -> int:
    cache = ProductCache.from_config(cfg)
    rows = cache.load()
    if rows is None or args.refresh:
        backend = Backend.from_config(cfg)
        if not backend.configured:
            warn("SUPABASE_URL / SUPABASE_API_KEY not set and no fresh product cache")
            return 2
        rows = backend.fetch_products()
        if rows:
            cache.save(rows)
    hits = search_products(products_from_rows(rows), args.query, limit=args.limit)
    if not hits:
        console.print(f"no products match {args.query!r}")
        return 1
    t = Table(show_header=True)
    t.add_column("key")
    t.add_column("name")
    t.add_column("details")
    for p in hits:
        t.add_row(p.key, p.display_name, format_main_line(p))
    console.print(t)
    return 0


# --- timers ---

def _timer_table(board: TimerBoard, now: Optional[datetime]) -> Table:
    t = Table(title=f"timers @ {format_clock(now)}")
    t.add_column("slot")
    t.add_column("time")
    t.add_column("phase")
    t.add_column("due")
    for label, rec in board.records.items():
        t.add_row(label, rec.time, _phase(rec.is_am), "yes" if label in board.due else "")
    return t


def cmd_timers(args, cfg: Config) -> int:
    backend = Backend.from_config(cfg)
    if not backend.configured:
        warn("SUPABASE_URL / SUPABASE_API_KEY not set")
        return 2
    board = TimerBoard.from_row(backend.load_timers())
    now = _at(args.at)
    if args.action == "next":
        board.check_due(now)
        console.print(_timer_table(board, now))
        nxt = board.next_due(now)
        console.print(f"next: [bold]{nxt[0]} {nxt[1]}[/bold]" if nxt else "next: -")
        return 0

    def _alert(labels: List[str]) -> None:
        for label in labels:
            console.print(f"[bold red]DUE[/bold red] {label} ({TONES[label]} Hz)")

    try:
        poll_due(board, _alert, interval=cfg.due_check_seconds, ticks=args.ticks)
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="shiftboard", description="Floor dashboard helpers")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("rotation", help="extra-sample rotation")
    r.add_argument("action", choices=["pick", "preview", "reset"])
    r.add_argument("--active", default="", help="comma-separated active item ids, in order")
    r.add_argument("--unavailable", default="", help="comma-separated unavailable item ids")
    r.add_argument("--state", default=None, help="rotation state file")
    r.set_defaults(func=cmd_rotation)

    t = sub.add_parser("time", help="12-hour clock helpers")
    t.add_argument("action", choices=["normalize", "phase", "advance"])
    t.add_argument("value")
    t.add_argument("minutes", nargs="?", type=int, default=0)
    t.add_argument("--pm", action="store_true", help="treat VALUE as PM when advancing")
    t.add_argument("--at", default=None)
    t.set_defaults(func=cmd_time)

    lot = sub.add_parser("lot", help="production day, lot code, best-by")
    lot.add_argument("--at", default=None)
    lot.set_defaults(func=cmd_lot)

    sh = sub.add_parser("shift", help="weekly test shift")
    sh.add_argument("--schedule", default=None)
    sh.add_argument("--at", default=None)
    sh.set_defaults(func=cmd_shift)

    pr = sub.add_parser("products", help="product search (cached catalog)")
    pr.add_argument("action", choices=["search"])
    pr.add_argument("query")
    pr.add_argument("--limit", type=int, default=10)
    pr.add_argument("--refresh", action="store_true", help="ignore the cache and refetch")
    pr.set_defaults(func=cmd_products)

    tm = sub.add_parser("timers", help="timer slots from the backend")
    tm.add_argument("action", choices=["next", "watch"])
    tm.add_argument("--ticks", type=int, default=None)
    tm.add_argument("--at", default=None)
    tm.set_defaults(func=cmd_timers)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args, Config.from_env())


if __name__ == "__main__":
    sys.exit(main())
