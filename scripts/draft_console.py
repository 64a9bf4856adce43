#!/usr/bin/env python3
"""
Interactive local draft console (no HTTP server).

Usage:
  python3 scripts/draft_console.py [YYYY-MM-DD]

What it does:
- Loads one day of bookings through the configured gateway (BOOKING_GATEWAY=mock for the demo data)
- Drives the same DraftReconciliationUseCase the API uses
- Prints the session after each command, with modified/conflicting markers
"""

from __future__ import annotations

import asyncio
import shlex
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schedule_draft.application.use_cases.draft_reconciliation import (  # noqa: E402
    DraftReconciliationUseCase,
    ReconciliationResult,
)
from schedule_draft.application.utils.transformers import calendar_date_range  # noqa: E402
from schedule_draft.domain.entities.schedule_session import ScheduleSession  # noqa: E402
from schedule_draft.wiring.dependencies import get_booking_gateway  # noqa: E402

HELP = """Commands:
  list                      show the current appointments
  optimize                  run the optimizer and enter draft mode
  move <id> <start> <end>   change start/end (ISO 8601)
  delete <id>               delete an appointment
  explain <id>              print the conflict explanation
  evaluate                  re-run conflict evaluation now
  save | reset              leave draft mode
  quit"""


def _print_session(uc: DraftReconciliationUseCase) -> None:
    session = uc.session
    mode = "DRAFT" if session.is_draft_mode else "normal"
    print(f"\n--- {mode} (revision {session.revision}) ---")
    for a in session.appointments:
        flags = ""
        if a.id in session.modified_event_ids:
            flags += " *"
        if a.has_conflicts:
            flags += " !"
        print(f"  {a.id:>16}  {a.start_time} -> {a.end_time}  {a.client_name} / {a.service} @ {a.room} ({a.provider}){flags}")
    if session.removed_event_ids:
        print(f"  removed: {', '.join(sorted(session.removed_event_ids))}")
    if session.notification:
        print(f"  [{session.notification.severity}] {session.notification.message}")


def _print_result(result: ReconciliationResult) -> None:
    if not result.success:
        revert = " (revert)" if result.revert else ""
        print(f"ERROR{revert}: {result.message}")


async def main() -> None:
    day = datetime.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else datetime(2025, 10, 2)
    start = day.replace(tzinfo=day.tzinfo or timezone.utc)
    uc = DraftReconciliationUseCase(gateway=get_booking_gateway(), session=ScheduleSession())

    _print_result(await uc.load_range(calendar_date_range(start, start + timedelta(days=1))))
    _print_session(uc)
    print(HELP)

    while True:
        try:
            line = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return
        if not line:
            continue

        cmd, *args = shlex.split(line)
        if cmd in ("quit", "exit"):
            print("Bye!")
            return
        if cmd == "help":
            print(HELP)
            continue
        if cmd == "explain" and len(args) == 1:
            text = uc.explain(args[0]) if uc.session.find(args[0]) else f"Appointment {args[0]} not found"
            print(text or "(no conflicts)")
            continue

        if cmd == "list":
            result = None
        elif cmd == "optimize":
            result = await uc.enter_draft()
        elif cmd == "move" and len(args) == 3:
            result = await uc.move_appointment(*args)
        elif cmd == "delete" and len(args) == 1:
            result = await uc.delete_appointment(args[0])
        elif cmd == "evaluate":
            result = await uc.refresh_conflicts()
        elif cmd == "save":
            result = await uc.save_draft()
        elif cmd == "reset":
            result = await uc.reset_draft()
        else:
            print(f"Unknown command: {line}")
            continue

        await uc.wait_for_background()
        if result is not None:
            _print_result(result)
        _print_session(uc)


if __name__ == "__main__":
    asyncio.run(main())
