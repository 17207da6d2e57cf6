from __future__ import annotations

import argparse

from .logging_setup import setup_logging
from .seed import seed_base
from .settings import get_settings
from .store import TABLES, init_db, select_rows

LIST_ORDER = {
    "calendar_events": ("date", True),
    "communications": ("date", False),
    "dentists": ("name", True),
    "staff": ("name", True),
}


def cmd_init(args: argparse.Namespace) -> None:
    init_db()
    seed_base()
    print("DB initialized and base roster seeded.")


def cmd_list(args: argparse.Namespace) -> None:
    order, ascending = LIST_ORDER[args.table]
    rows = select_rows(args.table, order=order, ascending=ascending)
    if not rows:
        print(f"No rows in {args.table}.")
        return

    for r in rows:
        if args.table == "calendar_events":
            print(f"{r['id']} | {r['date']} {r['time'] or '--:--'} | {r['status']} | {r['title']}")
        elif args.table == "communications":
            print(f"{r['id']} | {r['date']} | {r['patient_first_name']} {r['patient_last_name']} | "
                  f"{r['referral_type']} | by {r['created_by']} | event {r['appointment_id'] or '-'}")
        else:
            print(f"{r['id']} | {r['name']}")


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("patient_ops.api_main:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="patient-ops", description="Patient Operations data service")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Create tables and seed the base roster")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="List the rows of a table")
    p_list.add_argument("table", choices=sorted(TABLES))
    p_list.set_defaults(func=cmd_list)

    p_serve = sub.add_parser("serve", help="Run the data API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=cmd_serve)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(get_settings().log_level)
    init_db()  # make sure the tables exist
    args.func(args)


if __name__ == "__main__":
    main()
