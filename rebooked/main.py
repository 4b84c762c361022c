"""
CLI エントリーポイント。split / quote / health / check-env / pending を処理。
"""
from __future__ import annotations

import argparse
import getpass
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# プロジェクトルートをパスに追加
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _print_json(value) -> None:
    print(json.dumps(value, ensure_ascii=False, indent=2, default=str))


def cmd_split(args: argparse.Namespace) -> int:
    from rebooked.config import load_config
    from rebooked.payments.split import calculate_payment_split

    rate = float(load_config()["payments"]["commission_rate"])
    split = calculate_payment_split(args.price, args.delivery, commission_rate=rate)
    _print_json(asdict(split))
    return 0


def cmd_quote(args: argparse.Namespace) -> int:
    from rebooked.courier.models import Address, Parcel, QuoteRequest
    from rebooked.courier.pricing import calculate_zone, get_courier_guy_quotes

    origin = Address(city=args.from_city, province=args.from_province)
    destination = Address(city=args.to_city, province=args.to_province)
    quotes = get_courier_guy_quotes(QuoteRequest(origin, destination, Parcel(weight=args.weight)))
    _print_json({
        "zone": calculate_zone(origin, destination),
        "quotes": [asdict(q) for q in quotes],
    })
    return 0


def _context():
    from rebooked.backend.client import BackendContext
    from rebooked.config import load_config, load_settings

    config = load_config()
    return BackendContext(
        load_settings(),
        timeout_sec=int(config["http"]["timeout_sec"]),
        commission_rate=float(config["payments"]["commission_rate"]),
        commit_window_hours=int(config["commit"]["window_hours"]),
    )


def cmd_health(args: argparse.Namespace) -> int:
    from rebooked.backend.functions import check_all
    from rebooked.constants import EDGE_FUNCTIONS

    ctx = _context()
    try:
        names = args.function or EDGE_FUNCTIONS
        results = check_all(ctx, names)
        connected = ctx.test_connection()
    finally:
        ctx.close()
    _print_json({"database_connected": connected, "functions": results})
    return 0 if connected and all(r["success"] for r in results) else 1


def cmd_check_env(args: argparse.Namespace) -> int:
    from rebooked.config import OPTIONAL_ENV, missing_required_env

    missing = missing_required_env()
    absent_optional = [k for k in OPTIONAL_ENV if not os.getenv(k)]
    _print_json({"missing_required": missing, "missing_optional": absent_optional})
    return 1 if missing else 0


def cmd_pending(args: argparse.Namespace) -> int:
    from rebooked.backend.auth import sign_in_with_password
    from rebooked.workflow.commit import CommitWorkflow

    email = args.email or os.getenv("REBOOKED_EMAIL") or input("Email: ")
    password = os.getenv("REBOOKED_PASSWORD") or getpass.getpass("Password: ")
    ctx = _context()
    try:
        sign_in_with_password(ctx, email, password)
        pending = CommitWorkflow(ctx).refresh_pending_commits()
    finally:
        ctx.close()
    _print_json([asdict(p) for p in pending])
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ReBooked marketplace tools")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("split", help="Show the seller/platform/courier split for a sale")
    p.add_argument("price", type=float, help="Book price in rand")
    p.add_argument("--delivery", type=float, default=0, help="Delivery fee in rand")
    p.set_defaults(func=cmd_split)

    p = sub.add_parser("quote", help="Courier Guy quotes between two places")
    p.add_argument("--from-city", required=True)
    p.add_argument("--from-province", required=True)
    p.add_argument("--to-city", required=True)
    p.add_argument("--to-province", required=True)
    p.add_argument("--weight", type=float, default=1.0, help="Parcel weight in kg")
    p.set_defaults(func=cmd_quote)

    p = sub.add_parser("health", help="Check the database and edge functions")
    p.add_argument("--function", action="append", metavar="NAME", help="Only this function (repeatable)")
    p.set_defaults(func=cmd_health)

    p = sub.add_parser("check-env", help="List missing environment variables")
    p.set_defaults(func=cmd_check_env)

    p = sub.add_parser("pending", help="List the signed-in seller's pending commits")
    p.add_argument("--email", help="Account email (or REBOOKED_EMAIL)")
    p.set_defaults(func=cmd_pending)
    return parser


def main(argv=None) -> None:
    from rebooked.util.errors import RebookedError
    from rebooked.util.log import setup_logging

    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        sys.exit(0)
    try:
        code = args.func(args)
    except RebookedError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
