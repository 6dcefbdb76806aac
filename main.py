#!/usr/bin/env python3
"""
APIREST -- user registration service with JWT authentication.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py register --name "Juan Rodriguez" --email juan@rodriguez.org \
      --password hunter22 --phone 1234567:1:57
  python main.py list-users
  python main.py list-users --db sqlite:///other.db

Environment variables (or .env):
  SECRET_KEY    JWT signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL of the user database. Defaults to ./apirest.db.
"""

import argparse
import json
import sys
from typing import Optional

from core.config import get_settings
from users.exceptions import UserError
from users.models import Phone, User
from users.service import UserService
from users.store import UserStore


def _parse_phone(value: str) -> Phone:
    """Parse NUMBER:CITYCODE:COUNTRYCODE into a Phone."""
    parts = value.split(":")
    if len(parts) != 3 or not all(p.strip() for p in parts):
        raise argparse.ArgumentTypeError(f"'{value}' is not NUMBER:CITYCODE:COUNTRYCODE")
    number, citycode, country_code = (p.strip() for p in parts)
    return Phone(number=number, citycode=citycode, country_code=country_code)


def _user_summary(user: User) -> dict:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "phones": [{"number": p.number, "citycode": p.citycode, "contrycode": p.country_code} for p in user.phones],
        "created": user.created,
        "modified": user.modified,
        "lastLogin": user.last_login,
        "isActive": user.is_active,
    }


def _open_service(db_url: Optional[str]) -> UserService:
    settings = get_settings()
    store = UserStore(db_url=db_url or settings.database_url)
    return UserService(store, password_pattern=settings.password_pattern)


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    service = _open_service(args.db)
    try:
        user = service.register(args.name, args.email, args.password, args.phone or [])
    except UserError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1
    finally:
        service.store.close()
    print(json.dumps({**_user_summary(user), "token": user.token}, indent=2, ensure_ascii=False))
    return 0


def cmd_list_users(args: argparse.Namespace) -> int:
    service = _open_service(args.db)
    try:
        users = service.list_users()
    finally:
        service.store.close()
    print(json.dumps([_user_summary(u) for u in users], indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apirest",
        description="User registration service with JWT authentication.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    register = sub.add_parser("register", help="Register a user and print its token")
    register.add_argument("--name", required=True)
    register.add_argument("--email", required=True)
    register.add_argument("--password", required=True)
    register.add_argument(
        "--phone",
        action="append",
        type=_parse_phone,
        metavar="NUMBER:CITY:COUNTRY",
        help="Phone as NUMBER:CITYCODE:COUNTRYCODE (repeatable)",
    )
    register.add_argument("--db", default=None, help="Database URL (defaults to DATABASE_URL)")
    register.set_defaults(func=cmd_register)

    list_users = sub.add_parser("list-users", help="Print every registered user as JSON")
    list_users.add_argument("--db", default=None, help="Database URL (defaults to DATABASE_URL)")
    list_users.set_defaults(func=cmd_list_users)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
