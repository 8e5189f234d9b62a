#!/usr/bin/env python3
"""
agenda-api -- Command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py create-user --name Ana --email ana@x.com
  python main.py create-user --name Ana --email ana@x.com --admin

Environment variables (see core/config.py):
  JWT_SECRET       Required. Token signing secret, at least 32 characters.
  JWT_EXPIRES_IN   Required. Token lifetime in seconds.
  DATABASE_URL     Optional. SQLAlchemy URL, defaults to ./agenda.db (SQLite).

create-user is the bootstrap path for the first administrator: POST /user
refuses isAdmin=true unless ALLOW_ADMIN_SIGNUP is enabled.
"""

import argparse
import getpass
import sys

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings
from core.errors import AgendaError

_MIN_PASSWORD_LENGTH = 6


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    # Fail before binding the port if the environment is incomplete.
    get_settings()
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    settings = get_settings()
    password = getpass.getpass("Senha: ")
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] A senha deve ter no mínimo {_MIN_PASSWORD_LENGTH} caracteres.")
        return 1
    if password != getpass.getpass("Confirme a senha: "):
        print("  [!] As senhas não conferem.")
        return 1

    store = UserStore(settings.database_url, settings.db_connect_timeout)
    try:
        user_id = store.create_user(
            User(
                name=args.name,
                email=args.email,
                hashed_password=hash_password(password),
                is_admin=args.admin,
            )
        )
    except AgendaError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()

    role = "administrador" if args.admin else "usuário"
    print(f"  {role.capitalize()} '{args.name}' criado (id={user_id}).")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="agenda-api",
        description="Event calendar API with one event per day.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  JWT_SECRET=... JWT_EXPIRES_IN=86400 python main.py create-user --name Ana --email ana@x.com --admin
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=5002, help="Bind port (default: 5002)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Create a user directly in the database")
    create.add_argument("--name", required=True, help="Display name; shown as the owner of the user's events")
    create.add_argument("--email", required=True, help="Login email (unique, case-sensitive)")
    create.add_argument("--admin", action="store_true", help="Grant admin rights (may create and manage events)")
    create.set_defaults(func=_create_user)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
