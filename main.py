#!/usr/bin/env python3
"""
Storefront admin -- command line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py bootstrap-admin --name "Shop Owner" --email owner@example.com --phone 5550100

Environment variables (see core/config.py for the full list):
  JWT_SECRET     Required. At least 32 characters.
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file next to this script.
  CLOUDINARY_*   Cloud name, API key and secret for image uploads.
"""

import argparse
import getpass
import sys

from auth import accounts
from auth.store import UserStore
from core.config import get_settings
from core.errors import ConfigurationError, ConflictError, ValidationError


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _bootstrap_admin(args: argparse.Namespace) -> int:
    """Create the single admin account from the terminal instead of over HTTP."""
    settings = get_settings()
    password = args.password or getpass.getpass("Admin password: ")
    store = UserStore(settings.database_url)
    try:
        admin = accounts.register(store, args.name, args.email, args.phone, password)
    except (ConflictError, ValidationError) as e:
        print(f"  [!] {e.message}")
        return 1
    finally:
        store.close()
    print(f"  Admin account created: {admin.email} (id {admin.id})")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="shopadmin",
        description="Storefront admin REST API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, help="Port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    boot = sub.add_parser("bootstrap-admin", help="Create the admin account if none exists")
    boot.add_argument("--name", required=True)
    boot.add_argument("--email", required=True)
    boot.add_argument("--phone", required=True)
    boot.add_argument("--password", help="Prompted for when omitted")
    boot.set_defaults(func=_bootstrap_admin)

    args = parser.parse_args()
    try:
        code = args.func(args)
    except ConfigurationError as e:
        print(f"  [!] Configuration error: {e.message}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
