"""Command-line interface for the user portal."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from getpass import getpass
from typing import Sequence

from userportal.config import Settings, load_settings, resolve_config_path
from userportal.errors import PortalError, StorageError
from userportal.registration import register_user
from userportal.store import JsonUserStore

logger = logging.getLogger("userportal.main")


_COMMANDS = ("serve", "init-store", "list-users", "add-user")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    # SUPPRESS keeps a subcommand from resetting a --config given before it.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help="Path to the YAML settings file (default: config/portal.yaml or PORTAL_CONFIG)",
    )

    parser = argparse.ArgumentParser(description="User portal utilities", parents=[common])
    subparsers = parser.add_subparsers(dest="command")
    parser.set_defaults(command="serve")

    subparsers.add_parser("init-store", parents=[common], help="Create an empty users file if none exists")
    subparsers.add_parser("list-users", parents=[common], help="Print the registered accounts")
    subparsers.add_parser("add-user", parents=[common], help="Register an account from the terminal")

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the HTTP portal")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 5000)")

    args_list = list(argv) if argv is not None else sys.argv[1:]

    # Without an explicit subcommand everything after the global options is
    # handed to serve.
    index = 0
    while index < len(args_list):
        token = args_list[index]
        if token == "--config":
            index += 2
        elif token.startswith("--config="):
            index += 1
        else:
            break
    remainder = args_list[index:]
    if not remainder or remainder[0] not in (*_COMMANDS, "-h", "--help"):
        args_list = [*args_list[:index], "serve", *remainder]

    args = parser.parse_args(args_list)
    if not hasattr(args, "config"):
        args.config = None
    return args


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = resolve_config_path(getattr(args, "config", None) or os.getenv("PORTAL_CONFIG"))
    try:
        return load_settings(config_path)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration in {config_path}: {exc}") from exc


def _load_store(settings: Settings) -> JsonUserStore:
    store = JsonUserStore(settings.users_path)
    try:
        store.load()
    except StorageError as exc:
        logger.error("%s", exc.message)
        raise SystemExit(
            f"Cannot start: {exc.message}. Run `python main.py init-store` to create it."
        ) from exc
    return store


def _serve(settings: Settings, *, host: str | None, port: int | None) -> None:
    from userportal.web import create_app
    import uvicorn

    store = _load_store(settings)
    try:
        app = create_app(store=store, settings=settings)
    except RuntimeError as exc:
        raise SystemExit(str(exc)) from exc

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Server running at http://%s:%s", bind_host, bind_port)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


def _init_store(settings: Settings) -> None:
    store = JsonUserStore(settings.users_path)
    if store.initialize():
        print(f"Created {settings.users_path}")
    else:
        print(f"{settings.users_path} already exists; leaving it untouched.")


def _list_users(settings: Settings) -> None:
    users = _load_store(settings).all()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>14}  {'Name':<24}  {'Email':<32}  Registered")
    print("-" * 90)
    for user in users:
        registered = user.registered_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:>14}  {user.name:<24}  {user.email:<32}  {registered}")


def _add_user(settings: Settings) -> None:
    store = _load_store(settings)
    print("Create a new user (leave the name blank to cancel).")
    name = input("Name: ").strip()
    if not name:
        print("User creation cancelled.")
        return
    email = input("Email address: ").strip()

    password = getpass("Password: ")
    if password != getpass("Confirm password: "):
        print("Passwords do not match.")
        return

    try:
        user = register_user(
            store,
            name,
            email,
            password,
            now=datetime.now(timezone.utc),
            rounds=settings.password_rounds,
        )
    except PortalError as exc:
        print(f"Failed to create user: {exc.message}")
        return

    print(f"Created user #{user.id}: {user.name} <{user.email}>")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _load_settings(args)

    if args.command == "serve":
        _serve(settings, host=getattr(args, "host", None), port=getattr(args, "port", None))
    elif args.command == "init-store":
        _init_store(settings)
    elif args.command == "list-users":
        _list_users(settings)
    elif args.command == "add-user":
        _add_user(settings)


if __name__ == "__main__":
    main()
