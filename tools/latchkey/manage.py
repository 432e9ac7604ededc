#!/usr/bin/env python3
"""CLI management tool for latchkey user accounts and logins.

Provides commands to:
- Generate a secret key for the config file
- Add, list, search and remove users
- Log in with a password (prints a token) or with a token
- Inspect the auth audit trail
- Run an interactive shell over all of the above
"""

import argparse
import getpass
import logging
import socket
import sys
from pathlib import Path

# Ensure latchkey package is importable when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from latchkey.auth.cipher import generate_secret
from latchkey.auth.errors import ConfigError, InvalidArgument, StoreUnavailable
from latchkey.auth.service import Authenticator
from latchkey.auth.store import SORT_FIELDS, SearchOptions
from latchkey.config import DEFAULT_CONFIG_PATH, load_config

logger = logging.getLogger("latchkey.manage")

SHELL_COMMANDS = "create, list, delete, login, login-token, search, help, exit"


def default_binding() -> str:
    """Binding used when none is given: this machine's host name."""
    return socket.gethostname()


def _print_users(users, auth: Authenticator) -> None:
    print(f"{'ID':<12} {'Username':<24} {'Email':<32}")
    print("-" * 68)
    for user in users:
        print(f"{auth.public_id(user):<12} {user.username:<24} {user.email or '-':<32}")


def generate_key(args, auth=None) -> int:
    """Print a new random secret key."""
    print(generate_secret())
    return 0


def add_user(args, auth: Authenticator) -> int:
    """Add a new user, prompting for the password if not provided."""
    username = args.username
    if args.password:
        password = args.password
    else:
        password = getpass.getpass(f"Password for {username}: ")
        if not password:
            print("Error: Password cannot be empty", file=sys.stderr)
            return 1

    try:
        user = auth.register(username, password, args.email or "")
    except InvalidArgument as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"✓ User created: {auth.public_id(user)} ({user.username})")
    return 0


def list_users(args, auth: Authenticator) -> int:
    """List all users."""
    users = auth.list_users()
    if not users:
        print("No users found")
        return 0

    _print_users(users, auth)
    return 0


def search_users(args, auth: Authenticator) -> int:
    """Search users by username or email substring."""
    try:
        options = SearchOptions(
            limit=args.limit,
            offset=args.offset,
            sort_field=args.sort,
            ascending=not args.desc,
        )
    except InvalidArgument as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    users = auth.search_users(args.query, options)
    if not users:
        print("No users found")
        return 0

    _print_users(users, auth)
    return 0


def remove_user(args, auth: Authenticator) -> int:
    """Remove a user by public id, asking for confirmation unless --yes."""
    user = auth.get_user(args.id)
    if user.is_empty:
        print(f"Error: User '{args.id}' not found", file=sys.stderr)
        return 1

    if not args.yes:
        response = input(f"Are you sure you want to delete '{user.username}' (y/N)? ")
        if response.strip().lower() != "y":
            print("Operation cancelled.")
            return 1

    if not auth.delete_user(args.id):
        print(f"Error: Failed to delete user '{user.username}'", file=sys.stderr)
        return 1

    print(f"✓ Removed user {args.id} ({user.username})")
    return 0


def login(args, auth: Authenticator) -> int:
    """Log in with a password and print the resulting token."""
    password = args.password or getpass.getpass("Password: ")
    result = auth.login_with_password(args.username, password, args.binding)
    if not result.ok:
        print("Login failed.", file=sys.stderr)
        return 1

    print(f"Welcome {result.user.username} your token is {result.token}")
    return 0


def login_token(args, auth: Authenticator) -> int:
    """Log in with a previously issued token."""
    result = auth.login_with_token(args.token, args.binding)
    if not result.ok:
        print("Login failed.", file=sys.stderr)
        return 1

    print(f"Welcome {result.user.username}")
    return 0


def show_audit(args, auth: Authenticator) -> int:
    """Print recent audit events."""
    events = auth.audit.query(event_type=args.event_type, limit=args.limit)
    if not events:
        print("No audit events found")
        return 0

    for event in events:
        extra = " ".join(
            f"{k}={v}" for k, v in event.items() if k not in ("timestamp", "event_type")
        )
        print(f"{event.get('timestamp', '?')} {event.get('event_type', '?'):<16} {extra}")
    return 0


def run_shell(args, auth: Authenticator) -> int:
    """Interactive loop over the same commands."""
    binding = args.binding
    while True:
        try:
            command = input(">> ").strip().lower()
        except EOFError:
            print()
            return 0

        if command == "create":
            username = input("Username: ").strip()
            if not username:
                print("Invalid username")
                continue
            password = getpass.getpass("Password: ")
            if not password:
                print("Invalid password")
                continue
            email = input("Email: ").strip()
            add_user(argparse.Namespace(username=username, password=password, email=email), auth)
        elif command == "list":
            list_users(args, auth)
        elif command == "delete":
            public_id = input("Enter the Id of the user to delete: ").strip()
            remove_user(argparse.Namespace(id=public_id, yes=False), auth)
        elif command == "login":
            username = input("Username: ").strip()
            password = getpass.getpass("Password: ")
            login(argparse.Namespace(username=username, password=password, binding=binding), auth)
        elif command == "login-token":
            token = input("Token: ").strip()
            login_token(argparse.Namespace(token=token, binding=binding), auth)
        elif command == "search":
            query = input("Enter the username to search: ").strip()
            search_users(
                argparse.Namespace(
                    query=query,
                    limit=args.search.limit,
                    offset=args.search.offset,
                    sort=args.search.sort_field,
                    desc=not args.search.ascending,
                ),
                auth,
            )
        elif command == "exit":
            print("Exiting...")
            return 0
        elif command in ("commands", "cmd", "help"):
            print(f"Commands: {SHELL_COMMANDS}")
        elif command:
            print(f"Invalid command: '{command}'")


COMMANDS = {
    "add-user": add_user,
    "list-users": list_users,
    "search": search_users,
    "remove-user": remove_user,
    "login": login,
    "login-token": login_token,
    "audit": show_audit,
    "shell": run_shell,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="latchkey",
        description="Manage latchkey user accounts and logins",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config.json (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--db-path", help="Path to SQLite database (overrides config)")
    parser.add_argument(
        "--log-level",
        "-l",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("generate-key", help="Print a new random secret key")

    add_parser = subparsers.add_parser("add-user", help="Add a new user")
    add_parser.add_argument("--username", required=True, help="Username")
    add_parser.add_argument("--email", default="", help="Email (optional)")
    add_parser.add_argument("--password", help="Password (prompted if omitted)")

    subparsers.add_parser("list-users", help="List all users")

    search_parser = subparsers.add_parser("search", help="Search users")
    search_parser.add_argument("--query", required=True, help="Username or email substring")
    search_parser.add_argument("--limit", type=int, help="Maximum results")
    search_parser.add_argument("--offset", type=int, help="Results to skip")
    search_parser.add_argument("--sort", choices=SORT_FIELDS, help="Sort field")
    search_parser.add_argument("--desc", action="store_true", default=None, help="Sort descending")

    remove_parser = subparsers.add_parser("remove-user", help="Remove a user")
    remove_parser.add_argument("--id", required=True, help="Public user id")
    remove_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    login_parser = subparsers.add_parser("login", help="Log in with a password")
    login_parser.add_argument("--username", required=True, help="Username or email")
    login_parser.add_argument("--password", help="Password (prompted if omitted)")
    login_parser.add_argument("--binding", default=None, help="Binding value (default: host name)")

    token_parser = subparsers.add_parser("login-token", help="Log in with a token")
    token_parser.add_argument("--token", required=True, help="Token from a previous login")
    token_parser.add_argument("--binding", default=None, help="Binding value (default: host name)")

    audit_parser = subparsers.add_parser("audit", help="Show recent auth events")
    audit_parser.add_argument("--event-type", help="Only this event type")
    audit_parser.add_argument("--limit", type=int, default=50, help="Maximum events")

    shell_parser = subparsers.add_parser("shell", help="Interactive shell")
    shell_parser.add_argument("--binding", default=None, help="Binding value (default: host name)")

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "generate-key":
        return generate_key(args)

    try:
        config = load_config(args.config)
        if args.db_path:
            config.db_path = args.db_path
        auth = Authenticator.from_config(config)
    except (ConfigError, StoreUnavailable) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Fill search and binding defaults from config/host
    if getattr(args, "binding", "") is None:
        args.binding = default_binding()
    if args.command == "search":
        args.limit = config.search.limit if args.limit is None else args.limit
        args.offset = config.search.offset if args.offset is None else args.offset
        args.sort = args.sort or config.search.sort_field
        args.desc = (not config.search.ascending) if args.desc is None else args.desc
    if args.command == "shell":
        args.search = config.search

    try:
        return COMMANDS[args.command](args, auth)
    except StoreUnavailable as e:
        logger.error(f"User store unavailable: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        auth.close()


if __name__ == "__main__":
    sys.exit(main())
