"""Command-line interface for Rentvest.

Thin wrapper over RentvestSession for inspecting the endpoint catalog and
exercising backends by hand.

Exit codes: 0 success, 1 API failure, 2 usage error.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from rentvest.core.api.http.errors import ApiError
from rentvest.core.config.loader import configure_logging, load_app_config
from rentvest.core.config.models import AppConfig
from rentvest.core.endpoints.catalog import Backend
from rentvest.core.services.models import AuthSession, UserRole
from rentvest.core.session import RentvestSession

console = Console()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_API_ERROR = 1
EXIT_USAGE = 2


def parse_params(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated ``--param key=value`` options.

    Raises:
        ValueError: If an item has no ``=``
    """
    params: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        params[key] = value
    return params


def parse_data(raw: str | None) -> Any:
    """Parse the ``--data`` JSON body.

    Raises:
        ValueError: If the value is not valid JSON
    """
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"--data is not valid JSON: {e}") from e


def print_payload(payload: Any) -> None:
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(payload, (dict, list)):
        console.print_json(data=payload)
    elif payload is not None:
        console.print(str(payload))


def endpoints_table(session: RentvestSession, backend: str | None = None) -> Table:
    table = Table(title="Rentvest endpoints")
    table.add_column("Backend", style="cyan")
    table.add_column("Operation")
    table.add_column("Method", style="magenta")
    table.add_column("URL")
    table.add_column("Auth", justify="center")
    for b, name, spec in session.catalog.operations():
        if backend and b.value != backend:
            continue
        url = f"{session.catalog.services.url_for(b.value)}{spec.path_template}"
        table.add_row(b.value, name, spec.method.value, url, "yes" if spec.auth_required else "")
    return table


async def cmd_endpoints(session: RentvestSession, args: argparse.Namespace) -> int:
    console.print(endpoints_table(session, args.backend))
    return EXIT_OK


async def cmd_call(session: RentvestSession, args: argparse.Namespace) -> int:
    endpoint = session.catalog.resolve(args.backend, args.operation, *args.args)
    request = endpoint.request(data=parse_data(args.data), params=parse_params(args.param))
    body = await session.api.call(request)
    print_payload(body)
    return EXIT_OK


async def cmd_login(session: RentvestSession, args: argparse.Namespace) -> int:
    auth = session.auth(args.role)
    password = args.password or getpass.getpass("Password: ")
    result = await auth.login(args.identifier, password)
    if not isinstance(result, AuthSession):
        otp = args.otp or console.input("OTP: ")
        result = await auth.verify_login_otp(args.identifier, otp)
    name = result.user.email if result.user else args.identifier
    console.print(f"[green]Logged in as {name} ({auth.role.value})[/green]")
    return EXIT_OK


async def cmd_logout(session: RentvestSession, args: argparse.Namespace) -> int:
    await session.auth(args.role).logout()
    console.print("[green]Logged out[/green]")
    return EXIT_OK


async def cmd_whoami(session: RentvestSession, args: argparse.Namespace) -> int:
    profile = await session.auth(args.role).get_profile()
    print_payload(profile)
    return EXIT_OK


COMMANDS = {
    "endpoints": cmd_endpoints,
    "call": cmd_call,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
}


async def run_command(
    args: argparse.Namespace,
    session: RentvestSession | None = None,
    app_config: AppConfig | None = None,
) -> int:
    """Run one parsed command and map failures to exit codes.

    A session is created (and closed) here unless one is passed in.
    """
    owns_session = session is None
    if session is None:
        session = RentvestSession(app_config=app_config or load_app_config(args.app_config))
    try:
        return await COMMANDS[args.cmd](session, args)
    except ApiError as e:
        console.print(f"[red]ERROR: {e.display_message()}[/red]")
        logger.debug(f"Command {args.cmd} failed: {e}")
        return EXIT_API_ERROR
    except (KeyError, ValueError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return EXIT_USAGE
    finally:
        if owns_session:
            await session.aclose()


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="rentvest",
        description="Rentvest - typed client for the rental/investment marketplace backends",
    )
    p.add_argument(
        "--app-config",
        default="rentvest.yaml",
        help="Path to app config (JSON or YAML, default: rentvest.yaml)",
    )
    p.add_argument("--log-level", default=None, help="Override the configured log level")
    sub = p.add_subparsers(dest="cmd", required=True)

    endpoints = sub.add_parser("endpoints", help="List catalog endpoints")
    endpoints.add_argument("--backend", choices=[b.value for b in Backend], default=None)

    call = sub.add_parser("call", help="Call one catalog operation")
    call.add_argument("backend", choices=[b.value for b in Backend])
    call.add_argument("operation")
    call.add_argument("args", nargs="*", help="Path arguments")
    call.add_argument("--param", action="append", help="Query parameter key=value (repeatable)")
    call.add_argument("--data", default=None, help="JSON request body")

    roles = [r.value for r in UserRole]
    login = sub.add_parser("login", help="Log in and store the session token")
    login.add_argument("identifier", help="Email or phone")
    login.add_argument("--role", choices=roles, default=UserRole.RENTER_INVESTOR.value)
    login.add_argument("--password", default=None, help="Password (prompted when omitted)")
    login.add_argument("--otp", default=None, help="Login OTP (prompted when required)")

    logout = sub.add_parser("logout", help="Clear the stored session")
    logout.add_argument("--role", choices=roles, default=UserRole.RENTER_INVESTOR.value)

    whoami = sub.add_parser("whoami", help="Show the current profile")
    whoami.add_argument("--role", choices=roles, default=UserRole.RENTER_INVESTOR.value)

    return p


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    try:
        app_config = load_app_config(args.app_config)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        return EXIT_USAGE
    if args.log_level:
        app_config.logging.level = args.log_level.upper()
    configure_logging(app_config)

    return asyncio.run(run_command(args, app_config=app_config))


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
