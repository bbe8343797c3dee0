"""
CRM Portal Client Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local storage schema, restores any persisted session, and runs one
command against the CRM API.  Every subsystem is wired here, with no
module-level globals.

Usage::

    python main.py status
    python main.py login --email a@b.com --role admin
    python main.py signup --username alice --email a@b.com --country IN
    python main.py logout
"""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path
from typing import Optional, Sequence

import httpx

from crm_portal.auth import SessionManager
from crm_portal.config import AppConfig, get_config
from crm_portal.database import DatabaseManager
from crm_portal.errors import MalformedResponseError, describe_error
from crm_portal.http_client import create_http_client
from crm_portal.logger import StructuredLogger, get_logger
from crm_portal.models.auth_models import LoginCredentials, SignupData
from crm_portal.models.enums import UserRole
from crm_portal.navigation import HistoryNavigator
from crm_portal.schema import initialize_schema
from crm_portal.services import ServiceContainer, create_services


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crm-portal", description="CRM portal session client")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show the restored session")

    login = sub.add_parser("login", help="Sign in and persist the session")
    login.add_argument("--email", required=True)
    login.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.ADMIN.value)

    signup = sub.add_parser("signup", help="Register a new account")
    signup.add_argument("--username", required=True)
    signup.add_argument("--email", required=True)
    signup.add_argument("--country", default="")
    signup.add_argument("--country-code", default="")
    signup.add_argument("--contact-no", default="")
    signup.add_argument("--promo-code")
    signup.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.ADMIN.value)

    sub.add_parser("logout", help="Sign out and clear stored credentials")
    return parser


def _run_command(
    args: argparse.Namespace,
    services: ServiceContainer,
    session: SessionManager,
) -> int:
    auth = services["auth_service"]

    if args.command == "login":
        password = getpass.getpass("Password: ")
        try:
            auth.login(LoginCredentials(email=args.email, password=password, role=args.role))
        except (httpx.HTTPError, MalformedResponseError) as exc:
            print(f"Login failed: {describe_error(exc)}", file=sys.stderr)
            return 1

    elif args.command == "signup":
        password = getpass.getpass("Password: ")
        try:
            auth.signup(SignupData(
                username=args.username,
                email=args.email,
                password=password,
                country=args.country,
                country_code=args.country_code,
                contact_no=args.contact_no,
                promo_code=args.promo_code,
                role=args.role,
            ))
        except httpx.HTTPError as exc:
            print(f"Signup failed: {describe_error(exc)}", file=sys.stderr)
            return 1
        print("Registration submitted. Sign in with `login`.")
        return 0

    elif args.command == "logout":
        auth.logout()

    current = session.current_session
    if current is None:
        print("Signed out.")
    else:
        info = current.tenant_info()
        print(
            f"Signed in as {current.username or current.email} "
            f"({info.role.value}) in tenant {info.tenant_name} [{info.tenant_id}]"
        )
    return 0


def main(argv: Optional[Sequence[str]] = None, config: Optional[AppConfig] = None) -> int:
    """Application entry point: wire dependencies and run one command."""
    args = _build_parser().parse_args(argv)
    if args.command is None:
        args.command = "status"

    logger: StructuredLogger = get_logger("main")
    config = config or get_config()

    db = DatabaseManager(
        sqlite_path=Path(config.STORAGE_PATH),
        logger=StructuredLogger(name="database"),
    )
    http = create_http_client(config)
    try:
        initialize_schema(db.sqlite, StructuredLogger(name="schema"))

        session = SessionManager()
        navigator = HistoryNavigator(initial_path=config.DASHBOARD_PATH)
        services = create_services(
            db=db,
            config=config,
            session=session,
            http=http,
            navigator=navigator,
        )
        services["route_guard"].start()
        services["auth_service"].restore_session()

        return _run_command(args, services, session)
    finally:
        http.close()
        db.close()
        logger.info("CRM portal client shut down.")


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
