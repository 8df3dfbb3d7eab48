"""Command-line access to the compliance service.

Sessions persist between invocations through the configured credential store,
so a typical run looks like::

    compliance-client login --email me@example.com
    compliance-client analyze plans/level1.png --name "Level 1"
    compliance-client stats
    compliance-client logout

Results are printed as JSON on stdout; errors go to stderr with a non-zero
exit code.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any, Callable, Optional

from compliance_client.context import ComplianceClient
from compliance_client.core.config import get_settings
from compliance_client.core.errors import (
    ComplianceClientError,
    InvalidCredentials,
    RequestFailed,
    SessionExpired,
    ValidationError,
    WorkflowStateError,
)
from compliance_client.core.logging import configure_logging
from compliance_client.schemas import RegistrationRequest
from compliance_client.services.statistics import recent, summarize

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_REQUEST_ERROR = 4
EXIT_RUNTIME_ERROR = 5

ClientFactory = Callable[[], ComplianceClient]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compliance-client",
        description="Upload floor plans and review accessibility compliance analyses.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Sign in and persist the session.")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", help="Prompted for when omitted.")

    register_parser = subparsers.add_parser("register", help="Create an account.")
    register_parser.add_argument("--email", required=True)
    register_parser.add_argument("--first-name")
    register_parser.add_argument("--last-name")
    register_parser.add_argument("--password", help="Prompted for when omitted.")
    register_parser.add_argument(
        "--password-confirm", help="Prompted for when omitted."
    )

    subparsers.add_parser("logout", help="Forget the stored session.")
    subparsers.add_parser("whoami", help="Show the signed-in user.")

    analyze_parser = subparsers.add_parser("analyze", help="Upload a floor plan image.")
    analyze_parser.add_argument("path", help="Image file to analyze (max 10MB).")
    analyze_parser.add_argument("--name", default="", help="Label for the analysis.")
    analyze_parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the result without acknowledging it.",
    )

    list_parser = subparsers.add_parser("list", help="List stored analyses.")
    list_parser.add_argument(
        "--recent",
        type=int,
        default=None,
        help="Only show the newest N analyses.",
    )

    show_parser = subparsers.add_parser("show", help="Show one analysis.")
    show_parser.add_argument("analysis_id")

    delete_parser = subparsers.add_parser("delete", help="Delete one analysis.")
    delete_parser.add_argument("analysis_id")

    stats_parser = subparsers.add_parser("stats", help="Summarize stored analyses.")
    stats_parser.add_argument(
        "--server",
        action="store_true",
        help="Also fetch the summary computed by the backend.",
    )

    subparsers.add_parser("health", help="Check that the backend is reachable.")
    return parser


def _prompt_password(value: Optional[str], prompt: str) -> str:
    return value if value is not None else getpass.getpass(prompt)


async def _run_command(args: argparse.Namespace, client: ComplianceClient) -> Any:
    command: str = args.command

    if command == "login":
        password = _prompt_password(args.password, "Password: ")
        profile = await client.auth.login(args.email, password)
        return {"logged_in": True, "user": profile.model_dump(mode="json")}

    if command == "register":
        password = _prompt_password(args.password, "Password: ")
        confirm = _prompt_password(args.password_confirm, "Confirm password: ")
        result = await client.auth.register(
            RegistrationRequest(
                email=args.email,
                password=password,
                password_confirm=confirm,
                first_name=args.first_name,
                last_name=args.last_name,
            )
        )
        return {
            "session_established": result.session_established,
            "user": (
                result.profile.model_dump(mode="json")
                if result.profile
                else result.payload
            ),
        }

    if command == "logout":
        client.auth.logout()
        return {"logged_in": False}

    if command == "whoami":
        profile = client.session.profile
        if profile is None:
            raise SessionExpired("Not logged in.")
        return {**profile.model_dump(mode="json"), "display_name": profile.display_name}

    if command == "analyze":
        workflow = client.new_workflow()
        await workflow.select_path(args.path)
        record = await workflow.submit(args.name, persist_immediately=not args.preview)
        return {
            "state": workflow.state.value,
            "analysis": record.model_dump(mode="json") if record else None,
        }

    if command == "list":
        records = await client.api.list_analyses()
        if args.recent is not None:
            records = recent(records, limit=args.recent)
        return [record.model_dump(mode="json") for record in records]

    if command == "show":
        record = await client.api.get_analysis(args.analysis_id)
        return record.model_dump(mode="json")

    if command == "delete":
        await client.new_workflow().delete(args.analysis_id)
        return {"deleted": args.analysis_id}

    if command == "stats":
        records = await client.api.list_analyses()
        summary = summarize(records)
        output: dict[str, Any] = {
            **summary.model_dump(mode="json"),
            "trend": summary.trend,
            "monthly": [
                {"label": bucket.label, "count": bucket.count} for bucket in summary.monthly
            ],
        }
        if args.server:
            output["server"] = (await client.api.server_statistics()).model_dump(mode="json")
        return output

    if command == "health":
        return await client.api.health_check()

    raise ValueError(f"Unknown command {command!r}")


def _exit_code_for(exc: ComplianceClientError) -> int:
    if isinstance(exc, (ValidationError, WorkflowStateError)):
        return EXIT_VALIDATION_ERROR
    if isinstance(exc, (InvalidCredentials, SessionExpired)):
        return EXIT_AUTH_ERROR
    if isinstance(exc, RequestFailed):
        return EXIT_REQUEST_ERROR
    return EXIT_RUNTIME_ERROR


async def _main_async(args: argparse.Namespace, client_factory: ClientFactory) -> int:
    async with client_factory() as client:
        try:
            result = await _run_command(args, client)
        except ComplianceClientError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            fields = getattr(exc, "fields", None)
            if fields:
                for name, messages in fields.items():
                    print(f"  {name}: {'; '.join(messages)}", file=sys.stderr)
            return _exit_code_for(exc)
    print(json.dumps(result, indent=2, default=str))
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    *,
    client_factory: ClientFactory | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if client_factory is None:
        configure_logging(get_settings().log_level)
        client_factory = ComplianceClient

    try:
        return asyncio.run(_main_async(args, client_factory))
    except FileNotFoundError as exc:
        print(f"File not found: {exc.filename}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
