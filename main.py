"""CLI entry point for the talent alerts service."""

import argparse
import asyncio
import json
import logging
import sys

from talent_alerts.core.config import Settings
from talent_alerts.core.errors import AlertsError
from talent_alerts.core.schemas import ActionResult
from talent_alerts.wiring import CANDIDATE_DIGEST, NEWSLETTER, Services, build_services

CAMPAIGN_ACTIONS = ["state", "generate", "send-test", "send", "reset"]


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Talent alerts - job roundups, candidate digests and newsletters",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- serve ---
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server and daily scheduler")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    _add_common(serve_parser)

    # --- roundup ---
    roundup_parser = subparsers.add_parser("roundup", help="Send the daily job roundup now")
    _add_common(roundup_parser)

    # --- single-job ---
    single_parser = subparsers.add_parser("single-job", help="Send an alert for one live job ad")
    single_parser.add_argument("ad_id", type=int, help="JobAdder job ad id")
    _add_common(single_parser)

    # --- stateful campaigns ---
    for name, help_text in (
        ("digest", "Candidate digest actions"),
        ("newsletter", "Content newsletter actions"),
    ):
        campaign_parser = subparsers.add_parser(name, help=help_text)
        campaign_parser.add_argument("action", choices=CAMPAIGN_ACTIONS)
        _add_common(campaign_parser)

    # --- auth-url ---
    auth_parser = subparsers.add_parser("auth-url", help="Print the JobAdder authorization URL")
    _add_common(auth_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def print_result(result: ActionResult) -> None:
    status = "OK" if result.success else f"FAILED [{result.error}]"
    print(f"{status}: {result.message}")


async def run_campaign_action(services: Services, command: str, action: str) -> ActionResult | None:
    """Run one campaign action; ``state`` prints the snapshot and returns None."""
    machine = services.campaign(CANDIDATE_DIGEST if command == "digest" else NEWSLETTER)
    assert machine is not None
    try:
        if action == "state":
            print(json.dumps(machine.get_state().to_json_dict(), indent=2))
            return None
        if action == "generate":
            return await machine.generate()
        if action == "send-test":
            return await machine.send_test()
        if action == "send":
            result = await machine.send_to_all()
            # let the deferred reset run before the loop closes
            await asyncio.sleep(services.settings.campaigns.reset_delay_s + 0.1)
            return result
        return await machine.reset()
    finally:
        await services.aclose()


async def run_roundup(services: Services, ad_id: int | None = None) -> ActionResult:
    try:
        if ad_id is None:
            return await services.roundup.send_daily_roundup()
        return await services.roundup.send_single_job_alert(ad_id)
    finally:
        await services.aclose()


def cmd_serve(services: Services, host: str, port: int) -> None:
    import uvicorn

    from talent_alerts.api.app import create_app

    app = create_app(services)
    print(f"Serving on http://{host}:{port} (authorized: {services.ats.is_authorized()})")
    uvicorn.run(app, host=host, port=port)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
        services = build_services(settings)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "serve":
        cmd_serve(services, args.host, args.port)
        return

    if args.command == "auth-url":
        print(services.ats.authorization_url())
        return

    if not services.ats.is_authorized():
        print("JobAdder is not authorized. Run 'python main.py serve' and visit /auth/jobadder.", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command in ("digest", "newsletter"):
            result = asyncio.run(run_campaign_action(services, args.command, args.action))
        elif args.command == "single-job":
            result = asyncio.run(run_roundup(services, args.ad_id))
        else:
            result = asyncio.run(run_roundup(services))
    except AlertsError as e:
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(1)

    if result is not None:
        print_result(result)
        if not result.success:
            sys.exit(1)


if __name__ == "__main__":
    main()
