"""
Command-line interface for contribforms.

Notes
-----
The CLI is intentionally thin. It parses arguments and delegates to
``contrib_engine.service``.

Safety posture
--------------
- Default: plan-only. Reads are performed, the form is validated and the
  resulting contract call is printed as JSON, but nothing is sent.
- --commit: submits the call. This needs a transaction sender; the plain RPC
  service refuses writes.

Exit codes
----------
0 success, 1 validation failed, 2 domain error.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from contrib_engine.category import CATEGORY_OPTIONS, find_category, validate_category
from contrib_engine.errors import ContribFormsError
from contrib_engine.service import FormRunResult, run_invite, run_request
from contrib_engine.settings_store import Settings, load_settings


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--data-root",
        default=None,
        help="Override the data root holding settings.json. If omitted, defaults are used.",
    )
    p.add_argument("--rpc-url", default=None, help="Override the NEAR JSON-RPC endpoint.")
    p.add_argument(
        "--viewer",
        default=None,
        help="Signed-in account used to list administered entities/projects.",
    )
    p.add_argument(
        "--commit",
        action="store_true",
        help="Send the contract call instead of printing it (requires a transaction sender).",
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="contribforms",
        description="Contribution marketplace forms",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    invite_p = sub.add_parser("invite", help="Invite an account to contribute to an entity")
    _add_common(invite_p)
    invite_p.add_argument("--entity", default=None, help="Entity sending the invitation")
    invite_p.add_argument("--account", default="", help="Account ID of the contributor")
    invite_p.add_argument(
        "--type", dest="contribution_type", default=None, help="Contribution type"
    )
    invite_p.add_argument(
        "--start-date", default=None, help="Start date (YYYY-MM-DD). Default: today."
    )
    invite_p.add_argument("--description", default="", help="Details of the contribution")
    invite_p.add_argument(
        "--permission",
        action="append",
        default=[],
        help="Permission to grant (Admin). Repeatable.",
    )

    request_p = sub.add_parser("request", help="Publish a contribution request for a project")
    _add_common(request_p)
    request_p.add_argument("--project", default=None, help="Project the request is made as")
    request_p.add_argument("--title", default="", help="Request title")
    request_p.add_argument("--description", default="", help="Request description")
    request_p.add_argument("--tag", action="append", default=[], help="Tag. Repeatable.")
    request_p.add_argument("--request-type", default=None, help="Request type")
    request_p.add_argument("--payment-type", default=None, help="Payment type")
    request_p.add_argument("--payment-source", default=None, help="Payment source")
    request_p.add_argument("--budget", default=None, help="Budget")
    request_p.add_argument("--deadline", default=None, help="Deadline (YYYY-MM-DD)")

    categories_p = sub.add_parser("categories", help="List project categories")
    categories_p.add_argument(
        "category",
        nargs="?",
        default=None,
        help="Check a category (value or label) instead of listing all of them.",
    )

    return parser


def _resolve_settings(args: argparse.Namespace) -> Settings:
    data_root = Path(args.data_root) if args.data_root else None
    settings = load_settings(data_root=data_root)
    if args.rpc_url:
        settings = replace(settings, rpc_url=args.rpc_url)
    return settings


def _categories(category: str | None) -> int:
    if category is None:
        for option in CATEGORY_OPTIONS:
            print(f"{option.value}\t{option.text}")
        return 0
    option = find_category(category)
    error = validate_category(option if option is not None else category.strip())
    if error:
        print(f"{error}: {category!r}")
        return 1
    print(f"{option.value}\t{option.text}")
    return 0


def _report(result: FormRunResult) -> int:
    if result.missing_reads:
        print(f"WARNING: could not load: {', '.join(result.missing_reads)}")
    if result.outcome.errors:
        print("Validation failed:")
        for name, message in sorted(result.outcome.errors.items()):
            print(f"  {name}: {message}")
        return 1
    if result.committed:
        print(f"Submitted {result.resource}.{result.method}")
        return 0
    print(json.dumps(result.planned_call(), indent=2, sort_keys=True))
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "categories":
        return _categories(args.category)

    settings = _resolve_settings(args)
    viewer = args.viewer or settings.account_id
    if not viewer:
        print("ERROR: no viewer account; pass --viewer or set account_id in settings.")
        return 2

    try:
        if args.command == "invite":
            result = run_invite(
                settings=settings,
                viewer_id=viewer,
                entity_id=args.entity,
                account_id=args.account,
                contribution_type=args.contribution_type,
                description=args.description,
                start_date=args.start_date,
                permissions=args.permission,
                commit=args.commit,
            )
        elif args.command == "request":
            result = run_request(
                settings=settings,
                viewer_id=viewer,
                project_id=args.project,
                title=args.title,
                description=args.description,
                tags=args.tag,
                request_type=args.request_type,
                payment_type=args.payment_type,
                payment_source=args.payment_source,
                budget=args.budget,
                deadline=args.deadline,
                commit=args.commit,
            )
        else:
            parser.print_help()
            return 0
    except ContribFormsError as exc:
        print(f"ERROR: {exc}")
        return 2

    return _report(result)


if __name__ == "__main__":
    raise SystemExit(main())
