"""`rpaasv2` command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Callable, TextIO

from rpaas.client import AccessControlListClient, RpaasClientError

from . import acl

ClientFactory = Callable[[argparse.Namespace], AccessControlListClient]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpaasv2", description="Manage reverse proxy instances.",
    )
    parser.add_argument(
        "--rpaas-url",
        default=os.environ.get("RPAAS_URL", ""),
        help="rpaas API base URL (env RPAAS_URL)",
    )
    parser.add_argument(
        "--rpaas-token",
        default=os.environ.get("RPAAS_TOKEN", ""),
        help="bearer token for the rpaas API (env RPAAS_TOKEN)",
    )
    parser.add_argument(
        "--rpaas-user",
        default=os.environ.get("RPAAS_USER", ""),
        help="basic-auth user for the rpaas API (env RPAAS_USER)",
    )
    parser.add_argument(
        "--rpaas-password",
        default=os.environ.get("RPAAS_PASSWORD", ""),
        help="basic-auth password for the rpaas API (env RPAAS_PASSWORD)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    acl.register(commands)
    return parser


def _default_client(args: argparse.Namespace) -> AccessControlListClient:
    return AccessControlListClient(
        base_url=args.rpaas_url,
        token=args.rpaas_token,
        username=args.rpaas_user,
        password=args.rpaas_password,
    )


async def _run(
    args: argparse.Namespace, client_factory: ClientFactory, out: TextIO,
) -> None:
    client = client_factory(args)
    try:
        await args.run(args, client, out)
    finally:
        await client.aclose()


def main(
    argv: list[str] | None = None,
    *,
    client_factory: ClientFactory | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    out = out or sys.stdout
    err = err or sys.stderr

    if client_factory is None:
        if not args.rpaas_url:
            parser.error("--rpaas-url (or RPAAS_URL) is required")
        client_factory = _default_client

    try:
        asyncio.run(_run(args, client_factory, out))
    except RpaasClientError as exc:
        err.write(f"Error: {exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
