"""`rpaasv2 acl` subcommands: manage the ACL of rpaas instances."""

from __future__ import annotations

import argparse
import io
from typing import Sequence, TextIO

from rich.box import ASCII
from rich.console import Console
from rich.table import Table

from rpaas.client import AccessControlListClient, AllowedUpstream


def register(subparsers: argparse._SubParsersAction) -> None:
    """Attach ``acl add|list|remove`` to the top-level parser."""
    acl = subparsers.add_parser("acl", help="Manages ACL of rpaas instances")
    acl_commands = acl.add_subparsers(dest="acl_command", required=True)

    add = acl_commands.add_parser(
        "add", aliases=["set"], help="Add host and port to rpaas instance ACL",
    )
    _add_instance_flags(add)
    _add_destination_flags(add)
    add.set_defaults(run=run_add_access_control_list)

    list_ = acl_commands.add_parser(
        "list", aliases=["get"], help="Get hosts and ports from rpaas instance ACL",
    )
    _add_instance_flags(list_)
    list_.set_defaults(run=run_list_access_control_list)

    remove = acl_commands.add_parser(
        "remove", aliases=["delete"], help="Remove host and port from rpaas instance ACL",
    )
    _add_instance_flags(remove)
    _add_destination_flags(remove)
    remove.set_defaults(run=run_remove_access_control_list)


def _add_instance_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-s", "--service", "--tsuru-service",
        dest="service", default="", help="the Tsuru service name",
    )
    parser.add_argument(
        "-i", "--instance", "--tsuru-service-instance",
        dest="instance", required=True, help="the reverse proxy instance name",
    )


def _add_destination_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-H", "--host", "--hostname",
        dest="host", required=True, help="The hostname or IP of destination target",
    )
    parser.add_argument(
        "-p", "--port",
        dest="port", type=int, required=True, help="The number of destination port",
    )


def format_instance_name(args: argparse.Namespace) -> str:
    if args.service:
        return f"{args.service}/{args.instance}"
    return args.instance


async def run_add_access_control_list(
    args: argparse.Namespace, client: AccessControlListClient, out: TextIO,
) -> None:
    await client.add_access_control_list(args.instance, args.host, args.port)
    out.write(
        f"Successfully added {args.host}:{args.port} to "
        f"{format_instance_name(args)} ACL.\n"
    )


async def run_list_access_control_list(
    args: argparse.Namespace, client: AccessControlListClient, out: TextIO,
) -> None:
    acls = await client.list_access_control_list(args.instance)
    out.write(write_access_control_list_table(acls))


async def run_remove_access_control_list(
    args: argparse.Namespace, client: AccessControlListClient, out: TextIO,
) -> None:
    await client.remove_access_control_list(args.instance, args.host, args.port)
    out.write(
        f"Successfully removed {args.host}:{args.port} from "
        f"{format_instance_name(args)} ACL.\n"
    )


def write_access_control_list_table(acls: Sequence[AllowedUpstream]) -> str:
    """Render ACL entries as a Host/Port table; empty input renders nothing."""
    if not acls:
        return ""

    table = Table(box=ASCII, show_header=True, header_style="")
    table.add_column("Host", justify="left", overflow="fold")
    table.add_column("Port", justify="left")

    for acl in acls:
        port = str(acl.port) if acl.port > 0 else ""
        table.add_row(acl.host, port)

    buffer = io.StringIO()
    Console(file=buffer, width=120, color_system=None).print(table)
    return buffer.getvalue()
