#!/usr/bin/env python3
"""
jmap-do CLI

Talk to a JMAP server from the command line.

Usage:
    jmap-do session                          - Show the session resource
    jmap-do request METHOD [ARGS]            - Send a single method call
    jmap-do capabilities METHOD...           - Show capabilities a request would declare
    jmap-do upload ACCOUNT_ID FILE           - Upload a blob
    jmap-do download ACCOUNT_ID BLOB_ID NAME - Download a blob
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from .capabilities import build_capability_map, get_capabilities_for_method_calls
from .client import JamClient
from .config import configure, configure_from_env, get_config
from .errors import JmapError


class Colors:
    RESET = "\x1b[0m"
    RED = "\x1b[31m"
    GREEN = "\x1b[32m"
    CYAN = "\x1b[36m"


def print_error(message: str, error: Exception | None = None) -> None:
    """Print error message."""
    click.echo(f"{Colors.RED}Error:{Colors.RESET} {message}", err=True)
    if error and str(error):
        click.echo(str(error), err=True)


def print_success(message: str) -> None:
    """Print success message."""
    click.echo(f"{Colors.GREEN}[ok]{Colors.RESET} {message}")


def print_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, sort_keys=True))


def run_async(coro: Any) -> Any:
    """Run an async function synchronously."""
    return asyncio.run(coro)


async def _with_client(fn: Any) -> Any:
    async with JamClient() as jam:
        return await fn(jam)


def _run(fn: Any) -> Any:
    """Run fn(client) and turn client errors into a non-zero exit."""
    try:
        return run_async(_with_client(fn))
    except (JmapError, ValueError) as e:
        print_error("Request failed", e)
        sys.exit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Log HTTP requests and compiled method calls")
@click.option("--session-url", envvar="JMAP_SESSION_URL", help="JMAP session resource URL")
@click.option("--token", envvar="JMAP_BEARER_TOKEN", help="Bearer token")
def cli(debug: bool, session_url: str | None, token: str | None) -> None:
    """
    jmap-do CLI - Send JMAP requests

    The session URL and token are read from JMAP_SESSION_URL and
    JMAP_BEARER_TOKEN unless given as options.
    """
    if debug:
        logging.basicConfig(format="%(name)s %(levelname)s: %(message)s")
        logging.getLogger("jmap_do").setLevel(logging.DEBUG)

    configure_from_env()
    configure(session_url=session_url, bearer_token=token)


@cli.command()
def session() -> None:
    """Show the session resource."""

    async def show(jam: JamClient) -> None:
        data = await jam.get_session()
        print_json(data.model_dump(by_alias=True))

    _run(show)


@cli.command()
@click.argument("method")
@click.argument("args", required=False, default="{}")
def request(method: str, args: str) -> None:
    """Send METHOD with ARGS (a JSON object) and print the response."""
    try:
        parsed = json.loads(args)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"ARGS must be JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise click.BadParameter("ARGS must be a JSON object")

    async def send(jam: JamClient) -> None:
        data, _ = await jam.request(method, parsed)
        print_json(data)

    _run(send)


@cli.command()
@click.argument("methods", nargs=-1, required=True)
def capabilities(methods: tuple[str, ...]) -> None:
    """Show the capabilities a request with METHODS would declare."""
    available = build_capability_map(get_config().custom_capabilities)
    for capability in sorted(get_capabilities_for_method_calls(methods, available)):
        click.echo(capability)


@cli.command()
@click.argument("account_id")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--type", "content_type", default="application/octet-stream", help="MIME type")
def upload(account_id: str, file: Path, content_type: str) -> None:
    """Upload FILE as a blob to ACCOUNT_ID."""

    async def send(jam: JamClient) -> None:
        result = await jam.upload_blob(account_id, file.read_bytes(), content_type=content_type)
        print_json(result)

    _run(send)


@cli.command()
@click.argument("account_id")
@click.argument("blob_id")
@click.argument("name")
@click.option("--type", "mime_type", default="application/octet-stream", help="MIME type")
@click.option(
    "-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Output file"
)
def download(
    account_id: str, blob_id: str, name: str, mime_type: str, output: Path | None
) -> None:
    """Download BLOB_ID from ACCOUNT_ID."""

    async def fetch(jam: JamClient) -> bytes:
        response = await jam.download_blob(account_id, blob_id, mime_type, name)
        return response.content

    content = _run(fetch)
    if output is None:
        click.get_binary_stream("stdout").write(content)
    else:
        output.write_bytes(content)
        print_success(f"Saved {len(content)} bytes to {output}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
