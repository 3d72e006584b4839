"""sbgateway CLI - request signing tools and server management."""

import asyncio
import json
import sys
from collections.abc import Callable, Coroutine
from datetime import datetime
from pathlib import Path
from typing import Any, ParamSpec, TypeVar

import aiohttp
import click
from rich.console import Console
from rich.table import Table

from sbgateway.common.errors import UpstreamTransportError
from sbgateway.common.hmac import DEFAULT_CONTENT_TYPE
from sbgateway.common.settings import Settings
from sbgateway.gateway.main import run_server
from sbgateway.gateway.shopback_client import ShopBackClient
from sbgateway.gateway.signer import Credentials, Signer

console = Console()

P = ParamSpec("P")
R = TypeVar("R")


def async_command(f: Callable[P, Coroutine[Any, Any, R]]) -> Callable[P, R]:
    """Decorator to run async commands."""

    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def _load_body(body: str | None) -> dict[str, Any]:
    if not body:
        return {}
    if Path(body).exists():
        body = Path(body).read_text(encoding="utf-8")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Body is not valid JSON: {exc}[/red]")
        sys.exit(1)
    if not isinstance(data, dict):
        console.print("[red]Body must be a JSON object[/red]")
        sys.exit(1)
    return data


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid timestamp: {value}[/red]")
        sys.exit(1)


@click.group()
@click.option("--access-key", default=None, help="ShopBack access key (overrides settings)")
@click.option("--secret", default=None, help="ShopBack access key secret (overrides settings)")
@click.option("--base-url", default=None, help="ShopBack API base URL (overrides settings)")
@click.pass_context
def cli(
    ctx: click.Context,
    access_key: str | None,
    secret: str | None,
    base_url: str | None,
) -> None:
    """sbgateway CLI - Sign, verify and forward ShopBack requests."""
    overrides: dict[str, Any] = {}
    if access_key is not None:
        overrides["shopback_access_key"] = access_key
    if secret is not None:
        overrides["shopback_access_key_secret"] = secret
    if base_url is not None:
        overrides["shopback_base_url"] = base_url

    settings = Settings(**overrides)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["signer"] = Signer(
        Credentials.from_settings(settings),
        log_signing_material=settings.log_signing_material,
    )


# === Signing ===


@cli.command("sign")
@click.option("--method", "-m", default="GET", help="HTTP method")
@click.option("--path", "-p", required=True, help="URL or path the signature covers")
@click.option("--body", "-b", help="JSON body string or file path")
@click.option("--content-type", default=DEFAULT_CONTENT_TYPE, help="Content type")
@click.option("--timestamp", "-t", help="ISO-8601 signing time (default: now)")
@click.pass_context
def sign_cmd(
    ctx: click.Context,
    method: str,
    path: str,
    body: str | None,
    content_type: str,
    timestamp: str | None,
) -> None:
    """Compute the Authorization and Date headers for a request."""
    signer: Signer = ctx.obj["signer"]
    result = signer.generate_signature(
        method,
        path,
        _load_body(body),
        content_type,
        _parse_timestamp(timestamp),
    )

    table = Table(title="ShopBack Signature")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green", overflow="fold")
    table.add_row("Authorization", result.authorization)
    table.add_row("Date", result.date)
    table.add_row("Content digest", result.content_digest or "(empty)")
    console.print(table)


@cli.command("verify")
@click.option("--signature", "-s", required=True, help="Authorization header value")
@click.option("--method", "-m", default="GET", help="HTTP method")
@click.option("--path", "-p", required=True, help="URL or path the signature covers")
@click.option("--body", "-b", help="JSON body string or file path")
@click.option("--content-type", default=DEFAULT_CONTENT_TYPE, help="Content type")
@click.option("--timestamp", "-t", required=True, help="Exact Date header value that was signed")
@click.pass_context
def verify_cmd(
    ctx: click.Context,
    signature: str,
    method: str,
    path: str,
    body: str | None,
    content_type: str,
    timestamp: str,
) -> None:
    """Check an Authorization header against a request."""
    signer: Signer = ctx.obj["signer"]
    is_valid = signer.validate_signature(
        signature,
        method,
        path,
        _load_body(body),
        content_type,
        timestamp,
    )

    if is_valid:
        console.print("[green]✓ Signature is valid[/green]")
    else:
        console.print("[red]✗ Signature is invalid[/red]")
        sys.exit(1)


# === Upstream ===


@cli.command("order-status")
@click.option("--reference-id", "-r", required=True, help="Order reference id")
@click.pass_context
@async_command
async def order_status(ctx: click.Context, reference_id: str) -> None:
    """Query ShopBack directly for an order's status."""
    settings: Settings = ctx.obj["settings"]
    async with ShopBackClient(settings, signer=ctx.obj["signer"]) as client:
        try:
            upstream = await client.get_order_status(reference_id)
        except UpstreamTransportError as exc:
            console.print(f"[red]✗ {exc.message}[/red]")
            sys.exit(1)

    style = "green" if upstream.status < 400 else "red"
    console.print(f"[{style}]HTTP {upstream.status}[/{style}]")
    if upstream.is_json:
        console.print_json(data=upstream.body)
    else:
        console.print(upstream.text)
    if upstream.status >= 400:
        sys.exit(1)


@cli.command("health")
@click.option("--url", default="http://localhost:8000", help="Gateway base URL")
@async_command
async def health(url: str) -> None:
    """Check a running gateway's health endpoint."""
    async with aiohttp.ClientSession() as session:
        try:
            async with session.get(f"{url.rstrip('/')}/health") as response:
                payload = await response.json()
        except aiohttp.ClientError as exc:
            console.print(f"[red]✗ Gateway unreachable: {exc}[/red]")
            sys.exit(1)

    console.print(f"[green]✓ {payload.get('message', 'healthy')}[/green]")
    console.print(f"  Timestamp: {payload.get('timestamp', '-')}")


# === Server ===


@cli.command("serve")
@click.option("--host", default=None, help="Bind host (overrides settings)")
@click.option("--port", default=None, type=int, help="Bind port (overrides settings)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the gateway HTTP server."""
    run_server(ctx.obj["settings"], host=host, port=port)


def main() -> None:
    """CLI entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
