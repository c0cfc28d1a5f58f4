"""CLI entry point for proxylens."""

from pathlib import Path

import click

from proxylens import __version__
from proxylens.config import load_config
from proxylens.logging import setup_logging


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level.")
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """proxylens - send a login page to your paired device."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"], verbose=verbose)


@main.command()
@click.option(
    "--form",
    "form_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="File holding the login form's outer HTML.",
)
@click.option("--url", "document_url", required=True, help="URL of the login page.")
@click.option("--action", default=None, help="Form action attribute, if any.")
@click.option("--cookies", default="", help="Cookie string of the page.")
@click.option("--domain", default=None, help="Rendezvous directory domain.")
@click.option(
    "--display",
    type=click.Choice(["terminal", "png", "html"]),
    default="terminal",
    help="Where to show the QR code.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Output file for png/html display.",
)
@click.pass_context
def pair(
    ctx: click.Context,
    form_file: Path,
    document_url: str,
    action: str | None,
    cookies: str,
    domain: str | None,
    display: str,
    output: str | None,
) -> None:
    """Encrypt a login page and hand it to a paired device."""
    import asyncio

    from proxylens.errors import ProxyLensError
    from proxylens.page import CapturedPage
    from proxylens.pairing.qr_renderer import QrRenderer
    from proxylens.pairing.session import PairingSession
    from proxylens.rendezvous.client import ChannelClient

    config = ctx.obj["config"]
    if domain:
        config.rendezvous.domain = domain

    try:
        renderer = QrRenderer(
            display_mode=display,
            output_path=output,
            error_correction=config.qr.error_correction,
            echo=click.echo,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    page = CapturedPage(
        form_markup=form_file.read_text(),
        document_url=document_url,
        form_action=action,
        cookies=cookies,
    )

    async def _pair():
        async with ChannelClient(
            domain=config.rendezvous.domain,
            timeout=config.rendezvous.timeout,
        ) as client:
            session = PairingSession(page=page, config=config)
            return await session.run(client, renderer)

    try:
        outcome = asyncio.run(_pair())
    except (ProxyLensError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not outcome.ok:
        raise SystemExit(1)
    click.echo(f"Payload written to {outcome.channel.address}")


@main.command()
@click.argument("destination")
def commit(destination: str) -> None:
    """Print the commitment of a destination URL."""
    from proxylens.crypto import commit as commit_destination

    click.echo(commit_destination(destination))


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"proxylens version {__version__}")
