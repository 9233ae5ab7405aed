"""
WaveLens CLI
=============

Click-based command-line interface for the WaveLens WiFi-analysis
console. Provides commands for interface discovery, network scanning
with channel occupancy analysis, and paged packet capture.

Commands:
    wavelens interfaces                  List capture-capable interfaces
    wavelens scan --interface IFACE      Scan networks and score channels
    wavelens capture --interface IFACE   Capture and page through packets

Common options:
    --config PATH       TOML configuration file
    --quiet             Suppress console output
    --simulate          Use the simulated radio backend (no root needed)

References:
    - Click Documentation: https://click.palletsprojects.com/
    - IEEE. (2020). IEEE Std 802.11-2020.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click

from shared.config import WaveLensConfig
from shared.console import WaveLensConsole
from shared.logger import configure_logging

from wavelens import __version__
from wavelens.core.errors import WaveLensError


# ---------------------------------------------------------------------------
# Async helper
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click commands.

    Args:
        coro: Coroutine to execute.

    Returns:
        The coroutine's return value.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            future = pool.submit(asyncio.run, coro)
            return future.result()
    else:
        return asyncio.run(coro)


def _run_command(ctx: click.Context, coro) -> None:
    """Run a command body, reporting WaveLens errors and exiting with 1."""
    console: WaveLensConsole = ctx.obj["console"]
    try:
        _run_async(coro)
    except WaveLensError as exc:
        console.error(str(exc))
        sys.exit(1)


def _make_engine(ctx: click.Context):
    from wavelens.core.engine import WaveLensEngine

    return WaveLensEngine(config=ctx.obj["config"], simulate=ctx.obj["simulate"])


# ---------------------------------------------------------------------------
# CLI Group
# ---------------------------------------------------------------------------


@click.group(
    name="wavelens",
    help=(
        "WAVELENS - WiFi Analysis Console\n\n"
        "Discover nearby wireless networks, score 2.4 GHz channel "
        "congestion, and inspect captured packets."
    ),
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to WaveLens configuration file (TOML).",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress console output.",
)
@click.option(
    "--simulate",
    is_flag=True,
    default=False,
    help="Use the simulated radio backend instead of live capture.",
)
@click.version_option(__version__, prog_name="wavelens")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    quiet: bool,
    simulate: bool,
) -> None:
    """WaveLens WiFi analysis console - main CLI entry point."""
    ctx.ensure_object(dict)

    # Load configuration
    try:
        config = WaveLensConfig.load(config_path)
    except FileNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    settings = config.global_settings
    configure_logging(
        log_level="DEBUG" if settings.debug else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
        console_output=not quiet,
    )

    ctx.obj["config"] = config
    ctx.obj["console"] = WaveLensConsole(quiet=quiet)
    ctx.obj["quiet"] = quiet
    ctx.obj["simulate"] = simulate


# ---------------------------------------------------------------------------
# Interfaces Command
# ---------------------------------------------------------------------------


@cli.command(
    name="interfaces",
    help="List network interfaces available for packet capture.",
)
@click.pass_context
def list_interfaces(ctx: click.Context) -> None:
    """List capture-capable interfaces."""
    console: WaveLensConsole = ctx.obj["console"]

    async def _body() -> None:
        async with _make_engine(ctx) as engine:
            names = await engine.list_interfaces()
        console.table(
            "Network Interfaces",
            ["#", "Interface"],
            [(idx, name) for idx, name in enumerate(names, start=1)],
        )

    _run_command(ctx, _body())


# ---------------------------------------------------------------------------
# Scan Command
# ---------------------------------------------------------------------------


@cli.command(
    name="scan",
    help=(
        "Scan WiFi networks.\n\n"
        "Sniffs 802.11 beacons to enumerate nearby access points, then "
        "scores the occupancy of 2.4 GHz channels 1-13 and recommends "
        "the least congested ones.\n\n"
        "Requires a wireless interface in monitor mode unless --simulate "
        "is given."
    ),
)
@click.option(
    "--interface", "-i",
    type=str,
    default=None,
    help="Wireless interface in monitor mode (default from config).",
)
@click.option(
    "--duration", "-d",
    type=float,
    default=None,
    help="Scan duration in seconds (default from config).",
)
@click.option(
    "--select", "-s",
    "select_bssid",
    type=str,
    default=None,
    help="Show channel occupancy for this BSSID only.",
)
@click.pass_context
def scan(
    ctx: click.Context,
    interface: Optional[str],
    duration: Optional[float],
    select_bssid: Optional[str],
) -> None:
    """Scan networks and analyse channel occupancy."""
    config: WaveLensConfig = ctx.obj["config"]
    console: WaveLensConsole = ctx.obj["console"]

    if interface:
        config.scan.interface = interface
    if duration is not None:
        config.scan.duration = duration

    from wavelens.output.console import WaveLensConsoleOutput

    output = WaveLensConsoleOutput(console)

    async def _body() -> None:
        async with _make_engine(ctx) as engine:
            output.display_banner(__version__)
            console.info(
                f"Scanning on {config.scan.interface} for {config.scan.duration}s"
            )

            with console.status("Scanning for networks...") as status:
                engine.add_scan_listener(
                    lambda snapshot: status.update(
                        f"[wavelens.info]Scanning... {len(snapshot)} network(s) "
                        f"found[/wavelens.info]"
                    )
                )
                await engine.begin_scan()

            if select_bssid:
                if not await engine.select_network(select_bssid):
                    console.warning(
                        f"Network {select_bssid} was not seen; "
                        f"showing all networks"
                    )

            selected = engine.selected_network
            output.display_networks(
                engine.networks,
                selected=selected.identity if selected else None,
            )
            output.display_channels(
                engine.channel_metrics,
                title=(
                    f"Channel Occupancy - {selected.display_name}"
                    if selected else "2.4 GHz Channel Occupancy"
                ),
            )
            console.success(f"Scan complete: {len(engine.networks)} network(s)")

    _run_command(ctx, _body())


# ---------------------------------------------------------------------------
# Capture Command
# ---------------------------------------------------------------------------


@cli.command(
    name="capture",
    help=(
        "Capture packets.\n\n"
        "Captures Ethernet frames on an interface for a fixed duration, "
        "polling the capture engine at the configured interval, and "
        "shows one page of the captured packets (newest first)."
    ),
)
@click.option(
    "--interface", "-i",
    type=str,
    default=None,
    help="Interface to capture on (default from config).",
)
@click.option(
    "--duration", "-d",
    type=float,
    default=10.0,
    show_default=True,
    help="Capture duration in seconds.",
)
@click.option(
    "--page-size",
    type=click.IntRange(min=1),
    default=None,
    help="Packets per page (default from config).",
)
@click.option(
    "--page", "-p",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Page to display after the capture.",
)
@click.pass_context
def capture(
    ctx: click.Context,
    interface: Optional[str],
    duration: float,
    page_size: Optional[int],
    page: int,
) -> None:
    """Capture packets and display one page of the result."""
    config: WaveLensConfig = ctx.obj["config"]
    console: WaveLensConsole = ctx.obj["console"]

    if interface:
        config.capture.interface = interface
    if page_size is not None:
        config.capture.page_size = page_size

    from wavelens.output.console import WaveLensConsoleOutput

    output = WaveLensConsoleOutput(console)

    async def _body() -> None:
        async with _make_engine(ctx) as engine:
            output.display_banner(__version__)
            await engine.start_capture()

            with console.status(
                f"Capturing on {engine.capture_interface}..."
            ) as status:
                engine.add_capture_listener(
                    lambda _items: status.update(
                        f"[wavelens.info]Capturing... "
                        f"{len(engine.capture.packets)} packet(s)[/wavelens.info]"
                    )
                )
                await asyncio.sleep(duration)
                # Collect what arrived since the last timer tick
                await engine.capture.poll_once()
                await engine.stop_capture()

            output.display_capture_status(
                engine.capture_status,
                engine.capture_interface,
                len(engine.capture.packets),
                engine.capture.poll_failures,
            )
            if engine.packet_page.goto(page) != page:
                console.warning(
                    f"Page {page} is out of range; showing page "
                    f"{engine.packet_page.page}"
                )
            output.display_packet_page(engine.packet_page)

    _run_command(ctx, _body())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point for the WaveLens CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
