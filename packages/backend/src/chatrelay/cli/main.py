"""chatrelay CLI — run the relay server.

Usage:
    chatrelay serve                     # Listen on CHATRELAY_HOST:CHATRELAY_PORT
    chatrelay serve --addr :8080        # All interfaces, port 8080
    chatrelay serve --addr 127.0.0.1:9000
"""

from __future__ import annotations

import logging

import click
import structlog

from chatrelay import __version__
from chatrelay.config import settings


def parse_addr(addr: str) -> tuple[str, int]:
    """Split "host:port" (host may be empty) into its parts."""
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise click.BadParameter(f"expected HOST:PORT, got {addr!r}", param_hint="--addr")
    port_num = int(port)
    if not 0 < port_num < 65536:
        raise click.BadParameter(f"port out of range: {port_num}", param_hint="--addr")
    return host.strip("[]") or "0.0.0.0", port_num


def configure_logging(level: str) -> None:
    """Route structlog and stdlib logging at the same level."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise click.BadParameter(f"unknown log level: {level}", param_hint="--log-level")

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(numeric))


@click.group()
@click.version_option(__version__, prog_name="chatrelay")
def cli():
    """chatrelay — real-time chat rooms over WebSockets."""


@cli.command()
@click.option("--addr", default=None, help="Address to listen on, HOST:PORT (e.g. :8080).")
@click.option("--log-level", default=None, help="Log level (default: CHATRELAY_LOG_LEVEL).")
def serve(addr: str | None, log_level: str | None):
    """Start the relay server."""
    import uvicorn

    from chatrelay.main import create_app

    host, port = parse_addr(addr) if addr else (settings.host, settings.port)
    level = log_level or settings.log_level
    configure_logging(level)

    click.echo(f"starting web server on {host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=level.lower())


def main():
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
