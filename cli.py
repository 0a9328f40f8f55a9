"""CLI entry point for apps-script-proxy."""

import sys
from datetime import datetime

from rich.console import Console

from app import RELAY_PATH, create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ConfigurationError
from ui.console_logger import ConsoleLogger
from ui.dashboard import Dashboard
from ui.log_utils import LOG_ROOT, clear_logs, shutdown_log_executor, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    plain = False

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--check":
            _print_destination_status(config)
            return

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            console.print(f"[bold]Logs:[/bold]   {LOG_ROOT}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

        if arg == "--plain":
            plain = True
        else:
            console.print(f"[red][ERROR][/red] Unknown argument: {arg}")
            _print_help()
            sys.exit(2)

    # Requests are still answered (with a 500) while the URL is missing
    if not config.destination.configured:
        console.print("[yellow]Warning:[/yellow] Destination URL not configured!")
        console.print("[dim]Set DESTINATION_URL in the environment or a .env file[/dim]")

    clear_logs()

    import uvicorn

    dashboard = None
    if plain:
        logger = ConsoleLogger(console)
    else:
        dashboard = Dashboard(config)
        logger = dashboard

    app = create_app(config, logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="info" if config.proxy.debug else "warning",
        timeout_keep_alive=config.limits.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    if plain:
        console.print(f"[bold cyan]Apps Script Proxy[/bold cyan] listening on port {config.proxy.port}")
        console.print(f"CORS configured for origin: {config.cors.allowed_origin}")
    if dashboard:
        dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port, origin=config.cors.allowed_origin)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        shutdown_log_executor()
        if dashboard:
            dashboard.stop()


def _print_destination_status(config: Config) -> None:
    """Report whether the proxy can forward anything."""
    if config.destination.configured:
        console.print(f"[green]Destination configured[/green] (timeout {config.destination.timeout:g}s)")
    else:
        console.print("[yellow]Destination URL not configured[/yellow]")
        console.print("\n[dim]Set it in the environment or a .env file:[/dim]")
        console.print("  DESTINATION_URL=https://script.google.com/macros/s/.../exec")
    console.print(f"[bold]Allowed origin:[/bold] {config.cors.allowed_origin}")
    console.print(f"[bold]Port:[/bold] {config.proxy.port}")


def _print_help():
    """Print help message."""
    help_text = f"""
[bold cyan]Apps Script Proxy[/bold cyan]

Relays POST {RELAY_PATH} from the browser to a Google Apps Script web app.

[bold]Usage:[/bold]
    apps-script-proxy              Start with live dashboard
    apps-script-proxy --plain      Start with line-by-line console output
    apps-script-proxy --check      Check destination configuration
    apps-script-proxy --config     Show config and log locations
    apps-script-proxy --help       Show this help

[bold]Environment:[/bold]
    DESTINATION_URL   Apps Script web app URL (alias: APPS_SCRIPT_WEB_APP_URL)
    PORT              Listen port (default 3002)
    ALLOWED_ORIGIN    Browser origin allowed by CORS (alias: REACT_APP_ORIGIN)
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
