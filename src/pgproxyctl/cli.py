import logging

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILE, DEFAULT_LOCK_TIMEOUT
from .core import ProxyManager

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("command", required=False, default="status")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="PGPROXYCTL_CONFIG",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Path to the proxy configuration file.",
)
@click.option("-f", "--follow", is_flag=True, default=False, help="Follow output (logs only).")
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--bastion-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for a stopped bastion to become ready (default: from config, 600).",
)
@click.option(
    "--retry-count",
    type=click.IntRange(min=0),
    default=1,
    show_default=True,
    help="Number of retries for a failed image pull.",
)
@click.option(
    "--retry-backoff-seconds",
    type=click.FloatRange(min=0),
    default=2.0,
    show_default=True,
    help="Backoff time in seconds between retries.",
)
@click.option(
    "--lock-timeout",
    type=click.FloatRange(min=0),
    default=DEFAULT_LOCK_TIMEOUT,
    show_default=True,
    help="Seconds to wait for another start/stop on the same config to finish.",
)
@click.option(
    "--lock-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for lock files (default: $XDG_RUNTIME_DIR/pgproxyctl).",
)
def main(
    command,
    config_path,
    follow,
    verbose,
    log_file,
    bastion_timeout,
    retry_count,
    retry_backoff_seconds,
    lock_timeout,
    lock_dir,
):
    """Manage the PostgreSQL RDS proxy container for a configuration file.

    \b
    Commands:
      start    Start the proxy container
      stop     Stop the proxy container
      restart  Restart the proxy container
      status   Show proxy status (default)
      test     Test database connection
      logs     Show container logs (-f to follow)
      help     Show this help message
    """
    ctx = click.get_current_context()

    if command == "help":
        click.echo(ctx.get_help())
        return

    if command not in ProxyManager.COMMANDS:
        click.echo(f"Unknown command: {command}", err=True)
        click.echo("", err=True)
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)

    logger = logging.getLogger("pgproxyctl")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    manager = ProxyManager(
        config_path=config_path,
        follow=follow,
        bastion_timeout=bastion_timeout,
        retry_count=retry_count,
        retry_backoff_seconds=retry_backoff_seconds,
        lock_timeout=lock_timeout,
        lock_dir=lock_dir,
    )
    raise SystemExit(manager.run(command))


if __name__ == "__main__":
    main()
