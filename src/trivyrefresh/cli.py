from __future__ import annotations

import json

import click

from .cache.snapshot import SnapshotManager
from .config import load_settings
from .errors import ConfigurationError
from .executor import TrivyExecutor
from .models import ExitCode
from .orchestrator import RefreshOrchestrator
from .util.logging import setup_logging
from .util.time import format_rfc3339


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--cache-dir", type=click.Path(path_type=str), help="Directory to store Trivy cache")
@click.option("--backup-dir", type=click.Path(path_type=str), help="Single-slot backup location")
@click.option("--trivy-bin", type=str, help="Trivy executable to run")
@click.option("--logs-dir", type=click.Path(path_type=str), help="Log directory")
@click.option("--log-level", type=str, help="Logging level (DEBUG, INFO, ...)")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON summary instead of plain text")
@click.pass_context
def main(ctx: click.Context, as_json: bool, **kwargs):
    """Refresh the Trivy vulnerability DB cache when it is due, rolling back on failure."""
    try:
        settings = load_settings(kwargs)
    except ConfigurationError as exc:
        click.echo(str(exc))
        ctx.exit(int(ExitCode.CONFIG_INVALID))
        return

    setup_logging(settings.logs_dir, settings.log_level)
    orchestrator = RefreshOrchestrator(
        cache_dir=settings.cache_dir,
        snapshots=SnapshotManager(settings.backup_dir),
        executor=TrivyExecutor(settings.trivy_bin),
    )
    outcome = orchestrator.run_cycle()

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        click.echo(outcome.message)
        if outcome.next_update_at is not None:
            click.echo(f"Next Trivy DB update will happen at: {format_rfc3339(outcome.next_update_at)}")
    ctx.exit(int(outcome.exit_code))


if __name__ == "__main__":  # pragma: no cover
    main()
