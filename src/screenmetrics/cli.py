"""Command-line interface for screenmetrics."""

import logging
import sys

import click
import yaml

from screenmetrics.export import LoggingHttpClient, RemoteMetricExporter, RequestsHttpClient
from screenmetrics.orchestration import SessionSimulator
from screenmetrics.storage import FilePersistenceStorage
from screenmetrics.utils.config_validator import ConfigurationError, load_config, validate_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

LOG_LEVEL_OPTION = click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default=None,
    help="Logging level (overrides the configuration file)",
)


def _apply_log_level(config, log_level):
    level = log_level or config["logging"]["level"]
    logging.getLogger().setLevel(getattr(logging, level))


@click.group()
@click.version_option(version="0.1.0", prog_name="screenmetrics")
def cli():
    """screenmetrics: screen load time collection agent."""
    pass


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--output", "-o", default=None, help="Write the session summary to this JSON file")
@LOG_LEVEL_OPTION
def simulate(config_file: str, output: str, log_level: str):
    """Simulate an app session from a configuration file."""
    try:
        config = load_config(config_file, simulation=True)
        _apply_log_level(config, log_level)

        simulator = SessionSimulator(config)
        summary = simulator.run()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("\nSimulation completed!")
    click.echo(f"Metrics recorded: {summary['metrics_recorded']}")
    click.echo(f"Exports: {summary['exports']} ({summary['records_sent']} records sent)")
    click.echo(f"Still buffered: {summary['records_buffered']}")

    if output:
        simulator.save_summary(summary, output)


@cli.command()
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), default=None,
              help="Configuration file (defaults apply when omitted)")
@click.option("--dry-run", is_flag=True, help="Log batches instead of sending them")
@click.option("--all", "drain_all", is_flag=True, help="Keep exporting until the buffer is empty")
@LOG_LEVEL_OPTION
def flush(config_file: str, dry_run: bool, drain_all: bool, log_level: str):
    """Export buffered metrics from the on-disk store."""
    try:
        if config_file:
            config = load_config(config_file)
        else:
            config = {}
            validate_config(config)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _apply_log_level(config, log_level)

    export_config = config["export"]
    storage = FilePersistenceStorage(config["storage"]["base_dir"])
    if dry_run or export_config["dry_run"]:
        http_client = LoggingHttpClient()
    else:
        http_client = RequestsHttpClient(timeout_s=export_config["timeout_s"])
    exporter = RemoteMetricExporter(
        http_client, storage, url=export_config["url"], batch_size=export_config["batch_size"]
    )

    total = 0
    while True:
        result = exporter.export()
        total += result.exported
        if not drain_all or result.exported == 0 or result.remaining == 0:
            break

    click.echo(f"Exported {total} metrics, {len(storage.load())} still buffered")


@cli.command()
@click.option(
    "--output", "-o", default="example_config.yaml",
    help="Output file path"
)
def generate_config(output: str):
    """Generate an example configuration file."""
    example_config = {
        "sync_threshold_s": 10,
        "export": {
            "url": "http://test.metrics.com",
            "batch_size": 101,
            "timeout_s": 5.0,
            "dry_run": True,
        },
        "storage": {
            "base_dir": "~/.screenmetrics/MetricsSDK",
        },
        "logging": {
            "level": "INFO",
        },
        "simulation": {
            "duration_s": 30,
            "num_screens": 200,
            "screen_name_prefix": "Test Screen",
            "random_seed": 42,
            "load_time_dist_config": {
                "type": "Constant",
                "value": 5.0,
            },
            "resume_at_s": [25],
        },
    }

    with open(output, "w") as f:
        yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)

    click.echo(f"Example configuration written to {output}")


if __name__ == "__main__":
    cli()
