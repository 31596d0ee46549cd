"""sciuro CLI - sync alerts into Kubernetes Node conditions."""

import typer

from sciuro.cli.diagnose import check_config, match_node
from sciuro.cli.run import run_daemon

app = typer.Typer(
    name="sciuro",
    help="Sync Alertmanager/Prometheus alerts into Kubernetes Node conditions",
    no_args_is_help=True,
)

app.command("run")(run_daemon)
app.command("check-config")(check_config)
app.command("match")(match_node)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
