"""Daemon CLI command.

This module provides the CLI command for running the syncer:
- run: Watch nodes and keep their alert conditions up to date

All configuration comes from SCIURO_* environment variables (see
sciuro.config.Settings).
"""

import asyncio
import logging

import typer
from kubernetes.config.config_exception import ConfigException

from sciuro.cli.bootstrap import configure_logging, load_settings
from sciuro.daemon import SyncDaemon
from sciuro.exceptions import ConfigurationError
from sciuro.kube import KubernetesNodeClient, load_core_api

logger = logging.getLogger(__name__)


def run_daemon(
    no_metrics: bool = typer.Option(
        False, "--no-metrics", help="Do not start the metrics HTTP endpoint"
    ),
) -> None:
    """
    Run the node condition syncer.

    Refreshes alerts every SCIURO_ALERT_CACHE_TTL seconds and reconciles
    every node on change and every SCIURO_NODE_RESYNC seconds. Runs until
    interrupted with Ctrl+C or SIGTERM.
    """
    settings = load_settings()
    configure_logging(settings)

    try:
        api = load_core_api(settings.kubeconfig)
    except ConfigException as e:
        logger.error(f"could not load Kubernetes configuration: {e}")
        raise typer.Exit(1)

    async def _run() -> None:
        try:
            daemon = SyncDaemon(settings, KubernetesNodeClient(api))
        except ConfigurationError as e:
            logger.error(f"invalid configuration: {e}")
            raise typer.Exit(1)

        logger.info(
            f"Starting sciuro (prefix: {settings.condition_prefix}, "
            f"cache ttl: {settings.alert_cache_ttl}s, resync: {settings.node_resync}s)"
        )
        await daemon.run(serve_metrics=not no_metrics)

    asyncio.run(_run())
