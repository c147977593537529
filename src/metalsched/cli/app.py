# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from metalsched.config.loader import load_config
from metalsched.config.models import SchedulerConfig
from metalsched.logging.log import init_logging
from metalsched.observers.interface import Observer
from metalsched.observers.jsonfile import JsonFileObserver
from metalsched.observers.logger import LoggerObserver
from metalsched.scheduler.engine import Scheduler
from metalsched.scheduler.request import SubClusterRequest
from metalsched.store.errors import StoreError
from metalsched.store.interface import HostStore
from metalsched.store.kube import KubeStore


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Bare-metal host scheduler for sub-cluster requests")


def make_store(cfg: SchedulerConfig) -> HostStore:
    return KubeStore(cfg)


def _setup(
    config: Optional[Path],
    namespace: Optional[str],
    context: Optional[str],
    verbose: bool,
    events_file: Optional[Path],
) -> tuple[SchedulerConfig, Scheduler]:
    cfg = load_config(config)
    if namespace:
        cfg.namespace = namespace
    if context:
        cfg.context = context

    logger, run_id, _ = init_logging(base_dir=cfg.log_dir, verbose=verbose)
    observers: List[Observer] = [LoggerObserver(logger)]
    if events_file:
        observers.append(JsonFileObserver(events_file))

    return cfg, Scheduler(make_store(cfg), cfg, observers=observers, run_id=run_id)


def _load_request(scheduler: Scheduler, namespace: str, name: str) -> SubClusterRequest:
    try:
        raw = scheduler.store.get_request(namespace, name)
    except StoreError as exc:
        typer.secho(f"Cannot read request {namespace}/{name}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    try:
        return SubClusterRequest.from_resource(raw)
    except ValidationError as exc:
        typer.secho(f"Invalid request {namespace}/{name}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

ConfigOpt = typer.Option(None, "--config", "-c", help="Scheduler config YAML")
NamespaceOpt = typer.Option(None, "--namespace", "-n", help="Namespace of hosts and request")
ContextOpt = typer.Option(None, "--context", help="Kube context")
VerboseOpt = typer.Option(False, "--verbose", "-v", help="Debug output on the console")
EventsOpt = typer.Option(None, "--events-file", help="Append events as JSON lines")


@app.command()
def schedule(
    name: str = typer.Argument(..., help="Sub-cluster request name"),
    config: Optional[Path] = ConfigOpt,
    namespace: Optional[str] = NamespaceOpt,
    context: Optional[str] = ContextOpt,
    verbose: bool = VerboseOpt,
    events_file: Optional[Path] = EventsOpt,
):
    """Run one scheduling attempt for a sub-cluster request."""
    cfg, scheduler = _setup(config, namespace, context, verbose, events_file)
    request = _load_request(scheduler, cfg.namespace, name)

    result = scheduler.schedule(request)
    decision = result.decision

    for role, hosts in decision.selected.items():
        for host in hosts:
            typer.echo(f"{role.value:<13} {host.key}")
    for key, error in decision.errors.items():
        typer.echo(f"ineligible    {key}: {error}")
    if result.report.conflicts:
        typer.echo(f"conflicts     {', '.join(sorted(result.report.conflicts))}")
    if result.report.failed:
        typer.echo(f"failed        {', '.join(sorted(result.report.failed))}")

    status = "Ready" if decision.ok else "NotReady"
    typer.echo(f"{request.key}: {status} ({decision.reason}) {decision.message}")
    if not decision.ok:
        raise typer.Exit(code=1)


@app.command()
def release(
    name: str = typer.Argument(..., help="Sub-cluster request name"),
    config: Optional[Path] = ConfigOpt,
    namespace: Optional[str] = NamespaceOpt,
    context: Optional[str] = ContextOpt,
    verbose: bool = VerboseOpt,
    events_file: Optional[Path] = EventsOpt,
):
    """Release every host claimed by a sub-cluster request."""
    cfg, scheduler = _setup(config, namespace, context, verbose, events_file)
    request = SubClusterRequest(name=name, namespace=cfg.namespace)
    report = scheduler.release(request)
    typer.echo(f"{request.key}: released {len(report.released)} hosts")
    if report.conflicts or report.failed:
        typer.echo(f"not released: {', '.join(sorted({**report.conflicts, **report.failed}))}")
        raise typer.Exit(code=1)


@app.command()
def hosts(
    config: Optional[Path] = ConfigOpt,
    namespace: Optional[str] = NamespaceOpt,
    context: Optional[str] = ContextOpt,
):
    """List hosts with their claim labels."""
    cfg = load_config(config)
    if namespace:
        cfg.namespace = namespace
    if context:
        cfg.context = context
    store = make_store(cfg)
    keys = cfg.labels

    typer.echo(f"{'HOST':<32} {'CLAIMED':<8} {'OWNER':<20} {'SERVER':<12} RACK")
    for res in sorted(store.list_hosts(), key=lambda r: r["metadata"]["name"]):
        labels = res["metadata"].get("labels") or {}
        typer.echo(
            f"{res['metadata']['name']:<32} "
            f"{labels.get(keys.claimed, '-'):<8} "
            f"{labels.get(keys.owner, '-'):<20} "
            f"{labels.get(keys.server, '-'):<12} "
            f"{labels.get(keys.rack, '-')}"
        )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
