import asyncio
import logging
import os
import time
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from dexcatalog.core.config import HarvestConfig, SyncConfig
from dexcatalog.core.constants import PRESETS
from dexcatalog.core.errors import DexCatalogError
from dexcatalog.decoding.specs import LAYOUTS

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """dexcatalog: DEX pair harvester and token registry builder."""
    load_dotenv()
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------


def harvest_options(fn):
    opts = [
        click.option("--preset", type=click.Choice(sorted(PRESETS)), default=None, help="Known factory deployment"),
        click.option("--rpc", default=None, help="RPC endpoint URL (defaults to the preset's env var)"),
        click.option("--factory", default=None, help="Factory contract address"),
        click.option("--variant", type=click.Choice(sorted(LAYOUTS)), default=None, help="Event layout"),
        click.option("--from-block", default="0", show_default=True, help="Start block (int or 'earliest')"),
        click.option("--to-block", default="latest", show_default=True, help="End block (int or 'latest')"),
        click.option("--step", type=int, default=50_000, show_default=True, help="Blocks per request"),
        click.option("--concurrency", type=int, default=8, show_default=True, help="Max parallel requests"),
        click.option("--timeout", "timeout_s", type=int, default=20, show_default=True, help="Request timeout (s)"),
    ]
    for opt in reversed(opts):
        fn = opt(fn)
    return fn


def _harvest_config(
    preset: str | None,
    rpc: str | None,
    factory: str | None,
    variant: str | None,
    from_block: str,
    to_block: str,
    step: int,
    concurrency: int,
    timeout_s: int,
) -> HarvestConfig:
    p = PRESETS.get(preset) if preset else None
    rpc_url = rpc or (os.environ.get(p.rpc_env) if p else None)
    factory = factory or (p.factory if p else None)
    variant = variant or (p.variant if p else None)
    if not rpc_url:
        hint = f" or set {p.rpc_env}" if p else ""
        raise click.UsageError(f"Pass --rpc{hint}")
    if not factory or not variant:
        raise click.UsageError("Pass --preset, or both --factory and --variant")

    return HarvestConfig(
        rpc_url=rpc_url,
        factory=factory,
        variant=variant,
        start_block=from_block,
        end_block=to_block,
        step=step,
        concurrency=concurrency,
        timeout_s=timeout_s,
    )


def _fetch_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]fetching token metadata[/]"),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn(" • {task.description}"),
        console=console,
        transient=False,
    )


def _print_sync_summary(report, strict: bool) -> None:
    console.print(
        f"[bold]summary[/]: "
        f"[green]added[/]={len(report.added)}  "
        f"[red]failed[/]={len(report.failed)}  "
        f"[yellow]known[/]={report.already_known}  "
        f"(pairs={report.pairs}, registry={report.registry_size})"
    )
    if report.failed:
        table = Table(title="unresolved tokens (retried next run)")
        table.add_column("address", no_wrap=True)
        table.add_column("reason")
        for address, reason in report.failed.items():
            table.add_row(address, reason)
        console.print(table)
        if strict:
            raise SystemExit(2)


def _run(coro):
    try:
        return asyncio.run(coro)
    except DexCatalogError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@cli.command("presets")
def presets_cmd() -> None:
    """List the built-in factory presets."""
    # one line per preset: addresses must never be cropped to the terminal width
    for name, p in sorted(PRESETS.items()):
        console.print(
            f"[bold]{name}[/]  {p.network}  {p.variant}  factory={p.factory}  rpc=${p.rpc_env}",
            soft_wrap=True,
            highlight=False,
        )


@cli.command("harvest-pairs")
@harvest_options
@click.option("--pairs-out", type=click.Path(dir_okay=False, path_type=Path), required=True)
@click.option("--format", "fmt", type=click.Choice(["json", "parquet"]), default="json", show_default=True)
def harvest_pairs_cmd(pairs_out: Path, fmt: str, **kw) -> None:
    """Fetch a factory's creation events and write the decoded pair list."""
    from dexcatalog.orchestration.orchestrator import harvest, make_rpc
    from dexcatalog.storage.pairs import write_pairs

    config = _harvest_config(**kw)

    async def go():
        config.validate()
        rpc = make_rpc(config, config.concurrency)
        try:
            return await harvest(config, rpc)
        finally:
            await rpc.aclose()

    t0 = time.time()
    out = _run(go())
    try:
        n = write_pairs(out.records, pairs_out, fmt)
    except DexCatalogError as e:
        raise click.ClickException(str(e)) from e
    console.print(
        f"[bold]done[/]: {n} pairs → {pairs_out} • "
        f"{out.stats.total_logs} logs • [yellow]skipped[/]={len(out.skipped)} • {time.time() - t0:.2f}s"
    )


@cli.command("sync-tokens")
@click.option("--pairs", "pairs_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True)
@click.option("--registry", "registry_path", type=click.Path(dir_okay=False, path_type=Path), required=True)
@click.option("--rpc", required=True, envvar="RPC_URL", help="RPC endpoint URL")
@click.option("--concurrency", type=int, default=8, show_default=True, help="Max metadata reads in flight")
@click.option("--timeout", "timeout_s", type=int, default=20, show_default=True)
@click.option("--legacy-text-match", is_flag=True, help="Also treat addresses found in the raw registry text as known")
@click.option("--strict", is_flag=True, help="Exit with status 2 if any token stays unresolved")
def sync_tokens_cmd(
    pairs_path: Path,
    registry_path: Path,
    rpc: str,
    concurrency: int,
    timeout_s: int,
    legacy_text_match: bool,
    strict: bool,
) -> None:
    """Add metadata for every new token of a pair list to the registry."""
    from dexcatalog.clients.erc20 import Erc20MetadataFetcher
    from dexcatalog.clients.rpc import RPC
    from dexcatalog.orchestration.orchestrator import MIN_RPC_CONNECTIONS, sync_tokens
    from dexcatalog.storage.pairs import read_pairs
    from dexcatalog.storage.registry_store import JsonRegistryStore

    if not 1 <= concurrency <= 64:
        raise click.BadParameter("must be in 1..64", param_hint="--concurrency")

    async def go(progress: Progress):
        task = progress.add_task(description=str(registry_path), total=None)
        records = read_pairs(pairs_path)
        client = RPC(rpc, timeout_s=timeout_s, max_connections=max(MIN_RPC_CONNECTIONS, 2 * concurrency))
        try:
            return await sync_tokens(
                records,
                store=JsonRegistryStore(),
                fetcher=Erc20MetadataFetcher(client),
                registry_path=registry_path,
                concurrency=concurrency,
                legacy_text_match=legacy_text_match,
                on_progress=lambda _address, _ok: progress.advance(task, 1),
                on_plan=lambda n: progress.update(task, total=n),
            )
        finally:
            await client.aclose()

    with _fetch_progress() as progress:
        report = _run(go(progress))
    _print_sync_summary(report, strict)


@cli.command("run")
@harvest_options
@click.option("--registry", "registry_path", type=click.Path(dir_okay=False, path_type=Path), required=True)
@click.option("--pairs-out", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--format", "fmt", type=click.Choice(["json", "parquet"]), default="json", show_default=True)
@click.option("--fetch-concurrency", type=int, default=8, show_default=True, help="Max metadata reads in flight")
@click.option("--legacy-text-match", is_flag=True, help="Also treat addresses found in the raw registry text as known")
@click.option("--strict", is_flag=True, help="Exit with status 2 if any token stays unresolved")
def run_cmd(
    registry_path: Path,
    pairs_out: Path | None,
    fmt: str,
    fetch_concurrency: int,
    legacy_text_match: bool,
    strict: bool,
    **kw,
) -> None:
    """Harvest pairs and sync the token registry in one run."""
    from dexcatalog.orchestration.orchestrator import run

    config = SyncConfig(
        harvest=_harvest_config(**kw),
        registry_path=registry_path,
        pairs_path=pairs_out,
        pairs_format=fmt,
        fetch_concurrency=fetch_concurrency,
        legacy_text_match=legacy_text_match,
    )

    t0 = time.time()
    with _fetch_progress() as progress:
        task = progress.add_task(description=str(registry_path), total=None)
        report = _run(
            run(
                config,
                on_progress=lambda _address, _ok: progress.advance(task, 1),
                on_plan=lambda n: progress.update(task, total=n),
            )
        )

    console.print(
        f"[bold]done[/]: {len(report.harvest.records)} pairs • "
        f"[yellow]malformed[/]={len(report.harvest.skipped)} • {time.time() - t0:.2f}s"
    )
    _print_sync_summary(report.sync, strict)


if __name__ == "__main__":
    cli()
