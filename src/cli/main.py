"""
CLI entry point: ledger new | add-fill | close | recompute | recompute-all | show | zones.

Every command loads config from --config (default config.yaml), rejects
bad raw input before a fill is built, rewrites the trade's metrics from
the full ledger, and logs to the journal.
"""

import logging
import math
import sys
from datetime import datetime, timezone

import click
from dotenv import load_dotenv

from config import AppConfig, ConfigError, load_config
from journal import JournalWriter, NoteError, TradeNoteStore
from ledger_core.contracts import Side
from ledger_core.inputs import InputError, parse_num, parse_tags
from ledger_core.timestamps import available_time_zones, format_in_zone, parse_local_input

load_dotenv()

logger = logging.getLogger("ledger")


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _load(ctx: click.Context) -> AppConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except (FileNotFoundError, ConfigError) as exc:
        raise click.ClickException(str(exc)) from exc


def _store(cfg: AppConfig) -> TradeNoteStore:
    return TradeNoteStore(
        cfg.notes.trades_root,
        filename_pattern=cfg.notes.filename_pattern,
        body_template_path=cfg.notes.body_template_path,
        journal=JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout),
    )


def _when(text: str | None, tz: str | None, cfg: AppConfig) -> datetime:
    """Parse --time in --tz (or the configured zone); unparsable input means now."""
    now = datetime.now(timezone.utc)
    return parse_local_input(text, tz or cfg.timezone, fallback=now) or now


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """ledger: trade notes with fill ledgers and derived metrics."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- ledger new ----------


@cli.command()
@click.argument("pair")
@click.option("--action", default="long", type=click.Choice(["long", "short"], case_sensitive=False), help="Trade direction.")
@click.option("--amount", required=True, help="Amount in base units (> 0).")
@click.option("--allocation", required=True, help="Quote spent on entry (> 0).")
@click.option("--tags", default="", help="Tags, comma or space separated.")
@click.option("--account", default="", help="Account / venue.")
@click.option("--initial-stop", "initial_stop", default="", help="Initial stop price (optional).")
@click.option("--time", "time_str", default=None, help="Entry time, e.g. '2024-01-02 09:30' (default: now).")
@click.option("--tz", default=None, help="Time zone of --time (default: config timezone).")
@click.pass_context
def new(
    ctx: click.Context,
    pair: str,
    action: str,
    amount: str,
    allocation: str,
    tags: str,
    account: str,
    initial_stop: str,
    time_str: str | None,
    tz: str | None,
) -> None:
    """Create a trade note with its opening fill at allocation / amount."""
    cfg = _load(ctx)
    stop = parse_num(initial_stop)
    try:
        path = _store(cfg).create_trade(
            pair,
            action.lower(),
            parse_num(amount),
            parse_num(allocation),
            when=_when(time_str, tz, cfg),
            tags=parse_tags(tags),
            account=account.strip(),
            initial_stop=None if math.isnan(stop) else stop,
        )
    except (InputError, NoteError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Trade created: {path.stem}")
    click.echo(f"  Path: {path}")


# ---------- ledger add-fill ----------


@cli.command("add-fill")
@click.argument("trade", type=click.Path(dir_okay=False))
@click.option("--side", default="in", type=click.Choice(["in", "out"], case_sensitive=False), help="in adds to the position, out reduces it.")
@click.option("--amount", required=True, help="Amount in base units (> 0).")
@click.option("--quote", required=True, help="Quote delta: spent < 0, received > 0.")
@click.option("--time", "time_str", default=None, help="Fill time (default: now).")
@click.option("--tz", default=None, help="Time zone of --time (default: config timezone).")
@click.option("--note", default="", help="Note (optional).")
@click.pass_context
def add_fill(
    ctx: click.Context,
    trade: str,
    side: str,
    amount: str,
    quote: str,
    time_str: str | None,
    tz: str | None,
    note: str,
) -> None:
    """Append a fill to an open trade and recompute its metrics."""
    cfg = _load(ctx)
    raw_quote = parse_num(quote)
    try:
        fill, adjusted = _store(cfg).add_fill(
            trade,
            Side(side.lower()),
            parse_num(amount),
            raw_quote,
            when=_when(time_str, tz, cfg),
            note=note,
        )
    except (InputError, NoteError) as exc:
        raise click.ClickException(str(exc)) from exc
    if adjusted:
        click.echo(f"Adjusted quote: {raw_quote} -> {fill.quote}")
    click.echo(f"Added fill to {click.format_filename(trade, shorten=True)}")


# ---------- ledger close ----------


@cli.command()
@click.argument("trade", type=click.Path(dir_okay=False))
@click.option("--mode", default="price", type=click.Choice(["price", "quote"], case_sensitive=False), help="Exit by price or by quote delta.")
@click.option("--price", default="", help="Exit price (quote/base), for --mode price.")
@click.option("--quote", default="", help="Exit quote delta (received > 0), for --mode quote.")
@click.option("--time", "time_str", default=None, help="Exit time (default: now).")
@click.option("--tz", default=None, help="Time zone of --time (default: config timezone).")
@click.option("--note", default="", help="Note (optional).")
@click.pass_context
def close(
    ctx: click.Context,
    trade: str,
    mode: str,
    price: str,
    quote: str,
    time_str: str | None,
    tz: str | None,
    note: str,
) -> None:
    """Exit the whole open position and mark the trade closed."""
    cfg = _load(ctx)
    store = _store(cfg)
    when = _when(time_str, tz, cfg)
    raw_quote = parse_num(quote)
    try:
        if mode.lower() == "price":
            fill, adjusted = store.close_trade(trade, when=when, price=parse_num(price), note=note)
        else:
            fill, adjusted = store.close_trade(trade, when=when, quote=raw_quote, note=note)
    except (InputError, NoteError) as exc:
        raise click.ClickException(str(exc)) from exc
    if adjusted:
        click.echo(f"Adjusted exit quote: {raw_quote} -> {fill.quote}")
    click.echo(f"Closed {click.format_filename(trade, shorten=True)}")


# ---------- ledger recompute ----------


@cli.command()
@click.argument("trade", type=click.Path(dir_okay=False))
@click.pass_context
def recompute(ctx: click.Context, trade: str) -> None:
    """Recompute one trade's metrics from its full fill ledger."""
    cfg = _load(ctx)
    try:
        _store(cfg).persist_metrics(trade)
    except NoteError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Recomputed metrics: {click.format_filename(trade, shorten=True)}")


@cli.command("recompute-all")
@click.option("--folder", default=None, help="Folder to scan (default: <trades_root>/<current year>).")
@click.pass_context
def recompute_all(ctx: click.Context, folder: str | None) -> None:
    """Recompute metrics for every trade note in a folder."""
    cfg = _load(ctx)
    store = _store(cfg)
    target = folder or str(store.root / str(datetime.now(timezone.utc).year))
    updated, total = store.recompute_folder(target)
    click.echo(f"Recomputed metrics: {updated}/{total} in {target}")


# ---------- ledger show ----------


@cli.command()
@click.argument("trade", type=click.Path(dir_okay=False))
@click.option("--tz", default=None, help="Show the current time in this zone too.")
@click.pass_context
def show(ctx: click.Context, trade: str, tz: str | None) -> None:
    """Show a trade's fills and freshly computed metrics (read-only)."""
    cfg = _load(ctx)
    from cli.output import format_trade
    from ledger_core.metrics import compute_metrics

    try:
        fm, _ = _store(cfg).read(trade)
    except NoteError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(format_trade(fm, compute_metrics(fm)))
    zone = tz or cfg.timezone
    click.echo(f"Now ({zone}): {format_in_zone(datetime.now(timezone.utc), zone)}")


# ---------- ledger zones ----------


@cli.command()
@click.option("--filter", "needle", default="", help="Only zones containing this text.")
def zones(needle: str) -> None:
    """List known IANA time zone identifiers."""
    for name in available_time_zones():
        if needle.lower() in name.lower():
            click.echo(name)


if __name__ == "__main__":
    cli()
