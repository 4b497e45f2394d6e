"""CLI interface for proc_snap."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import signal
import sys
import time
from typing import Any

from . import __version__
from .config import ProcSnapConfig, load_config

logger = logging.getLogger(__name__)


def _print_table(kind: str, record: object) -> None:
    """Render a record with rich: scalar fields first, then one table per entity list."""
    from rich.console import Console
    from rich.table import Table

    console = Console()
    scalars = Table(title=f"{kind} ({type(record).KIND})", show_header=True)
    scalars.add_column("Field", style="cyan")
    scalars.add_column("Value", justify="right")
    entity_lists = []
    for f in dataclasses.fields(record):
        value = getattr(record, f.name)
        if isinstance(value, list):
            entity_lists.append((f.name, value))
        else:
            scalars.add_row(f.name, _fmt(value))
    console.print(scalars)

    for name, entities in entity_lists:
        if not entities:
            continue
        columns = [f.name for f in dataclasses.fields(entities[0])]
        table = Table(title=name, show_header=True)
        for i, col in enumerate(columns):
            table.add_column(col, style="cyan" if i == 0 else None, justify="left" if i == 0 else "right")
        for entity in entities:
            table.add_row(*(_fmt(getattr(entity, col)) for col in columns))
        console.print(table)


def _fmt(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _cmd_get(args: argparse.Namespace, cfg: ProcSnapConfig) -> None:
    """Take one snapshot (or one delta over --window seconds) and print it."""
    from .codec import JSONCodec
    from .collector import DELTA_KINDS, create_collector
    from .errors import ProcSnapError

    try:
        collector = create_collector(
            args.kind,
            proc_root=cfg.sampler.proc_root,
            etc_root=cfg.sampler.etc_root,
            sys_root=cfg.sampler.sys_root,
        )
    except (KeyError, ProcSnapError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    with collector:
        if args.kind in DELTA_KINDS:
            time.sleep(args.window)
        try:
            result = collector.collect()
        except ProcSnapError as exc:
            print(f"error: {exc}", file=sys.stderr)
            sys.exit(1)

    for err in result.errors:
        logger.warning("%s: %s", args.kind, err)
    if result.value is None:
        sys.exit(1)

    if args.table:
        _print_table(args.kind, result.value)
    else:
        print(json.dumps(JSONCodec().encode(result.value), indent=2))
    if result.failures:
        sys.exit(2)


def _cmd_collect(_args: argparse.Namespace, cfg: ProcSnapConfig) -> None:
    """Run periodic sampling."""
    from .collector.manager import CollectorManager
    from .exporter.local import LocalExporter

    exporters = []

    if cfg.local_exporter.enabled:
        local_exp = LocalExporter(cfg.local_exporter)
        exporters.append(local_exp)

    if cfg.mode == "online":
        from .exporter.otel import OtelExporter
        otel_exp = OtelExporter(cfg.otel)
        exporters.append(otel_exp)

    manager = CollectorManager(cfg.sampler)
    for exp in exporters:
        manager.add_sink(exp.export)

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    manager.start()
    print(f"proc_snap sampler running (mode={cfg.mode}, interval={cfg.sampler.interval_seconds}s)")
    print("Press Ctrl+C to stop.\n")
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        manager.close()
        for exp in exporters:
            exp.shutdown()
    print("\nSampling stopped.")


def _cmd_kinds(_args: argparse.Namespace, _cfg: ProcSnapConfig) -> None:
    from .collector import COLLECTOR_KINDS, DELTA_KINDS

    for kind in COLLECTOR_KINDS:
        print(f"{kind}{'  (delta)' if kind in DELTA_KINDS else ''}")


def _cmd_version(_args: argparse.Namespace, _cfg: ProcSnapConfig) -> None:
    print(f"proc_snap {__version__}")


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Config overrides from the command-line flags that were given."""
    sampler = {}
    for flag, key in (
        ("proc_root", "proc_root"),
        ("etc_root", "etc_root"),
        ("sys_root", "sys_root"),
        ("interval", "interval_seconds"),
    ):
        value = getattr(args, flag, None)
        if value is not None:
            sampler[key] = value
    return {"sampler": sampler} if sampler else {}


def main(argv: list[str] | None = None) -> None:
    """Entry point for the proc-snap CLI."""
    parser = argparse.ArgumentParser(
        prog="proc-snap",
        description="Snapshot and sample Linux /proc counter files",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to proc_snap.yaml")
    parser.add_argument("--log-level", default=None, help="Logging level (default from config, INFO)")
    sub = parser.add_subparsers(dest="command")

    # get
    get_p = sub.add_parser("get", help="Print one snapshot or usage record")
    get_p.add_argument("kind", help="Collector kind, see 'proc-snap kinds'")
    get_p.add_argument("--proc-root", default=None, help="Directory holding the /proc files")
    get_p.add_argument("--etc-root", default=None, help="Directory holding os-release")
    get_p.add_argument("--sys-root", default=None, help="Directory laid out like /sys")
    get_p.add_argument("--window", type=float, default=1.0, help="Seconds between snapshots for delta kinds")
    get_p.add_argument("--table", action="store_true", help="Render with rich tables instead of JSON")
    get_p.set_defaults(func=_cmd_get)

    # collect
    collect_p = sub.add_parser("collect", help="Start periodic sampling")
    collect_p.add_argument("--interval", type=float, default=None, help="Sampling interval in seconds")
    collect_p.set_defaults(func=_cmd_collect)

    # kinds
    kinds_p = sub.add_parser("kinds", help="List collector kinds")
    kinds_p.set_defaults(func=_cmd_kinds)

    # version
    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)
    cfg = load_config(args.config, _overrides(args))

    logging.basicConfig(
        level=getattr(logging, (args.log_level or cfg.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args, cfg)


if __name__ == "__main__":
    main()
