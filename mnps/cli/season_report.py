from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

import requests

from mnps.api.client import SleeperClient
from mnps.compute import SortSpec
from mnps.config import Settings, load_settings
from mnps.constants import SCHEMA_VERSION
from mnps.errors import MnpsError
from mnps.report.cache import JsonFileCache
from mnps.report.collect import SeasonLoader
from mnps.report.formatters import format_json, format_markdown
from mnps.report.models import SeasonContext


def _pretty(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def parse_sort(expr: str | None) -> SortSpec:
    """Parse ``key[:direction]``; ``week:<n>[:direction]`` sorts on one week's points."""
    if not expr:
        return SortSpec()
    parts = [p.strip() for p in expr.split(":") if p.strip()]
    key = parts[0]
    if key == "week":
        if len(parts) < 2:
            raise ValueError("--sort week needs a week number, e.g. week:3")
        week = int(parts[1])
        direction = parts[2] if len(parts) > 2 else "desc"
        return SortSpec(key="week", direction=direction, week=week)
    direction = parts[1] if len(parts) > 1 else "desc"
    return SortSpec(key=key, direction=direction)


def write_outputs(
    ctx: SeasonContext,
    *,
    out_dir: str,
    output_formats: Sequence[str],
    json_pretty: bool = True,
    verbose: bool = False,
    dry_run: bool = False,
) -> dict:
    dest_dir = Path(out_dir) / ctx.season
    if not dry_run:
        dest_dir.mkdir(parents=True, exist_ok=True)

    results: dict[str, dict[str, Any]] = {}
    for fmt in output_formats:
        fmt_norm = fmt.lower()
        if fmt_norm in {"md", "markdown"}:
            content = format_markdown(ctx)
            path = dest_dir / f"mnps-{ctx.league_id}.md"
        elif fmt_norm == "json":
            content = format_json(ctx, SCHEMA_VERSION, pretty=json_pretty)
            path = dest_dir / f"mnps-{ctx.league_id}.json"
        else:
            raise ValueError(f"Unsupported format: {fmt}")
        if not dry_run:
            path.write_text(content, encoding="utf-8")
        if verbose:
            print(f"[mnps] wrote {fmt_norm} -> {path} ({len(content)} bytes)")
        key = "markdown" if fmt_norm in {"md", "markdown"} else fmt_norm
        results[key] = {"path": str(path), "bytes": len(content), "written": not dry_run}

    return {
        "formats": results,
        "meta": {
            "schema_version": SCHEMA_VERSION,
            "league_id": ctx.league_id,
            "season": ctx.season,
            "current_week": ctx.current_week,
            "complete": ctx.complete,
        },
        "entries": {
            "teams": len(ctx.standings),
            "weeks": len(ctx.classified),
            "qualifiers": len(ctx.qualifier_ids),
            "problems": len(ctx.problems),
        },
    }


def generate_season_report(
    *,
    settings: Settings,
    season: str | int | None = None,
    out_dir: str = "reports/mnps",
    output_formats: Sequence[str] | None = None,
    sort_spec: SortSpec | None = None,
    json_pretty: bool = True,
    verbose: bool = False,
    dry_run: bool = False,
    client: SleeperClient | None = None,
) -> dict:
    client = client or SleeperClient(
        settings.base_url, rpm_limit=settings.rpm_limit, min_interval_ms=settings.min_interval_ms
    )
    cache = JsonFileCache(settings.cache_dir) if settings.cache_dir else None
    loader = SeasonLoader(client, cache=cache, batch_size=settings.batch_size, verbose=verbose)
    ctx = loader.load(
        settings.league_id,
        season,
        variant=settings.variant,
        sport=settings.sport,
        sort_spec=sort_spec,
    )
    return write_outputs(
        ctx,
        out_dir=out_dir,
        output_formats=list(output_formats) if output_formats else ["markdown"],
        json_pretty=json_pretty,
        verbose=verbose,
        dry_run=dry_run,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate an MNPS season report for a Sleeper league")
    parser.add_argument("--league-id", default=None, help="Sleeper league_id (default from env)")
    parser.add_argument("--league", default=None, help="Named league from $MNPS_LEAGUES_FILE")
    parser.add_argument(
        "--season",
        type=str,
        default=None,
        help="Season to generate (e.g., 2023). If omitted, the league's current season is used.",
    )
    parser.add_argument(
        "--variant", choices=["standard", "dynasty"], default=None, help="League variant (top 6 / top 5)"
    )
    parser.add_argument("--sort", default=None, help="Sort spec, e.g. total_score:desc, name:asc, week:3")
    parser.add_argument("--out-dir", default="reports/mnps", help="Output directory")
    parser.add_argument("--cache-dir", default=None, help="Season cache directory (default $MNPS_CACHE_DIR)")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging to stdout")
    parser.add_argument("--dry-run", action="store_true", help="Build report but do not write files")
    parser.add_argument(
        "--formats", default="markdown", help="Comma-separated list of output formats (markdown,json)"
    )
    parser.set_defaults(json_pretty=True)
    parser.add_argument(
        "--json-compact", dest="json_pretty", action="store_false", help="Use compact JSON"
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    settings = base or load_settings()
    if args.league:
        settings = settings.for_league(args.league)
    changes: dict[str, Any] = {}
    if args.league_id:
        changes["league_id"] = args.league_id
    if args.variant:
        changes["variant"] = args.variant
    if args.cache_dir:
        changes["cache_dir"] = args.cache_dir
    return replace(settings, **changes) if changes else settings


def main(argv: list[str] | None = None) -> int:  # pragma: no cover
    args = build_parser().parse_args(argv)
    formats = [f.strip() for f in args.formats.split(",") if f.strip()]
    try:
        settings = settings_from_args(args)
        summary = generate_season_report(
            settings=settings,
            season=args.season,
            out_dir=args.out_dir,
            output_formats=formats,
            sort_spec=parse_sort(args.sort),
            json_pretty=args.json_pretty,
            verbose=args.verbose,
            dry_run=args.dry_run,
        )
        print(_pretty(summary))
        for fmt_name, info in summary["formats"].items():
            print(f"Wrote [{fmt_name}]: {info['path']}")
        return 0
    except requests.HTTPError as e:
        print(f"HTTPError: {e}", file=sys.stderr)
        return 1
    except (MnpsError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
