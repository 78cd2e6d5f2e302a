"""Batch MNPS report generator across seasons.

Supports generating:
  * A single season (--season 2024)
  * A numeric range (--range 2022-2024)
  * Explicit list of seasons (--seasons 2022,2024)

Earlier seasons are resolved by walking the league's previous_league_id
chain, so only the current league id is needed. Delegates to the library so
output stays consistent with the ``mnps-report`` CLI.

Examples:
  python scripts/generate_reports.py --range 2022-2024 --formats markdown,json
  python scripts/generate_reports.py --league dynasty --seasons 2023,2024 --json-compact

Exit code is non-zero if any requested season fails.
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import replace

import requests

from mnps.cli.season_report import generate_season_report, parse_sort
from mnps.config import load_settings
from mnps.errors import MnpsError


def _parse_seasons(
    *,
    season: int | None,
    seasons_csv: str | None,
    range_expr: str | None,
) -> list[int]:
    seasons: set[int] = set()
    if season is not None:
        seasons.add(int(season))
    if seasons_csv:
        for part in seasons_csv.split(","):
            part = part.strip()
            if not part:
                continue
            seasons.add(int(part))
    if range_expr:
        if "-" not in range_expr:
            raise ValueError("--range must be like 2022-2024")
        a, b = range_expr.split("-", 1)
        a_i = int(a.strip())
        b_i = int(b.strip())
        if a_i > b_i:
            a_i, b_i = b_i, a_i
        seasons.update(range(a_i, b_i + 1))
    return sorted(seasons)


def main(argv: list[str] | None = None) -> int:  # pragma: no cover - CLI
    p = argparse.ArgumentParser(description="Generate MNPS reports for one or more seasons")
    p.add_argument("--league-id", default=None)
    p.add_argument("--league", default=None, help="Named league from $MNPS_LEAGUES_FILE")
    p.add_argument("--season", type=int, help="Single season to generate")
    p.add_argument("--seasons", help="Comma separated explicit seasons (e.g., 2022,2024)")
    p.add_argument("--range", dest="range_expr", help="Inclusive season range (e.g., 2022-2024)")
    p.add_argument("--out-dir", default="reports/mnps", help="Base output directory")
    p.add_argument("--formats", default="markdown", help="Comma separated formats (markdown,json)")
    p.add_argument("--sort", default=None, help="Sort spec, e.g. total_score:desc")
    p.add_argument("--json-compact", action="store_true", help="Emit compact JSON (default pretty)")
    p.add_argument("--verbose", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    args = p.parse_args(argv)

    try:
        settings = load_settings()
        if args.league:
            settings = settings.for_league(args.league)
        if args.league_id:
            settings = replace(settings, league_id=args.league_id)
        seasons = _parse_seasons(
            season=args.season, seasons_csv=args.seasons, range_expr=args.range_expr
        )
        sort_spec = parse_sort(args.sort)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    if not seasons:
        print("No seasons selected for generation.")
        return 0

    formats = [f.strip() for f in args.formats.split(",") if f.strip()]
    failures = 0
    for season in seasons:
        try:
            summary = generate_season_report(
                settings=settings,
                season=season,
                out_dir=args.out_dir,
                output_formats=formats,
                sort_spec=sort_spec,
                json_pretty=not args.json_compact,
                verbose=args.verbose,
                dry_run=args.dry_run,
            )
            for fmt_name, info in summary["formats"].items():
                print(f"OK  Season {season} [{fmt_name}] -> {info['path']}")
        except requests.HTTPError as e:
            failures += 1
            print(f"HTTPError on season {season}: {e}", file=sys.stderr)
        except (MnpsError, OSError, ValueError) as e:
            failures += 1
            print(f"Error on season {season}: {e}", file=sys.stderr)
    if failures:
        print(f"Completed with {failures} failures.")
        return 1
    print("All reports generated successfully.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
