from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping

from mnps.compute.models import SeasonRecord, SortSpec, TeamDirectory, WeekClassification


@dataclass(slots=True)
class SeasonContext:
    league_id: str
    season: str
    league_name: str
    variant: str
    multiplier: float
    top_cutoff: int
    current_week: int | None
    complete: bool
    directory: TeamDirectory
    classified: Mapping[int, tuple[WeekClassification, ...]]
    regular: dict[int, SeasonRecord]
    playoff: dict[int, SeasonRecord]
    qualifier_ids: list[int]
    qualifier_playoff: dict[int, SeasonRecord]
    playoff_leaders: dict[int, int]
    sort_spec: SortSpec
    standings: list[dict]
    meta_rows: list[list[str]]
    markdown_lines: list[str]
    problems: list[str] = field(default_factory=list)

    @property
    def weeks_loaded(self) -> list[int]:
        return sorted(self.classified)

    def to_json_payload(self, schema_version: str) -> dict[str, Any]:
        return {
            "schema_version": schema_version,
            "metadata": {k: v for k, v in self.meta_rows},
            "teams": {str(rid): self.directory.name_for(rid) for rid in self.directory},
            "standings": self.standings,
            "sort": {
                "key": self.sort_spec.key,
                "direction": self.sort_spec.direction,
                "week": self.sort_spec.week,
            },
            "weeks": {
                str(wk): [e.to_row() for e in entries]
                for wk, entries in sorted(self.classified.items())
            },
            "playoff": [rec.to_row() for rec in self.playoff.values()],
            "qualifiers": self.qualifier_ids,
            "qualifier_playoff": [rec.to_row() for rec in self.qualifier_playoff.values()],
            "playoff_leaders": {str(wk): rid for wk, rid in sorted(self.playoff_leaders.items())},
            "problems": self.problems,
        }
