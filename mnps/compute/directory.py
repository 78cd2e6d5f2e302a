from __future__ import annotations

from typing import Any, Iterable, Mapping

from mnps.errors import SourceUnavailable

from .models import TeamDirectory, _coerce_int, synthetic_name


def build_directory(
    rosters: Iterable[Mapping[str, Any]] | None,
    users: Iterable[Mapping[str, Any]] | None,
) -> TeamDirectory:
    """Map roster_id -> owner display name.

    Owners are matched by exact ``user_id == owner_id``. Rosters without an
    owner, or whose owner has no display name, get ``"Team <roster_id>"``.
    A missing roster or user list fails closed with SourceUnavailable.
    """
    if rosters is None:
        raise SourceUnavailable("rosters", "roster list missing")
    if users is None:
        raise SourceUnavailable("users", "user list missing")

    user_name: dict[str, str] = {}
    for u in users:
        uid = u.get("user_id")
        if uid is None:
            continue
        disp = u.get("display_name")
        if isinstance(disp, str) and disp.strip():
            user_name[str(uid)] = disp

    names: dict[int, str] = {}
    for r in rosters:
        rid = _coerce_int(r.get("roster_id"))
        if rid is None:
            continue
        owner = r.get("owner_id")
        names[rid] = user_name.get(str(owner), "") if owner is not None else ""
        if not names[rid]:
            names[rid] = synthetic_name(rid)
    return TeamDirectory(names)


def ensure_teams(directory: TeamDirectory, roster_ids: Iterable[int]) -> TeamDirectory:
    """Return a directory that also covers ``roster_ids`` (synthetic names)."""
    missing = [rid for rid in roster_ids if rid not in directory]
    if not missing:
        return directory
    names = dict(directory)
    for rid in missing:
        names[rid] = synthetic_name(rid)
    return TeamDirectory(names)
