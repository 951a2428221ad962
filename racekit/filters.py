"""Search predicates for the runner, kit and user lists.

All filters are pure: they return a new list and never touch the one they
were given.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from . import models
from .schemas import ProfileFilter


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def filter_runners(runners: Sequence[models.Runner], term: str) -> list[models.Runner]:
    needle = (term or "").lower()
    if not needle:
        return list(runners)
    return [
        r for r in runners
        if _contains(r.full_name, needle)
        or _contains(r.bib_number, needle)
        or _contains(r.participant_id, needle)
    ]


def filter_kits(kits: Sequence[models.RaceKit], term: str) -> list[models.RaceKit]:
    needle = (term or "").lower()
    if not needle:
        return list(kits)
    out = []
    for kit in kits:
        runner = kit.runner
        if (
            _contains(kit.kit_number, needle)
            or (runner is not None and _contains(runner.full_name, needle))
            or (runner is not None and _contains(runner.participant_id, needle))
        ):
            out.append(kit)
    return out


def filter_profiles(profiles: Iterable[models.Profile], flt: ProfileFilter) -> list[models.Profile]:
    needle = flt.q.lower()
    out = []
    for p in profiles:
        role = p.role or ""
        if needle and not (_contains(p.email, needle) or _contains(role, needle)):
            continue
        if flt.status != "all" and p.effective_status != flt.status:
            continue
        if flt.role != "all" and role != flt.role:
            continue
        out.append(p)
    return out
