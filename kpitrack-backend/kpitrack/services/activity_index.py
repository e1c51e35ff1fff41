from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import ActivityDefinition, ProgressRecord
from .identifiers import (
    base_project_code,
    canonical_project_code,
    extract_zone_number,
    full_code_variants,
    matches_project,
    normalize_zone,
    project_code_parts,
)


def _key(*parts: str) -> str:
    return "|".join(part.strip().lower() for part in parts)


def _zone_key(zone, *project_codes: str) -> str:
    text = zone
    for code in project_codes:
        if code:
            text = normalize_zone(text, code)
    return (text or "").strip().lower()


@dataclass(frozen=True)
class _RecordKeys:
    name: str
    full_codes: Tuple[str, ...]
    base_code: str
    zone: str


@dataclass(frozen=True)
class ActivityMatch:
    activity: ActivityDefinition
    strategy: str


def _full_zone(keys: _RecordKeys) -> Tuple[str, ...]:
    if not keys.zone:
        return ()
    return tuple(_key(keys.name, code, keys.zone) for code in keys.full_codes)


def _full(keys: _RecordKeys) -> Tuple[str, ...]:
    return tuple(_key(keys.name, code) for code in keys.full_codes)


def _base_zone(keys: _RecordKeys) -> Tuple[str, ...]:
    if not keys.zone or not keys.base_code:
        return ()
    return (_key(keys.name, keys.base_code, keys.zone),)


def _base(keys: _RecordKeys) -> Tuple[str, ...]:
    if not keys.base_code:
        return ()
    return (_key(keys.name, keys.base_code),)


# Most specific first; the order is part of the matching contract.
LOOKUP_STRATEGIES: Sequence[Tuple[str, Callable[[_RecordKeys], Tuple[str, ...]]]] = (
    ("full_zone", _full_zone),
    ("full", _full),
    ("base_zone", _base_zone),
    ("base", _base),
)


class ActivityIndex:
    """Composite-key lookup of BOQ activities for progress records.

    Each activity is stored under ``name|full|zone`` and ``name|full`` and,
    when its base code differs from the full code, under ``name|base|zone``
    and ``name|base`` as well. Lookups walk :data:`LOOKUP_STRATEGIES` in order, trying
    every spelling of the record's full code (``P100-01`` and ``P10001``).
    """

    def __init__(self, activities: Iterable[ActivityDefinition]):
        self._activities: Tuple[ActivityDefinition, ...] = tuple(activities)
        self._by_key: Dict[str, List[ActivityDefinition]] = defaultdict(list)
        self._by_name_base: Dict[str, List[ActivityDefinition]] = defaultdict(list)
        for activity in self._activities:
            self._insert(activity)

    def __len__(self) -> int:
        return len(self._activities)

    @property
    def activities(self) -> Tuple[ActivityDefinition, ...]:
        return self._activities

    def _insert(self, activity: ActivityDefinition) -> None:
        name = activity.activity_name
        if not name.strip():
            return
        full_code = canonical_project_code(activity)
        base_code = base_project_code(activity)
        zone = _zone_key(activity.zone, full_code, base_code)
        keys = []
        if full_code:
            if zone:
                keys.append(_key(name, full_code, zone))
            keys.append(_key(name, full_code))
        if base_code and base_code.lower() != full_code.lower():
            if zone:
                keys.append(_key(name, base_code, zone))
            keys.append(_key(name, base_code))
        for key in dict.fromkeys(keys):
            self._by_key[key].append(activity)
        if base_code:
            self._by_name_base[_key(name, base_code)].append(activity)

    @staticmethod
    def _record_keys(record: ProgressRecord) -> _RecordKeys:
        full_code = canonical_project_code(record)
        base_code = base_project_code(record)
        # "P10001" and "P100-01" name the same sub-project
        parts = project_code_parts(full_code, record.project_code, record.project_sub_code)
        spellings = (full_code.lower(),) + full_code_variants(*parts) if full_code else ()
        return _RecordKeys(
            name=record.activity_name or "",
            full_codes=tuple(dict.fromkeys(spellings)),
            base_code=base_code if base_code.lower() != full_code.lower() else "",
            zone=_zone_key(record.zone, full_code, base_code),
        )

    def candidates(self, key: str) -> List[ActivityDefinition]:
        return list(self._by_key.get(key, ()))

    def resolve(self, record: ProgressRecord) -> Optional[ActivityMatch]:
        keys = self._record_keys(record)
        if not keys.name.strip() or not (keys.full_codes or keys.base_code):
            return None
        for strategy, build_keys in LOOKUP_STRATEGIES:
            for key in build_keys(keys):
                found = self._by_key.get(key)
                if found:
                    return ActivityMatch(activity=self._prefer(found, record), strategy=strategy)
        return None

    def loose_candidates(self, record: ProgressRecord) -> List[ActivityDefinition]:
        """Activities with the same name and base code, ignoring zone and sub-code."""
        name = record.activity_name or ""
        base_code = base_project_code(record)
        if not name.strip() or not base_code:
            return []
        return list(self._by_name_base.get(_key(name, base_code), ()))

    @staticmethod
    def _prefer(found: List[ActivityDefinition], record: ProgressRecord) -> ActivityDefinition:
        record_full = canonical_project_code(record)
        same_project = [
            activity
            for activity in found
            if matches_project(
                record_full,
                canonical_project_code(activity),
                candidate_code=record.project_code,
                candidate_sub_code=record.project_sub_code,
            )
        ]
        found = same_project or found
        if len(found) == 1 or not record.zone:
            return found[0]
        record_zone = _zone_key(record.zone, canonical_project_code(record), base_project_code(record))
        if not record_zone:
            return found[0]

        zones = [
            (activity, _zone_key(activity.zone, canonical_project_code(activity), base_project_code(activity)))
            for activity in found
        ]
        for activity, zone in zones:
            if zone and zone == record_zone:
                return activity
        for activity, zone in zones:
            if zone and (zone in record_zone or record_zone in zone):
                return activity
        record_number = extract_zone_number(record_zone)
        for activity, zone in zones:
            if zone and extract_zone_number(zone) == record_number:
                return activity
        return found[0]
