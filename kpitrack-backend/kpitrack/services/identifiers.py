"""Project code and zone canonicalisation shared by every matching step.

Upstream rows populate ``project_code``, ``project_sub_code`` and
``project_full_code`` inconsistently: some carry only the base code, some carry
a sub-code that already embeds the base (``"P100-01"``), some a bare suffix
(``"01"`` or ``"-01"``). The activity index, the record filters and the gap
detector all compare identifiers through this module so that a record which
matches in one place matches everywhere.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

_DIGITS_RE = re.compile(r"\d+")
_STATUS_NOISE_RE = re.compile(r"[\s\-_]+")


def _clean(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def join_project_code(project_code, project_sub_code) -> str:
    code = _clean(project_code)
    sub = _clean(project_sub_code)
    if not code:
        return sub
    if not sub:
        return code
    if sub.upper().startswith(code.upper()):
        return sub
    if sub.startswith("-"):
        return f"{code}{sub}"
    return f"{code}-{sub}"


def canonical_project_code(item) -> str:
    """Return the authoritative full code of a record, activity or project."""
    full = _clean(getattr(item, "project_full_code", None))
    if full:
        return full
    return join_project_code(
        getattr(item, "project_code", None),
        getattr(item, "project_sub_code", None),
    )


def split_project_code(code) -> Tuple[str, str]:
    text = _clean(code)
    base, _, sub = text.partition("-")
    return base.strip(), sub.strip()


def base_project_code(item) -> str:
    code = _clean(getattr(item, "project_code", None))
    if code:
        return code
    return split_project_code(canonical_project_code(item))[0]


def project_code_parts(full_code: str, code: Optional[str], sub_code: Optional[str]) -> Tuple[str, str]:
    base = _clean(code)
    sub = _clean(sub_code)
    derived_base, derived_sub = split_project_code(full_code)
    base = base or derived_base
    sub = sub or derived_sub
    if base and sub.upper().startswith(base.upper()):
        sub = sub[len(base):]
    return base, sub.lstrip("-").strip()


def full_code_variants(base: str, sub: str) -> Tuple[str, ...]:
    """Every spelling a (base, sub) pair is stored under, lower-cased."""
    base_l = base.lower()
    sub_l = sub.lower()
    if not sub_l:
        return (base_l,) if base_l else ()
    if not base_l:
        return (sub_l,)
    return (f"{base_l}-{sub_l}", f"{base_l}{sub_l}")


def matches_project(
    candidate_full_code,
    selected_full_code,
    *,
    candidate_code: Optional[str] = None,
    candidate_sub_code: Optional[str] = None,
) -> bool:
    """Three-tier project match, evaluated in order.

    1. exact case-insensitive equality of full codes;
    2. the selected code has a sub-code and the candidate has none: base codes
       are compared (records stored without a sub-code fold into every
       sub-project of their base);
    3. both have sub-codes: the candidate full code is rebuilt from its parts
       and compared again.
    """
    candidate = _clean(candidate_full_code)
    selected = _clean(selected_full_code)
    if not selected:
        return False
    if not candidate:
        candidate = join_project_code(candidate_code, candidate_sub_code)
    if not candidate:
        return False

    if candidate.lower() == selected.lower():
        return True

    selected_base, selected_sub = split_project_code(selected)
    candidate_base, candidate_sub = project_code_parts(candidate, candidate_code, candidate_sub_code)

    if selected_sub and not candidate_sub:
        return candidate_base.lower() == selected_base.lower()

    if selected_sub and candidate_sub:
        return selected.lower() in full_code_variants(candidate_base, candidate_sub)

    return False


def normalize_zone(zone, project_code) -> str:
    text = _clean(zone)
    code = _clean(project_code)
    if not text or not code:
        return text
    lowered = text.lower()
    for prefix in (f"{code} - ", f"{code} ", f"{code}-"):
        if lowered.startswith(prefix.lower()):
            rest = text[len(prefix):].strip()
            return rest or text
    return text


def extract_zone_number(zone) -> str:
    text = _clean(zone)
    match = _DIGITS_RE.search(text)
    if not match:
        return text.lower()
    return match.group(0)


def zones_equivalent(left, right) -> bool:
    left_text = _clean(left).lower()
    right_text = _clean(right).lower()
    if not left_text or not right_text:
        return False
    if extract_zone_number(left_text) == extract_zone_number(right_text):
        return True
    return left_text in right_text or right_text in left_text


def normalize_status(status) -> str:
    return _STATUS_NOISE_RE.sub("", _clean(status).lower())
