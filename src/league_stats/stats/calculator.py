"""Pure functions deriving shooting percentages, rebounds and points from raw counts.

Derived values always come from a complete raw snapshot. Partial updates go
through :func:`merge_raw` first and only then through :func:`derive`, so a
percentage can never be left over from before the merge.
"""

from typing import Iterable, Mapping, Optional

from ..errors import InvalidInputError
from ..models.stats import RAW_FIELDS, DerivedStats, RawBoxScore, StatLine

TWO_POINT_VALUE = 2
THREE_POINT_VALUE = 3


def percentage(made: int, attempts: int) -> float:
    """Make rate in percent; 0 when there were no attempts."""
    if attempts <= 0:
        return 0.0
    return made * 100 / attempts


def total_points(two_point_made: int, three_point_made: int) -> int:
    return TWO_POINT_VALUE * two_point_made + THREE_POINT_VALUE * three_point_made


def derive(raw: RawBoxScore) -> DerivedStats:
    """Compute every derived field from a raw snapshot."""
    return DerivedStats(
        two_point_percentage=percentage(raw.two_point_made, raw.two_point_attempts),
        three_point_percentage=percentage(raw.three_point_made, raw.three_point_attempts),
        total_rebounds=raw.defensive_rebounds + raw.offensive_rebounds,
        total_points=total_points(raw.two_point_made, raw.three_point_made),
    )


def stat_line(raw: RawBoxScore) -> StatLine:
    """Raw snapshot merged with its derived values."""
    return StatLine(**raw.model_dump(), **derive(raw).model_dump())


def merge_raw(current: RawBoxScore, changes: Optional[Mapping[str, int]]) -> RawBoxScore:
    """Overlay supplied raw fields on the current snapshot.

    Keys that are not raw fields are ignored; fields absent from ``changes``
    keep their current value.
    """
    merged = current.model_dump()
    for field, value in (changes or {}).items():
        if field in RAW_FIELDS and value is not None:
            merged[field] = value
    return RawBoxScore.model_validate(merged)


def sum_raw(lines: Iterable[RawBoxScore]) -> RawBoxScore:
    """Field-wise sum of raw counts."""
    totals = dict.fromkeys(RAW_FIELDS, 0)
    for line in lines:
        for field in RAW_FIELDS:
            totals[field] += getattr(line, field)
    return RawBoxScore.model_validate(totals)


def check_consistency(raw: RawBoxScore) -> RawBoxScore:
    """Reject snapshots where makes exceed attempts."""
    problems = []
    if raw.two_point_made > raw.two_point_attempts:
        problems.append({
            "field": "twoPointMade",
            "message": f"{raw.two_point_made} made exceeds {raw.two_point_attempts} attempts",
        })
    if raw.three_point_made > raw.three_point_attempts:
        problems.append({
            "field": "threePointMade",
            "message": f"{raw.three_point_made} made exceeds {raw.three_point_attempts} attempts",
        })
    if problems:
        raise InvalidInputError("Shots made cannot exceed shots attempted", details=problems)
    return raw
