"""Summary statistics and chart series over the loaded people.

Only the data behind each chart is computed here; any plotting library can
draw it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Sequence

from .schemas import EdgeType, MarriageStatus, Person, RelationshipEdge
from .utils import percentage

FOUNDING_BEFORE = 1970
THIRD_GENERATION_FROM = 2000
MARRIAGE_AGE_BINS = range(20, 36, 2)
KIDS_RANGE = range(0, 6)


@dataclass
class FamilyStats:
    total_individuals: int = 0
    married_couples: int = 0
    families_with_kids: int = 0
    single_individuals: int = 0
    same_sex_marriages: int = 0
    opposite_sex_marriages: int = 0
    marriage_rate: float = 0.0
    family_formation_rate: float = 0.0
    single_rate: float = 0.0
    same_sex_marriage_rate: float = 0.0
    average_kids_per_family: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def calculate_family_stats(people: Sequence[Person]) -> FamilyStats:
    """Headline counts and rates; every rate is a percentage to one decimal.

    Anyone whose marriage status is not ``Single`` counts as married.
    """
    if not people:
        return FamilyStats()
    total = len(people)
    married = sum(1 for p in people if p.marriage is not MarriageStatus.SINGLE)
    with_kids = [p for p in people if p.num_kids > 0]
    single = sum(1 for p in people if p.marriage is MarriageStatus.SINGLE)
    same_sex = sum(1 for p in people if p.marriage is MarriageStatus.SAME_SEX_MARRIED)
    opposite_sex = sum(1 for p in people if p.marriage is MarriageStatus.OPPOSITE_SEX_MARRIED)
    average_kids = round(sum(p.num_kids for p in with_kids) / len(with_kids), 1) if with_kids else 0.0
    return FamilyStats(
        total_individuals=total,
        married_couples=married,
        families_with_kids=len(with_kids),
        single_individuals=single,
        same_sex_marriages=same_sex,
        opposite_sex_marriages=opposite_sex,
        marriage_rate=percentage(married, total),
        family_formation_rate=percentage(len(with_kids), married),
        single_rate=percentage(single, total),
        same_sex_marriage_rate=percentage(same_sex, married),
        average_kids_per_family=average_kids,
    )


def birth_year_distribution(people: Iterable[Person]) -> List[Dict[str, int]]:
    counts = Counter(p.birth_year for p in people if p.birth_year)
    return [{"year": year, "count": counts[year]} for year in sorted(counts)]


def marriage_type_distribution(people: Iterable[Person]) -> List[Dict[str, object]]:
    counts = Counter(p.marriage for p in people)
    return [{"type": status.value, "count": counts[status]} for status in MarriageStatus]


def kids_distribution(people: Iterable[Person]) -> List[Dict[str, int]]:
    counts = Counter(p.num_kids for p in people)
    return [{"kids": kids, "count": counts[kids]} for kids in KIDS_RANGE]


def marriage_age_distribution(people: Iterable[Person]) -> List[Dict[str, object]]:
    ages = [
        p.marriage_age
        for p in people
        if p.marriage is not MarriageStatus.SINGLE and p.marriage_age > 0
    ]
    return [
        {"group": f"{low}-{low + 1}", "count": sum(1 for age in ages if low <= age < low + 2)}
        for low in MARRIAGE_AGE_BINS
    ]


def family_timeline(people: Iterable[Person]) -> List[Dict[str, int]]:
    points = [
        {"year": p.having_kids_year, "age": p.having_kids_age, "kids": p.num_kids}
        for p in people
        if p.having_kids_year > 0
    ]
    return sorted(points, key=lambda point: point["year"])


def insights(people: Sequence[Person], edges: Iterable[RelationshipEdge]) -> Dict[str, object]:
    """Generational spread and link counts shown beside the charts."""
    years = [p.birth_year for p in people if p.birth_year]
    edge_types = Counter(edge.type for edge in edges)
    min_year = min(years) if years else None
    max_year = max(years) if years else None
    return {
        "founding_members": sum(1 for y in years if y < FOUNDING_BEFORE),
        "second_generation": sum(1 for y in years if FOUNDING_BEFORE <= y < THIRD_GENERATION_FROM),
        "third_generation": sum(1 for y in years if y >= THIRD_GENERATION_FROM),
        "min_birth_year": min_year,
        "max_birth_year": max_year,
        "year_span": (max_year - min_year) if years else 0,
        "marriage_links": edge_types[EdgeType.MARRIAGE],
        "parent_links": edge_types[EdgeType.PARENT_CHILD],
    }


def chart_series(people: Sequence[Person], edges: Sequence[RelationshipEdge]) -> Dict[str, object]:
    return {
        "stats": calculate_family_stats(people).to_dict(),
        "birth_years": birth_year_distribution(people),
        "marriage_types": marriage_type_distribution(people),
        "kids": kids_distribution(people),
        "marriage_ages": marriage_age_distribution(people),
        "timeline": family_timeline(people),
        "insights": insights(people, edges),
    }


__all__ = [
    "FamilyStats",
    "birth_year_distribution",
    "calculate_family_stats",
    "chart_series",
    "family_timeline",
    "insights",
    "kids_distribution",
    "marriage_age_distribution",
    "marriage_type_distribution",
]
