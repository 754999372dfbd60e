"""Generate an illustrative three-generation family dataset as CSV."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from familynet.export import export_csv
from familynet.loader import parse_edges, parse_people

OUT = os.path.join("out", "sample_family")

PEOPLE: List[Dict[str, object]] = [
    {"Node": "P01", "Name": "Arthur Hale", "BirthYear": 1948, "Sex": "Male", "Marriage": "oppositeSexMarried", "MarriageAge": 26, "MarriageYear": 1974, "NumKids": 2, "HavingKidsAge": 29, "HavingKidsYear": 1977, "FamilyIndicator": "Family"},
    {"Node": "P02", "Name": "Beatrice Hale", "BirthYear": 1950, "Sex": "Female", "Marriage": "oppositeSexMarried", "MarriageAge": 24, "MarriageYear": 1974, "NumKids": 2, "HavingKidsAge": 27, "HavingKidsYear": 1977, "FamilyIndicator": "Family"},
    {"Node": "P03", "Name": "Colin Hale", "BirthYear": 1977, "Sex": "Male", "Marriage": "sameSexMarried", "MarriageAge": 31, "MarriageYear": 2008, "NumKids": 1, "HavingKidsAge": 34, "HavingKidsYear": 2011, "FamilyIndicator": "Family"},
    {"Node": "P04", "Name": "Dmitri Orlov", "BirthYear": 1975, "Sex": "Male", "Marriage": "sameSexMarried", "MarriageAge": 33, "MarriageYear": 2008, "NumKids": 1, "HavingKidsAge": 36, "HavingKidsYear": 2011, "FamilyIndicator": "Family"},
    {"Node": "P05", "Name": "Eleanor Hale", "BirthYear": 1980, "Sex": "Female", "Marriage": "oppositeSexMarried", "MarriageAge": 27, "MarriageYear": 2007, "NumKids": 0, "HavingKidsAge": 0, "HavingKidsYear": 0, "FamilyIndicator": "Family"},
    {"Node": "P06", "Name": "Felix Grant", "BirthYear": 1979, "Sex": "Male", "Marriage": "oppositeSexMarried", "MarriageAge": 28, "MarriageYear": 2007, "NumKids": 0, "HavingKidsAge": 0, "HavingKidsYear": 0, "FamilyIndicator": "Family"},
    {"Node": "P07", "Name": "Gina Hale-Orlov", "BirthYear": 2011, "Sex": "Female", "Marriage": "Single", "NumKids": 0, "FamilyIndicator": "Family"},
    {"Node": "P08", "Name": "Hannah Moss", "BirthYear": 1976, "Sex": "Female", "Marriage": "Single", "NumKids": 0, "FamilyIndicator": "Single"},
]

LINKS: List[Dict[str, str]] = [
    {"Source": "P01", "Target": "P02", "Types": "Marriage link"},
    {"Source": "P03", "Target": "P04", "Types": "Marriage link"},
    {"Source": "P05", "Target": "P06", "Types": "Marriage link"},
    {"Source": "P01", "Target": "P03", "Types": "Parent link"},
    {"Source": "P02", "Target": "P03", "Types": "Parent link"},
    {"Source": "P01", "Target": "P05", "Types": "Parent link"},
    {"Source": "P02", "Target": "P05", "Types": "Parent link"},
    # Gina carries a third recorded parent; the resolver keeps the married pair.
    {"Source": "P08", "Target": "P07", "Types": "Parent link"},
    {"Source": "P03", "Target": "P07", "Types": "Parent link"},
    {"Source": "P04", "Target": "P07", "Types": "Parent link"},
]


def write_sample(out_dir: str = OUT) -> Dict[str, str]:
    people, _ = parse_people(PEOPLE)
    edges, _ = parse_edges(LINKS)
    return export_csv(people, edges, out_dir)


def main() -> None:
    out_dir = sys.argv[1] if len(sys.argv) > 1 else OUT
    paths = write_sample(out_dir)
    print(paths)


if __name__ == "__main__":
    main()
