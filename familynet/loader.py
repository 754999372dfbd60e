"""Load ``nodes.csv`` / ``links.csv`` into typed records.

Sources may be local paths or HTTP(S) URLs. Numeric columns are coerced the
way the dashboard always has (leading integer or 0), and a small built-in
sample can stand in when the real files are unavailable.
"""

from __future__ import annotations

import csv
import io
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .http import HTTPClient, HTTPError
from .schemas import Person, RelationshipEdge
from .utils import logger

NODE_COLUMNS = (
    "Node",
    "Name",
    "BirthYear",
    "Sex",
    "Marriage",
    "MarriageAge",
    "MarriageYear",
    "NumKids",
    "HavingKidsAge",
    "HavingKidsYear",
    "FamilyIndicator",
)
LINK_COLUMNS = ("Source", "Target", "Types")

SAMPLE_NODES: List[Dict[str, object]] = [
    {"Node": "P001", "Name": "John Smith", "BirthYear": 1950, "Sex": "Male", "Marriage": "oppositeSexMarried", "MarriageAge": 25, "MarriageYear": 1975, "NumKids": 3, "HavingKidsAge": 28, "HavingKidsYear": 1978, "FamilyIndicator": "Family"},
    {"Node": "P002", "Name": "Mary Johnson", "BirthYear": 1952, "Sex": "Female", "Marriage": "oppositeSexMarried", "MarriageAge": 23, "MarriageYear": 1975, "NumKids": 3, "HavingKidsAge": 26, "HavingKidsYear": 1978, "FamilyIndicator": "Family"},
    {"Node": "P003", "Name": "Michael Smith", "BirthYear": 1978, "Sex": "Male", "Marriage": "oppositeSexMarried", "MarriageAge": 26, "MarriageYear": 2004, "NumKids": 2, "HavingKidsAge": 29, "HavingKidsYear": 2007, "FamilyIndicator": "Family"},
    {"Node": "P004", "Name": "Sarah Williams", "BirthYear": 1980, "Sex": "Female", "Marriage": "oppositeSexMarried", "MarriageAge": 24, "MarriageYear": 2004, "NumKids": 2, "HavingKidsAge": 27, "HavingKidsYear": 2007, "FamilyIndicator": "Family"},
    {"Node": "P005", "Name": "David Smith", "BirthYear": 1981, "Sex": "Male", "Marriage": "oppositeSexMarried", "MarriageAge": 28, "MarriageYear": 2009, "NumKids": 1, "HavingKidsAge": 31, "HavingKidsYear": 2012, "FamilyIndicator": "Family"},
]


class DataLoadError(RuntimeError):
    pass


@dataclass
class Dataset:
    """Typed records plus bookkeeping from a load."""

    people: List[Person]
    edges: List[RelationshipEdge]
    skipped_nodes: int = 0
    skipped_links: int = 0
    error: Optional[str] = None
    sources: Dict[str, str] = field(default_factory=dict)

    @property
    def is_sample(self) -> bool:
        return self.sources.get("nodes") == "sample"


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def read_source(source: str, http: HTTPClient | None = None) -> str:
    """Return the text behind a path or URL."""
    if _is_url(source):
        client = http or HTTPClient()
        try:
            return client.get_text(source)
        except HTTPError as exc:
            raise DataLoadError(f"Failed to fetch {source}: {exc}") from exc
    if not os.path.exists(source):
        raise DataLoadError(f"File not found: {source}")
    # Undecodable bytes become U+FFFD.
    try:
        with open(source, "r", encoding="utf-8-sig", errors="replace", newline="") as fh:
            return fh.read()
    except OSError as exc:
        raise DataLoadError(f"Failed to read {source}: {exc}") from exc


def parse_rows(text: str) -> List[Dict[str, str]]:
    reader = csv.DictReader(io.StringIO(text))
    return [dict(row) for row in reader]


def parse_people(rows: Iterable[Mapping[str, object]]) -> Tuple[List[Person], int]:
    """Coerce node rows into people; returns ``(people, skipped)``.

    Rows without an identifier are skipped. Repeated identifiers keep the
    first row.
    """
    people: List[Person] = []
    seen: Dict[str, Person] = {}
    skipped = 0
    for row in rows:
        person = Person.from_record(row)
        if not person.id:
            skipped += 1
            continue
        if person.id in seen:
            logger.warning("Duplicate person id %s; keeping the first row", person.id)
            skipped += 1
            continue
        seen[person.id] = person
        people.append(person)
    return people, skipped


def parse_edges(rows: Iterable[Mapping[str, object]]) -> Tuple[List[RelationshipEdge], int]:
    edges: List[RelationshipEdge] = []
    skipped = 0
    for row in rows:
        edge = RelationshipEdge.from_record(row)
        if edge is None:
            skipped += 1
            continue
        edges.append(edge)
    if skipped:
        logger.warning("Skipped %d link rows with a missing endpoint or unknown type", skipped)
    return edges, skipped


def sample_dataset(error: Optional[str] = None) -> Dataset:
    people, _ = parse_people(SAMPLE_NODES)
    return Dataset(people=people, edges=[], error=error, sources={"nodes": "sample", "links": "sample"})


def load_dataset(
    nodes_source: str,
    links_source: Optional[str] = None,
    *,
    http: HTTPClient | None = None,
    fallback_to_sample: bool = False,
) -> Dataset:
    """Load people and relationship edges from CSV sources.

    With ``fallback_to_sample`` a failed load returns :func:`sample_dataset`
    carrying the error message instead of raising :class:`DataLoadError`.
    """
    try:
        node_rows = parse_rows(read_source(nodes_source, http))
        if node_rows and "Node" not in node_rows[0]:
            raise DataLoadError(f"{nodes_source} has no 'Node' column")
        link_rows: List[Dict[str, str]] = []
        if links_source:
            link_rows = parse_rows(read_source(links_source, http))
    except DataLoadError as exc:
        if not fallback_to_sample:
            raise
        logger.error("Error loading data: %s", exc)
        return sample_dataset(error=str(exc))

    people, skipped_nodes = parse_people(node_rows)
    edges, skipped_links = parse_edges(link_rows)
    logger.info("Loaded nodes: %d", len(people))
    logger.info("Loaded links: %d", len(edges))
    return Dataset(
        people=people,
        edges=edges,
        skipped_nodes=skipped_nodes,
        skipped_links=skipped_links,
        sources={"nodes": nodes_source, "links": links_source or ""},
    )


__all__ = [
    "Dataset",
    "DataLoadError",
    "LINK_COLUMNS",
    "NODE_COLUMNS",
    "SAMPLE_NODES",
    "load_dataset",
    "parse_edges",
    "parse_people",
    "parse_rows",
    "read_source",
    "sample_dataset",
]
