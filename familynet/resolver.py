"""Resolve raw relationship edges into a canonical edge set.

A child may only have two parents on the chart. When the source data lists
more, the first married pair among the candidates wins (falling back to the
first two candidates), and the choice is recorded as a diagnostic.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from .schemas import Diagnostic, EdgeType, Person, RelationshipEdge
from .utils import logger


def pair_key(a: str, b: str) -> FrozenSet[str]:
    return frozenset((a, b))


@dataclass
class ResolutionResult:
    """Canonical edges plus everything the caller may want to surface."""

    edges: List[RelationshipEdge]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    dropped_references: int = 0
    parent_groups: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def marriage_edges(self) -> List[RelationshipEdge]:
        return [edge for edge in self.edges if edge.is_marriage]

    @property
    def parent_edges(self) -> List[RelationshipEdge]:
        return [edge for edge in self.edges if edge.is_parent]

    def to_dict(self) -> Dict[str, object]:
        return {
            "edges": [edge.dict() for edge in self.edges],
            "diagnostics": [diag.dict() for diag in self.diagnostics],
            "dropped_references": self.dropped_references,
        }


class LinkResolver:
    def __init__(self, people: Iterable[Person]) -> None:
        self.person_ids: Set[str] = {person.id for person in people}

    def _known(self, edges: Iterable[RelationshipEdge]) -> Tuple[List[RelationshipEdge], int]:
        kept: List[RelationshipEdge] = []
        dropped = 0
        for edge in edges:
            if edge.source in self.person_ids and edge.target in self.person_ids:
                kept.append(edge)
            else:
                dropped += 1
        return kept, dropped

    @staticmethod
    def group_parents(edges: Iterable[RelationshipEdge]) -> Dict[str, List[str]]:
        """Map child -> distinct parents, both in first-encountered order."""
        groups: Dict[str, List[str]] = {}
        for edge in edges:
            if not edge.is_parent:
                continue
            parents = groups.setdefault(edge.target, [])
            if edge.source not in parents:
                parents.append(edge.source)
        return groups

    @staticmethod
    def choose_parents(
        candidates: Sequence[str], married_pairs: Set[FrozenSet[str]]
    ) -> Tuple[List[str], bool]:
        """Pick two parents; returns ``(pair, found_via_marriage)``."""
        for first, second in combinations(candidates, 2):
            if pair_key(first, second) in married_pairs:
                return [first, second], True
        return list(candidates[:2]), False

    def _duplicate_marriages(self, marriages: Sequence[RelationshipEdge]) -> List[Diagnostic]:
        counts: Counter[FrozenSet[str]] = Counter(pair_key(e.source, e.target) for e in marriages)
        diagnostics: List[Diagnostic] = []
        reported: Set[FrozenSet[str]] = set()
        for edge in marriages:
            key = pair_key(edge.source, edge.target)
            if counts[key] < 2 or key in reported:
                continue
            reported.add(key)
            partners = sorted(key) if len(key) == 2 else [edge.source, edge.target]
            diagnostics.append(
                Diagnostic(
                    kind="duplicate_marriage",
                    subject="|".join(partners),
                    candidates=partners,
                    data={"count": counts[key]},
                )
            )
        return diagnostics

    def resolve(self, edges: Iterable[RelationshipEdge]) -> ResolutionResult:
        known, dropped = self._known(edges)
        if dropped:
            logger.warning("Dropped %d edges referencing unknown people", dropped)

        marriages = [edge for edge in known if edge.is_marriage]
        married_pairs = {pair_key(edge.source, edge.target) for edge in marriages}
        groups = self.group_parents(known)

        canonical: List[RelationshipEdge] = list(marriages)
        diagnostics: List[Diagnostic] = []
        resolved_groups: Dict[str, List[str]] = {}
        for child, parents in groups.items():
            chosen = parents
            if len(parents) > 2:
                chosen, via_marriage = self.choose_parents(parents, married_pairs)
                diagnostic = Diagnostic(
                    kind="excess_parents",
                    subject=child,
                    candidates=list(parents),
                    chosen=list(chosen),
                    dropped=[parent for parent in parents if parent not in chosen],
                    data={"married_pair": via_marriage},
                )
                logger.warning(diagnostic.message)
                diagnostics.append(diagnostic)
            resolved_groups[child] = list(chosen)
            canonical.extend(
                RelationshipEdge(source=parent, target=child, type=EdgeType.PARENT_CHILD)
                for parent in chosen
            )

        for diagnostic in self._duplicate_marriages(marriages):
            logger.info(diagnostic.message)
            diagnostics.append(diagnostic)

        return ResolutionResult(
            edges=canonical,
            diagnostics=diagnostics,
            dropped_references=dropped,
            parent_groups=resolved_groups,
        )


def resolve_links(
    people: Iterable[Person], edges: Iterable[RelationshipEdge]
) -> ResolutionResult:
    return LinkResolver(people).resolve(edges)


def find_diagnostic(result: ResolutionResult, kind: str, subject: str) -> Optional[Diagnostic]:
    for diagnostic in result.diagnostics:
        if diagnostic.kind == kind and diagnostic.subject == subject:
            return diagnostic
    return None


__all__ = ["LinkResolver", "ResolutionResult", "resolve_links", "find_diagnostic", "pair_key"]
