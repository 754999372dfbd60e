"""Record types for people and relationship edges."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .utils import coerce_int


class Sex(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"

    @classmethod
    def parse(cls, raw: Any) -> Optional["Sex"]:
        """Map a raw CSV value to a member; empty values mean unknown."""
        text = str(raw or "").strip()
        if not text:
            return None
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        return cls.OTHER


class MarriageStatus(str, Enum):
    OPPOSITE_SEX_MARRIED = "oppositeSexMarried"
    SAME_SEX_MARRIED = "sameSexMarried"
    SINGLE = "Single"

    @classmethod
    def parse(cls, raw: Any) -> Optional["MarriageStatus"]:
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


class EdgeType(str, Enum):
    MARRIAGE = "Marriage link"
    PARENT_CHILD = "Parent link"

    @classmethod
    def parse(cls, raw: Any) -> Optional["EdgeType"]:
        text = str(raw or "").strip().lower()
        if text in {"marriage link", "marriage"}:
            return cls.MARRIAGE
        if text in {"parent link", "parentchild", "parent"}:
            return cls.PARENT_CHILD
        return None


@dataclass
class Person:
    id: str
    name: str = ""
    sex: Optional[Sex] = None
    birth_year: int = 0
    marriage: Optional[MarriageStatus] = None
    marriage_age: int = 0
    marriage_year: int = 0
    num_kids: int = 0
    having_kids_age: int = 0
    having_kids_year: int = 0
    family_indicator: str = ""
    sex_label: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id
        if not self.sex_label and self.sex is not None:
            self.sex_label = self.sex.value
        if self.num_kids < 0:
            self.num_kids = 0

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def initial(self) -> str:
        """Upper-cased first letter of the first name word, or of the id."""
        words = self.display_name.strip().split()
        if words:
            return words[0][0].upper()
        return self.id[0].upper() if self.id else "?"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Person":
        """Build a person from a ``nodes.csv`` row, coercing numeric fields."""
        node_id = str(record.get("Node") or "").strip()
        return cls(
            id=node_id,
            name=str(record.get("Name") or "").strip() or node_id,
            sex=Sex.parse(record.get("Sex")),
            birth_year=coerce_int(record.get("BirthYear")),
            marriage=MarriageStatus.parse(record.get("Marriage")),
            marriage_age=coerce_int(record.get("MarriageAge")),
            marriage_year=coerce_int(record.get("MarriageYear")),
            num_kids=max(0, coerce_int(record.get("NumKids"))),
            having_kids_age=coerce_int(record.get("HavingKidsAge")),
            having_kids_year=coerce_int(record.get("HavingKidsYear")),
            family_indicator=str(record.get("FamilyIndicator") or "").strip(),
            sex_label=str(record.get("Sex") or "").strip(),
        )

    def to_record(self) -> Dict[str, Any]:
        """Inverse of :meth:`from_record`, using the CSV column names."""
        return {
            "Node": self.id,
            "Name": self.name,
            "BirthYear": self.birth_year,
            "Sex": self.sex_label,
            "Marriage": self.marriage.value if self.marriage else "",
            "MarriageAge": self.marriage_age,
            "MarriageYear": self.marriage_year,
            "NumKids": self.num_kids,
            "HavingKidsAge": self.having_kids_age,
            "HavingKidsYear": self.having_kids_year,
            "FamilyIndicator": self.family_indicator,
        }

    def detail(self) -> Dict[str, Any]:
        """Payload shown when the node is hovered."""
        return {
            "id": self.id,
            "name": self.display_name,
            "birth_year": self.birth_year or None,
            "sex": self.sex_label or None,
            "marriage": self.marriage.value if self.marriage else None,
            "marriage_age": self.marriage_age or None,
            "marriage_year": self.marriage_year or None,
            "num_kids": self.num_kids,
            "having_kids_age": self.having_kids_age or None,
            "having_kids_year": self.having_kids_year or None,
        }


@dataclass(frozen=True)
class RelationshipEdge:
    source: str
    target: str
    type: EdgeType

    @property
    def is_marriage(self) -> bool:
        return self.type is EdgeType.MARRIAGE

    @property
    def is_parent(self) -> bool:
        return self.type is EdgeType.PARENT_CHILD

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Optional["RelationshipEdge"]:
        """Build an edge from a ``links.csv`` row; ``None`` when unusable."""
        source = str(record.get("Source") or "").strip()
        target = str(record.get("Target") or "").strip()
        edge_type = EdgeType.parse(record.get("Types"))
        if not source or not target or edge_type is None:
            return None
        return cls(source=source, target=target, type=edge_type)

    def to_record(self) -> Dict[str, str]:
        return {"Source": self.source, "Target": self.target, "Types": self.type.value}

    def dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class Diagnostic:
    """Structured record of a non-fatal data anomaly and how it was handled."""

    kind: str
    subject: str
    candidates: List[str] = field(default_factory=list)
    chosen: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        if self.kind == "excess_parents":
            return (
                f"Child {self.subject} has {len(self.candidates)} parents; "
                f"using only: {', '.join(self.chosen)}"
            )
        if self.kind == "duplicate_marriage":
            return f"Marriage {self.subject} recorded {self.data.get('count', 0)} times"
        return f"{self.kind}: {self.subject}"

    def dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["message"] = self.message
        return data


__all__ = [
    "Sex",
    "MarriageStatus",
    "EdgeType",
    "Person",
    "RelationshipEdge",
    "Diagnostic",
]
