"""
agent_labs.domain.models - Value objects for retrieval and routing.

These are immutable data containers with no dependencies on
infrastructure (no LangChain, no FAISS, no SQLite).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Policy documents (retrieval corpus)
# ---------------------------------------------------------------------------

def _pick(raw: dict[str, Any], key: str, default: Any = "") -> Any:
    """Case-insensitive dict lookup (documentId / DocumentId / documentid)."""
    lowered = {k.lower(): v for k, v in raw.items()}
    return lowered.get(key.lower(), default)


@dataclass(frozen=True)
class PolicySection:
    id: str
    title: str
    content: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PolicySection:
        return cls(
            id=str(_pick(raw, "id")),
            title=str(_pick(raw, "title")),
            content=str(_pick(raw, "content")),
        )


@dataclass(frozen=True)
class PolicyDocument:
    """A policy JSON file: one document, many sections."""
    document_id: str
    category: str
    title: str
    last_updated: str = ""
    sections: list[PolicySection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PolicyDocument:
        return cls(
            document_id=str(_pick(raw, "documentId")),
            category=str(_pick(raw, "category")),
            title=str(_pick(raw, "title")),
            last_updated=str(_pick(raw, "lastUpdated")),
            sections=[
                PolicySection.from_dict(s) for s in _pick(raw, "sections", []) or []
            ],
        )

    def to_records(self) -> list[PolicySectionRecord]:
        return [
            PolicySectionRecord(
                id=f"{self.document_id}-{s.id}",
                document_id=self.document_id,
                category=self.category,
                section_id=s.id,
                title=s.title,
                content=s.content,
            )
            for s in self.sections
        ]


@dataclass(frozen=True)
class PolicySectionRecord:
    """One retrievable row: a policy section plus its document identity."""
    id: str
    document_id: str
    category: str
    section_id: str
    title: str
    content: str

    @property
    def embedding_text(self) -> str:
        return f"Title: {self.title}\nContent: {self.content}"

    def to_metadata(self) -> dict[str, str]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "category": self.category,
            "section_id": self.section_id,
            "title": self.title,
            "content": self.content,
        }

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any]) -> PolicySectionRecord:
        return cls(
            id=metadata.get("id", ""),
            document_id=metadata.get("document_id", ""),
            category=metadata.get("category", ""),
            section_id=metadata.get("section_id", ""),
            title=metadata.get("title", ""),
            content=metadata.get("content", ""),
        )


@dataclass(frozen=True)
class PolicySearchResult:
    """A record with its similarity score (higher is closer)."""
    record: PolicySectionRecord
    score: float

    def format(self) -> str:
        r = self.record
        return f"[{r.category}] {r.title} (Score: {self.score:.4f}): {r.content}"


# ---------------------------------------------------------------------------
# Seller problem typology
# ---------------------------------------------------------------------------

class ProblemTypology(str, Enum):
    """Category of an after-sales problem, resolved from French free text."""
    UNKNOWN = "unknown"
    WRONG_ITEM = "wrong_item"
    DAMAGED = "damaged"
    MALFUNCTION = "malfunction"
    MISSING_PARTS = "missing_parts"
    DELIVERY = "delivery"
    TRACKING = "tracking"
    QUALITY = "quality"
    WARRANTY = "warranty"
    SIZE = "size"
    REFUND = "refund"
