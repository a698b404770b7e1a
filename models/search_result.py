from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit returned by the vector store."""

    id: str
    score: float = 0.0
    text: str | None = None
    document: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        """Primary text of the hit; ``text`` wins over ``document``."""
        return self.text or self.document or ""

    @property
    def has_content(self) -> bool:
        return bool(self.content.strip())

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SearchResult":
        metadata = payload.get("metadata")
        score = payload.get("score")
        return cls(
            id=str(payload.get("id", "")),
            score=float(score) if isinstance(score, (int, float)) else 0.0,
            text=payload.get("text") if isinstance(payload.get("text"), str) else None,
            document=payload.get("document") if isinstance(payload.get("document"), str) else None,
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )
