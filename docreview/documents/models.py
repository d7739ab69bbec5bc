from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class OutputKind(Enum):
    """Which report a comparison produced."""

    CTD = "CTD"
    DISCREPANCY = "Discrepancy"


@dataclass(frozen=True)
class ExtractedTest:
    """One test row pulled out of the source document."""

    name: str
    result: str = ""


@dataclass(frozen=True)
class ExtractedDocument:
    """Structured data extracted from free text. Replaced wholesale on re-extraction."""

    title: str | None = None
    number: str | None = None
    revision_date: str | None = None
    summary: str | None = None
    tests: tuple[ExtractedTest, ...] = ()

    def to_payload(self) -> dict[str, object]:
        """Render in the service's field naming, for embedding into prompts."""
        return {
            "document_title": self.title,
            "document_number": self.number,
            "revision_date": self.revision_date,
            "summary": self.summary,
            "tests": [{"test_name": t.name, "result": t.result} for t in self.tests],
        }


@dataclass(frozen=True)
class ReferenceDraft:
    """Editable reference-authoring form. ``tests`` is comma-separated."""

    title: str = ""
    number: str = ""
    summary: str = ""
    tests: str = ""


@dataclass(frozen=True)
class ReferenceDocument:
    """A reference specification the extraction is checked against."""

    id: str
    title: str
    number: str
    summary: str
    tests: tuple[str, ...]
    created_at: datetime

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "number": self.number,
            "summary": self.summary,
            "tests": list(self.tests),
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class SavedDocument:
    """Immutable archive entry for a finished review."""

    id: str
    extracted: ExtractedDocument | None
    reference: ReferenceDocument | None
    generated_output: str
    output_kind: OutputKind | None
    created_at: datetime
    critique: str | None = None
