import uuid
from datetime import datetime, timezone

from docreview.documents.models import ReferenceDocument, ReferenceDraft
from docreview.logging.logger import Log
from docreview.workflow.exceptions import ReferenceNotFoundError, ReferenceValidationError


def split_tests(raw: str) -> tuple[str, ...]:
    """Split a comma-separated test list, trimming entries and dropping blanks."""
    return tuple(name.strip() for name in raw.split(",") if name.strip())


class ReferenceLibrary:
    """In-memory collection of reference documents, in insertion order."""

    def __init__(self) -> None:
        self._documents: dict[str, ReferenceDocument] = {}

    def add_from_draft(self, draft: ReferenceDraft) -> ReferenceDocument:
        """Create a reference from the authoring form.

        Raises:
            ReferenceValidationError: if title or summary is blank.
        """
        if not draft.title.strip() or not draft.summary.strip():
            raise ReferenceValidationError("Title and Summary are required.")
        document = ReferenceDocument(
            id=str(uuid.uuid4()),
            title=draft.title,
            number=draft.number,
            summary=draft.summary,
            tests=split_tests(draft.tests),
            created_at=datetime.now(timezone.utc),
        )
        self._documents[document.id] = document
        Log.info(f"Added reference {document.id} with {len(document.tests)} tests")
        return document

    def get(self, reference_id: str) -> ReferenceDocument:
        try:
            return self._documents[reference_id]
        except KeyError:
            raise ReferenceNotFoundError(f"Reference document '{reference_id}' not found.") from None

    def remove(self, reference_id: str) -> ReferenceDocument:
        document = self.get(reference_id)
        del self._documents[reference_id]
        Log.info(f"Removed reference {reference_id}")
        return document

    def list(self) -> list[ReferenceDocument]:
        return list(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)
