from docreview.documents.models import SavedDocument


class Archive:
    """Append-only store of saved reviews for the lifetime of the process."""

    def __init__(self) -> None:
        self._entries: list[SavedDocument] = []

    def append(self, document: SavedDocument) -> None:
        self._entries.append(document)

    def get(self, document_id: str) -> SavedDocument | None:
        return next((d for d in self._entries if d.id == document_id), None)

    def list(self) -> list[SavedDocument]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
