import json
from pathlib import Path

from docreview.documents.models import ExtractedDocument, OutputKind, ReferenceDocument
from docreview.gateway.prompt_loader import load_prompt_template


def _as_json(payload: dict[str, object]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


class PromptBook:
    """Renders every prompt the workflow sends, from templates loaded once."""

    def __init__(self, prompt_dir: Path | None = None) -> None:
        self._templates = {
            name: load_prompt_template(name, prompt_dir).strip()
            for name in (
                "extraction",
                "summary",
                "populate",
                "ctd",
                "discrepancy",
                "critique",
                "speech",
            )
        }

    def extraction(self, raw_text: str) -> str:
        return self._templates["extraction"].format(raw_text=raw_text)

    def summary(self, extracted: ExtractedDocument) -> str:
        return self._templates["summary"].format(
            extracted_json=_as_json(extracted.to_payload())
        )

    def populate(self, draft_text: str) -> str:
        return self._templates["populate"].format(draft_text=draft_text)

    def report(
        self,
        kind: OutputKind,
        extracted: ExtractedDocument,
        reference: ReferenceDocument,
    ) -> str:
        """Pick the CTD or discrepancy template according to ``kind``."""
        template = self._templates["ctd" if kind is OutputKind.CTD else "discrepancy"]
        return template.format(
            extracted_json=_as_json(extracted.to_payload()),
            reference_json=_as_json(reference.to_payload()),
        )

    def critique(self, report: str) -> str:
        return self._templates["critique"].format(report=report)

    def speech(self, text: str) -> str:
        return self._templates["speech"].format(text=text)
