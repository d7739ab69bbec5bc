from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from docreview.documents.models import (
    ExtractedDocument,
    OutputKind,
    ReferenceDocument,
    ReferenceDraft,
)


class Stage(Enum):
    """A user-triggered unit of pipeline work."""

    EXTRACT = "extract"
    SUMMARIZE = "summarize"
    POPULATE = "populate"
    GENERATE = "generate"
    CRITIQUE = "critique"
    SAVE = "save"
    SPEAK = "speak"


class StageStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class WorkflowState:
    """Everything the stages read and write, replaced as a whole on every change.

    ``generated_output`` never exists without ``output_kind``; the reverse is
    allowed after a failed generation. ``critique`` only exists alongside
    ``generated_output``.
    """

    raw_text: str = ""
    extracted: ExtractedDocument | None = None
    summary: str | None = None
    draft: ReferenceDraft = field(default_factory=ReferenceDraft)
    selected_reference: ReferenceDocument | None = None
    generated_output: str | None = None
    output_kind: OutputKind | None = None
    critique: str | None = None

    def __post_init__(self) -> None:
        if self.generated_output is not None and self.output_kind is None:
            raise ValueError("generated_output requires output_kind")
        if self.critique is not None and self.generated_output is None:
            raise ValueError("critique requires generated_output")

    def apply(self, changes: dict[str, Any]) -> "WorkflowState":
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class StageOutcome:
    """What a stage invocation did, as reported back to the caller.

    ``status`` is ``None`` when the invocation was rejected before starting.
    """

    stage: Stage
    status: StageStatus | None
    message: str
    ok: bool
