import uuid
from datetime import datetime, timezone
from typing import TypeVar

from docreview.audio.renderer import AudioRenderer
from docreview.discrepancy.engine import compare_tests, decide
from docreview.documents.archive import Archive
from docreview.documents.models import OutputKind, ReferenceDraft, SavedDocument
from docreview.gateway.exceptions import EmptyResultError
from docreview.gateway.gateway import AIGateway
from docreview.gateway.prompt_book import PromptBook
from docreview.logging.logger import Log
from docreview.workflow.exceptions import PreconditionError
from docreview.workflow.models import Stage, StageStatus, WorkflowState
from docreview.workflow.pipeline import StageStep, Transition

T = TypeVar("T")

_CLEARED_OUTPUT = {"generated_output": None, "output_kind": None, "critique": None}

NEEDS_EXTRACTION = "Please extract data first."
NEEDS_REPORT_INPUTS = "Please extract data and select a reference document first."
NEEDS_REPORT = "Please generate a report first."
NOTHING_TO_SAVE = "No document to save."
NOTHING_TO_READ = "There is no text to read aloud."


def _kind_label(kind: OutputKind | None) -> str:
    return kind.value if kind is not None else "report"


def _require(value: T | None, message: str) -> T:
    if value is None:
        raise PreconditionError(message)
    return value


class ExtractStep(StageStep):
    stage = Stage.EXTRACT
    empty_message = "Could not extract data. Please try again."
    failure_message = "Failed to extract data. See logs for details."

    def __init__(self, gateway: AIGateway, prompts: PromptBook) -> None:
        self._gateway = gateway
        self._prompts = prompts

    def begin(self, state: WorkflowState) -> Transition:
        if not state.raw_text.strip():
            raise PreconditionError("Please enter some text to parse.")
        # Everything downstream was derived from the previous extraction.
        return Transition(changes={"extracted": None, "summary": None, **_CLEARED_OUTPUT})

    async def execute(self, state: WorkflowState) -> Transition:
        document = await self._gateway.extract_document(
            self._prompts.extraction(state.raw_text)
        )
        return Transition(
            changes={"extracted": document},
            message="Data extracted successfully!",
        )


class SummarizeStep(StageStep):
    stage = Stage.SUMMARIZE
    empty_message = "Could not generate summary."
    failure_message = "Failed to summarize data. See logs for details."

    def __init__(self, gateway: AIGateway, prompts: PromptBook) -> None:
        self._gateway = gateway
        self._prompts = prompts

    def begin(self, state: WorkflowState) -> Transition:
        _require(state.extracted, NEEDS_EXTRACTION)
        return Transition()

    async def execute(self, state: WorkflowState) -> Transition:
        extracted = _require(state.extracted, NEEDS_EXTRACTION)
        summary = await self._gateway.generate_text(self._prompts.summary(extracted))
        return Transition(
            changes={"summary": summary},
            message="Summary generated successfully!",
            requires={"extracted": extracted},
        )


class PopulateStep(StageStep):
    stage = Stage.POPULATE
    empty_message = "Could not populate reference. Please try again."
    failure_message = "Failed to populate reference. See logs for details."

    def __init__(self, gateway: AIGateway, prompts: PromptBook) -> None:
        self._gateway = gateway
        self._prompts = prompts

    def begin(self, state: WorkflowState) -> Transition:
        if not state.draft.summary.strip():
            raise PreconditionError("Please paste text into the summary field to populate.")
        return Transition()

    async def execute(self, state: WorkflowState) -> Transition:
        result = await self._gateway.populate_reference(
            self._prompts.populate(state.draft.summary)
        )
        draft = ReferenceDraft(
            title=result.title or "",
            number=result.number or "",
            summary=result.summary or "",
            tests=result.tests or "",
        )
        return Transition(
            changes={"draft": draft},
            message="Reference document populated successfully!",
        )


class GenerateReportStep(StageStep):
    """Compares tests, fixes the report kind up front, then generates the report."""

    stage = Stage.GENERATE
    empty_message = "Could not generate {kind}. Please try again."
    failure_message = "Failed to generate {kind}. See logs for details."

    def __init__(self, gateway: AIGateway, prompts: PromptBook) -> None:
        self._gateway = gateway
        self._prompts = prompts

    def begin(self, state: WorkflowState) -> Transition:
        if state.extracted is None or state.selected_reference is None:
            raise PreconditionError(NEEDS_REPORT_INPUTS)
        comparison = compare_tests(state.extracted, state.selected_reference)
        kind = decide(state.extracted, state.selected_reference)
        Log.info(
            f"Comparison against reference {state.selected_reference.id}: {kind.value} "
            f"(missing={sorted(comparison.missing_from_extracted)}, "
            f"unexpected={sorted(comparison.not_in_reference)})"
        )
        return Transition(changes={**_CLEARED_OUTPUT, "output_kind": kind})

    async def execute(self, state: WorkflowState) -> Transition:
        extracted = _require(state.extracted, NEEDS_REPORT_INPUTS)
        reference = _require(state.selected_reference, NEEDS_REPORT_INPUTS)
        kind = _require(state.output_kind, NEEDS_REPORT_INPUTS)
        report = await self._gateway.generate_text(
            self._prompts.report(kind, extracted, reference)
        )
        return Transition(
            changes={"generated_output": report},
            message=f"{kind.value} generated successfully!",
            requires={
                "extracted": extracted,
                "selected_reference": reference,
                "output_kind": kind,
            },
        )

    def describe_failure(self, state: WorkflowState, exc: Exception) -> str:
        template = self.empty_message if isinstance(exc, EmptyResultError) else self.failure_message
        return template.format(kind=_kind_label(state.output_kind))


class CritiqueStep(StageStep):
    stage = Stage.CRITIQUE
    empty_message = "Could not generate critique."
    failure_message = "Failed to generate critique. See logs for details."

    def __init__(self, gateway: AIGateway, prompts: PromptBook) -> None:
        self._gateway = gateway
        self._prompts = prompts

    def begin(self, state: WorkflowState) -> Transition:
        if not state.generated_output:
            raise PreconditionError(NEEDS_REPORT)
        return Transition()

    async def execute(self, state: WorkflowState) -> Transition:
        report = _require(state.generated_output, NEEDS_REPORT)
        critique = await self._gateway.generate_text(self._prompts.critique(report))
        return Transition(
            changes={"critique": critique},
            message="Critique generated successfully!",
            requires={"generated_output": report},
        )


class SaveStep(StageStep):
    """Archives the finished review and resets the workflow for the next one."""

    stage = Stage.SAVE
    failure_message = "Error saving document. See logs for details."

    def __init__(self, archive: Archive) -> None:
        self._archive = archive

    def begin(self, state: WorkflowState) -> Transition:
        if not state.generated_output:
            raise PreconditionError(NOTHING_TO_SAVE)
        return Transition()

    async def execute(self, state: WorkflowState) -> Transition:
        report = _require(state.generated_output, NOTHING_TO_SAVE)
        snapshot = SavedDocument(
            id=str(uuid.uuid4()),
            extracted=state.extracted,
            reference=state.selected_reference,
            generated_output=report,
            output_kind=state.output_kind,
            created_at=datetime.now(timezone.utc),
            critique=state.critique,
        )
        self._archive.append(snapshot)
        Log.info(f"Saved document {snapshot.id} ({len(self._archive)} in archive)")
        return Transition(
            changes={
                "extracted": None,
                "summary": None,
                "selected_reference": None,
                **_CLEARED_OUTPUT,
            },
            message="Document saved successfully!",
        )


class SpeakStep(StageStep):
    """Synthesizes the report as speech and hands it to the renderer.

    The stage stays running while the clip plays; the session settles it
    when the renderer reports the clip ended. Re-invoking replaces the clip.
    """

    stage = Stage.SPEAK
    reentrant = True
    empty_message = "Could not get audio data from API."
    failure_message = "Failed to generate speech. See logs for details."

    def __init__(
        self,
        gateway: AIGateway,
        prompts: PromptBook,
        renderer: AudioRenderer,
    ) -> None:
        self._gateway = gateway
        self._prompts = prompts
        self._renderer = renderer
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def begin(self, state: WorkflowState) -> Transition:
        if not state.generated_output:
            raise PreconditionError(NOTHING_TO_READ)
        return Transition()

    async def execute(self, state: WorkflowState) -> Transition:
        report = _require(state.generated_output, NOTHING_TO_READ)
        self._in_flight += 1
        try:
            payload = await self._gateway.synthesize_speech(self._prompts.speech(report))
            self._renderer.start(payload)
        finally:
            self._in_flight -= 1
        return Transition(message="Reading aloud...", status=StageStatus.RUNNING)
