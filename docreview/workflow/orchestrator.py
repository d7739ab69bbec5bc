"""Drives the review stages over one explicit workflow state."""

from dataclasses import replace
from pathlib import Path

from docreview.audio.factory import AudioPlayerFactory
from docreview.audio.renderer import AudioRenderer, PlaybackEnded
from docreview.config.settings import Settings
from docreview.documents.archive import Archive
from docreview.documents.models import ReferenceDocument, ReferenceDraft
from docreview.documents.references import ReferenceLibrary
from docreview.gateway.factory import GatewayFactory
from docreview.gateway.gateway import AIGateway
from docreview.gateway.prompt_book import PromptBook
from docreview.ingestion.document_loader import DocumentLoader
from docreview.ingestion.exceptions import DocumentLoadError
from docreview.logging.logger import Log
from docreview.pdf.factory import PdfExtractorFactory
from docreview.workflow.exceptions import PreconditionError, WorkflowError
from docreview.workflow.models import Stage, StageOutcome, StageStatus, WorkflowState
from docreview.workflow.notifier import BaseNotifier, LogNotifier
from docreview.workflow.pipeline import StageStep, Transition
from docreview.workflow.steps import (
    CritiqueStep,
    ExtractStep,
    GenerateReportStep,
    PopulateStep,
    SaveStep,
    SpeakStep,
    SummarizeStep,
)


class WorkflowSession:
    """One user's review session.

    Stage handlers never touch the state directly; they return transitions
    that the session applies. A handler's precondition check and its start
    transition run without an intervening ``await``, so concurrently invoked
    stages always see a consistent state. Completion transitions are applied
    to whatever the state is when the call returns, and dropped if the
    inputs they were computed from have since been replaced.
    """

    def __init__(
        self,
        *,
        gateway: AIGateway,
        renderer: AudioRenderer,
        loader: DocumentLoader,
        references: ReferenceLibrary | None = None,
        archive: Archive | None = None,
        notifier: BaseNotifier | None = None,
        prompts: PromptBook | None = None,
    ) -> None:
        prompts = prompts or PromptBook()
        self._gateway = gateway
        self._renderer = renderer
        self._loader = loader
        self._references = references if references is not None else ReferenceLibrary()
        self._archive = archive if archive is not None else Archive()
        self._notifier = notifier or LogNotifier()
        self._state = WorkflowState()
        self._statuses = {stage: StageStatus.IDLE for stage in Stage}
        self._speak = SpeakStep(gateway, prompts, renderer)
        self._steps: dict[Stage, StageStep] = {
            Stage.EXTRACT: ExtractStep(gateway, prompts),
            Stage.SUMMARIZE: SummarizeStep(gateway, prompts),
            Stage.POPULATE: PopulateStep(gateway, prompts),
            Stage.GENERATE: GenerateReportStep(gateway, prompts),
            Stage.CRITIQUE: CritiqueStep(gateway, prompts),
            Stage.SAVE: SaveStep(self._archive),
            Stage.SPEAK: self._speak,
        }
        renderer.add_listener(self._on_playback_ended)

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def statuses(self) -> dict[Stage, StageStatus]:
        return dict(self._statuses)

    def status(self, stage: Stage) -> StageStatus:
        return self._statuses[stage]

    @property
    def references(self) -> ReferenceLibrary:
        return self._references

    @property
    def archive(self) -> Archive:
        return self._archive

    @property
    def is_playing(self) -> bool:
        return self._renderer.is_playing

    # -- inputs -------------------------------------------------------------

    def set_raw_text(self, text: str) -> None:
        self._state = self._state.apply({"raw_text": text})

    def update_draft(self, **fields: str) -> None:
        """Edit reference-form fields (title, number, summary, tests)."""
        self._state = self._state.apply({"draft": replace(self._state.draft, **fields)})

    async def load_document(self, path: Path) -> bool:
        """Read a source document into the raw text used by extraction."""
        text = await self._load(path)
        if text is None:
            return False
        self.set_raw_text(text)
        self._notifier.message(f"Loaded {path.name}.", ok=True)
        return True

    async def load_reference_file(self, path: Path) -> bool:
        """Read a file into the reference draft's summary field."""
        text = await self._load(path)
        if text is None:
            return False
        self.update_draft(summary=text)
        self._notifier.message(f"Loaded {path.name} into the reference form.", ok=True)
        return True

    def add_reference(self) -> ReferenceDocument | None:
        """Turn the current draft into a reference document and clear the form."""
        try:
            document = self._references.add_from_draft(self._state.draft)
        except WorkflowError as exc:
            self._notifier.message(str(exc), ok=False)
            return None
        self._state = self._state.apply({"draft": ReferenceDraft()})
        self._notifier.message("Reference document added successfully!", ok=True)
        return document

    def select_reference(self, reference_id: str | None) -> bool:
        if reference_id is None:
            self._state = self._state.apply({"selected_reference": None})
            return True
        try:
            document = self._references.get(reference_id)
        except WorkflowError as exc:
            self._notifier.message(str(exc), ok=False)
            return False
        self._state = self._state.apply({"selected_reference": document})
        return True

    # -- stages -------------------------------------------------------------

    async def extract(self) -> StageOutcome:
        return await self._run(self._steps[Stage.EXTRACT])

    async def summarize(self) -> StageOutcome:
        return await self._run(self._steps[Stage.SUMMARIZE])

    async def populate(self) -> StageOutcome:
        return await self._run(self._steps[Stage.POPULATE])

    async def generate(self) -> StageOutcome:
        """Compare the extraction with the selected reference and write the report."""
        return await self._run(self._steps[Stage.GENERATE])

    async def critique(self) -> StageOutcome:
        return await self._run(self._steps[Stage.CRITIQUE])

    async def save(self) -> StageOutcome:
        return await self._run(self._steps[Stage.SAVE])

    async def speak(self) -> StageOutcome:
        return await self._run(self._speak)

    def stop_speaking(self) -> None:
        self._renderer.stop()

    async def wait_for_playback(self) -> None:
        await self._renderer.wait()

    async def aclose(self) -> None:
        """Stop playback and release the gateway transport."""
        self._renderer.stop()
        await self._gateway.aclose()

    # -- internals ----------------------------------------------------------

    async def _run(self, step: StageStep) -> StageOutcome:
        stage = step.stage
        if self._statuses[stage] is StageStatus.RUNNING and not step.reentrant:
            return self._reject(stage, f"The {stage.value} stage is already running.")
        try:
            start = step.begin(self._state)
        except PreconditionError as exc:
            return self._reject(stage, str(exc))

        self._apply(start)
        snapshot = self._state
        self._set_status(stage, StageStatus.RUNNING)
        Log.info(f"Stage {stage.value} started")

        try:
            done = await step.execute(snapshot)
        except Exception as exc:
            Log.error(f"Stage {stage.value} failed: {exc}")
            return self._finish(stage, StageStatus.FAILED, step.describe_failure(snapshot, exc))

        if not done.is_current(self._state):
            Log.warning(f"Stage {stage.value} result discarded: inputs changed while running")
            return self._finish(
                stage,
                StageStatus.FAILED,
                f"Inputs changed while the {stage.value} stage was running; result discarded.",
            )
        self._apply(done)
        return self._finish(stage, done.status, done.message)

    def _apply(self, transition: Transition) -> None:
        self._state = self._state.apply(transition.changes)

    def _reject(self, stage: Stage, message: str) -> StageOutcome:
        Log.info(f"Stage {stage.value} not started: {message}")
        self._notifier.message(message, ok=False)
        return StageOutcome(stage=stage, status=None, message=message, ok=False)

    def _finish(self, stage: Stage, status: StageStatus, message: str) -> StageOutcome:
        ok = status is not StageStatus.FAILED
        self._set_status(stage, status)
        if message:
            self._notifier.message(message, ok=ok)
        Log.info(f"Stage {stage.value} finished: {status.value}")
        return StageOutcome(stage=stage, status=status, message=message, ok=ok)

    def _set_status(self, stage: Stage, status: StageStatus) -> None:
        self._statuses[stage] = status
        self._notifier.stage_changed(stage, status)

    def _on_playback_ended(self, ended: PlaybackEnded) -> None:
        if ended.error is not None:
            self._set_status(Stage.SPEAK, StageStatus.FAILED)
            self._notifier.message("Failed to play audio. See logs for details.", ok=False)
            return
        if self._renderer.is_playing or self._speak.in_flight:
            return
        if self._statuses[Stage.SPEAK] is StageStatus.RUNNING:
            self._set_status(Stage.SPEAK, StageStatus.SUCCEEDED)

    async def _load(self, path: Path) -> str | None:
        try:
            return await self._loader.load_text(path)
        except DocumentLoadError as exc:
            Log.error(f"Document load failed: {exc}")
            self._notifier.message(f"Failed to load {path.name}.", ok=False)
            return None


def build_session(settings: Settings, notifier: BaseNotifier | None = None) -> WorkflowSession:
    """Build a WorkflowSession with all adapters chosen by settings."""
    return WorkflowSession(
        gateway=GatewayFactory.create(settings),
        renderer=AudioRenderer(AudioPlayerFactory.create(settings)),
        loader=DocumentLoader(PdfExtractorFactory.create(settings)),
        notifier=notifier,
    )
