import asyncio
import base64
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from docreview.audio.base import BaseAudioPlayer
from docreview.audio.exceptions import AudioPlaybackError
from docreview.audio.renderer import AudioRenderer
from docreview.audio.wav import WavClip
from docreview.documents.archive import Archive
from docreview.documents.models import ExtractedDocument, ExtractedTest, OutputKind
from docreview.gateway.exceptions import EmptyResultError, GatewayTransportError
from docreview.gateway.models import PopulateResult, SpeechPayload
from docreview.gateway.prompt_book import PromptBook
from docreview.ingestion.exceptions import DocumentLoadError
from docreview.workflow.exceptions import PreconditionError
from docreview.workflow.models import Stage, StageStatus, WorkflowState
from docreview.workflow.notifier import BaseNotifier
from docreview.workflow.orchestrator import WorkflowSession
from docreview.workflow.steps import (
    CritiqueStep,
    GenerateReportStep,
    SaveStep,
    SpeakStep,
    SummarizeStep,
)

EXTRACTED = ExtractedDocument(
    title="Certificate of Analysis",
    number="COA-42",
    summary="Batch 7",
    tests=(ExtractedTest("Assay", "99.5%"), ExtractedTest("Purity", "Conforms")),
)
SPEECH = SpeechPayload(
    data=base64.b64encode(b"\x00\x00" * 160).decode(),
    mime_type="audio/L16;codec=pcm;rate=16000",
)


class _RecordingNotifier(BaseNotifier):
    def __init__(self) -> None:
        self.messages: list[tuple[str, bool]] = []
        self.changes: list[tuple[Stage, StageStatus]] = []

    def message(self, text: str, *, ok: bool) -> None:
        self.messages.append((text, ok))

    def stage_changed(self, stage: Stage, status: StageStatus) -> None:
        self.changes.append((stage, status))


class _HeldPlayer(BaseAudioPlayer):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.release = asyncio.Event()

    async def play(self, clip: WavClip) -> None:
        if self.fail:
            raise AudioPlaybackError("device unplugged")
        await self.release.wait()

    def stop(self) -> None:
        pass


def _make_gateway() -> AsyncMock:
    gateway = AsyncMock()
    gateway.extract_document.return_value = EXTRACTED
    gateway.generate_text.return_value = "Generated text"
    gateway.populate_reference.return_value = PopulateResult(
        title="Spec", number=None, summary="Release spec", tests="Assay, Purity"
    )
    gateway.synthesize_speech.return_value = SPEECH
    return gateway


def _make_session(
    gateway: AsyncMock | None = None,
    player: BaseAudioPlayer | None = None,
) -> tuple[WorkflowSession, _RecordingNotifier, AsyncMock]:
    gateway = gateway or _make_gateway()
    notifier = _RecordingNotifier()
    loader = AsyncMock()
    session = WorkflowSession(
        gateway=gateway,
        renderer=AudioRenderer(player or _HeldPlayer()),
        loader=loader,
        notifier=notifier,
    )
    return session, notifier, loader


def _add_reference(session: WorkflowSession, tests: str = "Assay, Purity") -> str:
    session.update_draft(title="Spec", summary="Release spec", tests=tests)
    document = session.add_reference()
    assert document is not None
    session.select_reference(document.id)
    return document.id


async def _prepare_report(session: WorkflowSession, tests: str = "Assay, Purity") -> None:
    session.set_raw_text("Assay 99.5%, Purity conforms")
    await session.extract()
    _add_reference(session, tests)
    await session.generate()


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _blocking(result: object) -> tuple[AsyncMock, asyncio.Event]:
    """An AsyncMock side effect that waits for the returned event."""
    gate = asyncio.Event()

    async def wait(*args: object, **kwargs: object) -> object:
        await gate.wait()
        if isinstance(result, BaseException):
            raise result
        return result

    return AsyncMock(side_effect=wait), gate


_GATEWAY_CALLS = (
    "extract_document",
    "generate_text",
    "populate_reference",
    "synthesize_speech",
)


class TestPreconditions:
    @pytest.mark.parametrize(
        ("stage", "message"),
        [
            ("extract", "Please enter some text to parse."),
            ("summarize", "Please extract data first."),
            ("populate", "Please paste text into the summary field to populate."),
            ("generate", "Please extract data and select a reference document first."),
            ("critique", "Please generate a report first."),
            ("save", "No document to save."),
            ("speak", "There is no text to read aloud."),
        ],
    )
    def test_rejected_without_inputs(self, stage: str, message: str) -> None:
        gateway = _make_gateway()
        session, notifier, _ = _make_session(gateway)

        outcome = asyncio.run(getattr(session, stage)())

        assert outcome.ok is False
        assert outcome.status is None
        assert outcome.message == message
        assert notifier.messages == [(message, False)]
        assert session.status(Stage(stage)) is StageStatus.IDLE
        for name in _GATEWAY_CALLS:
            getattr(gateway, name).assert_not_awaited()
        assert len(session.archive) == 0

    def test_whitespace_raw_text_is_rejected(self) -> None:
        session, _, _ = _make_session()
        session.set_raw_text("   \n")
        outcome = asyncio.run(session.extract())
        assert outcome.message == "Please enter some text to parse."

    def test_generate_needs_reference(self) -> None:
        session, _, _ = _make_session()
        session.set_raw_text("text")
        asyncio.run(session.extract())
        outcome = asyncio.run(session.generate())
        assert outcome.message == "Please extract data and select a reference document first."


class TestExtractAndSummarize:
    def test_extract_stores_document(self) -> None:
        session, notifier, _ = _make_session()
        session.set_raw_text("Assay 99.5%")

        outcome = asyncio.run(session.extract())

        assert outcome.ok
        assert session.state.extracted is EXTRACTED
        assert session.status(Stage.EXTRACT) is StageStatus.SUCCEEDED
        assert notifier.messages[-1] == ("Data extracted successfully!", True)
        assert notifier.changes == [
            (Stage.EXTRACT, StageStatus.RUNNING),
            (Stage.EXTRACT, StageStatus.SUCCEEDED),
        ]

    def test_extract_sends_raw_text_in_prompt(self) -> None:
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway)
        session.set_raw_text("UNIQUE-MARKER-123")
        asyncio.run(session.extract())
        assert "UNIQUE-MARKER-123" in gateway.extract_document.await_args.args[0]

    def test_empty_extraction_message(self) -> None:
        gateway = _make_gateway()
        gateway.extract_document.side_effect = EmptyResultError("no text")
        session, notifier, _ = _make_session(gateway)
        session.set_raw_text("text")

        outcome = asyncio.run(session.extract())

        assert outcome.status is StageStatus.FAILED
        assert notifier.messages[-1] == ("Could not extract data. Please try again.", False)

    def test_transport_failure_message(self) -> None:
        gateway = _make_gateway()
        gateway.extract_document.side_effect = GatewayTransportError("API call failed with status: 500")
        session, notifier, _ = _make_session(gateway)
        session.set_raw_text("text")

        asyncio.run(session.extract())

        assert notifier.messages[-1] == ("Failed to extract data. See logs for details.", False)
        assert session.status(Stage.EXTRACT) is StageStatus.FAILED

    def test_re_extract_clears_downstream(self) -> None:
        session, _, _ = _make_session()

        async def scenario() -> None:
            await _prepare_report(session)
            await session.summarize()
            await session.critique()
            assert session.state.critique is not None
            await session.extract()

        asyncio.run(scenario())
        state = session.state
        assert state.extracted is EXTRACTED
        assert state.summary is None
        assert state.generated_output is None
        assert state.output_kind is None
        assert state.critique is None

    def test_summarize_stores_summary(self) -> None:
        session, notifier, _ = _make_session()
        session.set_raw_text("text")

        async def scenario() -> None:
            await session.extract()
            await session.summarize()

        asyncio.run(scenario())
        assert session.state.summary == "Generated text"
        assert notifier.messages[-1] == ("Summary generated successfully!", True)


class TestPopulateAndReferences:
    def test_populate_fills_draft_and_nulls_become_empty(self) -> None:
        session, notifier, _ = _make_session()
        session.update_draft(summary="Paste of a spec")

        outcome = asyncio.run(session.populate())

        assert outcome.ok
        draft = session.state.draft
        assert draft.title == "Spec"
        assert draft.number == ""
        assert draft.tests == "Assay, Purity"
        assert notifier.messages[-1] == ("Reference document populated successfully!", True)

    def test_add_reference_resets_draft(self) -> None:
        session, notifier, _ = _make_session()
        session.update_draft(title="Spec", summary="S", tests="Assay, ,Purity")

        document = session.add_reference()

        assert document is not None
        assert document.tests == ("Assay", "Purity")
        assert session.state.draft.title == ""
        assert len(session.references) == 1
        assert notifier.messages[-1] == ("Reference document added successfully!", True)

    def test_add_reference_requires_title_and_summary(self) -> None:
        session, notifier, _ = _make_session()
        session.update_draft(title="Spec")

        assert session.add_reference() is None
        assert session.state.draft.title == "Spec"
        assert notifier.messages[-1] == ("Title and Summary are required.", False)

    def test_select_unknown_reference(self) -> None:
        session, notifier, _ = _make_session()
        assert session.select_reference("nope") is False
        assert notifier.messages[-1][1] is False
        assert session.select_reference(None) is True


class TestGenerate:
    def test_matching_tests_produce_ctd(self) -> None:
        session, notifier, _ = _make_session()
        asyncio.run(_prepare_report(session, tests="assay, PURITY"))

        assert session.state.output_kind is OutputKind.CTD
        assert session.state.generated_output == "Generated text"
        assert notifier.messages[-1] == ("CTD generated successfully!", True)

    def test_mismatch_produces_discrepancy(self) -> None:
        session, notifier, _ = _make_session()
        asyncio.run(_prepare_report(session, tests="Assay"))

        assert session.state.output_kind is OutputKind.DISCREPANCY
        assert notifier.messages[-1] == ("Discrepancy generated successfully!", True)

    def test_kind_is_set_before_output(self) -> None:
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway)

        async def scenario() -> None:
            session.set_raw_text("text")
            await session.extract()
            _add_reference(session, "Assay")
            gateway.generate_text, gate = _blocking("Late report")
            task = asyncio.create_task(session.generate())
            await _settle()

            assert session.state.output_kind is OutputKind.DISCREPANCY
            assert session.state.generated_output is None
            assert session.status(Stage.GENERATE) is StageStatus.RUNNING

            gate.set()
            await task

        asyncio.run(scenario())
        assert session.state.generated_output == "Late report"

    def test_failure_keeps_kind_without_output(self) -> None:
        gateway = _make_gateway()
        session, notifier, _ = _make_session(gateway)
        gateway.generate_text.side_effect = GatewayTransportError("API call failed with status: 503")

        asyncio.run(_prepare_report(session))

        assert session.state.output_kind is OutputKind.CTD
        assert session.state.generated_output is None
        assert notifier.messages[-1] == ("Failed to generate CTD. See logs for details.", False)

    def test_empty_report_message_names_kind(self) -> None:
        gateway = _make_gateway()
        session, notifier, _ = _make_session(gateway)
        gateway.generate_text.side_effect = EmptyResultError("blank")

        asyncio.run(_prepare_report(session, tests="pH"))

        assert notifier.messages[-1] == ("Could not generate Discrepancy. Please try again.", False)

    def test_regenerate_clears_previous_critique(self) -> None:
        session, _, _ = _make_session()

        async def scenario() -> None:
            await _prepare_report(session)
            await session.critique()
            assert session.state.critique == "Generated text"
            await session.generate()

        asyncio.run(scenario())
        assert session.state.critique is None


class TestCritiqueAndSave:
    def test_critique_sends_report(self) -> None:
        gateway = _make_gateway()
        session, notifier, _ = _make_session(gateway)

        async def scenario() -> None:
            await _prepare_report(session)
            gateway.generate_text.return_value = "Looks fine"
            await session.critique()

        asyncio.run(scenario())
        assert session.state.critique == "Looks fine"
        assert "Generated text" in gateway.generate_text.await_args.args[0]
        assert notifier.messages[-1] == ("Critique generated successfully!", True)

    def test_save_archives_and_resets(self) -> None:
        session, notifier, _ = _make_session()

        async def scenario() -> None:
            await _prepare_report(session)
            await session.critique()
            await session.save()

        asyncio.run(scenario())

        assert len(session.archive) == 1
        saved = session.archive.list()[0]
        assert saved.extracted is EXTRACTED
        assert saved.output_kind is OutputKind.CTD
        assert saved.generated_output == "Generated text"
        assert saved.critique == "Generated text"
        assert saved.reference is not None
        state = session.state
        assert state.extracted is None
        assert state.selected_reference is None
        assert state.generated_output is None
        assert state.output_kind is None
        assert state.raw_text == "Assay 99.5%, Purity conforms"
        assert notifier.messages[-1] == ("Document saved successfully!", True)

    def test_save_twice_rejects_second(self) -> None:
        session, _, _ = _make_session()

        async def scenario() -> None:
            await _prepare_report(session)
            await session.save()
            outcome = await session.save()
            assert outcome.message == "No document to save."

        asyncio.run(scenario())
        assert len(session.archive) == 1


class TestConcurrency:
    def test_same_stage_reentry_is_rejected(self) -> None:
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway)
        session.set_raw_text("text")

        async def scenario() -> None:
            gateway.extract_document, gate = _blocking(EXTRACTED)
            first = asyncio.create_task(session.extract())
            await _settle()
            second = await session.extract()
            assert second.ok is False
            assert second.message == "The extract stage is already running."
            gate.set()
            assert (await first).ok

        asyncio.run(scenario())
        assert gateway.extract_document.await_count == 1

    def test_stale_summary_is_discarded(self) -> None:
        gateway = _make_gateway()
        session, notifier, _ = _make_session(gateway)
        session.set_raw_text("text")

        async def scenario() -> None:
            await session.extract()
            gateway.generate_text, gate = _blocking("Old summary")
            summary_task = asyncio.create_task(session.summarize())
            await _settle()

            gateway.extract_document.return_value = ExtractedDocument(title="New")
            await session.extract()
            gate.set()
            outcome = await summary_task
            assert outcome.status is StageStatus.FAILED

        asyncio.run(scenario())
        assert session.state.extracted.title == "New"
        assert session.state.summary is None
        assert "result discarded" in notifier.messages[-1][0]

    def test_stale_report_is_discarded_after_reference_change(self) -> None:
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway)

        async def scenario() -> None:
            session.set_raw_text("text")
            await session.extract()
            _add_reference(session)
            gateway.generate_text, gate = _blocking("Stale report")
            task = asyncio.create_task(session.generate())
            await _settle()
            session.select_reference(None)
            gate.set()
            await task

        asyncio.run(scenario())
        assert session.state.generated_output is None
        assert session.status(Stage.GENERATE) is StageStatus.FAILED

    def test_different_stages_run_concurrently(self) -> None:
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway)
        session.set_raw_text("text")
        session.update_draft(summary="Spec text")

        async def scenario() -> None:
            gateway.extract_document, gate = _blocking(EXTRACTED)
            extract_task = asyncio.create_task(session.extract())
            await _settle()
            populated = await session.populate()
            assert populated.ok
            gate.set()
            await extract_task

        asyncio.run(scenario())
        assert session.state.extracted is EXTRACTED
        assert session.state.draft.title == "Spec"


class TestSpeak:
    def test_speak_runs_until_playback_ends(self) -> None:
        player = _HeldPlayer()
        session, notifier, _ = _make_session(player=player)

        async def scenario() -> None:
            await _prepare_report(session)
            outcome = await session.speak()
            assert outcome.ok
            assert outcome.status is StageStatus.RUNNING
            assert notifier.messages[-1] == ("Reading aloud...", True)
            assert session.is_playing
            player.release.set()
            await session.wait_for_playback()
            await _settle()

        asyncio.run(scenario())
        assert not session.is_playing
        assert session.status(Stage.SPEAK) is StageStatus.SUCCEEDED

    def test_speak_again_replaces_clip(self) -> None:
        player = _HeldPlayer()
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway, player)

        async def scenario() -> None:
            await _prepare_report(session)
            await session.speak()
            await _settle()
            second = await session.speak()
            assert second.ok
            await _settle()
            assert session.is_playing
            assert session.status(Stage.SPEAK) is StageStatus.RUNNING
            player.release.set()
            await session.wait_for_playback()
            await _settle()

        asyncio.run(scenario())
        assert gateway.synthesize_speech.await_count == 2
        assert session.status(Stage.SPEAK) is StageStatus.SUCCEEDED

    def test_stop_speaking_settles_stage(self) -> None:
        session, _, _ = _make_session()

        async def scenario() -> None:
            await _prepare_report(session)
            await session.speak()
            session.stop_speaking()
            await _settle()

        asyncio.run(scenario())
        assert not session.is_playing
        assert session.status(Stage.SPEAK) is StageStatus.SUCCEEDED

    def test_empty_audio_message(self) -> None:
        gateway = _make_gateway()
        gateway.synthesize_speech.side_effect = EmptyResultError("no audio")
        session, notifier, _ = _make_session(gateway)

        asyncio.run(_prepare_report(session))
        outcome = asyncio.run(session.speak())

        assert outcome.status is StageStatus.FAILED
        assert notifier.messages[-1] == ("Could not get audio data from API.", False)
        assert not session.is_playing

    def test_undecodable_audio_fails_stage(self) -> None:
        gateway = _make_gateway()
        gateway.synthesize_speech.return_value = SpeechPayload(data="%%%", mime_type="audio/L16")
        session, notifier, _ = _make_session(gateway)

        asyncio.run(_prepare_report(session))
        asyncio.run(session.speak())

        assert session.status(Stage.SPEAK) is StageStatus.FAILED
        assert notifier.messages[-1] == ("Failed to generate speech. See logs for details.", False)

    def test_playback_error_fails_stage(self) -> None:
        session, notifier, _ = _make_session(player=_HeldPlayer(fail=True))

        async def scenario() -> None:
            await _prepare_report(session)
            await session.speak()
            await session.wait_for_playback()
            await _settle()

        asyncio.run(scenario())
        assert not session.is_playing
        assert session.status(Stage.SPEAK) is StageStatus.FAILED
        assert notifier.messages[-1] == ("Failed to play audio. See logs for details.", False)


class TestLoading:
    def test_load_document_sets_raw_text(self) -> None:
        session, notifier, loader = _make_session()
        loader.load_text.return_value = "Loaded text"

        assert asyncio.run(session.load_document(Path("coa.pdf"))) is True
        assert session.state.raw_text == "Loaded text"
        assert notifier.messages[-1] == ("Loaded coa.pdf.", True)

    def test_load_reference_file_fills_draft_summary(self) -> None:
        session, _, loader = _make_session()
        loader.load_text.return_value = "Spec body"

        assert asyncio.run(session.load_reference_file(Path("spec.txt"))) is True
        assert session.state.draft.summary == "Spec body"

    def test_load_failure_reports(self) -> None:
        session, notifier, loader = _make_session()
        loader.load_text.side_effect = DocumentLoadError("File not found: x")

        assert asyncio.run(session.load_document(Path("x.txt"))) is False
        assert session.state.raw_text == ""
        assert notifier.messages[-1] == ("Failed to load x.txt.", False)


class TestClose:
    def test_aclose_closes_gateway(self) -> None:
        gateway = _make_gateway()
        session, _, _ = _make_session(gateway)
        asyncio.run(session.aclose())
        gateway.aclose.assert_awaited_once()


class TestStepGuards:
    @pytest.mark.parametrize(
        ("step_cls", "message"),
        [
            (SummarizeStep, "Please extract data first."),
            (GenerateReportStep, "Please extract data and select a reference document first."),
            (CritiqueStep, "Please generate a report first."),
        ],
    )
    def test_execute_without_inputs_raises(self, step_cls: type, message: str) -> None:
        gateway = _make_gateway()
        step = step_cls(gateway, PromptBook())

        with pytest.raises(PreconditionError, match=message):
            asyncio.run(step.execute(WorkflowState()))
        gateway.generate_text.assert_not_awaited()

    def test_save_execute_without_report_raises(self) -> None:
        archive = Archive()
        with pytest.raises(PreconditionError, match="No document to save."):
            asyncio.run(SaveStep(archive).execute(WorkflowState()))
        assert len(archive) == 0

    def test_speak_execute_without_report_raises(self) -> None:
        gateway = _make_gateway()
        step = SpeakStep(gateway, PromptBook(), AudioRenderer(_HeldPlayer()))

        with pytest.raises(PreconditionError, match="There is no text to read aloud."):
            asyncio.run(step.execute(WorkflowState()))
        gateway.synthesize_speech.assert_not_awaited()
        assert step.in_flight == 0
