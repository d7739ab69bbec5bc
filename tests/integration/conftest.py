from pathlib import Path

import pytest

from docreview.config.settings import Settings
from docreview.workflow.orchestrator import WorkflowSession, build_session


@pytest.fixture()
def offline_settings() -> Settings:
    """Settings for a full session with no network and no audio device."""
    return Settings(
        generation_provider="example",
        audio_backend="silent",
        pdf_engine="pdfplumber",
        retry_max_retries=0,
    )


@pytest.fixture()
def session(offline_settings: Settings) -> WorkflowSession:
    return build_session(offline_settings)


@pytest.fixture()
def reference_file(tmp_path: Path) -> Path:
    path = tmp_path / "spec.txt"
    path.write_text(
        "Release specification SPEC-0001. Required tests: Assay, Purity.",
        encoding="utf-8",
    )
    return path
