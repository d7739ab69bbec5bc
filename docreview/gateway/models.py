from dataclasses import dataclass


@dataclass(frozen=True)
class PopulateResult:
    """Reference fields suggested by the service; ``None`` where not found."""

    title: str | None = None
    number: str | None = None
    summary: str | None = None
    tests: str | None = None


@dataclass(frozen=True)
class SpeechPayload:
    """Inline audio returned by speech synthesis."""

    data: str
    mime_type: str
