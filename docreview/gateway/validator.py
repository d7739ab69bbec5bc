"""Builds domain objects from parsed service JSON, enforcing the response schemas."""

from typing import Any

from docreview.documents.models import ExtractedDocument, ExtractedTest
from docreview.gateway.exceptions import ResultValidationError
from docreview.gateway.models import PopulateResult


def build_extracted_document(data: dict[str, Any]) -> ExtractedDocument:
    """Validate an extraction payload.

    Missing scalar fields become ``None`` and a missing ``tests`` list becomes
    empty; the service is told to use null rather than invent values.

    Raises:
        ResultValidationError: on a wrongly typed field or a test without a name.
    """
    return ExtractedDocument(
        title=_optional_str(data, "document_title"),
        number=_optional_str(data, "document_number"),
        revision_date=_optional_str(data, "revision_date"),
        summary=_optional_str(data, "summary"),
        tests=_build_tests(data.get("tests")),
    )


def build_populate_result(data: dict[str, Any]) -> PopulateResult:
    """Validate a populate payload. ``tests`` may arrive as a list and is joined."""
    tests = data.get("tests")
    if isinstance(tests, list) and all(isinstance(t, str) for t in tests):
        tests = ", ".join(tests)
        data = {**data, "tests": tests}
    return PopulateResult(
        title=_optional_str(data, "title"),
        number=_optional_str(data, "number"),
        summary=_optional_str(data, "summary"),
        tests=_optional_str(data, "tests"),
    )


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise ResultValidationError(f"'{key}' must be a string or null")
    return value


def _build_tests(raw: Any) -> tuple[ExtractedTest, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ResultValidationError("'tests' must be a list")
    return tuple(_build_test(item, i) for i, item in enumerate(raw))


def _build_test(raw: Any, index: int) -> ExtractedTest:
    if not isinstance(raw, dict):
        raise ResultValidationError(f"Test at index {index} must be an object")
    name = raw.get("test_name")
    if not name or not isinstance(name, str):
        raise ResultValidationError(
            f"Test at index {index}: 'test_name' must be a non-empty string"
        )
    result = _optional_str(raw, "result")
    return ExtractedTest(name=name, result=result or "")
