"""Decides whether an extraction complies with its reference test list."""

from dataclasses import dataclass

from docreview.documents.models import ExtractedDocument, OutputKind, ReferenceDocument


@dataclass(frozen=True)
class NameComparison:
    """Case-folded test names present on only one side."""

    missing_from_extracted: frozenset[str]
    not_in_reference: frozenset[str]

    @property
    def matches(self) -> bool:
        return not self.missing_from_extracted and not self.not_in_reference


def compare_tests(
    extracted: ExtractedDocument,
    reference: ReferenceDocument,
) -> NameComparison:
    extracted_names = {test.name.lower() for test in extracted.tests}
    reference_names = {name.lower() for name in reference.tests}
    return NameComparison(
        missing_from_extracted=frozenset(reference_names - extracted_names),
        not_in_reference=frozenset(extracted_names - reference_names),
    )


def decide(extracted: ExtractedDocument, reference: ReferenceDocument) -> OutputKind:
    """Return CTD when both test-name sets are equal ignoring case, else DISCREPANCY.

    Only names take part; results, ordering and duplicates do not.
    """
    if compare_tests(extracted, reference).matches:
        return OutputKind.CTD
    return OutputKind.DISCREPANCY
