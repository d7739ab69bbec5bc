"""Offline generation client.

Use this module as a reference when adding provider adapters: implement
BaseGenerationClient and register the provider in GatewayFactory.
"""

import base64
import json
from typing import Any, ClassVar

from docreview.gateway.client_base import BaseGenerationClient


class ExampleClientAdapter(BaseGenerationClient):
    """Returns fixed, well-formed responses for each request shape.

    No network calls. The response is chosen from the request's
    ``generationConfig``: audio modality, populate schema, extraction schema,
    or plain text.
    """

    EXTRACTION_RESPONSE: ClassVar[dict[str, object]] = {
        "document_title": "Example Certificate of Analysis",
        "document_number": "COA-0001",
        "revision_date": None,
        "summary": "Example batch release data.",
        "tests": [
            {"test_name": "Assay", "result": "99.1%"},
            {"test_name": "Purity", "result": "Conforms"},
        ],
    }
    POPULATE_RESPONSE: ClassVar[dict[str, object]] = {
        "title": "Example Specification",
        "number": "SPEC-0001",
        "summary": "Example release specification.",
        "tests": "Assay, Purity",
    }
    TEXT_RESPONSE: ClassVar[str] = "Example generated text."
    SAMPLE_RATE: ClassVar[int] = 24000
    AUDIO_SECONDS: ClassVar[float] = 0.05

    async def generate_content(
        self,
        *,
        model: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        _ = model
        config = payload.get("generationConfig") or {}
        if "AUDIO" in config.get("responseModalities", []):
            return self._wrap({"inlineData": self._silence()})
        schema = config.get("responseSchema")
        if schema is not None:
            properties = schema.get("properties", {})
            body = self.EXTRACTION_RESPONSE if "document_title" in properties else self.POPULATE_RESPONSE
            return self._wrap({"text": json.dumps(body)})
        return self._wrap({"text": self.TEXT_RESPONSE})

    @classmethod
    def _silence(cls) -> dict[str, str]:
        frames = int(cls.SAMPLE_RATE * cls.AUDIO_SECONDS)
        return {
            "data": base64.b64encode(b"\x00\x00" * frames).decode("ascii"),
            "mimeType": f"audio/L16;codec=pcm;rate={cls.SAMPLE_RATE}",
        }

    @staticmethod
    def _wrap(part: dict[str, object]) -> dict[str, Any]:
        return {"candidates": [{"content": {"role": "model", "parts": [part]}}]}
