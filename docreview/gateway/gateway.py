"""Typed boundary between the workflow and the generation service."""

import json
from typing import Any

from docreview.documents.models import ExtractedDocument
from docreview.gateway.client_base import BaseGenerationClient
from docreview.gateway.exceptions import EmptyResultError
from docreview.gateway.models import PopulateResult, SpeechPayload
from docreview.gateway.prompt_loader import load_json_schema
from docreview.gateway.validator import build_extracted_document, build_populate_result
from docreview.logging.logger import Log
from docreview.retry.backoff import RetryController


class AIGateway:
    """Issues the four request shapes through the retry controller.

    Only the transport call is retried. Reading the payload out of a
    successful response happens afterwards, so a 2xx reply without usable
    content raises ``EmptyResultError`` immediately.
    """

    def __init__(
        self,
        *,
        client: BaseGenerationClient,
        retry: RetryController,
        model: str,
        speech_model: str,
        voice: str = "Kore",
    ) -> None:
        self._client = client
        self._retry = retry
        self._model = model
        self._speech_model = speech_model
        self._voice = voice
        self._extraction_schema = load_json_schema("extraction")
        self._populate_schema = load_json_schema("populate")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def extract_document(self, prompt: str) -> ExtractedDocument:
        """Structured extraction: free text prompt -> ExtractedDocument."""
        data = await self._generate_json(prompt, self._extraction_schema)
        document = build_extracted_document(data)
        Log.info(f"Extraction returned {len(document.tests)} tests")
        return document

    async def generate_text(self, prompt: str) -> str:
        """Free-form generation: prompt -> text."""
        response = await self._send(self._model, self._text_payload(prompt))
        text = self._first_part(response).get("text")
        if not isinstance(text, str) or not text.strip():
            raise EmptyResultError("Generation response contained no text")
        return text

    async def populate_reference(self, prompt: str) -> PopulateResult:
        """Structured populate: prompt -> suggested reference fields."""
        data = await self._generate_json(prompt, self._populate_schema)
        return build_populate_result(data)

    async def synthesize_speech(self, prompt: str) -> SpeechPayload:
        """Speech synthesis: prompt -> base64 PCM and its MIME descriptor."""
        response = await self._send(self._speech_model, self._speech_payload(prompt))
        inline = self._first_part(response).get("inlineData")
        if not isinstance(inline, dict):
            raise EmptyResultError("Speech response contained no inline audio")
        data = inline.get("data")
        mime_type = inline.get("mimeType")
        if not isinstance(data, str) or not data or not isinstance(mime_type, str) or not mime_type:
            raise EmptyResultError("Speech response is missing audio data or MIME type")
        Log.info(f"Synthesized {len(data)} base64 chars of audio ({mime_type})")
        return SpeechPayload(data=data, mime_type=mime_type)

    async def _generate_json(self, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        response = await self._send(self._model, self._structured_payload(prompt, schema))
        text = self._first_part(response).get("text")
        if not isinstance(text, str) or not text.strip():
            raise EmptyResultError("Structured response contained no text")
        return self._parse_json(text)

    async def _send(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        Log.debug(f"Generation request to {model}:\n{json.dumps(payload)[:2000]}")

        async def call() -> dict[str, Any]:
            return await self._client.generate_content(model=model, payload=payload)

        response = await self._retry.run(call)
        Log.debug(f"Generation raw response:\n{json.dumps(response)[:2000]}")
        return response

    @staticmethod
    def _text_payload(prompt: str) -> dict[str, Any]:
        return {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

    @classmethod
    def _structured_payload(cls, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        payload = cls._text_payload(prompt)
        payload["generationConfig"] = {
            "responseMimeType": "application/json",
            "responseSchema": schema,
        }
        return payload

    def _speech_payload(self, prompt: str) -> dict[str, Any]:
        payload = self._text_payload(prompt)
        payload["generationConfig"] = {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self._voice}},
            },
        }
        return payload

    @staticmethod
    def _first_part(response: dict[str, Any]) -> dict[str, Any]:
        try:
            part = response["candidates"][0]["content"]["parts"][0]
        except (KeyError, IndexError, TypeError):
            raise EmptyResultError("Response has no candidate content") from None
        if not isinstance(part, dict):
            raise EmptyResultError("Response candidate part is not an object")
        return part

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise EmptyResultError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise EmptyResultError("JSON response must be an object")
        return parsed
