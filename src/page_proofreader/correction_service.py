"""
Correction service clients.

A correction service takes the raw text of one page element and returns a
ProofreadResult: a fully corrected text, a list of correction spans over
the original text, or both. This module provides:
- CorrectionService: the async interface the pipeline consumes
- AnthropicCorrectionService: asks a Claude model for corrections as JSON
- StaticCorrectionService: replays pre-recorded results (tests, offline runs)
- parse_service_payload: tolerant parser for service JSON payloads
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Union

import anthropic
import httpx

from .config import DEFAULT_MODEL
from .errors import CorrectionServiceError, MalformedResponseError
from .models import CorrectionSpan, CorrectionType, ProofreadResult

logger = logging.getLogger(__name__)

# Largest element text sent to a service in one call
MAX_INPUT_CHARS = 50 * 1024

CORRECTED_TEXT_KEYS = ("corrected_text", "correctedText", "correctedInput", "corrected_input")
START_KEYS = ("start_index", "startIndex", "start")
END_KEYS = ("end_index", "endIndex", "end")
CORRECTION_KEYS = ("correction_text", "correctionText", "correction", "replacement")
TYPE_KEYS = ("type", "types", "correction_type", "correctionType")
EXPLANATION_KEYS = ("explanation", "correction_explanation", "correctionExplanation")


PROOFREAD_SYSTEM_PROMPT = """You are a meticulous copy editor proofreading text taken from a web page.

RULES:
1. Fix spelling, grammar, punctuation, capitalization, preposition and missing-word errors only
2. Do not rephrase, restyle, shorten or expand the text
3. Preserve the original meaning, tone, line breaks and spacing
4. Leave product names, code, URLs and proper nouns alone unless clearly misspelled
5. If the text has no errors, return it unchanged with an empty corrections list

OUTPUT FORMAT:
Return ONLY a JSON object, no commentary:
{
  "corrected_text": "<the full corrected text>",
  "corrections": [
    {
      "start_index": <offset of the first character of the error in the ORIGINAL text>,
      "end_index": <offset one past the last character of the error in the ORIGINAL text>,
      "correction_text": "<replacement text>",
      "type": "spelling|grammar|punctuation|capitalization|preposition|missing-words|other",
      "explanation": "<short reason>"
    }
  ]
}"""


def _first(data: dict, keys: tuple) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _parse_type(value: Any) -> CorrectionType:
    # Some services report a list of types per correction; the first wins
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return CorrectionType.parse(value)


def parse_correction(item: Any) -> CorrectionSpan:
    """
    Parse one correction object from a service payload.

    Raises:
        MalformedResponseError: If indices are missing or not integers.
    """
    if not isinstance(item, dict):
        raise MalformedResponseError(f"Correction must be an object, got {type(item).__name__}")

    start = _first(item, START_KEYS)
    end = _first(item, END_KEYS)
    if isinstance(start, bool) or not isinstance(start, int):
        raise MalformedResponseError(f"Correction has invalid start index: {start!r}")
    if isinstance(end, bool) or not isinstance(end, int):
        raise MalformedResponseError(f"Correction has invalid end index: {end!r}")

    correction = _first(item, CORRECTION_KEYS)
    if correction is None:
        correction = ""
    elif not isinstance(correction, str):
        raise MalformedResponseError(f"Correction text must be a string, got {correction!r}")

    explanation = _first(item, EXPLANATION_KEYS)
    return CorrectionSpan(
        start_index=start,
        end_index=end,
        correction_text=correction,
        type=_parse_type(_first(item, TYPE_KEYS)),
        explanation=str(explanation) if explanation else None,
    )


def parse_service_payload(data: Any) -> ProofreadResult:
    """
    Parse a service payload into a ProofreadResult.

    Accepts either an object with a corrected text and/or corrections
    (camelCase or snake_case keys) or a bare list of corrections.

    Args:
        data: Decoded JSON payload.

    Returns:
        ProofreadResult.

    Raises:
        MalformedResponseError: If the payload has the wrong shape.
    """
    if isinstance(data, list):
        return ProofreadResult(corrections=[parse_correction(item) for item in data])
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Service payload must be an object or list, got {type(data).__name__}")

    corrected = _first(data, CORRECTED_TEXT_KEYS)
    if corrected is not None and not isinstance(corrected, str):
        raise MalformedResponseError(f"Corrected text must be a string, got {type(corrected).__name__}")

    raw_corrections = data.get("corrections") or []
    if not isinstance(raw_corrections, list):
        raise MalformedResponseError("corrections must be a list")

    return ProofreadResult(
        corrected_text=corrected,
        corrections=[parse_correction(item) for item in raw_corrections],
    )


def extract_json(response: str) -> Any:
    """
    Pull the JSON object out of a model response.

    Raises:
        MalformedResponseError: If no parseable JSON object is present.
    """
    json_match = re.search(r'\{[\s\S]*\}', response)
    if not json_match:
        raise MalformedResponseError("Service response contained no JSON object")
    try:
        return json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Service response JSON is invalid: {e}") from e


class CorrectionService:
    """Interface for services that proofread one block of text."""

    async def proofread(self, text: str) -> ProofreadResult:
        """
        Proofread a block of text.

        Args:
            text: Raw element text.

        Returns:
            ProofreadResult with a corrected text and/or spans.

        Raises:
            CorrectionServiceError: If the service fails or answers badly.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class StaticCorrectionService(CorrectionService):
    """
    Service that replays pre-recorded results.

    Args:
        results: Map of input text to ProofreadResult or raw payload.
        strict: Raise for texts with no recorded result instead of
            returning an empty (unchanged) result.
    """

    def __init__(self, results: Optional[dict[str, Union[ProofreadResult, dict, list]]] = None, strict: bool = False):
        self.results: dict[str, ProofreadResult] = {}
        self.strict = strict
        self.calls: list[str] = []
        for text, result in (results or {}).items():
            self.add(text, result)

    def add(self, text: str, result: Union[ProofreadResult, dict, list]) -> None:
        if not isinstance(result, ProofreadResult):
            result = parse_service_payload(result)
        self.results[text] = result

    @classmethod
    def from_json_file(cls, path: Union[str, Path], strict: bool = False) -> "StaticCorrectionService":
        """
        Load recorded results from a JSON file.

        The file holds an object mapping element text to a payload, or a
        list of objects with a "text" key plus payload keys.

        Raises:
            CorrectionServiceError: If the file cannot be read.
            MalformedResponseError: If an entry has the wrong shape.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CorrectionServiceError(f"Could not load corrections file {path}: {e}") from e

        if isinstance(data, list):
            mapping = {}
            for entry in data:
                if not isinstance(entry, dict) or not isinstance(entry.get("text"), str):
                    raise MalformedResponseError("Each corrections entry needs a string 'text'")
                mapping[entry["text"]] = {k: v for k, v in entry.items() if k != "text"}
            data = mapping
        if not isinstance(data, dict):
            raise MalformedResponseError("Corrections file must hold an object or a list")
        return cls(data, strict=strict)

    def _lookup(self, text: str) -> Optional[ProofreadResult]:
        if text in self.results:
            return self.results[text]
        # Recorded keys are often trimmed page text
        return self.results.get(text.strip())

    async def proofread(self, text: str) -> ProofreadResult:
        self.calls.append(text)
        result = self._lookup(text)
        if result is None:
            if self.strict:
                raise CorrectionServiceError(f"No recorded result for text: {text[:50]!r}")
            return ProofreadResult()
        return ProofreadResult(
            corrected_text=result.corrected_text,
            corrections=[span.copy() for span in result.corrections],
        )


class AnthropicCorrectionService(CorrectionService):
    """
    Correction service backed by the Anthropic Messages API.

    Args:
        api_key: API key. If None, reads from ANTHROPIC_API_KEY env var.
        model: Model identifier to use.
        max_tokens: Maximum tokens in each response.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self.max_tokens = max_tokens

        if not self.api_key:
            raise CorrectionServiceError(
                "No API key provided. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(60.0, connect=30.0),
            follow_redirects=True,
        )
        self.client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            http_client=http_client,
        )

    def _build_prompt(self, text: str) -> str:
        return f"""Proofread the following text. Character offsets refer to this exact text.

TEXT:
{text}"""

    async def proofread(self, text: str) -> ProofreadResult:
        if len(text) > MAX_INPUT_CHARS:
            raise CorrectionServiceError(
                f"Text too long to proofread ({len(text)} chars, max {MAX_INPUT_CHARS})"
            )

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=PROOFREAD_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": self._build_prompt(text)}],
            )
        except Exception as e:
            raise CorrectionServiceError(f"Proofreading API call failed: {e}") from e

        reply = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        logger.debug(f"Service replied with {len(reply)} chars for {len(text)} chars of input")
        return parse_service_payload(extract_json(reply))

    async def aclose(self) -> None:
        await self.client.close()


def create_correction_service(
    api_key: Optional[str] = None,
    model: str = DEFAULT_MODEL,
    max_tokens: int = 4096,
    corrections_file: Optional[Union[str, Path]] = None,
) -> CorrectionService:
    """
    Factory function to create a correction service.

    Args:
        api_key: Optional API key. If None, uses environment variable.
        model: Model to use.
        max_tokens: Maximum response tokens.
        corrections_file: JSON replay file; when given, no API is called.

    Returns:
        Configured CorrectionService instance.
    """
    if corrections_file:
        return StaticCorrectionService.from_json_file(corrections_file)
    return AnthropicCorrectionService(api_key=api_key, model=model, max_tokens=max_tokens)
