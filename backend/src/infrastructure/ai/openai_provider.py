"""
OpenAI Provider - ExtractionProviderPort implementation for OpenAI vision models.

The image is passed by presigned URL, so document bytes never transit the
API server. The model answers in JSON mode with the detected document type
and the fields configured for that type.
"""

import json
import logging
import time
from typing import Optional

from openai import (
    AsyncOpenAI,
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    RateLimitError,
)

from domain.extraction.ports import (
    DocumentTypeHint,
    ExtractedDocument,
    ExtractionFailed,
    ExtractionProviderPort,
    ExtractionRequest,
    ExtractionServiceUnavailable,
)

logger = logging.getLogger(__name__)

DEFAULT_FIELD_NAMES = ["documentNumber", "issuedDate", "expiryDate"]

SYSTEM_PROMPT = """You read photographs and scans of driver compliance documents
(licenses, medical certificates, permits).
Return a JSON object with exactly these keys:
- documentType: one of the allowed document type names, or null if none matches
- fields: object mapping field names to extracted values (dates as YYYY-MM-DD,
  use null when a value is not visible)
- confidence: number between 0 and 1
Return ONLY valid JSON, no markdown formatting."""


def build_user_prompt(document_types: list[DocumentTypeHint]) -> str:
    """Describe the allowed types and their fields for the model"""
    if not document_types:
        return (
            "Identify the document and extract these fields: "
            + ", ".join(DEFAULT_FIELD_NAMES)
        )

    lines = ["Allowed document types:"]
    for hint in document_types:
        if hint.classification_only:
            lines.append(f"- {hint.name}: classify only, return an empty fields object")
            continue
        names = [f.get("name") for f in hint.fields if f.get("name")] or DEFAULT_FIELD_NAMES
        lines.append(f"- {hint.name}: fields {', '.join(names)}")
    lines.append("Extract the fields listed for the detected type.")
    return "\n".join(lines)


def parse_model_output(raw_output: str, document_types: list[DocumentTypeHint]) -> ExtractedDocument:
    """Parse the JSON answer into an ExtractedDocument.

    Unknown document type names are dropped (documentType None) so the
    reviewer picks the type.

    Raises:
        ExtractionFailed: Output is not a JSON object
    """
    try:
        payload = json.loads(raw_output or "")
    except json.JSONDecodeError as e:
        raise ExtractionFailed(f"Model returned invalid JSON: {e}")
    if not isinstance(payload, dict):
        raise ExtractionFailed("Model returned a non-object JSON value")

    detected = payload.get("documentType")
    allowed = {hint.name for hint in document_types}
    if allowed and detected not in allowed:
        detected = None

    fields = payload.get("fields") or {}
    if not isinstance(fields, dict):
        fields = {}
    fields = {k: v for k, v in fields.items() if v not in (None, "")}

    confidence = payload.get("confidence")
    try:
        confidence = float(confidence) if confidence is not None else None
    except (TypeError, ValueError):
        confidence = None

    return ExtractedDocument(document_type=detected, fields=fields, confidence=confidence)


class OpenAIExtractionProvider(ExtractionProviderPort):
    """
    OpenAI implementation of ExtractionProviderPort.

    Uses the async OpenAI SDK with JSON mode and temperature 0.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o",
        timeout_seconds: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Vision-capable model name
            timeout_seconds: Per-request timeout
            client: Preconfigured client (tests)

        Raises:
            ValueError: If no API key and no client are provided
        """
        if client is None and not api_key:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY environment variable.")
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self.timeout_seconds = timeout_seconds

    async def extract_document(self, request: ExtractionRequest) -> ExtractedDocument:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_user_prompt(request.document_types)},
                    {"type": "image_url", "image_url": {"url": request.image_url}},
                ],
            },
        ]

        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=0.0,
                timeout=self.timeout_seconds,
            )
        except APITimeoutError as e:
            raise ExtractionServiceUnavailable(f"OpenAI API timeout: {str(e)}")
        except RateLimitError as e:
            raise ExtractionServiceUnavailable(f"OpenAI rate limit exceeded: {str(e)}")
        except AuthenticationError as e:
            raise ExtractionServiceUnavailable(f"OpenAI authentication failed: {str(e)}")
        except APIConnectionError as e:
            raise ExtractionServiceUnavailable(f"OpenAI connection error: {str(e)}")
        except APIError as e:
            # 4xx on the request itself (e.g. unreadable image) is a per-document failure
            status_code = getattr(e, "status_code", None)
            if status_code is not None and 400 <= status_code < 500:
                raise ExtractionFailed(f"OpenAI rejected the document: {str(e)}")
            raise ExtractionServiceUnavailable(f"OpenAI service error: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        usage = response.usage
        logger.info(
            f"OpenAI extraction: document_id={request.document_id}, model={self.model}, "
            f"latency_ms={latency_ms}, "
            f"tokens_in={usage.prompt_tokens if usage else None}, "
            f"tokens_out={usage.completion_tokens if usage else None}"
        )

        if not response.choices:
            raise ExtractionFailed("OpenAI returned no choices")
        return parse_model_output(response.choices[0].message.content, request.document_types)
