"""Gemini-backed parser that extracts task fields from spoken audio."""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from .base import AbstractTaskParser
from ..exceptions import ParseError
from ..models.task import ParsedTaskResult, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """\
You are an intelligent task assistant.
Your goal is to listen to the user's voice command and extract structured task information.

Current Date: {current_date}

Rules:
1. Extract a concise 'title'.
2. Extract a 'description' if more details are provided.
3. Determine 'priority' from keywords (e.g., "urgent" -> Critical, "high" -> High). Default to Medium.
4. Determine 'status' (e.g., "completed" -> Done, "working on" -> In Progress). Default to To Do.
5. Calculate the 'dueDate' as an ISO 8601 string (YYYY-MM-DDTHH:mm:ss).
   - If a time is mentioned (e.g., "by 5pm"), include it in the ISO string.
   - If only a date is mentioned (e.g., "tomorrow"), prefer T23:59:59 when it implies 'by end of day'.
   - If no date is mentioned, return null.
6. Return the raw transcript of what was said as 'originalTranscript'.
"""

USER_PROMPT = "Listen to this audio, transcribe it, and extract the task details as JSON."

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "description": {"type": "STRING"},
        "status": {"type": "STRING", "enum": [s.value for s in TaskStatus]},
        "priority": {"type": "STRING", "enum": [p.value for p in TaskPriority]},
        "dueDate": {"type": "STRING", "description": "ISO 8601 date string YYYY-MM-DD or YYYY-MM-DDTHH:mm:ss"},
        "originalTranscript": {"type": "STRING"},
    },
    "required": ["title", "originalTranscript"],
}


class GeminiTaskParser(AbstractTaskParser):
    """Sends inline audio to the Gemini generateContent API and parses the JSON reply."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout_seconds: Optional[float] = None,
        base_url: str = BASE_URL,
    ):
        """Initialize Gemini task parser.

        Args:
            api_key: Gemini API key
            model: Gemini model to use
            timeout_seconds: Total request timeout; None waits indefinitely
            base_url: API root, overridable for proxies
        """
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"

        logger.info(f"GeminiTaskParser initialized with model: {model}")

    def build_request(self, audio_base64: str, mime_type: str,
                      current_date: Optional[datetime] = None) -> Dict[str, Any]:
        """Build the generateContent request body."""
        current_date = current_date or datetime.now()
        return {
            "systemInstruction": {
                "parts": [{"text": SYSTEM_INSTRUCTION.format(current_date=current_date.isoformat())}]
            },
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": audio_base64}},
                        {"text": USER_PROMPT},
                    ],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def parse(self, audio_base64: str, mime_type: str) -> ParsedTaskResult:
        if not self.api_key:
            raise ParseError("API Key is missing.")

        payload = self.build_request(audio_base64, mime_type)
        logger.debug(f"Sending {len(audio_base64)} base64 chars of {mime_type} to {self.model}")

        try:
            response = await self._post(payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise ParseError(f"Gemini request failed: {e}") from e

        return self.parse_response(response)

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.url, headers=headers, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"Gemini API error: {response.status} - {error_text}")
                    raise ParseError(f"Gemini API error: {response.status} - {error_text}")
                return await response.json()

    def parse_response(self, response: Dict[str, Any]) -> ParsedTaskResult:
        """Extract and validate the task JSON from a generateContent response.

        Raises:
            ParseError: If the response has no text or the text is not a valid task object
        """
        try:
            text = response["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError("No response from AI") from e
        if not text:
            raise ParseError("No response from AI")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Gemini returned invalid JSON: {text!r}")
            raise ParseError(f"Invalid JSON in parser response: {e}") from e

        try:
            result = ParsedTaskResult.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Parser response does not match the task schema: {e}") from e

        logger.info(f"Parsed voice command: title={result.title!r}, "
                    f"priority={result.priority!r}, due={result.due_date!r}")
        return result
