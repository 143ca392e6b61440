"""
LLM service using an OpenAI-compatible chat completions API (Groq by default).

The service is a thin transport: it sends a system prompt and a user message
in JSON mode and returns the raw message content. Parsing and schema checks
belong to the analysis and generation stages.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Optional

import requests

from ideagen.config import GROQ_API_KEY, GROQ_MODEL, LLM_API_URL, REQUEST_TIMEOUT
from ideagen.errors import LLMServiceError
from ideagen.services.prompts import (
    ANALYZE_SYSTEM_PROMPT,
    IDEATE_SYSTEM_PROMPT,
    SOURCE_ID_MARKER,
)


class LLMService(ABC):
    """Abstract chat completion backend."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def complete_json(self, system_prompt: str, user_message: str, temperature: float = 0.7) -> str:
        """
        Run one JSON-mode completion.

        Returns:
            The message content, expected to be a JSON object.

        Raises:
            LLMServiceError: On transport failure or a non-200 response.
        """
        pass


class ChatCompletionLLMService(LLMService):
    """LLM backend calling a chat completions endpoint with requests."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, api_url: Optional[str] = None):
        self.api_key = api_key or GROQ_API_KEY
        self.model = model or GROQ_MODEL
        self.api_url = api_url or LLM_API_URL

    @property
    def name(self) -> str:
        return self.model

    def is_available(self) -> bool:
        """Check if the LLM is configured (API key present)."""
        return bool(self.api_key)

    def complete_json(self, system_prompt: str, user_message: str, temperature: float = 0.7) -> str:
        if not self.is_available():
            raise LLMServiceError("LLM not configured. Add GROQ_API_KEY to .env")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
        }

        try:
            response = requests.post(
                self.api_url,
                headers=headers,
                json=payload,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise LLMServiceError(f"LLM request failed: {e}") from e

        if response.status_code != 200:
            try:
                error_msg = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                error_msg = response.text
            raise LLMServiceError(f"API error ({response.status_code}): {error_msg}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMServiceError(f"Unexpected completion envelope: {e}") from e

        if not content:
            raise LLMServiceError("No response content from LLM")

        return content


class MockLLMService(LLMService):
    """
    Deterministic stand-in that answers both prompts with valid JSON.

    Pain points cite the first posts it was shown so provenance stays a
    subset of the input.
    """

    PAIN_POINTS = (
        ("Manual data entry between tools eats hours every week", 82),
        ("Hard to find early customers without an audience", 64),
        ("Pricing a first product is guesswork", 41),
    )

    _ID_PATTERN = re.compile(rf"\[{SOURCE_ID_MARKER}: ([^\]]+)\]")

    def __init__(self):
        self.calls = []

    @property
    def name(self) -> str:
        return "mock-llm"

    def complete_json(self, system_prompt: str, user_message: str, temperature: float = 0.7) -> str:
        self.calls.append((system_prompt, user_message))

        if system_prompt == ANALYZE_SYSTEM_PROMPT:
            ids = self._ID_PATTERN.findall(user_message)
            return json.dumps({
                "pain_points": [
                    {"text": text, "score": score, "source_ids": ids[i:i + 2]}
                    for i, (text, score) in enumerate(self.PAIN_POINTS)
                ]
            })

        if system_prompt == IDEATE_SYSTEM_PROMPT:
            pain_point = user_message.split(": ", 1)[-1]
            return json.dumps({
                "title": "Mock SaaS Product",
                "pitch": f"This is a mock product that solves the pain point: {pain_point}",
                "target_audience": "Founders and small teams",
                "score": 70,
            })

        raise LLMServiceError("Mock LLM received an unknown prompt")
