"""Gemini reply generator for sending prompts and getting spoken-style replies."""

import re
import asyncio
import logging

import aiohttp

from .base import LanguageGenerationService
from ..exceptions import GenerationError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful voice assistant. Keep your responses conversational and concise. "
)

_MARKUP_PATTERNS = [
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),    # Bold
    (re.compile(r"\*(.*?)\*"), r"\1"),        # Italic
    (re.compile(r"__(.*?)__"), r"\1"),        # Underline
    (re.compile(r"~~(.*?)~~"), r"\1"),        # Strikethrough
    (re.compile(r"`(.*?)`"), r"\1"),          # Code
    (re.compile(r"^#+\s+", re.MULTILINE), ""),  # Headings
    (re.compile(r"\[(.*?)\]\((.*?)\)"), r"\1"),  # Links
]


def clean_for_speech(text: str) -> str:
    """Strip markdown so the reply reads naturally when synthesized."""
    if not text:
        return text

    for pattern, replacement in _MARKUP_PATTERNS:
        text = pattern.sub(replacement, text)

    # Remaining hashes are spoken
    text = text.replace("#", "hash ")
    return re.sub(r"\s+", " ", text).strip()


class GeminiReplyGenerator(LanguageGenerationService):
    """Simple engine for sending prompts to Gemini and getting responses."""

    def __init__(self,
                 api_key: str,
                 model: str = "gemini-2.0-flash",
                 system_prompt: str = DEFAULT_SYSTEM_PROMPT,
                 timeout_seconds: float = 30.0):
        """Initialize Gemini reply generator.

        Args:
            api_key: Google AI Studio API key
            model: Gemini model to use
            system_prompt: Instructions prepended to every prompt
            timeout_seconds: Total request timeout
        """
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt
        self.timeout_seconds = timeout_seconds
        self.base_url = f"https://generativelanguage.googleapis.com/v1/models/{model}:generateContent"

        logger.info(f"GeminiReplyGenerator initialized with model: {model}")

    async def generate(self, prompt: str) -> str:
        """Send a prompt to Gemini and get the cleaned reply.

        Args:
            prompt: The participant's transcribed words

        Returns:
            Reply text with markdown removed

        Raises:
            GenerationError: If the API call fails or returns no text
        """
        data = {
            "contents": [
                {
                    "parts": [
                        {"text": self.system_prompt + prompt}
                    ]
                }
            ]
        }

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, params={"key": self.api_key}, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"Gemini API error: {response.status}. Details: {error_text}")
                        raise GenerationError(f"Gemini API error: {response.status} - {error_text}")

                    result = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GenerationError(f"Gemini request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Gemini returned invalid JSON: {e}")
            raise GenerationError(f"Gemini returned invalid JSON: {e}") from e

        try:
            reply = result["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("No response from AI") from e

        logger.info(f"Gemini response: {reply[:80]}")
        return clean_for_speech(reply)
