"""
Module for AI-powered pattern extraction using Google Generative AI (Gemini).

Sends the extraction prompt built by the core and returns the raw model text;
validation and ingestion happen in moodcast.core.extraction. Models are tried
in preference order until one answers.
"""

import os
import logging
from typing import List, Optional

import google.generativeai as genai

from moodcast.core.extraction import PatternExtractionError, TextGenerator

# Model preference order for cascade fallback
PREFERRED_MODELS = [
    'gemini-2.5-flash',
    'gemini-2.0-flash',
    'gemini-2.0-flash-lite',
    'gemini-flash-latest',
]

GENERATION_CONFIG = {
    "temperature": 0.2,
    "response_mime_type": "application/json",
}

logger = logging.getLogger(__name__)


class GeminiTextGenerator:
    """
    Callable (system_prompt, user_message) -> text backed by Gemini.

    Args:
        api_key: Gemini key; defaults to GEMINI_API_KEY.
        models: Model names to try in order.
    """

    def __init__(self, api_key: Optional[str] = None, models: Optional[List[str]] = None):
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        self.models = models or list(PREFERRED_MODELS)
        self._configured = False

    def _configure(self) -> None:
        if not self.api_key:
            raise PatternExtractionError("No GEMINI_API_KEY found in environment.")
        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True

    def __call__(self, system_prompt: str, user_message: str) -> str:
        """
        Runs the prompt through the model cascade.

        Raises:
            PatternExtractionError: no key, or every model failed or answered empty.
        """
        self._configure()

        for model_name in self.models:
            try:
                logger.info(f"[EXTRACTION] Extracting with model: {model_name}")
                model = genai.GenerativeModel(
                    model_name,
                    system_instruction=system_prompt,
                    generation_config=GENERATION_CONFIG,
                )
                response = model.generate_content(user_message)
                text = (response.text or "").strip()
                if text:
                    logger.info(f"[EXTRACTION] Model {model_name} answered ({len(text)} chars)")
                    return text
                logger.warning(f"[EXTRACTION] Model {model_name} returned an empty answer")
            except Exception as e:
                logger.warning(f"[EXTRACTION] Model {model_name} failed: {e}")
                continue

        raise PatternExtractionError("All models failed")


# ============================================================================
# PUBLIC API
# ============================================================================

def create_text_generator(api_key: Optional[str] = None) -> Optional[TextGenerator]:
    """Returns a Gemini-backed generator, or None when no key is available."""
    key = api_key or os.environ.get("GEMINI_API_KEY")
    if not key:
        logger.warning("[EXTRACTION] No GEMINI_API_KEY found, pattern extraction disabled.")
        return None
    return GeminiTextGenerator(api_key=key)
