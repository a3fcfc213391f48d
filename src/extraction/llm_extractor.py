"""
LLM-based CV extraction using OpenAI.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger
from openai import AsyncOpenAI
from pydantic import ValidationError

from scoring.engine import calculate_score
from shared.config import Settings, get_settings
from shared.exceptions import ExtractionError
from shared.models import CVData, JobOffer

from .prompts import SYSTEM_PROMPT, build_extraction_prompt


class ExtractionService(ABC):
    """Turns raw CV text into structured CV data."""

    @abstractmethod
    async def extract(self, raw_text: str, job_offer: JobOffer) -> CVData:
        """
        Raises:
            ExtractionError: the text could not be turned into CV data
        """


class LLMExtractor(ExtractionService):
    """Extracts CV data with an OpenAI chat completion in JSON mode."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key.get_secret_value(),
                timeout=self.settings.openai_timeout_seconds,
            )
        return self._client

    async def _complete(self, user_prompt: str) -> str:
        """
        Run the chat completion, retrying failed requests.

        Waits `openai_retry_delay_ms * retry` before each retry.
        """
        max_retries = self.settings.openai_max_retries
        retry = 0

        while True:
            try:
                response = await self.client.chat.completions.create(
                    model=self.settings.openai_model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=self.settings.openai_temperature,
                    max_tokens=self.settings.openai_max_tokens,
                    response_format={"type": "json_object"},
                )
                logger.debug("OpenAI request completed")
                return response.choices[0].message.content or ""

            except Exception as e:
                if retry >= max_retries:
                    raise ExtractionError(
                        f"OpenAI request failed after {max_retries} retries: {e}"
                    ) from e
                retry += 1
                logger.warning(f"OpenAI request failed, retry {retry}/{max_retries}: {e}")
                await asyncio.sleep(self.settings.openai_retry_delay_ms * retry / 1000)

    async def extract(self, raw_text: str, job_offer: JobOffer) -> CVData:
        """
        Extract structured data from CV text.

        The score of the returned data is always recomputed locally against
        the job offer.
        """
        if not raw_text or not raw_text.strip():
            raise ExtractionError("CV text is empty")

        content = await self._complete(build_extraction_prompt(raw_text, job_offer))
        if not content.strip():
            raise ExtractionError("Empty response from LLM")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse LLM response: {e}")
            raise ExtractionError(f"JSON parse error: {e}") from e

        if not isinstance(payload, dict):
            raise ExtractionError("LLM response is not a JSON object")

        # score is computed locally, ignore anything the model sent
        payload.pop("score", None)
        try:
            cv_data = CVData.model_validate(payload)
        except ValidationError as e:
            raise ExtractionError(f"Invalid CV data from LLM: {e.error_count()} errors") from e

        cv_data.score = calculate_score(cv_data, job_offer)
        logger.info(
            f"Extracted CV of {cv_data.personal_info.name}: "
            f"{len(cv_data.skills)} skills, score={cv_data.score.overall}"
        )
        return cv_data
