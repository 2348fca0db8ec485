"""Receipt extraction using Claude Vision."""

import base64
import logging

import anthropic

from receipt_tracker.config import Settings, get_settings
from receipt_tracker.exceptions import InvalidExtractionError, RemoteUnavailableError
from receipt_tracker.services.llm_prompts import RECEIPT_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)


class ExtractionService:
    """Service for reading receipt images with Claude Vision.

    Returns the model's raw text; turning it into a receipt is the job of
    ``ReceiptNormalizer``.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the extraction service."""
        settings = settings or get_settings()
        self.api_key = settings.anthropic_api_key
        self.model = settings.extraction_model
        self.max_tokens = settings.extraction_max_tokens
        self._configured = bool(self.api_key)

    @property
    def is_configured(self) -> bool:
        """Check if the Anthropic API is configured."""
        return self._configured

    async def extract(self, image_data: bytes, media_type: str) -> str:
        """Extract a receipt payload from an image.

        Args:
            image_data: Raw bytes of the image
            media_type: MIME type (e.g., "image/jpeg", "image/png")

        Returns:
            The raw model output, expected to be a JSON object
        """
        if not self.is_configured:
            raise RemoteUnavailableError("Anthropic API not configured")

        image_base64 = base64.standard_b64encode(image_data).decode("utf-8")
        client = anthropic.AsyncAnthropic(api_key=self.api_key)

        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": image_base64,
                                },
                            },
                            {
                                "type": "text",
                                "text": RECEIPT_EXTRACTION_PROMPT,
                            },
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            logger.error(f"Receipt extraction request failed: {e}")
            raise RemoteUnavailableError(f"Receipt extraction failed: {e}") from e

        text_blocks = [block.text for block in message.content if block.type == "text"]
        if not text_blocks:
            raise InvalidExtractionError("Extraction returned no text")
        return text_blocks[0].strip()
