"""
AI fallback extraction for pages without selector specs.

Sends the page's rendered body HTML (truncated to stay under request-size
limits) to an LLM and asks for a fixed set of fields as a JSON object. The raw
JSON text is returned verbatim; nothing here is ever fatal to a page.

Claude models go through the Anthropic SDK, anything else through OpenAI's
JSON mode.
"""

import json
import logging
from typing import Optional

import anthropic
import openai
from playwright.async_api import Page

from .config import DEFAULT_AI_MODEL

logger = logging.getLogger(__name__)

HTML_CHAR_BUDGET = 50000
MAX_OUTPUT_TOKENS = 1024

EXTRACTION_FIELDS = {
    "siteName": "The official name of the company/website.",
    "mainHeadline": "The main hero or tag line of the page.",
    "phoneNumber": "Any visible phone number on the page.",
    "emailAddress": "Any visible email address.",
    "primaryAddress": "The primary physical address, if visible.",
}

SYSTEM_PROMPT = (
    "You are an expert web content extraction engine. Analyze the provided HTML and "
    "extract the requested fields into the specified JSON format. Return null for any "
    "field that is not clearly visible in the content. Do not generate text outside "
    "the JSON object."
)


class AIExtractor:
    """
    LLM-backed structured data extraction.

    Usage:
        extractor = AIExtractor(api_key=config.ai_api_key)
        json_text = await extractor.extract_from_page(page, worker_log)
    """

    def __init__(self, api_key: str = "", model: str = DEFAULT_AI_MODEL):
        """
        Initialize the extractor.

        Args:
            api_key: Provider API key (injected from the environment)
            model: Model name; Claude models use Anthropic, others OpenAI
        """
        self.api_key = api_key
        self.model = model
        self._client = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @property
    def uses_anthropic(self) -> bool:
        name = self.model.lower()
        return "claude" in name or "anthropic" in name

    @property
    def client(self):
        """Lazy-load the provider's async client."""
        if self._client is None:
            if self.uses_anthropic:
                self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
            else:
                self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    def build_prompt(self, html: str) -> str:
        """Build the user prompt with the field schema and truncated HTML."""
        fields = "\n".join(f'- "{name}": {description}' for name, description in EXTRACTION_FIELDS.items())
        return (
            "Extract structured data from the following HTML content, paying close attention "
            "to visible, meaningful text. Respond with a single JSON object containing exactly "
            f"these keys:\n{fields}\n\nHTML:\n\n{html[:HTML_CHAR_BUDGET]}"
        )

    async def extract_from_page(self, page: Page, log) -> Optional[str]:
        """
        Read the page's body HTML and run extraction on it.

        Args:
            page: Loaded Playwright page
            log: WorkerLog (anything with info/warn/error) for the current URL

        Returns:
            Raw JSON object text, or None on any failure
        """
        if not self.enabled:
            log.warn("AI Smart Scrape skipped. AI_API_KEY is not configured.")
            return None

        try:
            html = await page.evaluate("() => document.body.outerHTML")
        except Exception as e:
            log.error(f"Could not get page HTML for AI analysis. {e}")
            return None

        html = (html or "")[:HTML_CHAR_BUDGET]
        log.info(f"Fetched {len(html)} characters of HTML for AI analysis.")
        return await self.extract(html, log)

    async def extract(self, html: str, log) -> Optional[str]:
        """
        Ask the model for the extraction fields.

        Returns:
            Raw JSON object text, or None on provider/network error or a
            malformed response
        """
        if not self.enabled:
            log.warn("AI Smart Scrape skipped. AI_API_KEY is not configured.")
            return None

        prompt = self.build_prompt(html)
        try:
            if self.uses_anthropic:
                text = await self._call_anthropic(prompt)
            else:
                text = await self._call_openai(prompt)
        except (anthropic.APIError, openai.OpenAIError) as e:
            log.error(f"AI Smart Scrape failed due to network error or API failure. {e}")
            return None

        json_text = self._validate_json_object(text)
        if json_text is None:
            log.error("AI response was malformed or empty.")
            return None

        log.info("AI Smart Scrape successful. Data received.")
        return json_text

    async def _call_anthropic(self, prompt: str) -> str:
        """Call Anthropic Claude with the reply prefilled to open a JSON object."""
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[
                {"role": "user", "content": prompt},
                {"role": "assistant", "content": "{"},
            ]
        )

        if hasattr(response, 'usage'):
            logger.debug(
                f"AI extraction tokens: {getattr(response.usage, 'input_tokens', 0)} input, "
                f"{getattr(response.usage, 'output_tokens', 0)} output"
            )

        parts = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        if not parts:
            return ""
        return "{" + "".join(parts)

    async def _call_openai(self, prompt: str) -> str:
        """Call OpenAI in JSON mode."""
        response = await self.client.chat.completions.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ]
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    @staticmethod
    def _validate_json_object(text: Optional[str]) -> Optional[str]:
        """Return the text unchanged if it holds a JSON object, else None."""
        text = (text or "").strip()
        if not text:
            return None
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return None
        return text if isinstance(parsed, dict) else None
