"""
Harvest run configuration.

The configuration is a pydantic model so values coming from a JSON config file
(camelCase keys, as written by the desktop front-end) or from CLI flags
(snake_case) are validated the same way. The AI API key is never read from a
config file; it is injected from the environment only.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = ("AI_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY")
DEFAULT_AI_MODEL = "claude-3-haiku-20240307"


class SelectorConfig(BaseModel):
    """Global selector specs, applied to rows that carry no selector of their own."""
    model_config = ConfigDict(populate_by_name=True)

    css: str = Field(default="", description="Comma-separated name=query CSS selectors")
    xpath: str = Field(default="", description="Comma-separated name=query XPath selectors")


class HarvestConfig(BaseModel):
    """Configuration options for a harvest run."""
    model_config = ConfigDict(populate_by_name=True)

    input_path: Path = Field(..., alias="inputPath")
    output_dir: Path = Field(..., alias="outputDir")
    image_sub_folder: str = Field(default="images", min_length=1, alias="imageSubFolder")
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)
    use_ai_fallback: bool = Field(default=False, alias="useAIFallback")
    concurrency: int = Field(default=3, ge=1, description="Number of concurrent page workers")

    ai_api_key: str = Field(default="", exclude=True, repr=False)
    ai_model: str = Field(default=DEFAULT_AI_MODEL, alias="aiModel")

    # Browser tuning
    headless: bool = True
    navigation_timeout_ms: int = Field(default=30000, ge=1, alias="navigationTimeoutMs")
    network_idle_timeout_ms: int = Field(default=10000, ge=0, alias="networkIdleTimeoutMs")

    @property
    def image_dir(self) -> Path:
        """Absolute-or-relative directory where screenshots and logos are written."""
        return self.output_dir / self.image_sub_folder

    @property
    def output_table_path(self) -> Path:
        """Path of the output CSV: ``{output_dir}/{input_stem}_output.csv``."""
        return self.output_dir / f"{self.input_path.stem}_output.csv"


def api_key_from_env() -> str:
    """
    Read the AI API key from the environment (after loading a .env file).

    Returns:
        The first non-empty key found, or an empty string.
    """
    load_dotenv()
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return ""


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> HarvestConfig:
    """
    Build a HarvestConfig from an optional JSON file plus explicit overrides.

    Overrides whose value is None are ignored, so argparse namespaces can be
    passed through directly. Any API key present in the file is discarded.

    Args:
        config_file: Optional JSON file with camelCase or snake_case keys
        **overrides: Field values that take precedence over the file

    Returns:
        Validated configuration with the API key injected from the environment
    """
    data: Dict[str, Any] = {}
    if config_file is not None:
        with open(config_file, encoding="utf-8") as f:
            raw = json.load(f)
        # Normalise camelCase aliases to field names so overrides replace them
        aliases = {info.alias: name for name, info in HarvestConfig.model_fields.items() if info.alias}
        data = {aliases.get(key, key): value for key, value in raw.items()}

    for secret_key in ("aiApiKey", "ai_api_key"):
        if data.pop(secret_key, None):
            logger.warning(f"Ignoring '{secret_key}' in {config_file}; the API key is read from the environment")

    selectors = dict(data.pop("selectors", None) or {})
    for kind in ("css", "xpath"):
        value = overrides.pop(f"{kind}_selectors", None)
        if value is not None:
            selectors[kind] = value

    data.update({key: value for key, value in overrides.items() if value is not None})
    data["selectors"] = selectors

    config = HarvestConfig.model_validate(data)
    config.ai_api_key = api_key_from_env()
    return config
