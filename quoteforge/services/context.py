"""
Service handle for the AI-backed features.

Built once at the application boundary with build_context() and passed to the
generator and importer; nothing here is module-level state.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI

from quoteforge.core.settings import Settings, load_settings

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    # openai.OpenAI or any object exposing chat.completions.create
    client: Optional[Any] = None

    @property
    def ai_enabled(self) -> bool:
        return self.client is not None

    def complete_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> Dict[str, Any]:
        """Chat completion constrained to a JSON object; returns the decoded object.

        Raises RuntimeError when no client is configured, ValueError when the reply is
        not a JSON object; client errors (openai.OpenAIError) propagate.
        """
        if self.client is None:
            raise RuntimeError(f"AI client not configured (set {self.settings.openai_api_key_env})")
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        response = self.client.chat.completions.create(
            model=self.settings.openai_model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        if not content.strip():
            raise ValueError("Empty AI response")
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("AI response is not a JSON object")
        return data


def build_context(settings: Optional[Settings] = None, client: Optional[Any] = None) -> ServiceContext:
    """Create the service handle; without an API key the services use their local fallbacks."""
    settings = settings or load_settings()
    if client is None:
        api_key = settings.openai_api_key()
        if api_key:
            client = OpenAI(api_key=api_key, timeout=settings.openai_timeout)
        else:
            logger.warning("%s is not set; AI features will use local fallbacks", settings.openai_api_key_env)
    return ServiceContext(settings=settings, client=client)
