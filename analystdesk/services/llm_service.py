from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Tuple

import requests

from analystdesk.config.defaults import DEFAULT_CONFIG
from analystdesk.config.logging_config import get_logger

logger = get_logger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class LLMServiceError(RuntimeError):
    """The completion endpoint could not be reached or answered badly."""


class LLMUsage:
    """Lightweight container for token tracking."""
    def __init__(self, prompt_tokens=0, completion_tokens=0):
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
        }


class LLMService:
    """
    Provider-agnostic chat-completion client used by LLM-backed analysts.

    - model and key come from the environment
    - without OPENAI_API_KEY it runs in mock mode and echoes the prompt, which
      analysts then treat as an unusable answer
    - transport errors raise LLMServiceError so the dispatcher drops the
      analyst instead of aggregating a made-up verdict
    """

    def __init__(self, model: Optional[str] = None, timeout: Optional[int] = None):
        cfg = DEFAULT_CONFIG["llm"]
        self.model = model or cfg["model"]
        self.timeout = timeout or cfg["timeout"]
        self.api_key = os.getenv("OPENAI_API_KEY", "")
        self.mock = not bool(self.api_key)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.2,
        max_tokens: int = 512,
    ) -> Tuple[str, Dict[str, Any]]:
        """Return (text, usage_dict)."""

        # ---------- mock mode for dev/CI ----------
        if self.mock:
            text = f"[MOCK:{self.model}] {user_prompt[:200]}"
            usage = LLMUsage(
                prompt_tokens=len(user_prompt) // 4,
                completion_tokens=len(text) // 4,
            )
            return text, usage.to_dict()

        # ---------- real API call ----------
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt.strip()},
                {"role": "user", "content": user_prompt.strip()},
            ],
        }

        try:
            response = requests.post(OPENAI_CHAT_URL, headers=headers, data=json.dumps(body), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise LLMServiceError(f"{self.model} completion failed: {exc}") from exc

        message = (data.get("choices") or [{}])[0].get("message", {})
        text = (message.get("content") or "").strip()

        usage_raw = data.get("usage") or {}
        usage = LLMUsage(
            prompt_tokens=int(usage_raw.get("prompt_tokens", 0)),
            completion_tokens=int(usage_raw.get("completion_tokens", 0)),
        )
        logger.debug("LLM %s answered with %d chars", self.model, len(text))
        return text, usage.to_dict()
