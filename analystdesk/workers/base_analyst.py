from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from analystdesk.config.defaults import DEFAULT_CONFIG
from analystdesk.config.logging_config import get_logger
from analystdesk.models.types import AnalysisResult, Recommendation, RiskLevel
from analystdesk.services.llm_service import LLMService

logger = get_logger(__name__)

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)

RESPONSE_CONTRACT = (
    "Respond with a single JSON object with keys: "
    '"recommendation" (buy|hold|sell), "confidence" (0..1), '
    '"risk_level" (low|medium|high), "target_price" (number or null), '
    '"stop_loss_price" (number or null), "conclusion" (one paragraph), '
    '"key_points" (list of strings), "warnings" (list of strings).'
)


# ==========================================================
# 1) AnalystConfig – describes an analyst's runtime profile
# ==========================================================

class AnalystConfig(BaseModel):
    """
    Configuration schema for an LLM-backed analyst.
    Each analyst has a unique name and a system prompt.
    """
    name: str
    display_name: Optional[str] = None
    analysis_type: str = "general"
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    max_tokens: int = DEFAULT_CONFIG["llm"]["max_tokens"]
    temperature: float = DEFAULT_CONFIG["llm"]["temperature"]


# ==========================================================
# 2) BaseAnalyst – implements the worker contract
# ==========================================================

class BaseAnalyst:
    """
    Base class for analysts that ask an LLM for a verdict.

    `perform` is the only entry point the coordinator uses. It never touches
    shared state, so several analysts can run side by side in the pool.

    Example LLM answer:
        {"recommendation": "buy", "confidence": 0.72, "risk_level": "medium", ...}
    """

    def __init__(self, cfg: AnalystConfig, llm: Optional[LLMService] = None):
        self.cfg = cfg
        self.name = cfg.name
        self.display_name = cfg.display_name or cfg.name
        self.llm = llm or LLMService(model=cfg.model)

    def perform(self, subject_id: str, parameters: Dict[str, Any]) -> AnalysisResult:
        user_prompt = self.render_user_prompt(subject_id, parameters)
        text, usage = self.llm.complete(
            system_prompt=self.system_prompt(subject_id),
            user_prompt=user_prompt,
            temperature=self.cfg.temperature,
            max_tokens=self.cfg.max_tokens,
        )
        result = self.parse_response(subject_id, text)
        result.raw_data.setdefault("usage", usage)
        return result

    # ------------------------------------------------------
    # Prompting
    # ------------------------------------------------------

    def system_prompt(self, subject_id: str) -> str:
        base = self.cfg.system_prompt or f"You are the {self.display_name}. Provide your analysis concisely."
        return f"{base}\n{RESPONSE_CONTRACT}".replace("{subject_id}", subject_id)

    def render_user_prompt(self, subject_id: str, parameters: Dict[str, Any]) -> str:
        """Subclasses override to format domain-specific prompts."""
        return json.dumps({"subject_id": subject_id, "parameters": parameters}, indent=2, default=str)

    # ------------------------------------------------------
    # Parsing
    # ------------------------------------------------------

    def parse_response(self, subject_id: str, text: str) -> AnalysisResult:
        """
        Best-effort JSON parsing. Anything that is not a JSON object becomes a
        result without recommendation/confidence, which the dispatcher rejects.
        """
        data = _load_json_object(text)
        if data is None:
            logger.warning("⚠️ %s returned no JSON verdict for %s", self.name, subject_id)
            return AnalysisResult(
                subject_id=subject_id,
                analysis_type=self.cfg.analysis_type,
                conclusion=(text or "").strip() or None,
                raw_data={"raw_response": text},
            )

        return AnalysisResult(
            subject_id=subject_id,
            analysis_type=self.cfg.analysis_type,
            recommendation=Recommendation.parse(data.get("recommendation") or data.get("decision")),
            confidence=_as_float(data.get("confidence")),
            risk_level=RiskLevel.parse(data.get("risk_level")),
            target_price=_as_float(data.get("target_price")),
            stop_loss_price=_as_float(data.get("stop_loss_price")),
            conclusion=data.get("conclusion") or data.get("summary"),
            key_points=_as_str_list(data.get("key_points")),
            warnings=_as_str_list(data.get("warnings")),
            raw_data={k: v for k, v in data.items() if k not in _RESULT_KEYS},
        )


_RESULT_KEYS = {
    "recommendation", "decision", "confidence", "risk_level", "target_price",
    "stop_loss_price", "conclusion", "summary", "key_points", "warnings",
}


def _load_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    text = (text or "").strip()
    if not text:
        return None
    match = _JSON_BLOCK.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group())
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]
