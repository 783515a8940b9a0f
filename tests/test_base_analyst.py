import json

import pytest
import requests

from analystdesk.models.types import Recommendation, RiskLevel
from analystdesk.services.llm_service import LLMService, LLMServiceError
from analystdesk.workers.analysts import TechnicalAnalyst, build_default_analysts
from analystdesk.workers.base_analyst import AnalystConfig


class StubLLM:
    def __init__(self, text: str) -> None:
        self.text = text
        self.prompts: list[dict] = []

    def complete(self, system_prompt, user_prompt, *, temperature=0.2, max_tokens=512):
        self.prompts.append({"system": system_prompt, "user": user_prompt})
        return self.text, {"prompt_tokens": 10, "completion_tokens": 5}


def _analyst(text: str) -> TechnicalAnalyst:
    cfg = AnalystConfig(
        name="technical",
        display_name="Technical Analyst",
        analysis_type="technical",
        system_prompt="You cover {subject_id}.",
    )
    return TechnicalAnalyst(cfg, llm=StubLLM(text))


def test_json_verdict_becomes_valid_result() -> None:
    answer = {
        "recommendation": "Strong Buy",
        "confidence": "0.72",
        "risk_level": "Medium",
        "target_price": 191.5,
        "conclusion": "Breakout above resistance.",
        "key_points": ["Golden cross", "Rising volume"],
        "warnings": "Earnings next week",
        "rsi": 64,
    }
    analyst = _analyst(json.dumps(answer))

    result = analyst.perform("AAPL", {"timeframe": "1w", "depth": "normal"})

    assert result.is_valid()
    assert result.recommendation is Recommendation.BUY
    assert result.confidence == 0.72
    assert result.risk_level is RiskLevel.MEDIUM
    assert result.target_price == 191.5
    assert result.warnings == ["Earnings next week"]
    assert result.raw_data["rsi"] == 64
    assert result.raw_data["usage"] == {"prompt_tokens": 10, "completion_tokens": 5}
    assert result.subject_id == "AAPL"
    assert result.analysis_type == "technical"


def test_prompts_carry_subject_and_framing() -> None:
    analyst = _analyst('{"recommendation": "hold", "confidence": 0.5}')

    analyst.perform("MSFT", {"timeframe": "1w", "depth": "detailed"})

    prompt = analyst.llm.prompts[0]
    assert "You cover MSFT." in prompt["system"]
    assert '"recommendation"' in prompt["system"]
    assert "MSFT" in prompt["user"]
    assert "weekly bars" in prompt["user"]


def test_json_inside_prose_is_recovered() -> None:
    analyst = _analyst('Here you go:\n```json\n{"recommendation": "sell", "confidence": 0.4}\n```')

    result = analyst.perform("AAPL", {})

    assert result.recommendation is Recommendation.SELL
    assert result.is_valid()


def test_unparseable_answer_is_invalid() -> None:
    result = _analyst("I think it looks fine.").perform("AAPL", {})

    assert not result.is_valid()
    assert result.conclusion == "I think it looks fine."


def test_mock_mode_without_api_key_yields_invalid_results() -> None:
    service = LLMService(model="gpt-test")
    assert service.mock is True

    analyst = TechnicalAnalyst(AnalystConfig(name="technical"), llm=service)
    assert not analyst.perform("AAPL", {}).is_valid()


def test_transport_errors_raise(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    def fail(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr("analystdesk.services.llm_service.requests.post", fail)

    with pytest.raises(LLMServiceError):
        LLMService(model="gpt-test").complete("system", "user")


def test_default_lineup() -> None:
    analysts = build_default_analysts(llm=StubLLM("{}"))

    assert list(analysts) == ["technical", "fundamental", "sentiment"]
    assert analysts["fundamental"].display_name == "Fundamental Analyst"
