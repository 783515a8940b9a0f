import pytest
from pydantic import ValidationError

from analystdesk.config.providers import load_coordinator_settings
from analystdesk.models.types import ConsolidatedResult, Recommendation, RiskLevel

from _stubs import make_result


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("BUY", Recommendation.BUY),
        ("strong_buy", Recommendation.BUY),
        ("Strong Sell", Recommendation.SELL),
        ("reduce", Recommendation.SELL),
        ("Neutral", Recommendation.HOLD),
        (Recommendation.HOLD, Recommendation.HOLD),
        ("", None),
        ("maybe", None),
        (None, None),
    ],
)
def test_recommendation_parse(raw, expected) -> None:
    assert Recommendation.parse(raw) is expected


def test_risk_levels_are_ordered() -> None:
    assert RiskLevel.LOW.severity < RiskLevel.MEDIUM.severity < RiskLevel.HIGH.severity
    assert RiskLevel.parse("Moderate") is RiskLevel.MEDIUM
    assert RiskLevel.parse("HIGH") is RiskLevel.HIGH
    assert RiskLevel.parse("unknown") is None


@pytest.mark.parametrize(
    "recommendation, confidence, valid",
    [
        ("buy", 0.0, True),
        ("sell", 1.0, True),
        ("hold", 1.01, False),
        ("hold", -0.1, False),
        (None, 0.5, False),
        ("buy", None, False),
    ],
)
def test_result_validity(recommendation, confidence, valid) -> None:
    assert make_result(recommendation, confidence).is_valid() is valid


def test_consolidated_summary() -> None:
    consolidated = ConsolidatedResult(
        subject_id="AAPL",
        recommendation=Recommendation.BUY,
        confidence=0.625,
        risk_level=RiskLevel.MEDIUM,
        target_price=104.8387,
        contributor_count=2,
    )

    assert consolidated.summary() == (
        "Subject: AAPL\nRecommendation: BUY\nRisk: medium\nConfidence: 62.5%\nTarget price: 104.84"
    )


def test_settings_validation() -> None:
    assert load_coordinator_settings(max_concurrency=3).max_concurrency == 3

    with pytest.raises(ValidationError):
        load_coordinator_settings(max_concurrency=0)
    with pytest.raises(ValidationError):
        load_coordinator_settings(timeout_sec=0)
