from __future__ import annotations

from typing import Any, Dict, Optional

from analystdesk.services.llm_service import LLMService
from analystdesk.workers.base_analyst import AnalystConfig, BaseAnalyst

# ──────────────────────────────────────────────────────────────
# Shared prompt fragments
# ──────────────────────────────────────────────────────────────

_TIMEFRAME_CONTEXT = {
    "1d": "Work on daily bars: near-term momentum, volatility, support/resistance.",
    "1w": "Work on weekly bars: intermediate trend strength and breakouts.",
    "1M": "Work on monthly bars: primary trend and structural levels.",
}

_DEPTH_CONTEXT = {
    "detailed": "Give at least five key points.",
    "summary": "Keep it to two key points.",
    "normal": "Give three key points.",
}


def _framing(parameters: Dict[str, Any]) -> str:
    timeframe = parameters.get("timeframe", "1d")
    depth = parameters.get("depth", "normal")
    return (
        f"Timeframe: {timeframe} - {_TIMEFRAME_CONTEXT.get(timeframe, '')}\n"
        f"Depth: {depth} - {_DEPTH_CONTEXT.get(depth, '')}"
    )


# ──────────────────────────────────────────────────────────────
# Domain-specific analysts
# ──────────────────────────────────────────────────────────────


class TechnicalAnalyst(BaseAnalyst):
    """
    Reads price action: trend direction, momentum, support/resistance.
    """

    def render_user_prompt(self, subject_id: str, parameters: Dict[str, Any]) -> str:
        return (
            f"Evaluate {subject_id} from a technical-analysis perspective.\n"
            f"{_framing(parameters)}\n\n"
            "Identify trend direction and key signals (moving averages, RSI, MACD, volume), "
            "name support and resistance levels, and give a target price and stop-loss when "
            "the chart supports one."
        )


class FundamentalAnalyst(BaseAnalyst):
    """
    Weighs valuation, growth, profitability and balance-sheet health.
    """

    def render_user_prompt(self, subject_id: str, parameters: Dict[str, Any]) -> str:
        return (
            f"Assess {subject_id} from a fundamental perspective.\n"
            f"{_framing(parameters)}\n\n"
            "Judge whether the company looks undervalued or overvalued relative to its history "
            "and peers (P/E, P/B, ROE, revenue and earnings growth, leverage). Give a fair-value "
            "target price when you can justify one."
        )


class SentimentAnalyst(BaseAnalyst):
    """
    Gauges news flow and market mood around the subject.
    """

    def render_user_prompt(self, subject_id: str, parameters: Dict[str, Any]) -> str:
        return (
            f"Gauge market sentiment around {subject_id}.\n"
            f"{_framing(parameters)}\n\n"
            "Consider recent news, analyst revisions and positioning. Flag event risk "
            "(earnings, regulation, litigation) as warnings."
        )


def build_default_analysts(llm: Optional[LLMService] = None) -> Dict[str, BaseAnalyst]:
    """
    Instantiate the standard analyst line-up keyed by worker id.
    """
    return {
        "technical": TechnicalAnalyst(
            AnalystConfig(
                name="technical",
                display_name="Technical Analyst",
                analysis_type="technical",
                system_prompt="You are a seasoned technical analyst covering {subject_id}.",
            ),
            llm=llm,
        ),
        "fundamental": FundamentalAnalyst(
            AnalystConfig(
                name="fundamental",
                display_name="Fundamental Analyst",
                analysis_type="fundamental",
                system_prompt="You are a fundamental equity analyst covering {subject_id}.",
            ),
            llm=llm,
        ),
        "sentiment": SentimentAnalyst(
            AnalystConfig(
                name="sentiment",
                display_name="Sentiment Analyst",
                analysis_type="sentiment",
                system_prompt="You track news flow and investor sentiment for {subject_id}.",
            ),
            llm=llm,
        ),
    }
