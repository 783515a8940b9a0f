from __future__ import annotations

import re
from typing import Any, Dict, Optional

from analystdesk.core.errors import InputError
from analystdesk.models.types import AnalysisRequest

# Tried in order; the first hit wins.
_EXCHANGE_PATTERNS = (
    re.compile(r"\b\d{6}\.(?:SZ|SH)\b"),  # 000001.SZ, 600000.SH
    re.compile(r"\b(?:SZ|SH)\d{6}\b"),    # SZ000001, SH600000
    re.compile(r"\b\d{6}\b"),             # 000001, 600000
)
# Matched case-sensitively so ordinary words are not mistaken for tickers.
_TICKER_PATTERN = re.compile(r"\b[A-Z]{2,5}(?:\.[A-Z]{1,2})?\b")
# Trading jargon and currency codes that look like tickers in a question.
_NOT_TICKERS = frozenset({
    "BUY", "SELL", "HOLD", "ETF", "ETFS", "USD", "EUR", "CNY", "RMB", "HKD",
    "IPO", "CEO", "CFO", "EPS", "PE", "ROE", "NOW", "OK", "AI", "ANY",
})

_TIMEFRAMES = (
    (("weekly", "week"), "1w"),
    (("monthly", "month"), "1M"),
    (("daily", "day"), "1d"),
)
_DEPTHS = (
    (("detailed", "in-depth", "deep"), "detailed"),
    (("summary", "brief", "quick"), "summary"),
)


def extract_subject_id(query: Optional[str]) -> Optional[str]:
    """Pull an instrument symbol out of free text, or None."""
    if not query or not query.strip():
        return None
    upper = query.upper()
    for pattern in _EXCHANGE_PATTERNS:
        match = pattern.search(upper)
        if match:
            return match.group()
    for match in _TICKER_PATTERN.finditer(query):
        if match.group() not in _NOT_TICKERS:
            return match.group()
    return None


def extract_parameters(query: Optional[str]) -> Dict[str, Any]:
    """Derive `timeframe` and `depth` hints from free text."""
    text = (query or "").lower()
    return {
        "timeframe": _first_keyword(text, _TIMEFRAMES, "1d"),
        "depth": _first_keyword(text, _DEPTHS, "normal"),
    }


def _first_keyword(text: str, table, default: str) -> str:
    for keywords, value in table:
        if any(re.search(rf"\b{re.escape(k)}\b", text) for k in keywords):
            return value
    return default


def normalize_request(request: AnalysisRequest) -> AnalysisRequest:
    """
    Return a request with a resolved subject id.

    Explicit parameters win over ones extracted from the query.
    Raises InputError when no subject id can be found.
    """
    subject_id = (request.subject_id or "").strip() or extract_subject_id(request.query)
    if not subject_id:
        raise InputError("no subject identifier could be extracted from the request")

    parameters: Dict[str, Any] = {}
    if request.query:
        parameters.update(extract_parameters(request.query))
    parameters.update(request.parameters)
    return AnalysisRequest(subject_id=subject_id, query=request.query, parameters=parameters)
