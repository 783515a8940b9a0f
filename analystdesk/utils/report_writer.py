from __future__ import annotations

from textwrap import indent
from typing import Dict, List, Mapping, Optional

from analystdesk.models.types import AnalysisResult, ConsolidatedResult

DISCLAIMER = (
    "This report is for reference only and does not constitute investment advice. "
    "Markets carry risk; invest with caution."
)

_DISPLAY_NAMES = {
    "technical": "Technical Analyst",
    "fundamental": "Fundamental Analyst",
    "sentiment": "Sentiment Analyst",
    "risk": "Risk Manager",
}


def display_name(worker_id: str, handle: object = None) -> str:
    """Human-readable analyst name: handle attribute, known id, or '<ID> Analyst'."""
    name = getattr(handle, "display_name", None) if handle is not None else None
    if name:
        return str(name)
    return _DISPLAY_NAMES.get(worker_id, f"{worker_id.upper()} Analyst")


def _pct(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value * 100:.1f}%"


# ───────────────────────────────────────────────
# Markdown rendering
# ───────────────────────────────────────────────
def render_text_report(
    consolidated: ConsolidatedResult,
    results: Mapping[str, AnalysisResult],
    display_names: Optional[Dict[str, str]] = None,
) -> str:
    """
    Render the consolidated decision and every contribution as Markdown.

    Sections: header, consolidated verdict, per-analyst detail, warnings,
    disclaimer. Analysts appear in the same order as in
    `consolidated.raw_data`.
    """
    names = display_names or {}

    # --- Header ---
    md: List[str] = [
        f"# Multi-Analyst Report — {consolidated.subject_id}",
        f"**Analysed at:** {consolidated.analyzed_at.isoformat(timespec='seconds')}",
        f"**Contributing analysts:** {consolidated.contributor_count}",
        "",
        "## Consolidated Verdict",
        f"- Recommendation: **{consolidated.recommendation.value.upper()}**",
        f"- Risk level: {consolidated.risk_level.value}",
        f"- Confidence: {_pct(consolidated.confidence)}",
    ]
    if consolidated.target_price is not None:
        md.append(f"- Target price: {consolidated.target_price:.2f}")
    md.append("")

    # --- Analyst details ---
    md.append("## Analyst Detail")
    ordered = [wid for wid in consolidated.raw_data if wid in results]
    ordered += [wid for wid in results if wid not in consolidated.raw_data]
    for worker_id in ordered:
        result = results[worker_id]
        rec = result.recommendation.value.upper() if result.recommendation else "N/A"
        section = [
            f"### {names.get(worker_id) or display_name(worker_id)}",
            f"**Recommendation:** {rec}  |  **Confidence:** {_pct(result.confidence)}",
        ]
        if result.risk_level is not None:
            section.append(f"**Risk:** {result.risk_level.value}")
        if result.conclusion:
            section += ["", f"**Conclusion:** {result.conclusion}"]
        if result.key_points:
            section += ["", "**Key points:**", indent("\n".join(f"- {p}" for p in result.key_points), "  ")]
        md += ["\n".join(section), ""]

    # --- Warnings ---
    if consolidated.warnings:
        md.append("## Risk Warnings")
        md += [f"- ⚠️ {w}" for w in consolidated.warnings]
        md.append("")

    md += ["---", "## Disclaimer", DISCLAIMER]
    return "\n".join(md)
