from analystdesk.core.aggregator import Aggregator
from analystdesk.core.registry import WeightTable, WorkerRegistry
from analystdesk.utils.report_writer import DISCLAIMER, display_name, render_text_report

from _stubs import StubAnalyst, make_result


def _consolidate(results):
    registry = WorkerRegistry(WeightTable({"technical": 0.4, "fundamental": 0.5}))
    for worker_id in results:
        registry.register(worker_id, StubAnalyst())
    snapshot = registry.snapshot()
    return Aggregator().aggregate("AAPL", results, snapshot)


def test_report_sections_in_order() -> None:
    results = {
        "technical": make_result(
            "buy", 0.8, risk="medium", target_price=100.0,
            key_points=("Golden cross",), warnings=("Overbought RSI",),
            conclusion="Trend is up.",
        ),
        "fundamental": make_result("hold", 0.6, target_price=110.0),
    }
    consolidated = _consolidate(results)

    report = render_text_report(consolidated, results)

    headings = [
        "# Multi-Analyst Report — AAPL",
        "## Consolidated Verdict",
        "## Analyst Detail",
        "### Technical Analyst",
        "### Fundamental Analyst",
        "## Risk Warnings",
        "## Disclaimer",
    ]
    positions = [report.index(h) for h in headings]
    assert positions == sorted(positions)
    assert "- Recommendation: **BUY**" in report
    assert "- Target price: 104.84" in report
    assert "**Conclusion:** Trend is up." in report
    assert "  - Golden cross" in report
    assert "- ⚠️ [TECHNICAL] Overbought RSI" in report
    assert report.endswith(DISCLAIMER)


def test_report_omits_empty_sections() -> None:
    results = {"technical": make_result("sell", 0.5)}

    report = render_text_report(_consolidate(results), results)

    assert "Target price" not in report
    assert "## Risk Warnings" not in report


def test_report_is_deterministic() -> None:
    results = {"technical": make_result("sell", 0.5), "fundamental": make_result("buy", 0.9)}
    consolidated = _consolidate(results)

    assert render_text_report(consolidated, results) == render_text_report(consolidated, results)


def test_custom_display_names() -> None:
    results = {"quant": make_result("buy", 0.5)}
    consolidated = _consolidate(results)

    report = render_text_report(consolidated, results, {"quant": "Quant Desk"})

    assert "### Quant Desk" in report


def test_display_name_fallbacks() -> None:
    assert display_name("technical") == "Technical Analyst"
    assert display_name("macro") == "MACRO Analyst"
    assert display_name("macro", StubAnalyst(display_name="Macro Strategist")) == "Macro Strategist"
    assert display_name("macro", StubAnalyst()) == "MACRO Analyst"
