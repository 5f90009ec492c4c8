"""
Chart rendering and PDF export for the STEPS training-program calculator.

Provides:
  - Base64-encoded chart images for web embedding (get_web_charts)
  - Scenario comparison PDF with text blocks per saved scenario (generate_pdf)

Nothing here computes model results; every figure is drawn from an
Evaluation or SavedScenario handed in by the caller.
"""

from __future__ import annotations

import base64
import io
import logging
from typing import BinaryIO, List, Optional, Sequence, Tuple, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.ticker import FuncFormatter
import numpy as np

import config as cfg
from economics import CostBenefitResult, cost_benefit_series
from model import WTPEntry
from session import Evaluation, SavedScenario

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════
# Style constants
# ═══════════════════════════════════════════════════════════════════

BG = "#0a101f"
CARD = "#131b2e"
TEXT = "#f1f5f9"
INDIGO = "#818cf8"
EMERALD = "#34d399"
AMBER = "#fbbf24"
RED = "#f87171"
SLATE = "#94a3b8"
BORDER = "#1e293b"

MM_PER_INCH = 25.4
A4W, A4H = cfg.PDF_PAGE_W_MM / MM_PER_INCH, cfg.PDF_PAGE_H_MM / MM_PER_INCH
WEB_W, WEB_H = 10, 6

# Line advances inside one scenario block (mm)
HEADING_STEP = 7.0
LINE_STEP = 5.0
BLOCK_GAP = 10.0


# ═══════════════════════════════════════════════════════════════════
# Axis formatters
# ═══════════════════════════════════════════════════════════════════

def _usd_fmt(x, _):
    if abs(x) >= 1e9:
        return f"${x / 1e9:.1f}B"
    if abs(x) >= 1e6:
        return f"${x / 1e6:.1f}M"
    if abs(x) >= 1e3:
        return f"${x / 1e3:.0f}k"
    return f"${x:.0f}"


USD_FMT = FuncFormatter(_usd_fmt)


# ═══════════════════════════════════════════════════════════════════
# Style helpers
# ═══════════════════════════════════════════════════════════════════

def _style(fig, *axes):
    """Apply dark theme to figure and all axes."""
    fig.patch.set_facecolor(BG)
    for ax in axes:
        ax.set_facecolor(CARD)
        ax.tick_params(colors=TEXT, labelsize=8)
        ax.xaxis.label.set_color(TEXT)
        ax.yaxis.label.set_color(TEXT)
        ax.title.set_color(TEXT)
        for spine in ax.spines.values():
            spine.set_color(BORDER)
        ax.grid(True, axis="y", alpha=0.15, color=SLATE)


# ═══════════════════════════════════════════════════════════════════
# Web: Uptake doughnut
# ═══════════════════════════════════════════════════════════════════

def _chart_uptake(percent: float, figsize=(WEB_W * 0.6, WEB_H)) -> plt.Figure:
    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(BG)
    ax.set_facecolor(BG)

    ax.pie(
        [percent, 100.0 - percent],
        labels=["Uptake", "Remaining"],
        colors=[EMERALD, RED],
        startangle=90,
        counterclock=False,
        wedgeprops=dict(width=0.38, edgecolor=BG),
        textprops=dict(color=TEXT, fontsize=9),
    )
    ax.text(0, 0, f"{percent:.1f}%", ha="center", va="center",
            fontsize=20, color=TEXT, fontweight="bold")
    ax.set_title(f"Predicted Program Uptake: {percent:.1f}%",
                 fontsize=13, color=TEXT, pad=12)
    ax.axis("equal")
    return fig


# ═══════════════════════════════════════════════════════════════════
# Web: Cost-benefit bars
# ═══════════════════════════════════════════════════════════════════

def _chart_cost_benefit(cb: CostBenefitResult, figsize=(WEB_W, WEB_H)) -> plt.Figure:
    series = cost_benefit_series(cb)
    fig, ax = plt.subplots(figsize=figsize, constrained_layout=True)
    _style(fig, ax)

    x = np.arange(len(series))
    vals = list(series.values())
    bars = ax.bar(x, vals, 0.55, color=[RED, EMERALD, AMBER])
    ax.axhline(0, color=SLATE, linewidth=1)
    for bar, v in zip(bars, vals):
        ax.annotate(_usd_fmt(v, None),
                    xy=(bar.get_x() + bar.get_width() / 2, v),
                    xytext=(0, 4 if v >= 0 else -12), textcoords="offset points",
                    ha="center", fontsize=8, color=TEXT)

    ax.set_xticks(x)
    ax.set_xticklabels(list(series.keys()))
    ax.yaxis.set_major_formatter(USD_FMT)
    ax.set_ylabel("USD")
    ax.set_title("Cost-Benefit Analysis", fontsize=13, pad=12)
    return fig


# ═══════════════════════════════════════════════════════════════════
# Web: WTP bars with error bars
# ═══════════════════════════════════════════════════════════════════

def _chart_wtp(entries: Sequence[WTPEntry], figsize=(WEB_W, WEB_H + 1)) -> plt.Figure:
    fig, ax = plt.subplots(figsize=figsize, constrained_layout=True)
    _style(fig, ax)

    x = np.arange(len(entries))
    vals = np.array([e.wtp for e in entries])
    errs = np.array([e.standard_error for e in entries])
    colors = [INDIGO if v >= 0 else RED for v in vals]

    ax.bar(x, vals, 0.6, color=colors, alpha=0.75, edgecolor=colors,
           yerr=errs, error_kw=dict(ecolor=TEXT, elinewidth=1, capsize=4))
    ax.axhline(0, color=SLATE, linewidth=1)
    ax.set_xticks(x)
    ax.set_xticklabels([e.label for e in entries], rotation=35, ha="right", fontsize=7.5)
    ax.yaxis.set_major_formatter(USD_FMT)
    ax.set_ylabel("WTP (USD)")
    ax.set_title("WTP (USD) - Non-Reference Levels & +1 Increments",
                 fontsize=13, pad=12)
    ax.text(0.99, 0.97, "Error bars: illustrative ±10% band",
            transform=ax.transAxes, ha="right", va="top", fontsize=7, color=SLATE)
    return fig


# ═══════════════════════════════════════════════════════════════════
# Web: Saved scenario comparison
# ═══════════════════════════════════════════════════════════════════

def _chart_comparison(saved: Sequence[SavedScenario],
                      figsize=(WEB_W, WEB_H)) -> plt.Figure:
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize, constrained_layout=True)
    _style(fig, ax1, ax2)

    names = [s.name for s in saved]
    x = np.arange(len(saved))

    ax1.bar(x, [s.predicted_uptake for s in saved], 0.55, color=EMERALD)
    ax1.set_ylim(0, 100)
    ax1.set_ylabel("Uptake (%)")
    ax1.set_title("Predicted Uptake", fontsize=11, pad=10)

    nets = [s.net_benefit for s in saved]
    ax2.bar(x, nets, 0.55, color=[AMBER if v >= 0 else RED for v in nets])
    ax2.axhline(0, color=SLATE, linewidth=1)
    ax2.yaxis.set_major_formatter(USD_FMT)
    ax2.set_title("Net Benefit", fontsize=11, pad=10)

    for ax in (ax1, ax2):
        ax.set_xticks(x)
        ax.set_xticklabels(names, rotation=25, ha="right", fontsize=8)

    fig.suptitle("Saved Scenarios", fontsize=13, color=TEXT, fontweight="bold")
    return fig


# ═══════════════════════════════════════════════════════════════════
# PDF layout
# ═══════════════════════════════════════════════════════════════════

def scenario_block(number: int, saved: SavedScenario) -> List[Tuple[str, float, float]]:
    """Text lines for one scenario as (text, fontsize, advance_mm)."""
    sc = saved.scenario
    lines = [
        (f"Scenario {number}: {saved.name}", 14, HEADING_STEP),
        (f"Training: {sc.training_level.value}", 12, LINE_STEP),
        (f"Delivery: {sc.delivery_method.value}", 12, LINE_STEP),
        (f"Accreditation: {sc.accreditation.value}", 12, LINE_STEP),
        (f"Location: {sc.location.value}", 12, LINE_STEP),
        (f"Cohort: {sc.cohort_size}", 12, LINE_STEP),
        (f"Cost: ${sc.cost_per_participant:,.0f}", 12, LINE_STEP),
        (f"Uptake: {saved.predicted_uptake:.1f}%", 12, LINE_STEP),
        (f"Net Benefit: ${saved.net_benefit:,.2f}", 12, BLOCK_GAP),
    ]
    return lines


def layout_pages(
    saved: Sequence[SavedScenario],
    page_height: float = cfg.PDF_PAGE_H_MM,
    margin: float = cfg.PDF_MARGIN_MM,
    block_budget: float = cfg.PDF_BLOCK_MM,
) -> List[List[Tuple[float, str, float]]]:
    """Place scenario text on pages as (y_mm, text, fontsize).

    A scenario block starts a new page when fewer than ``block_budget``
    millimetres remain above the bottom margin. The title sits on page 1.
    """
    if not saved:
        return []

    pages: List[List[Tuple[float, str, float]]] = [[]]
    y = margin
    pages[0].append((y, "STEPS - Scenarios Comparison", 16))
    y += cfg.PDF_TITLE_MM

    for i, s in enumerate(saved, start=1):
        if y + block_budget > page_height - margin:
            pages.append([])
            y = margin
        for text, size, step in scenario_block(i, s):
            pages[-1].append((y, text, size))
            y += step
    return pages


def _pdf_page(items: List[Tuple[float, str, float]]) -> plt.Figure:
    fig = plt.figure(figsize=(A4W, A4H))
    fig.patch.set_facecolor("white")
    for y_mm, text, size in items:
        y = 1.0 - y_mm / cfg.PDF_PAGE_H_MM
        if size >= 16:
            fig.text(0.5, y, text, ha="center", va="baseline",
                     fontsize=size, color="black", fontweight="bold")
        else:
            fig.text(cfg.PDF_MARGIN_MM / cfg.PDF_PAGE_W_MM, y, text,
                     ha="left", va="baseline", fontsize=size, color="black",
                     fontweight="bold" if size >= 14 else "normal")
    return fig


# ═══════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════

def figure_to_base64(fig: plt.Figure) -> str:
    """Convert a matplotlib figure to a base64-encoded PNG string."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png", facecolor=fig.get_facecolor(),
                dpi=120, bbox_inches="tight")
    buf.seek(0)
    b64 = base64.b64encode(buf.read()).decode()
    buf.close()
    return b64


def generate_pdf(
    saved: Sequence[SavedScenario],
    path: Union[str, BinaryIO] = "Scenarios_Comparison.pdf",
) -> Union[str, BinaryIO]:
    """Write the scenario comparison PDF. Returns ``path``."""
    if not saved:
        raise ValueError("No scenarios saved to export.")

    pages = []
    try:
        for items in layout_pages(saved):
            pages.append(_pdf_page(items))
        with PdfPages(path) as pdf:
            for fig in pages:
                pdf.savefig(fig)
    finally:
        for fig in pages:
            plt.close(fig)
    logger.info("Exported %d scenario(s) on %d page(s)", len(saved), len(pages))
    return path


def get_web_charts(
    evaluation: Evaluation,
    saved: Optional[Sequence[SavedScenario]] = None,
) -> List[str]:
    """Return base64-encoded PNG chart images for web embedding.

    Returns:
      [0] Uptake doughnut
      [1] Cost-benefit bars
      [2] WTP bars with error bars
      [3] Saved scenario comparison (only when scenarios are saved)
    """
    chart_figs = [
        _chart_uptake(evaluation.uptake.percent),
        _chart_cost_benefit(evaluation.cost_benefit),
        _chart_wtp(evaluation.wtp),
    ]
    if saved:
        chart_figs.append(_chart_comparison(saved))

    images = [figure_to_base64(f) for f in chart_figs]
    for f in chart_figs:
        plt.close(f)
    return images
