"""
In-memory session state for the STEPS calculator: the full compute pass,
the saved-scenario book and the application state object shared by the
web and terminal front ends. Nothing here outlives the process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple

import config as cfg
from economics import CostBenefitResult, compute_cost_benefit
from model import (
    CoefficientTable,
    ContinuousMode,
    NoiseFn,
    Scenario,
    UptakeResult,
    WTPEntry,
    compute_wtp,
    default_coefficients,
    predict_uptake,
    uptake_recommendation,
)

logger = logging.getLogger(__name__)


class DuplicateScenarioError(ValueError):
    """A saved scenario with this name already exists."""


# ─── Compute pass ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class Evaluation:
    """Complete results for one scenario. Built in full before display."""

    scenario: Scenario
    uptake: UptakeResult
    cost_benefit: CostBenefitResult
    wtp: Tuple[WTPEntry, ...]
    qaly_level: str

    @property
    def recommendation(self) -> str:
        return uptake_recommendation(self.uptake.percent)


def evaluate(
    scenario: Scenario,
    coeffs: CoefficientTable,
    continuous_mode: Any = cfg.CONTINUOUS_MODE,
    noise: Optional[NoiseFn] = None,
    qaly_level: str = cfg.QALY_DEFAULT,
    wtp_scale: float = cfg.WTP_SCALE,
) -> Evaluation:
    uptake = predict_uptake(scenario, coeffs, continuous_mode, noise)
    cb = compute_cost_benefit(scenario, uptake.fraction, qaly_level)
    wtp = compute_wtp(coeffs, scale=wtp_scale)
    return Evaluation(scenario=scenario, uptake=uptake, cost_benefit=cb,
                      wtp=wtp, qaly_level=qaly_level)


# ─── Saved scenarios ──────────────────────────────────────────────────

@dataclass(frozen=True)
class SavedScenario:
    name: str
    scenario: Scenario
    predicted_uptake: float      # display percent at save time
    net_benefit: float
    qaly_level: str = cfg.QALY_DEFAULT


class ScenarioBook:
    """Named scenarios in insertion order; names are unique."""

    def __init__(self) -> None:
        self._items: List[SavedScenario] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[SavedScenario]:
        return iter(self._items)

    def __getitem__(self, index: int) -> SavedScenario:
        return self._items[index]

    def names(self) -> List[str]:
        return [s.name for s in self._items]

    def next_default_name(self) -> str:
        n = len(self._items) + 1
        taken = set(self.names())
        while f"Scenario {n}" in taken:
            n += 1
        return f"Scenario {n}"

    def save(self, evaluation: Evaluation, name: Optional[str] = None) -> SavedScenario:
        name = (name or "").strip() or self.next_default_name()
        if name in self.names():
            raise DuplicateScenarioError(f'A scenario named "{name}" already exists.')
        saved = SavedScenario(
            name=name,
            scenario=evaluation.scenario,
            predicted_uptake=evaluation.uptake.percent,
            net_benefit=evaluation.cost_benefit.net_benefit,
            qaly_level=evaluation.qaly_level,
        )
        self._items.append(saved)
        logger.info("Saved scenario %r (%d in book)", name, len(self._items))
        return saved

    def delete(self, index: int) -> SavedScenario:
        if not 0 <= index < len(self._items):
            raise IndexError(f"No saved scenario at position {index}")
        removed = self._items.pop(index)
        logger.info("Deleted scenario %r", removed.name)
        return removed

    def snapshot(self) -> Tuple[SavedScenario, ...]:
        """Immutable copy for export."""
        return tuple(self._items)


# ─── Application state ────────────────────────────────────────────────

@dataclass
class AppState:
    """Everything a front end needs; owned by the top-level controller."""

    coefficients: CoefficientTable = field(default_factory=default_coefficients)
    continuous_mode: ContinuousMode = ContinuousMode(cfg.CONTINUOUS_MODE)
    noise: Optional[NoiseFn] = None
    wtp_scale: float = cfg.WTP_SCALE
    book: ScenarioBook = field(default_factory=ScenarioBook)
    last: Optional[Evaluation] = None

    def evaluate(self, scenario: Scenario, qaly_level: str = cfg.QALY_DEFAULT) -> Evaluation:
        result = evaluate(
            scenario,
            self.coefficients,
            continuous_mode=self.continuous_mode,
            noise=self.noise,
            qaly_level=qaly_level,
            wtp_scale=self.wtp_scale,
        )
        self.last = result
        return result
