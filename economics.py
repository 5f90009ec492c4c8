"""
Cost-benefit engine for the STEPS training-program calculator.

Convention: cost and benefit scale with cohort size using the per-tier
unit estimates in ``config``. The QALY view is reported alongside it and
uses participants derived from predicted uptake of a fixed reference
cohort; it does not feed the net benefit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import config as cfg
from model import Scenario, TrainingLevel


@dataclass(frozen=True)
class CostBenefitResult:
    total_cost: float
    total_benefit: float
    net_benefit: float                    # benefit - cost, may be negative
    participants: float                   # uptake * reference cohort
    qaly_per_participant: float
    total_qalys: float
    monetized_benefit: float
    cost_per_participant: Optional[float]  # None when nobody takes part


def unit_cost_benefit(
    training_level: TrainingLevel,
    estimates: Optional[Mapping[str, Mapping[str, float]]] = None,
) -> Tuple[float, float]:
    """(unit cost, unit benefit) for a training tier."""
    table = cfg.COST_BENEFIT_ESTIMATES if estimates is None else estimates
    level = TrainingLevel.parse(training_level)
    try:
        tier = table[level.value]
    except KeyError:
        raise KeyError(f"No cost/benefit estimate for training level '{level.value}'") from None
    return float(tier["cost"]), float(tier["benefit"])


def qaly_per_participant(qaly_level: str) -> float:
    try:
        return cfg.QALY_PER_PARTICIPANT[qaly_level]
    except KeyError:
        options = ", ".join(cfg.QALY_PER_PARTICIPANT)
        raise ValueError(f"QALY level must be one of: {options}") from None


def compute_cost_benefit(
    scenario: Scenario,
    uptake_fraction: float,
    qaly_level: str = cfg.QALY_DEFAULT,
    estimates: Optional[Mapping[str, Mapping[str, float]]] = None,
    reference_cohort: float = cfg.REFERENCE_COHORT,
    value_per_qaly: float = cfg.VALUE_PER_QALY,
) -> CostBenefitResult:
    """Cohort-scaled cost/benefit plus the QALY-based benefit view.

    Parameters
    ----------
    scenario : Scenario
        Supplies training level and cohort size.
    uptake_fraction : float
        Model uptake in [0, 1] (not the noised display value).
    qaly_level : str
        'low', 'moderate' or 'high' QALY gain per participant.
    """
    if not 0.0 <= uptake_fraction <= 1.0:
        raise ValueError("Uptake fraction must be within [0, 1]")

    unit_cost, unit_benefit = unit_cost_benefit(scenario.training_level, estimates)
    total_cost = unit_cost * scenario.cohort_size
    total_benefit = unit_benefit * scenario.cohort_size

    q = qaly_per_participant(qaly_level)
    participants = uptake_fraction * reference_cohort
    total_qalys = participants * q

    return CostBenefitResult(
        total_cost=total_cost,
        total_benefit=total_benefit,
        net_benefit=total_benefit - total_cost,
        participants=participants,
        qaly_per_participant=q,
        total_qalys=total_qalys,
        monetized_benefit=total_qalys * value_per_qaly,
        cost_per_participant=(total_cost / participants) if participants > 0 else None,
    )


def cost_benefit_series(result: CostBenefitResult) -> Dict[str, float]:
    """The three bars shown on the cost-benefit chart."""
    return {
        "Total Cost": result.total_cost,
        "Total Benefit": result.total_benefit,
        "Net Benefit": result.net_benefit,
    }
