# Tests for the cost-benefit engine.

import pytest

import config as cfg
from economics import (
    compute_cost_benefit,
    cost_benefit_series,
    qaly_per_participant,
    unit_cost_benefit,
)
from model import Scenario, TrainingLevel, compute_uptake


def test_cohort_scaled_totals(example_scenario):
    cb = compute_cost_benefit(example_scenario, 0.886)
    assert cb.total_cost == pytest.approx(250e6)
    assert cb.total_benefit == pytest.approx(800e6)
    assert cb.net_benefit == pytest.approx(550e6)


def test_net_benefit_is_difference(coeffs):
    for level in TrainingLevel:
        sc = Scenario(level, "Online", "None", "District-Level", 1500, 300)
        cb = compute_cost_benefit(sc, compute_uptake(sc, coeffs))
        assert cb.net_benefit == pytest.approx(cb.total_benefit - cb.total_cost)


def test_qaly_view(example_scenario):
    cb = compute_cost_benefit(example_scenario, 0.8, qaly_level="high")
    assert cb.participants == pytest.approx(0.8 * cfg.REFERENCE_COHORT)
    assert cb.qaly_per_participant == 0.08
    assert cb.total_qalys == pytest.approx(200 * 0.08)
    assert cb.monetized_benefit == pytest.approx(16 * cfg.VALUE_PER_QALY)
    assert cb.cost_per_participant == pytest.approx(250e6 / 200)


def test_qaly_view_does_not_change_net_benefit(example_scenario):
    low = compute_cost_benefit(example_scenario, 0.5, qaly_level="low")
    high = compute_cost_benefit(example_scenario, 0.5, qaly_level="high")
    assert low.net_benefit == high.net_benefit
    assert low.monetized_benefit < high.monetized_benefit


def test_zero_participants_has_no_cost_per_participant(example_scenario):
    cb = compute_cost_benefit(example_scenario, 0.0)
    assert cb.participants == 0
    assert cb.cost_per_participant is None
    assert cb.total_cost == pytest.approx(250e6)


@pytest.mark.parametrize("fraction", [-0.1, 1.01])
def test_fraction_out_of_range(example_scenario, fraction):
    with pytest.raises(ValueError):
        compute_cost_benefit(example_scenario, fraction)


def test_unknown_qaly_level():
    with pytest.raises(ValueError, match="moderate"):
        qaly_per_participant("extreme")


def test_unit_estimates_by_tier():
    assert unit_cost_benefit("Intermediate") == (450_000.0, 1_400_000.0)
    assert unit_cost_benefit(TrainingLevel.ADVANCED) == (650_000.0, 2_000_000.0)


def test_missing_tier_fails_loudly(example_scenario):
    partial = {"Advanced": {"cost": 1, "benefit": 2}}
    with pytest.raises(KeyError, match="Frontline"):
        compute_cost_benefit(example_scenario, 0.5, estimates=partial)


def test_series_for_chart(example_scenario):
    cb = compute_cost_benefit(example_scenario, 0.5)
    series = cost_benefit_series(cb)
    assert list(series) == ["Total Cost", "Total Benefit", "Net Benefit"]
    assert series["Net Benefit"] == cb.net_benefit
