# Tests for CLI formatting, prompts and the shared display data.

import pytest

import cli
from session import AppState, evaluate


def _feed(monkeypatch, answers):
    it = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(it))


def test_fmt():
    assert cli.fmt(550e6) == "$550,000,000"
    assert cli.fmt(-1500) == "-$1,500"
    assert cli.fmt(1234.5, 2) == "$1,234.50"
    assert cli.fmt(None) == "N/A"


def test_pct():
    assert cli.pct(88.6123) == "88.6%"


def test_prompt_choice_by_number_and_name(monkeypatch, capsys):
    _feed(monkeypatch, ["", "9", "2", "hybrid"])
    opts = ["In-Person", "Hybrid", "Online"]
    assert cli._prompt_choice("Delivery", opts) == "Hybrid"
    assert "A selection is required." in capsys.readouterr().out
    assert cli._prompt_choice("Delivery", opts) == "Hybrid"


def test_prompt_int_bounds(monkeypatch):
    _feed(monkeypatch, ["100", "abc", "$1,200"])
    assert cli._prompt_int("Cohort", 500, 500, 2000) == 1200


def test_collect_scenario(monkeypatch):
    _feed(monkeypatch, ["1", "In-Person", "2", "State-Level", "1000", "250", "high"])
    scenario, qaly = cli.collect_scenario()
    assert scenario.training_level.value == "Frontline"
    assert scenario.accreditation.value == "International"
    assert scenario.cohort_size == 1000
    assert scenario.cost_per_participant == 1500.0
    assert qaly == "high"


def test_display_data(coeffs, example_scenario):
    d = cli.compute_display_data(evaluate(example_scenario, coeffs))
    assert d["training_level"] == "Frontline"
    assert d["utility"] == pytest.approx(2.35)
    assert d["net_benefit"] == pytest.approx(550e6)
    assert len(d["wtp"]) == 10
    assert d["recommendation"].startswith("High uptake")


def test_run_cli_saves_and_exports(monkeypatch, tmp_path, capsys):
    monkeypatch.chdir(tmp_path)
    state = AppState()
    _feed(monkeypatch, [
        "1", "1", "1", "1", "", "", "",   # scenario with defaults
        "y", "Pilot",                     # save
        "n",                              # don't delete
        "n",                              # no more scenarios
    ])
    cli.run_cli(state)
    assert state.book.names() == ["Pilot"]
    assert (tmp_path / "Scenarios_Comparison.pdf").read_bytes().startswith(b"%PDF")
    out = capsys.readouterr().out
    assert "WILLINGNESS TO PAY" in out
    assert 'Scenario "Pilot" saved.' in out
