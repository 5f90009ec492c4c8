"""
CLI interface and shared display-data computation for the
STEPS training-program uptake calculator.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

import config as cfg
from model import (
    ATTRIBUTE_LABELS,
    ATTRIBUTES,
    Scenario,
    cost_from_slider,
)
from session import AppState, DuplicateScenarioError, Evaluation, SavedScenario
import report


# ═══════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════

def fmt(val: Optional[float], decimals: int = 0) -> str:
    """Format number as $X,XXX; None renders as N/A."""
    if val is None:
        return "N/A"
    sign = "-" if val < 0 else ""
    return f"{sign}${abs(val):,.{decimals}f}"


def pct(val: float, decimals: int = 1) -> str:
    return f"{val:.{decimals}f}%"


# ═══════════════════════════════════════════════════════════════════
# Input collection (CLI)
# ═══════════════════════════════════════════════════════════════════

def _strip_currency(s: str) -> str:
    """Remove currency symbols, commas, spaces."""
    return s.replace("$", "").replace(",", "").replace(" ", "")


def _prompt_int(
    label: str,
    default: int,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    while True:
        raw = input(f"  {label} [{default}]: ").strip()
        if not raw:
            return default
        try:
            val = int(float(_strip_currency(raw)))
            if min_val is not None and val < min_val:
                print(f"    Must be at least {min_val}")
                continue
            if max_val is not None and val > max_val:
                print(f"    Must be at most {max_val}")
                continue
            return val
        except ValueError:
            print("    Invalid number, try again.")


def _prompt_choice(label: str, options: List[str], default: Optional[str] = None) -> str:
    """Pick one option by number or name. No default means a choice is required."""
    print(f"  {label}:")
    for i, opt in enumerate(options, start=1):
        print(f"    {i}. {opt}")
    hint = f" [{default}]" if default else ""
    while True:
        raw = input(f"  Choice{hint}: ").strip()
        if not raw:
            if default:
                return default
            print("    A selection is required.")
            continue
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1]
        for opt in options:
            if raw.lower() == opt.lower():
                return opt
        print(f"    Choose 1-{len(options)} or one of: {', '.join(options)}")


def collect_scenario() -> Tuple[Scenario, str]:
    """Prompt for every attribute; returns the scenario and QALY level."""
    print("\n  Choose the program attributes:\n")

    picks: Dict[str, str] = {}
    for name, enum_cls in ATTRIBUTES.items():
        picks[name] = _prompt_choice(ATTRIBUTE_LABELS[name], [lvl.value for lvl in enum_cls])
        print()

    cohort = _prompt_int("Cohort size", cfg.COHORT_DEFAULT, cfg.COHORT_MIN, cfg.COHORT_MAX)
    slider = _prompt_int(
        f"Cost slider (0-{cfg.COST_SLIDER_MAX}, "
        f"${cfg.COST_MIN:,.0f}-${cfg.COST_MAX:,.0f})",
        cfg.COST_SLIDER_DEFAULT, 0, cfg.COST_SLIDER_MAX,
    )
    print(f"    -> {fmt(cost_from_slider(slider))} per participant (approx.)")
    qaly = _prompt_choice("QALY gain per participant", list(cfg.QALY_PER_PARTICIPANT),
                          cfg.QALY_DEFAULT)

    scenario = Scenario.from_slider(cohort_size=cohort, cost_slider=slider, **picks)
    return scenario, qaly


# ═══════════════════════════════════════════════════════════════════
# Shared display-data computation (used by CLI and web app)
# ═══════════════════════════════════════════════════════════════════

def compute_display_data(ev: Evaluation) -> Dict[str, Any]:
    """Flatten an evaluation into display-ready values."""
    sc = ev.scenario
    cb = ev.cost_benefit
    return {
        # Scenario echo
        "training_level": sc.training_level.value,
        "delivery_method": sc.delivery_method.value,
        "accreditation": sc.accreditation.value,
        "location": sc.location.value,
        "cohort_size": sc.cohort_size,
        "cost_per_participant": sc.cost_per_participant,
        # Uptake
        "utility": ev.uptake.utility,
        "uptake_pct": ev.uptake.percent,
        "recommendation": ev.recommendation,
        # Cost-benefit
        "participants": cb.participants,
        "total_cost": cb.total_cost,
        "total_benefit": cb.total_benefit,
        "net_benefit": cb.net_benefit,
        "cost_per_trainee": cb.cost_per_participant,
        "qaly_level": ev.qaly_level,
        "qaly_per_participant": cb.qaly_per_participant,
        "total_qalys": cb.total_qalys,
        "monetized_benefit": cb.monetized_benefit,
        # WTP
        "wtp": list(ev.wtp),
    }


# ═══════════════════════════════════════════════════════════════════
# Box-drawing CLI output
# ═══════════════════════════════════════════════════════════════════

W = 78  # box width (characters)


def _box_top(title: str) -> str:
    inner = W - 2
    bar = "═" * inner
    return (
        f"╔{bar}╗\n"
        f"║  {title:<{inner - 2}}║\n"
        f"╠{bar}╣"
    )


def _box_line(text: str = "") -> str:
    inner = W - 4
    if len(text) > inner:
        text = text[:inner]
    return f"║  {text:<{inner}}║"


def _box_row(label: str, value: str, lw: int = 38) -> str:
    return _box_line(f"{label:<{lw}}{value}")


def _box_bottom() -> str:
    return f"╚{'═' * (W - 2)}╝"


def _print_section(title: str, rows: List[str]) -> None:
    """Print a titled box with content rows."""
    print(_box_top(title))
    for r in rows:
        print(r)
    print(_box_bottom())
    print()


def _wrap(text: str, width: int = W - 6) -> List[str]:
    lines, line = [], ""
    for word in text.split():
        if len(line) + len(word) + 1 <= width:
            line = f"{line} {word}" if line else word
        else:
            lines.append(line)
            line = word
    if line:
        lines.append(line)
    return lines


# ═══════════════════════════════════════════════════════════════════
# CLI Section Printers
# ═══════════════════════════════════════════════════════════════════

def _print_scenario(d: Dict[str, Any]) -> None:
    rows = [
        _box_row("Training level", d["training_level"]),
        _box_row("Delivery method", d["delivery_method"]),
        _box_row("Accreditation", d["accreditation"]),
        _box_row("Location", d["location"]),
        _box_line(),
        _box_row("Cohort size", f"{d['cohort_size']:,}"),
        _box_row("Cost per participant", fmt(d["cost_per_participant"])),
    ]
    _print_section("SCENARIO", rows)


def _print_uptake(d: Dict[str, Any]) -> None:
    rows = [
        _box_row("Utility", f"{d['utility']:.3f}"),
        _box_row("Predicted program uptake", pct(d["uptake_pct"])),
        _box_line(),
    ]
    rows += [_box_line(line) for line in _wrap(d["recommendation"])]
    _print_section("PREDICTED UPTAKE", rows)


def _print_cost_benefit(d: Dict[str, Any]) -> None:
    rows = [
        _box_row("Total training cost", fmt(d["total_cost"])),
        _box_row("Total benefit", fmt(d["total_benefit"])),
        _box_row("Net benefit", fmt(d["net_benefit"])),
        _box_line(),
        _box_row("Participants (of reference cohort)", f"{d['participants']:.0f}"),
        _box_row("Cost per participant", fmt(d["cost_per_trainee"], 2)),
        _box_row(f"QALYs ({d['qaly_level']}, {d['qaly_per_participant']}/person)",
                 f"{d['total_qalys']:.2f}"),
        _box_row("Monetised QALY benefit", fmt(d["monetized_benefit"])),
    ]
    _print_section("COST-BENEFIT ANALYSIS", rows)


def _print_wtp(d: Dict[str, Any]) -> None:
    h = f"{'Attribute':<40}{'WTP':>16}{'SE':>16}"
    rows = [_box_line(h), _box_line("─" * (W - 6))]
    for e in d["wtp"]:
        rows.append(_box_line(f"{e.label:<40}{fmt(e.wtp):>16}{fmt(e.standard_error):>16}"))
    rows.append(_box_line())
    rows.append(_box_line("SE is an illustrative 10% band, not a sampling error."))
    _print_section("WILLINGNESS TO PAY", rows)


def _print_saved(saved: Sequence[SavedScenario]) -> None:
    h = f"{'#':>2}  {'Name':<24}{'Training':<14}{'Uptake':>9}{'Net benefit':>21}"
    rows = [_box_line(h), _box_line("─" * (W - 6))]
    for i, s in enumerate(saved, start=1):
        rows.append(_box_line(
            f"{i:>2}  {s.name[:23]:<24}{s.scenario.training_level.value:<14}"
            f"{pct(s.predicted_uptake):>9}{fmt(s.net_benefit):>21}"
        ))
    _print_section("SAVED SCENARIOS", rows)


def _yes(label: str, default: str = "n") -> bool:
    raw = input(f"  {label} (y/n) [{default}]: ").strip().lower() or default
    return raw.startswith("y")


def _prompt_save(state: AppState, ev: Evaluation) -> None:
    while True:
        default = state.book.next_default_name()
        name = input(f"  Scenario name [{default}]: ").strip()
        try:
            saved = state.book.save(ev, name)
        except DuplicateScenarioError as exc:
            print(f"    {exc}")
            continue
        print(f'  Scenario "{saved.name}" saved.\n')
        return


def _prompt_delete(state: AppState) -> None:
    idx = _prompt_int("Delete which scenario #", 1, 1, len(state.book))
    removed = state.book.delete(idx - 1)
    print(f'  Deleted "{removed.name}".\n')


# ═══════════════════════════════════════════════════════════════════
# Main CLI entry point
# ═══════════════════════════════════════════════════════════════════

def run_cli(state: Optional[AppState] = None) -> None:
    """Run the full CLI workflow."""
    state = state or AppState()
    # Ensure box-drawing characters render on Windows
    try:
        sys.stdout.reconfigure(encoding="utf-8")
    except (AttributeError, OSError):
        pass
    print()
    print("=" * W)
    print("  STEPS: Training Program Uptake & Cost-Benefit Calculator")
    print("=" * W)

    while True:
        scenario, qaly = collect_scenario()
        ev = state.evaluate(scenario, qaly)
        d = compute_display_data(ev)

        print()
        _print_scenario(d)
        _print_uptake(d)
        _print_cost_benefit(d)
        _print_wtp(d)

        if _yes("Save this scenario?", "y"):
            _prompt_save(state, ev)
        if len(state.book):
            _print_saved(state.book)
            if _yes("Delete a saved scenario?"):
                _prompt_delete(state)
        if not _yes("Evaluate another scenario?"):
            break

    if len(state.book):
        print("\n  Generating PDF report...")
        pdf_path = report.generate_pdf(state.book.snapshot(), "Scenarios_Comparison.pdf")
        print(f"  Saved to {pdf_path}\n")
    else:
        print("\n  No scenarios saved to export.\n")


if __name__ == "__main__":
    run_cli()
