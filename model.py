"""
Discrete-choice uptake model and willingness-to-pay engine for the
STEPS training-program calculator.

Utility is linear in the selected attribute levels and the continuous
terms (cohort size, cost per participant). Uptake is the binary logit
of "take the program" against "opt out". WTP converts a utility
difference into dollars by dividing by the negated cost coefficient.

Everything here is a pure function of (Scenario, CoefficientTable);
the only non-determinism is the optional cosmetic display noise, which
is injected explicitly.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Type

import numpy as np

import config as cfg


# ─── Errors ───────────────────────────────────────────────────────────

class CoefficientError(ValueError):
    """Coefficient table does not cover the attribute levels it must."""


class MissingSelectionError(ValueError):
    """A mandatory attribute selection was not made."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        labels = ", ".join(ATTRIBUTE_LABELS.get(m, m) for m in self.missing)
        super().__init__(f"Please make a selection for: {labels}")


# ─── Attributes ───────────────────────────────────────────────────────

class _Level(Enum):
    """Base for discrete attribute levels. Values are display labels."""

    @classmethod
    def parse(cls, value: Any) -> "_Level":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        if isinstance(value, str) and value in cls.__members__:
            return cls.__members__[value]
        raise ValueError(f"Unknown {cls.__name__} level: {value!r}")


class TrainingLevel(_Level):
    FRONTLINE = "Frontline"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class DeliveryMethod(_Level):
    IN_PERSON = "In-Person"
    HYBRID = "Hybrid"
    ONLINE = "Online"


class Accreditation(_Level):
    NATIONAL = "National"
    INTERNATIONAL = "International"
    NONE = "None"


class Location(_Level):
    STATE_LEVEL = "State-Level"
    REGIONAL_CENTERS = "Regional Centers"
    DISTRICT_LEVEL = "District-Level"


# Declaration order drives WTP output order.
ATTRIBUTES: Dict[str, Type[_Level]] = {
    "training_level": TrainingLevel,
    "delivery_method": DeliveryMethod,
    "accreditation": Accreditation,
    "location": Location,
}

ATTRIBUTE_LABELS: Dict[str, str] = {
    "training_level": "Training Level",
    "delivery_method": "Delivery Method",
    "accreditation": "Accreditation",
    "location": "Location",
}

CONTINUOUS_TERMS: Tuple[str, ...] = ("cohort_size", "cost_per_participant")

CONTINUOUS_LABELS: Dict[str, str] = {
    "cohort_size": "Cohort Size",
    "cost_per_participant": "Cost per Participant",
}


class ContinuousMode(Enum):
    """How continuous values enter utility."""

    ABSOLUTE = "absolute"                 # slope * value
    OFFSET = "offset-from-baseline"       # slope * (value - baseline)


def require_selections(raw: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Return the four discrete selections, or raise if any is blank."""
    missing = [a for a in ATTRIBUTES if not (raw.get(a) or "").strip()]
    if missing:
        raise MissingSelectionError(missing)
    return {a: str(raw[a]).strip() for a in ATTRIBUTES}


# ─── Cost slider ──────────────────────────────────────────────────────

def cost_from_slider(index: float) -> float:
    """Map a cost slider index (0..COST_SLIDER_MAX) onto dollars."""
    if not 0 <= index <= cfg.COST_SLIDER_MAX:
        raise ValueError(f"Cost slider index must be 0-{cfg.COST_SLIDER_MAX}")
    return cfg.COST_MIN + (cfg.COST_MAX - cfg.COST_MIN) * index / cfg.COST_SLIDER_MAX


def slider_from_cost(cost: float) -> int:
    """Nearest slider index for a dollar cost (inverse of cost_from_slider)."""
    idx = (cost - cfg.COST_MIN) * cfg.COST_SLIDER_MAX / (cfg.COST_MAX - cfg.COST_MIN)
    return int(min(max(round(idx), 0), cfg.COST_SLIDER_MAX))


# ─── Data Classes ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class Scenario:
    """One set of program choices, built fresh from the input layer."""

    training_level: TrainingLevel
    delivery_method: DeliveryMethod
    accreditation: Accreditation
    location: Location
    cohort_size: int                 # trainees per cohort (500-2000)
    cost_per_participant: float      # USD per participant (60-1500)

    def __post_init__(self) -> None:
        for name, enum_cls in ATTRIBUTES.items():
            object.__setattr__(self, name, enum_cls.parse(getattr(self, name)))
        object.__setattr__(self, "cost_per_participant", float(self.cost_per_participant))
        if isinstance(self.cohort_size, bool) or not float(self.cohort_size).is_integer():
            raise ValueError(f"Cohort size must be a whole number, got {self.cohort_size!r}")
        object.__setattr__(self, "cohort_size", int(self.cohort_size))
        if not cfg.COHORT_MIN <= self.cohort_size <= cfg.COHORT_MAX:
            raise ValueError(
                f"Cohort size must be {cfg.COHORT_MIN}-{cfg.COHORT_MAX}"
            )
        if not cfg.COST_MIN <= self.cost_per_participant <= cfg.COST_MAX:
            raise ValueError(
                f"Cost per participant must be ${cfg.COST_MIN:,.0f}-${cfg.COST_MAX:,.0f}"
            )

    @classmethod
    def from_slider(
        cls,
        training_level: Any,
        delivery_method: Any,
        accreditation: Any,
        location: Any,
        cohort_size: int,
        cost_slider: float,
    ) -> "Scenario":
        return cls(
            training_level=training_level,
            delivery_method=delivery_method,
            accreditation=accreditation,
            location=location,
            cohort_size=cohort_size,
            cost_per_participant=cost_from_slider(cost_slider),
        )

    def selections(self) -> Dict[str, _Level]:
        return {name: getattr(self, name) for name in ATTRIBUTES}


@dataclass(frozen=True)
class ContinuousTerm:
    slope: float        # utility change per unit
    baseline: float     # subtracted in offset mode
    label: str


@dataclass(frozen=True)
class CoefficientTable:
    """Immutable utility weights for the uptake model.

    ``levels`` must give a weight for every level of every attribute;
    ``references`` names the zero-utility level of each attribute; the
    cost slope must be negative for WTP to be meaningful.
    """

    asc: float
    asc_optout: float
    levels: Mapping[str, Mapping[_Level, float]]
    references: Mapping[str, _Level]
    continuous: Mapping[str, ContinuousTerm]

    def __post_init__(self) -> None:
        unknown = set(self.levels) - set(ATTRIBUTES)
        if unknown:
            raise CoefficientError(f"Unknown attributes in table: {sorted(unknown)}")

        levels: Dict[str, Mapping[_Level, float]] = {}
        references: Dict[str, _Level] = {}
        for name, enum_cls in ATTRIBUTES.items():
            if name not in self.levels:
                raise CoefficientError(f"No weights for attribute '{name}'")
            try:
                weights = {enum_cls.parse(k): float(v) for k, v in self.levels[name].items()}
            except ValueError as exc:
                raise CoefficientError(str(exc)) from exc
            missing = [lvl.value for lvl in enum_cls if lvl not in weights]
            if missing:
                raise CoefficientError(f"Attribute '{name}' has no weight for {missing}")
            levels[name] = MappingProxyType({lvl: weights[lvl] for lvl in enum_cls})

            if name not in self.references:
                raise CoefficientError(f"No reference level for attribute '{name}'")
            try:
                references[name] = enum_cls.parse(self.references[name])
            except ValueError as exc:
                raise CoefficientError(str(exc)) from exc

        if set(self.continuous) != set(CONTINUOUS_TERMS):
            raise CoefficientError(
                f"Continuous terms must be exactly {list(CONTINUOUS_TERMS)}"
            )
        continuous = {name: self.continuous[name] for name in CONTINUOUS_TERMS}
        if continuous["cost_per_participant"].slope >= 0:
            raise CoefficientError("Cost slope must be negative")

        object.__setattr__(self, "asc", float(self.asc))
        object.__setattr__(self, "asc_optout", float(self.asc_optout))
        object.__setattr__(self, "levels", MappingProxyType(levels))
        object.__setattr__(self, "references", MappingProxyType(references))
        object.__setattr__(self, "continuous", MappingProxyType(continuous))

    @property
    def cost_slope(self) -> float:
        return self.continuous["cost_per_participant"].slope

    def weight(self, attribute: str, level: Any) -> float:
        """Utility weight of ``level``; a miss is a contract violation."""
        try:
            return self.levels[attribute][ATTRIBUTES[attribute].parse(level)]
        except (KeyError, ValueError) as exc:
            raise CoefficientError(
                f"No coefficient for {attribute}={level!r}"
            ) from exc

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CoefficientTable":
        """Build a table from plain data (e.g. a parsed JSON file).

        Continuous entries may be a bare slope or ``{"slope", "baseline"}``.
        """
        try:
            continuous = {}
            for name, spec in data["continuous"].items():
                if isinstance(spec, Mapping):
                    slope, baseline = spec["slope"], spec.get("baseline", 0.0)
                else:
                    slope, baseline = spec, 0.0
                continuous[name] = ContinuousTerm(
                    slope=float(slope),
                    baseline=float(baseline),
                    label=CONTINUOUS_LABELS.get(name, name),
                )
            return cls(
                asc=data["asc"],
                asc_optout=data["asc_optout"],
                levels=data["levels"],
                references=data["references"],
                continuous=continuous,
            )
        except KeyError as exc:
            raise CoefficientError(f"Coefficient data missing key {exc}") from exc


def default_coefficients() -> CoefficientTable:
    """The literature placeholder table from ``config``."""
    return CoefficientTable.from_dict({
        "asc": cfg.ASC,
        "asc_optout": cfg.ASC_OPTOUT,
        "levels": {
            "training_level": cfg.TRAINING_LEVEL_WEIGHTS,
            "delivery_method": cfg.DELIVERY_METHOD_WEIGHTS,
            "accreditation": cfg.ACCREDITATION_WEIGHTS,
            "location": cfg.LOCATION_WEIGHTS,
        },
        "references": cfg.REFERENCE_LEVELS,
        "continuous": {
            "cohort_size": {"slope": cfg.COHORT_SIZE_SLOPE,
                            "baseline": cfg.COHORT_SIZE_BASELINE},
            "cost_per_participant": {"slope": cfg.COST_SLOPE,
                                     "baseline": cfg.COST_BASELINE},
        },
    })


def load_coefficients(path: str) -> CoefficientTable:
    """Read a coefficient table from a JSON file."""
    with open(path, encoding="utf-8") as fh:
        return CoefficientTable.from_dict(json.load(fh))


# ─── Utility / Uptake ─────────────────────────────────────────────────

NoiseFn = Callable[[], float]


def compute_utility(
    scenario: Scenario,
    coeffs: CoefficientTable,
    continuous_mode: Any = cfg.CONTINUOUS_MODE,
) -> float:
    """Linear utility of taking up the program under ``scenario``."""
    mode = ContinuousMode(continuous_mode)
    u = coeffs.asc
    for name in ATTRIBUTES:
        u += coeffs.weight(name, getattr(scenario, name))
    for name, term in coeffs.continuous.items():
        x = float(getattr(scenario, name))
        if mode is ContinuousMode.OFFSET:
            x -= term.baseline
        u += term.slope * x
    return u


def logit_share(utility: float, optout_utility: float) -> float:
    """exp(U) / (exp(U) + exp(U_optout)), without overflow."""
    z = utility - optout_utility
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def compute_uptake(
    scenario: Scenario,
    coeffs: CoefficientTable,
    continuous_mode: Any = cfg.CONTINUOUS_MODE,
) -> float:
    """Predicted uptake fraction in [0, 1]."""
    return logit_share(compute_utility(scenario, coeffs, continuous_mode), coeffs.asc_optout)


def no_noise() -> float:
    return 0.0


def make_display_noise(amplitude: float, seed: Optional[int] = None) -> NoiseFn:
    """Uniform ±amplitude percentage-point jitter for display only.

    Purely cosmetic; it is not an error term of the model.
    """
    if amplitude <= 0:
        return no_noise
    rng = np.random.default_rng(seed)

    def _noise() -> float:
        return float(rng.uniform(-amplitude, amplitude))

    return _noise


def uptake_percent(fraction: float, noise: Optional[NoiseFn] = None) -> float:
    """Scale to a percentage, add display noise, clamp to [0, 100]."""
    value = fraction * 100.0
    if noise is not None:
        value += noise()
    return min(100.0, max(0.0, value))


@dataclass(frozen=True)
class UptakeResult:
    utility: float
    fraction: float      # model output, never noised
    percent: float       # display value, clamped


def predict_uptake(
    scenario: Scenario,
    coeffs: CoefficientTable,
    continuous_mode: Any = cfg.CONTINUOUS_MODE,
    noise: Optional[NoiseFn] = None,
) -> UptakeResult:
    u = compute_utility(scenario, coeffs, continuous_mode)
    frac = logit_share(u, coeffs.asc_optout)
    return UptakeResult(utility=u, fraction=frac, percent=uptake_percent(frac, noise))


def uptake_recommendation(percent: float) -> str:
    if percent < cfg.UPTAKE_LOW_PCT:
        return "Uptake is low. Consider adjusting cost or other program features."
    if percent < cfg.UPTAKE_HIGH_PCT:
        return "Moderate uptake. Refining the scenario may improve acceptance."
    return "High uptake. This scenario is quite effective."


# ─── Willingness to Pay ───────────────────────────────────────────────

@dataclass(frozen=True)
class WTPEntry:
    attribute: str
    level: str
    label: str
    wtp: float
    standard_error: float     # fixed fraction of |wtp|, illustrative only

    @property
    def lower(self) -> float:
        return self.wtp - self.standard_error

    @property
    def upper(self) -> float:
        return self.wtp + self.standard_error


def _entry(attribute: str, level: str, label: str, wtp: float,
           se_fraction: float) -> WTPEntry:
    return WTPEntry(attribute=attribute, level=level, label=label,
                    wtp=wtp, standard_error=abs(wtp) * se_fraction)


def _resolve_references(
    coeffs: CoefficientTable,
    reference_levels: Optional[Mapping[str, Any]],
) -> Dict[str, _Level]:
    refs = dict(coeffs.references)
    for name, level in (reference_levels or {}).items():
        if name not in ATTRIBUTES:
            raise CoefficientError(f"Unknown attribute '{name}'")
        try:
            refs[name] = ATTRIBUTES[name].parse(level)
        except ValueError as exc:
            raise CoefficientError(str(exc)) from exc
    return refs


def level_wtp(
    coeffs: CoefficientTable,
    attribute: str,
    level: Any,
    reference_levels: Optional[Mapping[str, Any]] = None,
    scale: float = cfg.WTP_SCALE,
) -> float:
    """Dollar value of ``level`` relative to the attribute's reference."""
    ref = _resolve_references(coeffs, reference_levels)[attribute]
    diff = coeffs.weight(attribute, level) - coeffs.weight(attribute, ref)
    return diff / -coeffs.cost_slope * scale


def compute_wtp(
    coeffs: CoefficientTable,
    reference_levels: Optional[Mapping[str, Any]] = None,
    scale: float = cfg.WTP_SCALE,
    se_fraction: float = cfg.WTP_SE_FRACTION,
) -> Tuple[WTPEntry, ...]:
    """WTP for every non-reference level, then +1 of each continuous term.

    Order follows attribute and level declaration order, so identical
    inputs give identical output.
    """
    refs = _resolve_references(coeffs, reference_levels)
    denom = -coeffs.cost_slope
    entries = []

    for name, enum_cls in ATTRIBUTES.items():
        ref = refs[name]
        ref_w = coeffs.weight(name, ref)
        for level in enum_cls:
            if level is ref:
                continue
            diff = coeffs.weight(name, level) - ref_w
            entries.append(_entry(
                name, level.value, f"{ATTRIBUTE_LABELS[name]}: {level.value}",
                diff / denom * scale, se_fraction,
            ))

    for name, term in coeffs.continuous.items():
        entries.append(_entry(
            name, "+1", f"{term.label} (+1)", term.slope / denom * scale, se_fraction,
        ))

    return tuple(entries)
