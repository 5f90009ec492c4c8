"""
Model constants for the STEPS training-program uptake calculator.

All monetary values in USD. Coefficients are fixed literature-derived
placeholders; an alternative table can be supplied as JSON at start-up
(see ``model.load_coefficients``).
"""

# ── Alternative-specific constants ───────────────────────────────────
ASC = 1.0                # utility of taking up the program
ASC_OPTOUT = 0.3         # utility of opting out

# ── Discrete attributes: level -> utility weight ─────────────────────
# Declaration order is display order. Reference level carries weight 0.
TRAINING_LEVEL_WEIGHTS = {
    "Frontline": 0.6,
    "Intermediate": 0.3,
    "Advanced": 0.0,
}
DELIVERY_METHOD_WEIGHTS = {
    "In-Person": 0.5,
    "Hybrid": 0.4,
    "Online": 0.0,
}
ACCREDITATION_WEIGHTS = {
    "National": 0.4,
    "International": 0.8,
    "None": 0.0,
}
LOCATION_WEIGHTS = {
    "State-Level": 0.3,
    "Regional Centers": 0.2,
    "District-Level": 0.0,
}

REFERENCE_LEVELS = {
    "training_level": "Advanced",
    "delivery_method": "Online",
    "accreditation": "None",
    "location": "District-Level",
}

# ── Continuous attributes ────────────────────────────────────────────
COHORT_SIZE_SLOPE = -0.0008    # utility per additional trainee in cohort
COST_SLOPE = -0.0001           # utility per additional $ per participant

# Baselines used only in offset-from-baseline mode
COHORT_SIZE_BASELINE = 500
COST_BASELINE = 60.0

# "absolute" or "offset-from-baseline"
CONTINUOUS_MODE = "absolute"

# ── Input bounds ─────────────────────────────────────────────────────
COHORT_MIN = 500
COHORT_MAX = 2_000
COHORT_DEFAULT = 500

COST_MIN = 60.0
COST_MAX = 1_500.0
COST_SLIDER_MAX = 250          # slider index 0..250 maps onto COST_MIN..COST_MAX
COST_SLIDER_DEFAULT = 125

# ── Cost-benefit tiers (per cohort member) ───────────────────────────
COST_BENEFIT_ESTIMATES = {
    "Frontline": {"cost": 250_000, "benefit": 800_000},
    "Intermediate": {"cost": 450_000, "benefit": 1_400_000},
    "Advanced": {"cost": 650_000, "benefit": 2_000_000},
}

# ── QALY view ────────────────────────────────────────────────────────
REFERENCE_COHORT = 250          # participants at 100% uptake
QALY_PER_PARTICIPANT = {
    "low": 0.01,
    "moderate": 0.05,
    "high": 0.08,
}
QALY_DEFAULT = "moderate"
VALUE_PER_QALY = 50_000

# ── Willingness to pay ───────────────────────────────────────────────
WTP_SCALE = 1_000               # display scale applied to diff / -cost_slope
WTP_SE_FRACTION = 0.10          # illustrative band, not a sampling error

# ── Uptake display ───────────────────────────────────────────────────
UPTAKE_NOISE_PCT = 0.0          # cosmetic ±pp jitter; 0 disables
UPTAKE_LOW_PCT = 30.0
UPTAKE_HIGH_PCT = 70.0

# ── PDF layout (millimetres, A4 portrait) ────────────────────────────
PDF_PAGE_W_MM = 210.0
PDF_PAGE_H_MM = 297.0
PDF_MARGIN_MM = 15.0
PDF_TITLE_MM = 10.0
PDF_BLOCK_MM = 70.0             # height budget reserved per scenario block
