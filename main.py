"""
Entry point for the STEPS training-program uptake calculator.

Usage:
    python main.py                          # launches the web app at localhost:5000
    python main.py --cli                    # runs the terminal interface
    python main.py --coefficients table.json --mode offset-from-baseline
"""

import argparse
import logging

import config as cfg
from model import ContinuousMode, default_coefficients, load_coefficients, make_display_noise
from session import AppState


def build_state(args: argparse.Namespace) -> AppState:
    """Application state from command-line options."""
    coeffs = load_coefficients(args.coefficients) if args.coefficients else default_coefficients()
    return AppState(
        coefficients=coeffs,
        continuous_mode=ContinuousMode(args.mode),
        noise=make_display_noise(args.noise, args.seed) if args.noise > 0 else None,
        wtp_scale=args.wtp_scale,
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="STEPS: training program uptake, cost-benefit and WTP calculator",
    )
    parser.add_argument(
        "--cli",
        action="store_true",
        help="Run in terminal mode instead of launching the web app",
    )
    parser.add_argument(
        "--coefficients",
        metavar="JSON",
        help="Coefficient table to use instead of the built-in placeholders",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ContinuousMode],
        default=cfg.CONTINUOUS_MODE,
        help="How cohort size and cost enter utility",
    )
    parser.add_argument(
        "--wtp-scale",
        type=float,
        default=cfg.WTP_SCALE,
        help="Display scale applied to WTP ratios",
    )
    parser.add_argument(
        "--noise",
        type=float,
        default=cfg.UPTAKE_NOISE_PCT,
        help="Cosmetic ± percentage-point jitter on displayed uptake (0 = off)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the display jitter")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    state = build_state(args)

    if args.cli:
        from cli import run_cli
        run_cli(state)
    else:
        from app import run_web
        run_web(state)


if __name__ == "__main__":
    main()
