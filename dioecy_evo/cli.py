"""Command-line front-end for dioecy-evo.

Usage:
    dioecy-evo [options]                     # sweep the (Q, F) grid, write a BMP
    dioecy-evo --onerun -Q 0.5 -F 0.8        # one run, print final frequencies
    dioecy-evo --config configs/default.yaml --gnuplot --workers 4

Options on the command line override the YAML config. Several options
target the same parameter (-Q / -K / --pi, -F / -k / --omega, -V /
--yypenalty / --ancient / --recent, --pgd / --dioecy, --oldformat /
--linear); the last one given wins. Long options must be spelled out
in full.

Note that -h sets the parameter h; help is --help only.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

from dioecy_evo.config import SimulationConfig, config_from_overrides, load_config
from dioecy_evo.genotypes import get_genotype_space
from dioecy_evo.output import (
    format_settings,
    format_single_run,
    output_stem,
    write_bitmap,
    write_female_table,
)
from dioecy_evo.sweep import SweepSettings, run_grid, run_single


# Destination of each argparse dest in the config dict
_SECTION_OF = {
    'variant': 'model', 'h': 'model', 'S': 'model', 'd': 'model', 'V': 'model',
    'Q': 'model', 'F': 'model', 'PSatF': 'model', 'ppY': 'model',
    'subdivisions': 'sweep', 'iterations': 'sweep', 'threshold': 'sweep',
    'start': 'sweep', 'mapping': 'sweep', 'oldformat_limit': 'sweep',
    'single_run': 'sweep', 'workers': 'sweep',
    'directory': 'output', 'bitmap': 'output', 'gnuplot': 'output',
    'figure': 'output',
}


def _reciprocal_plus_one(value: str) -> float:
    return 1.0 / (1.0 + float(value))


def _reciprocal(value: str) -> float:
    return 1.0 / float(value)


def _complement(value: str) -> float:
    return 1.0 - float(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dioecy-evo",
        description="Deterministic mating-system model over a (Q, F) grid "
                    "(Ehlers & Bataillon 2007, models 1 and 2).",
        add_help=False,
        allow_abbrev=False,
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument("--help", action="help",
                        help="Show this message and exit")
    parser.add_argument("--config", type=str,
                        help="YAML config file (command-line options override it)")
    parser.add_argument("--model", dest="variant", type=int, choices=(1, 2),
                        help="Model variant: 1 (one locus) or 2 (two loci)")

    bio = parser.add_argument_group("model parameters")
    bio.add_argument("-h", "-H", "--inconstanth", dest="h", type=float,
                     help="P(inconstant reproduces as cosex)")
    bio.add_argument("-S", "-s", "--selfing", dest="S", type=float,
                     help="Selfing rate of cosexes")
    bio.add_argument("-d", "-D", "--depression", dest="d", type=float,
                     help="Inbreeding depression on selfed offspring")
    bio.add_argument("-V", "-v", dest="V", type=float,
                     help="Viability of YY individuals")
    bio.add_argument("--yypenalty", dest="V", type=_complement,
                     help="YY penalty (V = 1 - value)")
    bio.add_argument("--ancient", "--ancientdioecy", dest="V",
                     action="store_const", const=0.0, help="V = 0")
    bio.add_argument("--recent", "--recentdioecy", dest="V",
                     action="store_const", const=1.0, help="V = 1")
    bio.add_argument("-Q", "-q", dest="Q", type=float,
                     help="Cosex pollen output (single run)")
    bio.add_argument("-K", "--malek", dest="Q", type=_reciprocal_plus_one,
                     help="K, where Q = 1 / (1 + K)")
    bio.add_argument("--pi", dest="Q", type=_reciprocal,
                     help="pi, where Q = 1 / pi")
    bio.add_argument("-F", "-f", dest="F", type=float,
                     help="Cosex ovule output (single run)")
    bio.add_argument("-k", "--femalek", dest="F", type=_reciprocal_plus_one,
                     help="k, where F = 1 / (1 + k)")
    bio.add_argument("--omega", dest="F", type=_reciprocal,
                     help="omega, where F = 1 / omega")
    bio.add_argument("--PSatF", dest="PSatF", type=float,
                     help="Pollen needed to saturate female ovules (0 = no limitation)")
    bio.add_argument("--ppY", dest="ppY", type=float,
                     help="Viability of Y pollen (model 1 only)")

    run = parser.add_argument_group("run control")
    run.add_argument("--onerun", dest="single_run", action="store_true",
                     help="Run a single (Q, F) instead of the grid")
    run.add_argument("--pgd", dest="start", action="store_const", const="pgd",
                     help="Start from pseudo-gynodioecy and invade males")
    run.add_argument("--dioecy", dest="start", action="store_const", const="dioecy",
                     help="Start from dioecy and invade inconstants (default)")
    run.add_argument("--iterations", "--endpoint", dest="iterations", type=int,
                     help="Generations per cell (default 10000)")
    run.add_argument("--threshold", dest="threshold", type=float,
                     help="Frequency counted as present (default 0.01)")
    run.add_argument("--subdivisions", dest="subdivisions", type=int,
                     help="Grid width and height (default 201)")
    run.add_argument("--oldformat", dest="mapping", action="store_const",
                     const="oldformat", help="Use K and k axes instead of Q and F")
    run.add_argument("--linear", dest="mapping", action="store_const",
                     const="linear", help="Use Q and F axes (default)")
    run.add_argument("--oldformatlimit", dest="oldformat_limit", type=float,
                     help="Axis maximum of K and k (default 4)")
    run.add_argument("--workers", dest="workers", type=int,
                     help="Threads for the grid sweep (default 1)")

    out = parser.add_argument_group("output")
    out.add_argument("--outdir", dest="directory", type=str,
                     help="Output directory (default: current directory)")
    out.add_argument("--gnuplot", dest="gnuplot", action="store_true",
                     help="Also write female frequencies as a tab-separated table")
    out.add_argument("--figure", dest="figure", action="store_true",
                     help="Also write an annotated PNG of the outcome map")
    out.add_argument("--no-bitmap", dest="bitmap", action="store_false",
                     help="Skip the BMP output")
    return parser


def args_to_overrides(args: argparse.Namespace) -> Dict[str, Dict]:
    """Nested config dict holding only the options actually given."""
    overrides: Dict[str, Dict] = {}
    for dest, value in vars(args).items():
        section = _SECTION_OF.get(dest)
        if section is not None:
            overrides.setdefault(section, {})[dest] = value
    return overrides


def resolve_config(args: argparse.Namespace) -> SimulationConfig:
    overrides = args_to_overrides(args)
    config_path = getattr(args, "config", None)
    if config_path is not None:
        return load_config(config_path, overrides=overrides)
    return config_from_overrides(overrides)


def _run_single(config: SimulationConfig) -> int:
    space = get_genotype_space(config.model.variant)
    params = config.parameters()
    print(format_settings(space.model, params, config.sweep.iterations))

    result = run_single(
        params, space,
        start=config.start_state,
        generations=config.sweep.iterations,
        threshold=config.sweep.threshold,
    )
    print(format_single_run(result, space))
    return 0


def _run_grid(config: SimulationConfig) -> int:
    space = get_genotype_space(config.model.variant)
    params = config.parameters()
    settings = SweepSettings.from_config(config)
    print(format_settings(space.model, params, settings.generations, settings))

    def report(done: int, total: int) -> None:
        print(f"  {done}/{total} rows ({100.0 * done / total:.0f}%)")

    t0 = time.perf_counter()
    try:
        grid = run_grid(params, space, settings, progress=report)
    except MemoryError:
        print("Out of memory!")
        return 1
    print(f"Sweep finished in {time.perf_counter() - t0:.1f}s")

    outdir = Path(config.output.directory)
    outdir.mkdir(parents=True, exist_ok=True)
    stem = output_stem(space.model, params, settings.start)

    if config.output.bitmap:
        print(f"Saved {write_bitmap(grid, outdir / f'{stem}.bmp')}")
    if config.output.gnuplot:
        print(f"Saved {write_female_table(grid, outdir / f'{stem}.txt')}")
    if config.output.figure:
        from dioecy_evo.viz import plot_outcome_map

        path = outdir / f"{stem}.png"
        plot_outcome_map(grid, title=stem, save_path=path)
        print(f"Saved {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if config.sweep.single_run:
        return _run_single(config)
    return _run_grid(config)


if __name__ == "__main__":
    sys.exit(main())
