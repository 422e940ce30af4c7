#!/usr/bin/env python3
"""Run one stabilizing-selection simulation.

Takes the same four run parameters as the shell launcher (factor, size,
gamma mean, output directory):

    python scripts/run_stabilizing_selection.py \
        --factor 1 --size 100000 --gamma-mean -0.10 --outdir output/

Anything not given on the command line comes from the YAML config
(configs/default.yaml unless --config is passed, optionally merged with
--scenario).
"""
import argparse
import logging
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from stabsel.config import load_config
from stabsel.model import run_simulation
from stabsel.output import make_run_id

DEFAULT_CONFIG = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "configs", "default.yaml"
)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description=__doc__.split("\n")[0])
    p.add_argument("--config", default=DEFAULT_CONFIG, help="Base YAML config")
    p.add_argument("--scenario", default=None, help="Scenario override YAML")
    p.add_argument("--factor", type=float, help="Selection-strength multiplier")
    p.add_argument("--size", type=int, help="Genomic element length (bp)")
    p.add_argument("--gamma-mean", type=float, help="Mean of the gamma effect distribution")
    p.add_argument("--outdir", help="Output directory (created if missing)")
    p.add_argument("--seed", type=int, help="Master RNG seed")
    p.add_argument("--baseline", type=float, help="Fitness baseline (default 1.0)")
    p.add_argument("--causal-fraction", type=float, help="Trait-affecting fraction of the element")
    p.add_argument("--end-tick", type=int, help="Override the final tick")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = p.parse_args(argv)
    if args.scenario is not None and not os.path.exists(args.scenario):
        p.error(f"scenario file not found: {args.scenario}")
    return args


def build_overrides(args) -> dict:
    overrides = {'simulation': {}, 'effects': {}, 'selection': {}, 'output': {}}
    if args.size is not None:
        overrides['simulation']['genome_size'] = args.size
    if args.seed is not None:
        overrides['simulation']['seed'] = args.seed
    if args.end_tick is not None:
        overrides['simulation']['end_tick'] = args.end_tick
    if args.gamma_mean is not None:
        overrides['effects']['mean'] = args.gamma_mean
    if args.factor is not None:
        overrides['selection']['factor'] = args.factor
    if args.baseline is not None:
        overrides['selection']['baseline'] = args.baseline
    if args.causal_fraction is not None:
        overrides['selection']['causal_fraction'] = args.causal_fraction
    if args.outdir is not None:
        overrides['output']['directory'] = args.outdir
    return {k: v for k, v in overrides.items() if v}


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config, args.scenario, build_overrides(args))
    sim = cfg.simulation

    print("=== Stabilizing selection run ===")
    print(f"run_id={make_run_id(cfg)}")
    print(f"N={sim.population_size:,} L={sim.genome_size:,} "
          f"mu={sim.mutation_rate:g} r={sim.recombination_rate:g}")
    print(f"selection at tick {sim.selection_tick:,}, end at {sim.end_tick:,}, "
          f"factor={cfg.selection.factor:g} baseline={cfg.selection.baseline:g}")
    print(f"outputs -> {cfg.output.directory}")
    sys.stdout.flush()

    t0 = time.perf_counter()
    result = run_simulation(cfg)
    elapsed = time.perf_counter() - t0

    print(f"\nDone in {elapsed:.1f}s: {result.final_tick:,} ticks, "
          f"{len(result.registry):,} mutations registered")
    print(f"frozen optimum={result.optimum:.6g} SD={result.sd:.6g} "
          f"(tick {result.freeze_tick})")
    for name, path in result.output_paths.items():
        print(f"  {name}: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
