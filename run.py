#!/usr/bin/env python3
"""
Evolver — CLI Runner

Run a headless evolution on the sandbox world and print per-generation
progress, or the whole history as JSON.
"""

import argparse
import json

from evolver.config import Config, load_config
from evolver.logging_setup import setup_logger
from evolver.simulation import DEFAULT_DT, Simulation


def build_config(args) -> Config:
    config = load_config(args.config) if args.config else Config()
    gen = config.generation.model_copy(update={
        k: v for k, v in {
            'population_size': args.population,
            'generation_duration': args.duration,
            'seed': args.seed,
            'preset': args.preset,
            'workers': args.workers,
        }.items() if v is not None
    })
    save = config.save
    if args.save:
        save = save.model_copy(update={'save_enabled': True, 'save_folder': args.save})
    if args.load:
        save = save.model_copy(update={'load_enabled': True, 'load_path': args.load})
    # round-trip through validation so CLI values get the same bounds as the file
    return Config.model_validate({
        'generation': gen.model_dump(), 'save': save.model_dump(), 'log_level': config.log_level,
    })


def main():
    parser = argparse.ArgumentParser(description="Evolver: neuro-evolution of soft creatures")
    parser.add_argument("--generations", type=int, default=10, help="Generations to run")
    parser.add_argument("--population", type=int, default=None, help="Population size")
    parser.add_argument("--duration", type=float, default=None, help="Seconds per generation")
    parser.add_argument("--dt", type=float, default=DEFAULT_DT, help="Tick length in seconds")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed")
    parser.add_argument("--preset", choices=["runner", "walker", "muscle_test"], default=None)
    parser.add_argument("--workers", type=int, default=None, help="Brain worker threads")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--save", default=None, metavar="FOLDER", help="Save population here")
    parser.add_argument("--load", default=None, metavar="FILE", help="Start from a saved population")
    parser.add_argument("--log-dir", default=None, help="Also log to a rotating file here")
    parser.add_argument("--json", action="store_true", help="Output JSON")

    args = parser.parse_args()
    config = build_config(args)
    setup_logger("WARNING" if args.json else config.log_level, args.log_dir)

    sim = Simulation(config)
    gen = config.generation
    if not args.json:
        print("🧬 Evolver\n")
        print(f"Config: {args.generations} generations, {len(sim.scheduler.blueprints)} organisms, "
              f"{gen.generation_duration}s each, preset={gen.preset}\n")

    try:
        for _ in range(args.generations):
            for stats in sim.run_generations(1, args.dt):
                if not args.json:
                    p = stats['progress']
                    print(f"Gen {stats['generation']:>4}: progress mean={p['mean']:7.2f} "
                          f"median={p['median']:7.2f} upper_10={p['upper_10']:7.2f} "
                          f"muscles={stats['avg_muscles']:.2f}")
    finally:
        sim.close()

    summary = sim.summary()
    if args.json:
        print(json.dumps({**summary, 'history': sim.scheduler.generation_stats}, indent=2))
    else:
        print(f"\n{'='*50}")
        print("🏆 FINAL RESULTS")
        print(f"{'='*50}\n")
        print(f"Generations:   {summary['generation']}")
        print(f"Best progress: {summary['best_progress']:.2f}")
        for path in summary['saved']:
            print(f"Saved: {path}")


if __name__ == "__main__":
    main()
