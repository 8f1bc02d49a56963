import argparse
import logging
import random
import threading
import time
from typing import List, Optional

from tsp_sim.errors import TSPSimError
from tsp_sim.evolutionary import EvolutionConfig, EvolutionEngine
from tsp_sim.geometry import Geometry
from tsp_sim.runner import EventKind, SimulationEvent, run_simulation


def log(msg: str) -> None:
    ts = time.strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


def _config_from_args(args, seed: Optional[int]) -> EvolutionConfig:
    return EvolutionConfig(
        population_size=args.population,
        mutation_rate=args.mutation_rate,
        crossover_rate=args.crossover_rate,
        elitism_count=args.elitism,
        tournament_size=args.tournament,
        random_seed=seed,
        device=args.device,
    )


def _geometry_from_args(args) -> Geometry:
    return Geometry.random(args.cities, random.Random(args.city_seed), scale=args.scale)


def _print_progress(event: SimulationEvent) -> None:
    snap = event.snapshot
    if event.kind is EventKind.STARTED:
        log(f"gen {snap.generation}: start best={snap.best_length:.3f}")
    elif event.kind is EventKind.NEW_CHAMPION:
        log(f"gen {snap.generation}: new best={snap.best_length:.3f}")
    elif event.kind is EventKind.ITERATION:
        log(
            f"gen {snap.generation}: best={snap.best_length:.3f} "
            f"pop_best={snap.population_best_length:.3f} pop_mean={snap.population_mean_length:.3f}"
        )


def run(args) -> None:
    geometry = _geometry_from_args(args)
    engine = EvolutionEngine(geometry, _config_from_args(args, args.seed))
    log(f"{len(geometry)} cities (city seed {args.city_seed}), search seed {engine.seed}; Ctrl+C to stop.")
    stop = threading.Event()
    try:
        summary = run_simulation(
            engine,
            stop=stop,
            max_iterations=args.max_iterations,
            assume_convergence=args.assume_convergence,
            callback=_print_progress,
            report_every=args.report_every,
        )
    except KeyboardInterrupt:
        stop.set()
        snap = engine.snapshot
        print(f"Interrupted at generation {snap.generation}: best={snap.best_length:.3f}")
        return
    snap = summary.snapshot
    log(f"finished ({summary.reason}) after {summary.iterations} generations in {summary.elapsed:.2f}s")
    print(f"best length: {snap.best_length:.3f}")
    print("best tour: " + " ".join(str(i) for i in snap.best_tour_order))


def seeds(args) -> None:
    geometry = _geometry_from_args(args)
    lines: List[str] = []
    for seed in range(args.first_seed, args.first_seed + args.count):
        engine = EvolutionEngine(geometry, _config_from_args(args, seed))
        summary = run_simulation(engine, max_iterations=args.max_iterations, assume_convergence=None)
        snap = summary.snapshot
        lines.append(f"seed {seed:4d}: best={snap.best_length:10.3f} mean={snap.population_mean_length:10.3f}")
    print("\n".join(lines))


def _add_search_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--cities", type=int, default=30, help="number of random cities")
    parser.add_argument("--city-seed", type=int, default=0)
    parser.add_argument("--scale", type=float, default=100.0)
    parser.add_argument("--population", type=int, default=200)
    parser.add_argument("--mutation-rate", type=float, default=0.01)
    parser.add_argument("--crossover-rate", type=float, default=0.9)
    parser.add_argument("--elitism", type=int, default=2)
    parser.add_argument("--tournament", type=int, default=3)
    parser.add_argument("--device", default=None, help="torch device for batch evaluation, e.g. cpu")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Genetic-algorithm TSP simulator")
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Evolve tours over random cities until a limit or Ctrl+C")
    _add_search_options(run_parser)
    run_parser.add_argument("--seed", type=int, default=None, help="search seed (default: from OS entropy)")
    run_parser.add_argument("--max-iterations", type=int, default=100_000)
    run_parser.add_argument("--assume-convergence", type=int, default=25_000)
    run_parser.add_argument("--report-every", type=int, default=100)
    run_parser.set_defaults(func=run)

    seeds_parser = subparsers.add_parser("seeds", help="Compare final tours across consecutive search seeds")
    _add_search_options(seeds_parser)
    seeds_parser.add_argument("--first-seed", type=int, default=0)
    seeds_parser.add_argument("--count", type=int, default=5)
    seeds_parser.add_argument("--max-iterations", type=int, default=500)
    seeds_parser.set_defaults(func=seeds)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        args.func(args)
    except TSPSimError as exc:
        parser.exit(2, f"error: {exc}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
