import random

from tsp_sim.evolutionary import EvolutionConfig, EvolutionEngine
from tsp_sim.geometry import Geometry


def main():
    geometry = Geometry.random(25, random.Random(7), scale=100.0)
    cfg = EvolutionConfig(
        population_size=120,
        mutation_rate=0.02,
        crossover_rate=0.9,
        elitism_count=2,
        tournament_size=4,
        random_seed=123,
    )
    engine = EvolutionEngine(geometry, cfg)
    generations = 300
    for _ in range(generations):
        snap = engine.step()
        if snap.generation % 50 == 0:
            print(
                f"gen {snap.generation}: best={snap.best_length:.2f} "
                f"pop_best={snap.population_best_length:.2f} pop_mean={snap.population_mean_length:.2f}"
            )
    print("best tour:", list(engine.best_tour()))


if __name__ == "__main__":
    main()
