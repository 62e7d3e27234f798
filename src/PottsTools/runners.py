import logging
from typing import List, Sequence

from joblib import Parallel, delayed
from monty.serialization import dumpfn

from PottsTools.analysis.snapshot import Snapshot
from PottsTools.core import PottsSimulation
from PottsTools.inputs.population import SeedSpecification
from PottsTools.inputs.potts_config import PottsConfig


def run_simulation(config: PottsConfig,
                   seeds: Sequence[SeedSpecification],
                   n_steps: int,
                   seed: int = 0,
                   snapshot_interval: int | None = None,
                   output_file: str | None = None) -> List[Snapshot]:
    """
    Run a single simulation and collect snapshots along the way.

    Args:
        config: The simulation configuration
        seeds: The initial population
        n_steps: Number of steps to run
        seed: Seed of the random number generator
        snapshot_interval: Number of steps between snapshots. If None, only
            the initial and final states are recorded.
        output_file: If given, the snapshots are written to this file with
            monty's dumpfn (the format follows the extension, e.g. .json)

    Returns:
        List of snapshots, starting with the initial state
    """
    if snapshot_interval is None or snapshot_interval <= 0:
        snapshot_interval = max(n_steps, 1)

    logging.info(f'Running simulation with seed {seed} for {n_steps} steps')
    simulation = PottsSimulation(config, seeds, seed=seed)
    snapshots = [simulation.snapshot()]
    remaining = n_steps
    while remaining > 0:
        n = min(snapshot_interval, remaining)
        simulation.advance(n)
        remaining -= n
        snapshots.append(simulation.snapshot())

    if output_file is not None:
        dumpfn(snapshots, output_file)
    return snapshots


def run_sweep(configs: Sequence[PottsConfig],
              seeds: Sequence[SeedSpecification],
              n_steps: int,
              random_seeds: Sequence[int] = (0, ),
              snapshot_interval: int | None = None,
              n_jobs: int = 1) -> List[List[Snapshot]]:
    """
    Run independent simulations for every combination of configuration and
    random seed in parallel.

    Each run owns its lattice and random number generator, so runs share no
    state and a run gives the same result as run_simulation with the same
    arguments.

    Args:
        configs: The configurations to sweep over
        seeds: The initial population, shared by all runs
        n_steps: Number of steps per run
        random_seeds: Seeds of the random number generator, one run per seed
            and configuration
        snapshot_interval: Number of steps between snapshots
        n_jobs: Number of parallel jobs, as understood by joblib

    Returns:
        The snapshots of every run, configurations in the outer loop and
        random seeds in the inner loop
    """
    jobs = [(config, random_seed) for config in configs
            for random_seed in random_seeds]
    logging.info(f'Running {len(jobs)} simulations with {n_jobs} jobs')
    return Parallel(n_jobs=n_jobs)(
        delayed(run_simulation)(config, seeds, n_steps, random_seed,
                                snapshot_interval)
        for config, random_seed in jobs)
