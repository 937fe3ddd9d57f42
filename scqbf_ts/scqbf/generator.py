"""
Random instance generator for the Set-Covering QBF.
"""

from pathlib import Path
from typing import Tuple, Union

import numpy as np

from .instance import ScqbfInstance


def generate_instance(n: int, coverage_density: float = 0.2, coef_range: Tuple[int, int] = (-10, 10),
                      seed: int = None, name: str = "") -> ScqbfInstance:
    """
    Generates a random feasible instance.

    Each set covers every universe element independently with probability
    coverage_density; every element left uncovered is then assigned to one random
    set so that selecting all sets is always a feasible cover. Coefficients of the
    upper triangle are integers drawn uniformly from coef_range (inclusive).
    """
    if n < 1:
        raise ValueError("Instance size must be positive.")
    if not (0 <= coverage_density <= 1):
        raise ValueError("Coverage density must be in the range [0, 1].")
    low, high = coef_range
    if low > high:
        raise ValueError("Invalid coefficient range.")

    rng = np.random.default_rng(seed)

    S = rng.random((n, n)) < coverage_density
    for element in np.flatnonzero(~S.any(axis=0)):
        S[rng.integers(n), element] = True

    A = np.triu(rng.integers(low, high + 1, size=(n, n))).astype(float)

    return ScqbfInstance(A, S, name=name or f"n{n}")


def write_instance(instance: ScqbfInstance, filepath: Union[str, Path]):
    """Writes an instance in the whitespace-delimited SCQBF file format."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, 'w') as f:
        f.write("\n".join(instance.to_lines()) + "\n")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate random SCQBF instances.")
    parser.add_argument("sizes", type=int, nargs="+", help="Instance sizes to generate")
    parser.add_argument("--density", type=float, default=0.2)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--output-dir", type=Path, default=Path("instances"))
    args = parser.parse_args()

    for size in args.sizes:
        inst = generate_instance(size, args.density, seed=args.seed, name=f"gen_n{size}")
        out_path = args.output_dir / f"{inst.name}.txt"
        write_instance(inst, out_path)
        print(f"Instance written to {out_path}: {inst}")
