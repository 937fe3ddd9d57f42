import argparse
import contextlib
import sys
from dataclasses import dataclass
from pathlib import Path

from scqbf_ts.core.abc_solver import TerminationCriteria, DebugOptions
from scqbf_ts.core.abstract_ts import TSStrategy
from scqbf_ts.scqbf.instance import ScqbfInstance, InstanceFormatError
from scqbf_ts.scqbf.evaluator import ScqbfInverseEvaluator
from scqbf_ts.scqbf.solver import TabuSearchScqbf


@dataclass
class MethodConfig:
    tenure: int
    strategy: TSStrategy


T1, T2 = 20, 5

METHODS = {
    'std': MethodConfig(T1, TSStrategy(search_strategy='first')),
    'std+t2': MethodConfig(T2, TSStrategy(search_strategy='first')),
    'std+best': MethodConfig(T1, TSStrategy(search_strategy='best')),
    'std+div': MethodConfig(T1, TSStrategy(search_strategy='first', diversification=True)),
    'std+int': MethodConfig(T1, TSStrategy(search_strategy='first', intensification=True)),
}


def build_solver(instance: ScqbfInstance, method: str, max_time_secs: float = 1800, max_iterations: int = None,
                 random_seed: int = 0, verbose: bool = True, log_history: bool = False) -> TabuSearchScqbf:
    """Creates a Tabu Search solver for the MAX-SCQBF configured as one of the METHODS presets."""
    config = METHODS[method]
    return TabuSearchScqbf(
        evaluator=ScqbfInverseEvaluator(instance),
        tenure=config.tenure,
        strategy=config.strategy,
        termination_criteria=TerminationCriteria(max_iterations=max_iterations, max_time_secs=max_time_secs),
        debug_options=DebugOptions(verbose=verbose, log_history=log_history),
        random_seed=random_seed,
    )


def run_solver(instance_path: Path, method: str, max_time_secs: float, max_iterations: int, seed: int, verbose: bool):
    """
    Loads an instance, runs the selected method and prints the best solution found.
    The reported cost is the MAX-SCQBF objective (the solver minimizes its negation).
    """
    print(f"instance={instance_path} method={method}")

    instance = ScqbfInstance.from_file(instance_path)
    solver = build_solver(instance, method, max_time_secs, max_iterations, seed, verbose)

    best_solution = solver.solve()

    print("\n--- Best Solution Found ---")
    print(f"objective={-best_solution.cost:.2f} size={len(best_solution)} "
          f"feasible={solver.evaluator.is_feasible(best_solution)}")
    print(f"elements={sorted(best_solution)}")
    print(f"iterations={solver._iters} time={solver.execution_time:.2f}s stop={solver.stop_reason}")
    return best_solution


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Tabu Search for the MAX Set-Covering QBF.")
    parser.add_argument("instance", type=Path, help="Path to the instance file")
    parser.add_argument("method", choices=sorted(METHODS), help="Solver configuration preset")
    parser.add_argument("--time", type=float, default=1800, help="Time budget in seconds")
    parser.add_argument("--iterations", type=int, default=None, help="Optional iteration budget")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--verbose", action="store_true", help="Print every improvement")
    parser.add_argument("--output", type=Path, default=None,
                        help="Write the run log to this file instead of stdout")
    args = parser.parse_args(argv)

    try:
        if args.output is None:
            run_solver(args.instance, args.method, args.time, args.iterations, args.seed, args.verbose)
        else:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            print(f"Writing log to {args.output} (ctrl+c keeps the result so far)")
            with open(args.output, 'w') as out, contextlib.redirect_stdout(out):
                run_solver(args.instance, args.method, args.time, args.iterations, args.seed, args.verbose)
    except FileNotFoundError:
        print(f"ERROR: Instance file not found at '{args.instance}'", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"ERROR: Cannot read instance '{args.instance}': {e}", file=sys.stderr)
        return 1
    except InstanceFormatError as e:
        print(f"ERROR: Malformed instance '{args.instance}': {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
