import os
import time
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from scqbf_ts.scqbf.instance import ScqbfInstance
from main_scqbf import METHODS, build_solver


def save_convergence_plot(histories: Dict[str, pd.DataFrame], instance_name: str, filepath: str):
    """Plots the best MAX-SCQBF objective over time for every method run on an instance."""
    fig, ax = plt.subplots(figsize=(10, 6))

    for method, history in histories.items():
        if history.empty:
            continue
        ax.step(history['Time (s)'], -history['Best_Cost'], where='post', label=method, linewidth=1.5)

    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Best objective')
    ax.set_title(f'{instance_name} - convergence', fontsize=10, fontweight='bold')
    ax.legend(loc='lower right', framealpha=0.9, fontsize=8)
    ax.grid(alpha=0.3)

    try:
        plt.savefig(filepath, dpi=150, bbox_inches='tight')
    except OSError as e:
        print(f"  WARNING: Failed to save plot {filepath}. Error: {e}")

    plt.close(fig)


def run_single_instance(instance: ScqbfInstance, method: str, max_time_secs: float, max_iterations: int = None,
                        random_seed: int = 0) -> Tuple[Dict[str, Any], pd.DataFrame]:
    print(f"[Starting] {instance.name} ({method})")

    solver = build_solver(instance, method, max_time_secs, max_iterations, random_seed,
                          verbose=False, log_history=True)
    start_time = time.time()
    best_sol = solver.solve()
    exec_time = time.time() - start_time

    # Costs are negated MAX-SCQBF objectives
    initial_obj = -solver.initial_solution.cost
    final_obj = -best_sol.cost

    print(f"[Done] {instance.name} ({method}) | Obj: {final_obj:.2f} | Time: {exec_time:.2f}s")

    row = {
        'Instance': instance.name,
        'Method': method,
        'Stop Reason': solver.stop_reason,
        'Total Iters': solver._iters,
        'Exec Time (s)': exec_time,
        'n': instance.n,
        'Initial Obj': initial_obj,
        'Final Obj': final_obj,
        'Improvement (%)': (final_obj - initial_obj) / abs(initial_obj) * 100 if initial_obj != 0 else 0,
        'Size': len(best_sol),
        'Feasible': solver.evaluator.is_feasible(best_sol),
        'Diversifications': solver.diversification_count,
    }
    return row, pd.DataFrame(solver.history)


def run_batch(instances_dir: str, results_dir: str, methods: List[str] = None, max_time_secs: float = 1800,
              max_iterations: int = None, random_seed: int = 0) -> pd.DataFrame:
    """Runs every method on every instance file of a directory, one after the other."""
    methods = methods or list(METHODS)
    os.makedirs(results_dir, exist_ok=True)

    instance_paths = sorted(Path(instances_dir).glob('*.txt'))
    print(f"{len(instance_paths)} instances x {len(methods)} methods to run.")

    results_list = []
    for instance_path in instance_paths:
        instance = ScqbfInstance.from_file(instance_path)
        histories = {}

        for method in methods:
            row, history = run_single_instance(instance, method, max_time_secs, max_iterations, random_seed)
            results_list.append(row)
            histories[method] = history

        plot_filepath = os.path.join(results_dir, f"{instance.name}_convergence.png")
        save_convergence_plot(histories, instance.name, plot_filepath)

    results_df = pd.DataFrame(results_list)
    results_filepath = os.path.join(results_dir, "batch_run_results.csv")
    results_df.to_csv(results_filepath, index=False)
    print(f"Results saved to: {results_filepath}")

    return results_df


def main():
    INSTANCES_DIR = 'instances'
    RESULTS_DIR = 'results'
    MAX_TIME_SECS = 1800

    start_batch_time = time.time()
    results_df = run_batch(INSTANCES_DIR, RESULTS_DIR, max_time_secs=MAX_TIME_SECS)

    print("\n" + "=" * 80)
    print("Batch finished")
    print(f"Total time: {(time.time() - start_batch_time) / 60:.2f} minutes.")
    if not results_df.empty:
        print("\nSummary:")
        print(results_df[['Instance', 'Method', 'Exec Time (s)', 'Initial Obj', 'Final Obj', 'Size']])


if __name__ == "__main__":
    main()
