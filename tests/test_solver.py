import math

import numpy as np
import pytest

from scqbf_ts.core.abc_solver import TerminationCriteria, DebugOptions
from scqbf_ts.core.abstract_ts import TSStrategy, ConstructionError
from scqbf_ts.core.solution import Solution
from scqbf_ts.scqbf.evaluator import ScqbfInverseEvaluator
from scqbf_ts.scqbf.generator import generate_instance
from scqbf_ts.scqbf.instance import ScqbfInstance
from scqbf_ts.scqbf.solver import TabuSearchScqbf


def make_solver(instance, tenure=3, iterations=50, seed=0, **strategy):
    return TabuSearchScqbf(
        ScqbfInverseEvaluator(instance),
        tenure=tenure,
        strategy=TSStrategy(**strategy),
        termination_criteria=TerminationCriteria(max_iterations=iterations),
        random_seed=seed,
    )


def full_cover_instance(diagonal):
    """Every set covers the whole universe; A is diagonal."""
    n = len(diagonal)
    return ScqbfInstance(np.diag(diagonal).astype(float), np.ones((n, n), dtype=bool))


def prepare_search_state(solver):
    """Runs the constructive heuristic and sets up the state the main loop starts from."""
    solver._reset_execution_state()
    solver.constructive_heuristic()
    solver.best_solution = solver._current_solution.copy()
    solver.tabu_list = solver.make_tabu_list()


def admissible_moves(solver):
    """Every (delta, in, out) move the neighborhood scan may choose, computed by brute force."""
    ev, sol = solver.evaluator, solver._current_solution
    cands = ev.candidates(sol)
    moves = []
    for c in cands:
        moves.append((ev.evaluate_insertion_cost(sol, c), c, None))
    for o in sol.elements:
        moves.append((ev.evaluate_removal_cost(sol, o), None, o))
    for c in cands:
        for o in sol.elements:
            moves.append((ev.evaluate_exchange_cost(sol, c, o), c, o))
    return [m for m in moves if solver._is_admissible(m[0], *[e for e in m[1:] if e is not None])]


#region Configuration
def test_invalid_configuration_raises(random_instance):
    with pytest.raises(ValueError):
        TerminationCriteria()
    with pytest.raises(ValueError):
        TSStrategy(search_strategy='worst')
    with pytest.raises(ValueError):
        TSStrategy(diversify_at=(10, 20), diversify_fractions=(0.1,))
    with pytest.raises(ValueError):
        TSStrategy(diversify_fractions=(0.0, 0.1, 0.1))
    with pytest.raises(ValueError):
        make_solver(random_instance, tenure=0)
#endregion


#region Construction
def test_construction_returns_feasible_solution(random_instance):
    solver = make_solver(random_instance)
    sol = solver.constructive_heuristic()

    assert solver.evaluator.is_feasible(sol)
    assert len(sol) <= random_instance.n
    assert sol.cost == pytest.approx(ScqbfInverseEvaluator(random_instance).evaluate(Solution(sol.elements)))


def test_construction_on_worked_example_is_greedy(worked_instance):
    solver = make_solver(worked_instance)
    sol = solver.constructive_heuristic()

    # Inserting set 1 first costs -3 against -1 for set 0
    assert list(sol) == [1, 0]
    assert sol.cost == -6.0


def test_construction_fails_loudly_without_feasible_cover():
    # universe element 2 is covered by no set
    instance = ScqbfInstance.from_string("2\n1 0\n1\n1 0\n1\n")
    solver = make_solver(instance)

    with pytest.raises(ConstructionError):
        solver.constructive_heuristic()


@pytest.mark.parametrize("seed", range(5))
def test_construction_terminates_within_domain_size(seed):
    instance = generate_instance(12, coverage_density=0.15, seed=seed)
    solver = make_solver(instance, seed=seed)
    sol = solver.constructive_heuristic()

    assert solver.evaluator.is_feasible(sol)
    assert len(sol) <= 12
#endregion


#region Tabu list and admissibility
def test_tabu_list_size_is_constant(random_instance):
    solver = make_solver(random_instance, tenure=4)
    prepare_search_state(solver)
    assert len(solver.tabu_list) == 8
    assert all(entry is None for entry in solver.tabu_list)

    for _ in range(30):
        solver.neighborhood_move()
        assert len(solver.tabu_list) == 8

    solver.intensify()
    assert len(solver.tabu_list) == 8

    solver.solve()
    assert len(solver.tabu_list) == 8


def test_move_pushes_removed_then_inserted():
    solver = make_solver(full_cover_instance([1, 2, 3, 4]), tenure=2)
    prepare_search_state(solver)
    solver.update_candidate_list()
    assert list(solver._current_solution) == [3]

    cand_in = solver.CL[0]
    solver._apply_move(cand_in, None)
    assert list(solver.tabu_list)[-2:] == [None, cand_in]
    assert cand_in in solver._current_solution
    assert solver._current_solution.is_cost_valid

    cand_out = solver._current_solution.elements[0]
    solver._apply_move(None, cand_out)
    assert list(solver.tabu_list)[-2:] == [cand_out, None]
    assert cand_out not in solver._current_solution


def test_aspiration_overrides_tabu(worked_instance):
    solver = make_solver(worked_instance)
    prepare_search_state(solver)
    solver.best_solution.cost = -6.0
    solver.add_to_tabu_list(0)

    assert solver.is_tabu(0)
    assert not solver.is_tabu(1)
    assert solver._is_admissible(5.0, 1)
    assert not solver._is_admissible(0.5, 0)
    assert solver._is_admissible(-0.5, 0)
    assert not solver._is_admissible(float('inf'), 1)
    assert not solver._is_admissible(float('-inf'), 1)


def test_no_admissible_move_leaves_solution_unchanged(worked_instance):
    solver = make_solver(worked_instance, tenure=1)
    prepare_search_state(solver)
    solver.add_to_tabu_list(1)

    solver.neighborhood_move()

    assert sorted(solver._current_solution) == [0, 1]
    assert solver._current_solution.cost == -6.0
    assert list(solver.tabu_list) == [None, None]
#endregion


#region Neighborhood moves
@pytest.mark.parametrize("seed", range(4))
def test_best_improving_applies_the_smallest_admissible_delta(seed):
    instance = generate_instance(10, coverage_density=0.3, seed=seed)
    solver = make_solver(instance, seed=seed, search_strategy='best')
    prepare_search_state(solver)

    for _ in range(5):
        before = solver._current_solution.cost
        moves = admissible_moves(solver)
        solver.neighborhood_move()
        if moves:
            expected = min(m[0] for m in moves)
            assert solver._current_solution.cost == pytest.approx(before + expected)
        if solver._current_solution.cost < solver.best_solution.cost:
            solver.best_solution = solver._current_solution.copy()


@pytest.mark.parametrize("seed", range(4))
def test_first_improving_takes_an_improving_move_when_one_exists(seed):
    instance = generate_instance(10, coverage_density=0.3, seed=seed)
    solver = make_solver(instance, seed=seed, search_strategy='first')
    prepare_search_state(solver)

    for _ in range(5):
        before = solver._current_solution.cost
        moves = admissible_moves(solver)
        solver.neighborhood_move()
        if any(m[0] < 0 for m in moves):
            assert solver._current_solution.cost < before
        elif moves:
            assert solver._current_solution.cost == pytest.approx(before + min(m[0] for m in moves))
        assert solver.evaluator.is_feasible(solver._current_solution)
        if solver._current_solution.cost < solver.best_solution.cost:
            solver.best_solution = solver._current_solution.copy()
#endregion


#region Intensification and diversification
def test_intensify_applies_best_double_exchange():
    solver = make_solver(full_cover_instance([1, 5, 5]), tenure=2)
    solver._current_solution = Solution([0])
    solver.evaluator.evaluate(solver._current_solution)
    solver.tabu_list = solver.make_tabu_list()

    result = solver.intensify()

    assert result is solver._current_solution
    assert sorted(result) == [1, 2]
    assert result.cost == -10.0
    assert list(solver.tabu_list)[-3:] == [0, 1, 2]
    assert len(solver.tabu_list) == 4


def test_intensify_returns_none_without_improvement():
    solver = make_solver(full_cover_instance([1, 5, 5]), tenure=2)
    solver._current_solution = Solution([1, 2])
    solver.evaluator.evaluate(solver._current_solution)
    solver.tabu_list = solver.make_tabu_list()

    assert solver.intensify() is None
    assert sorted(solver._current_solution) == [1, 2]


def test_diversify_adds_least_frequent_elements():
    solver = make_solver(full_cover_instance([1, 1, 1, 1]), diversification=True)
    solver.best_solution = Solution([0])
    solver.evaluator.evaluate(solver.best_solution)
    solver.var_frequency[:] = [3, 0, 0, 1]

    solver.diversify_by_restart(0.5)

    assert list(solver._current_solution) == [0, 1, 2]
    assert solver._current_solution.cost == -3.0
    assert list(solver.best_solution) == [0]


def test_frequencies_only_tracked_with_diversification(random_instance):
    plain = make_solver(random_instance, iterations=10)
    plain.solve()
    assert not plain.var_frequency.any()

    diversified = make_solver(random_instance, iterations=10, diversification=True)
    diversified.solve()
    assert diversified.var_frequency.sum() > 0


def test_diversification_thresholds_are_consumed_in_order(worked_instance):
    # Nothing ever improves on the worked example, so every threshold fires once.
    solver = make_solver(worked_instance, tenure=1, iterations=30, diversification=True,
                         diversify_at=(3, 6), diversify_fractions=(0.5, 1.0))
    best = solver.solve()

    assert solver.diversification_count == 2
    assert sorted(best) == [0, 1]
#endregion


#region Main loop
def test_solve_returns_feasible_solution_no_worse_than_construction(random_instance):
    solver = make_solver(random_instance, iterations=40)
    best = solver.solve()

    assert solver.evaluator.is_feasible(best)
    assert best.cost <= solver.initial_solution.cost
    assert best.cost == pytest.approx(ScqbfInverseEvaluator(random_instance).evaluate(Solution(best.elements)))
    assert solver.stop_reason == "max_iterations"
    assert solver._iters == 40


def test_best_solution_is_a_snapshot(random_instance):
    solver = make_solver(random_instance, iterations=25)
    best = solver.solve()
    assert best is not solver._current_solution


def test_solve_is_deterministic_for_a_seed():
    instance = generate_instance(14, coverage_density=0.2, seed=9)
    runs = [make_solver(instance, iterations=30, seed=123).solve() for _ in range(2)]
    assert runs[0].elements == runs[1].elements
    assert runs[0].cost == runs[1].cost


@pytest.mark.parametrize("strategy", [
    dict(search_strategy='best'),
    dict(intensification=True),
    dict(diversification=True, diversify_at=(2, 4, 8)),
    dict(search_strategy='best', diversification=True, intensification=True),
])
def test_all_strategies_keep_feasibility(strategy):
    instance = generate_instance(10, coverage_density=0.3, seed=21)
    solver = make_solver(instance, iterations=25, **strategy)
    best = solver.solve()

    assert solver.evaluator.is_feasible(best)
    assert best.cost <= solver.initial_solution.cost


def test_time_budget_stops_the_search(random_instance):
    solver = TabuSearchScqbf(ScqbfInverseEvaluator(random_instance), tenure=2,
                             termination_criteria=TerminationCriteria(max_time_secs=0))
    best = solver.solve()

    assert solver.stop_reason == "max_time_secs"
    assert solver._iters == 0
    assert best.elements == solver.initial_solution.elements


def test_history_is_logged_per_iteration(random_instance):
    solver = TabuSearchScqbf(ScqbfInverseEvaluator(random_instance), tenure=2,
                             termination_criteria=TerminationCriteria(max_iterations=12),
                             debug_options=DebugOptions(log_history=True))
    solver.solve()

    assert len(solver.history) == 12
    best_costs = [row['Best_Cost'] for row in solver.history]
    assert all(b >= a for a, b in zip(best_costs[1:], best_costs))


def test_verbose_prints_progress(random_instance, capsys):
    solver = TabuSearchScqbf(ScqbfInverseEvaluator(random_instance), tenure=2,
                             termination_criteria=TerminationCriteria(max_iterations=5),
                             debug_options=DebugOptions(verbose=True))
    solver.solve()

    out = capsys.readouterr().out
    assert "Solution from CH:" in out
    assert "Solutions from TS:" in out


def test_infinite_costs_never_reach_the_best(worked_instance):
    solver = make_solver(worked_instance, iterations=10)
    best = solver.solve()
    assert math.isfinite(best.cost)
#endregion
