"""
Tests for the provider: construction paths and start/stop control.

Run with: python -m pytest tests/test_provider.py -v
"""

import threading

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from neural_ga.core.networks import Topology, create_network, TwoLayerNetwork
from neural_ga.core.serialization import serialize_network
from neural_ga.evolution.provider import GeneticAlgorithmProvider


WAIT = 10.0


def constant_fitness(uid, forward):
    return 1.0


def output_fitness(uid, forward):
    return float(np.sum(forward(np.array([[0.1, 0.9], [0.7, 0.3]]))))


@pytest.fixture
def provider():
    provider = GeneticAlgorithmProvider.new_single_layer(
        output_fitness,
        input_size=2,
        output_size=1,
        size=4,
        population_size=6,
        weights_mutation_rate=5,
        elite_samples=1,
        n_workers=2,
        seed=3,
    )
    yield provider
    provider.stop()
    provider.join(WAIT)


class TestConstruction:
    """Tests for the provider factories."""

    def test_new_single_layer(self, provider):
        assert provider.config.topology == Topology(2, 1, 4)
        assert len(provider.population) == 6
        assert provider.generation == 0
        assert provider.best_network is None
        assert not provider.is_running

    def test_new_two_layers(self):
        provider = GeneticAlgorithmProvider.new_two_layers(
            constant_fitness, 3, 2, 5, 4, 0.5, 0.5, 0.5,
            population_size=4, weights_mutation_rate=10, elite_samples=0,
        )

        assert all(isinstance(n, TwoLayerNetwork) for n in provider.population)
        assert provider.config.topology.layer_dims == (3, 5, 4, 2)

    @pytest.mark.parametrize('kwargs', [
        {'input_size': 0},
        {'output_size': 0},
        {'first_hidden_size': 0},
        {'second_hidden_size': -1},
        {'z1_threshold': 1.0},
        {'z2_threshold': 0.0},
        {'z3_threshold': 1.5},
        {'population_size': 0, 'elite_samples': 0},
        {'weights_mutation_rate': 0},
        {'weights_mutation_rate': 100},
        {'elite_samples': 10},
        {'elite_samples': -1},
    ])
    def test_invalid_parameters(self, kwargs):
        params = {
            'input_size': 2,
            'output_size': 1,
            'first_hidden_size': 3,
            'second_hidden_size': 2,
            'population_size': 10,
            'weights_mutation_rate': 5,
            'elite_samples': 2,
        }
        params.update(kwargs)

        with pytest.raises(ValueError):
            GeneticAlgorithmProvider.new_two_layers(constant_fitness, **params)

    def test_missing_fitness_function(self):
        with pytest.raises(ValueError):
            GeneticAlgorithmProvider.new_single_layer(
                None, 2, 1, 3, population_size=4, weights_mutation_rate=5,
            )

    def test_from_network(self):
        network = create_network(Topology(3, 1, 4, 2, z2_threshold=0.6), np.random.default_rng(0))

        provider = GeneticAlgorithmProvider.from_network(
            constant_fitness, network, population_size=5, weights_mutation_rate=20, elite_samples=1,
        )

        population = provider.population
        assert len(population) == 5
        assert population[0] is network
        assert all(n.topology == network.topology for n in population)

    def test_from_network_rejects_other_objects(self):
        with pytest.raises(TypeError):
            GeneticAlgorithmProvider.from_network(constant_fitness, object(), population_size=5)

    def test_from_serialized_network(self):
        network = create_network(Topology(2, 2, 3), np.random.default_rng(0))

        provider = GeneticAlgorithmProvider.from_serialized_network(
            constant_fitness, serialize_network(network),
            population_size=4, weights_mutation_rate=5, elite_samples=1,
        )

        assert provider is not None
        assert provider.config.topology == network.topology
        np.testing.assert_array_equal(provider.population[0].weights[0], network.weights[0])

    def test_from_corrupted_serialized_network(self):
        network = create_network(Topology(2, 2, 3), np.random.default_rng(0))
        data = serialize_network(network)

        provider = GeneticAlgorithmProvider.from_serialized_network(
            constant_fitness, data[:-40], population_size=4,
        )

        assert provider is None


class TestForeground:
    """Tests for stepping the provider in the calling thread."""

    def test_run_generation(self, provider):
        progress = provider.run_generation()

        assert progress.generation == 0
        assert provider.generation == 1
        assert provider.best_fitness == progress.all_time_best_fitness
        assert provider.best_network is not None

    def test_constant_fitness_scenario(self):
        provider = GeneticAlgorithmProvider.new_single_layer(
            constant_fitness, 2, 1, 3,
            population_size=10, weights_mutation_rate=5, elite_samples=2,
        )
        reports = []
        provider.progress_callback = reports.append

        provider.run_generation()

        assert len(reports) == 1
        assert reports[0].best_fitness == 1.0
        assert reports[0].mean_fitness == 1.0
        assert reports[0].all_time_best_fitness == 1.0

    def test_evolve(self, provider):
        result = provider.evolve(4)

        assert result.generations_completed == 4
        assert provider.generation == 4
        assert len(provider.history) == 4

    def test_foreground_refused_while_running(self, provider):
        assert provider.start()

        with pytest.raises(RuntimeError):
            provider.run_generation()
        with pytest.raises(RuntimeError):
            provider.evolve(1)


class TestLifecycle:
    """Tests for start/stop semantics of the background loop."""

    def test_stop_without_start(self, provider):
        assert provider.stop() is False

    def test_double_start(self, provider):
        assert provider.start() is True
        assert provider.start() is False
        assert provider.is_running

    def test_start_stop_stop(self, provider):
        assert provider.start() is True
        assert provider.stop() is True
        assert provider.stop() is False
        assert not provider.is_running
        assert provider.join(WAIT)

    def test_restart_after_stop(self, provider):
        assert provider.start()
        assert provider.stop()
        assert provider.start()
        assert provider.is_running
        assert provider.stop()
        assert provider.join(WAIT)

    def test_background_loop_makes_progress(self, provider):
        reached = threading.Event()
        best_changes = []

        def on_progress(progress):
            if progress.generation >= 2:
                reached.set()

        provider.progress_callback = on_progress
        provider.best_network_callback = best_changes.append

        assert provider.start()
        assert reached.wait(WAIT)
        assert provider.stop()
        assert provider.join(WAIT)

        generation = provider.generation
        assert generation >= 3
        assert best_changes
        assert best_changes[-1].fitness == provider.best_fitness
        # No generation runs after the loop exited
        assert provider.generation == generation

    def test_background_error_stops_loop(self):
        def broken(uid, forward):
            raise RuntimeError("fitness exploded")

        provider = GeneticAlgorithmProvider.new_single_layer(
            broken, 2, 1, 3, population_size=4, weights_mutation_rate=5, n_workers=2,
        )
        reports = []
        provider.progress_callback = reports.append

        assert provider.start()
        assert provider.join(WAIT)

        assert isinstance(provider.last_error, RuntimeError)
        assert not provider.is_running
        assert provider.stop() is False
        assert reports == []
        assert provider.generation == 0

    def test_error_from_stopped_loop_not_reported(self):
        failing = threading.Event()
        entered = threading.Event()
        release = threading.Event()
        reached = threading.Event()

        def fitness(uid, forward):
            if failing.is_set():
                entered.set()
                release.wait(WAIT)
                raise RuntimeError("failure in a stopped loop")
            return 1.0

        provider = GeneticAlgorithmProvider.new_single_layer(
            fitness, 2, 1, 3, population_size=4, weights_mutation_rate=5, n_workers=2,
        )
        try:
            failing.set()
            assert provider.start()
            assert entered.wait(WAIT)
            stopped_thread = provider._thread
            assert provider.stop()

            failing.clear()
            provider.progress_callback = lambda progress: reached.set()
            assert provider.start()
            release.set()
            stopped_thread.join(WAIT)

            assert reached.wait(WAIT)
            assert provider.last_error is None
            assert provider.is_running
        finally:
            release.set()
            provider.stop()
            provider.join(WAIT)

    def test_concurrent_start_calls(self, provider):
        results = []
        barrier = threading.Barrier(8)

        def attempt():
            barrier.wait()
            results.append(provider.start())

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(WAIT)

        assert results.count(True) == 1
        assert results.count(False) == 7
