# tests/test_execution.py
import numpy as np
import pytest

from oscsim_core import (
    ConfigurationError,
    EnsembleResult,
    EnsembleWorker,
    RunSettings,
    SimulationConfig,
    SimulationRunError,
    read_trajectory,
    run_ensemble,
    simulate_replicate,
)
from oscsim_core.cli import EXIT_CONFIG_ERROR, EXIT_RUN_FAILURE, EXIT_SUCCESS, main
from oscsim_core.ensemble import sample_damping, worker_generator
from oscsim_core.simulation import SimulationContext
from tests.conftest import run_threaded


class TestSerialRun:

    def test_fixed_damping_mean_equals_single_trajectory(self, fixed_damping_config, tmp_path):
        result = run_ensemble(fixed_damping_config, RunSettings(output_path=str(tmp_path / "daten.dat")))
        single = simulate_replicate(fixed_damping_config, damping=1000.0)
        np.testing.assert_allclose(result.mean_displacement, single, rtol=1e-14, atol=0.0)

        times, values = read_trajectory(result.output_path)
        assert times.shape == (200,)
        np.testing.assert_allclose(times, np.arange(200) * 0.01, rtol=1e-6, atol=1e-12)
        np.testing.assert_allclose(values, single, rtol=1e-6, atol=1e-12)

    def test_mean_over_sampled_damping(self, small_config):
        result = run_ensemble(small_config, RunSettings(output_path=None))
        assert isinstance(result, EnsembleResult)
        assert result.output_path is None
        assert (result.replicates, result.workers, result.seed, result.steps) == (12, 1, 1234, 25)

        rng = worker_generator(1234, 0)
        total = np.zeros(small_config.steps)
        for _ in range(small_config.replicates):
            total += simulate_replicate(small_config, sample_damping(rng, 800.0, 1200.0))
        np.testing.assert_array_equal(result.mean_displacement, total / 12)

    def test_same_seed_reproduces(self, small_config):
        first = run_ensemble(small_config, RunSettings(output_path=None))
        second = run_ensemble(small_config, RunSettings(output_path=None))
        np.testing.assert_array_equal(first.mean_displacement, second.mean_displacement)

    def test_fresh_seed_is_reported(self):
        config = SimulationConfig(replicates=2, steps=5)
        result = run_ensemble(config, RunSettings(output_path=None))
        assert isinstance(result.seed, int) and result.seed >= 0

        replay = run_ensemble(
            SimulationConfig(replicates=2, steps=5, seed=result.seed), RunSettings(output_path=None)
        )
        np.testing.assert_array_equal(replay.mean_displacement, result.mean_displacement)

    def test_single_step_records_initial_state(self, tmp_path):
        config = SimulationConfig(replicates=3, steps=1, seed=5)
        result = run_ensemble(config, RunSettings(output_path=str(tmp_path / "one.dat")))
        assert result.output_path.read_text(encoding="ascii") == "0.000000E+00 0.000000E+00\n"

    def test_divergence_fails_without_output(self, diverging_config, tmp_path):
        path = tmp_path / "daten.dat"
        with pytest.raises(SimulationRunError) as excinfo:
            run_ensemble(diverging_config, RunSettings(output_path=str(path)))
        assert "Fixed-Step Integration Failure" in str(excinfo.value)
        assert not path.exists()

    def test_unwritable_output(self, small_config, tmp_path):
        with pytest.raises(SimulationRunError, match="Output File Error"):
            run_ensemble(small_config, RunSettings(output_path=str(tmp_path / "missing" / "daten.dat")))

    def test_zero_replicates_rejected_before_running(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(replicates=0)


class TestDistributedRun:

    @pytest.mark.parametrize("size", [1, 3, 5])
    def test_output_has_one_line_per_step(self, small_config, tmp_path, size):
        path = tmp_path / f"w{size}.dat"
        settings = RunSettings(output_path=str(path))

        results, errors = run_threaded(size, lambda comm: run_ensemble(small_config, settings, comm=comm))
        assert errors == [None] * size
        assert results[1:] == [None] * (size - 1)
        assert results[0].workers == size
        assert len(path.read_text(encoding="ascii").splitlines()) == small_config.steps

    def test_worker_count_does_not_change_fixed_damping_mean(self, fixed_damping_config):
        settings = RunSettings(output_path=None)
        serial = run_ensemble(fixed_damping_config, settings)
        results, errors = run_threaded(3, lambda comm: run_ensemble(fixed_damping_config, settings, comm=comm))
        assert errors == [None] * 3
        np.testing.assert_allclose(results[0].mean_displacement, serial.mean_displacement, rtol=1e-14, atol=0.0)

    def test_more_workers_than_replicates(self, tmp_path):
        config = SimulationConfig(replicates=2, steps=10, damping_min=1000.0, damping_max=1000.0, seed=1)
        settings = RunSettings(output_path=None)
        results, errors = run_threaded(4, lambda comm: run_ensemble(config, settings, comm=comm))
        assert errors == [None] * 4
        np.testing.assert_allclose(
            results[0].mean_displacement, simulate_replicate(config, 1000.0), rtol=1e-14, atol=0.0
        )

    def test_all_workers_agree_on_a_fresh_seed(self):
        context = SimulationContext(config=SimulationConfig(replicates=4, steps=5))
        seeds, errors = run_threaded(4, lambda comm: EnsembleWorker(context, comm).resolve_seed())
        assert errors == [None] * 4
        assert len(set(seeds)) == 1

    def test_failing_worker_fails_the_run(self, diverging_config, tmp_path):
        path = tmp_path / "daten.dat"
        settings = RunSettings(output_path=str(path))
        results, errors = run_threaded(
            3, lambda comm: run_ensemble(diverging_config, settings, comm=comm), timeout=5.0
        )
        assert all(isinstance(e, SimulationRunError) for e in errors)
        assert not path.exists()


class TestLocalBackend:

    def test_matches_in_process_workers(self, small_config, tmp_path):
        path = tmp_path / "local.dat"
        result = run_ensemble(small_config, RunSettings(backend="local", workers=2, output_path=str(path)))
        assert result.workers == 2
        assert len(path.read_text(encoding="ascii").splitlines()) == small_config.steps

        settings = RunSettings(output_path=None)
        results, errors = run_threaded(2, lambda comm: run_ensemble(small_config, settings, comm=comm))
        assert errors == [None, None]
        np.testing.assert_array_equal(result.mean_displacement, results[0].mean_displacement)

    def test_worker_failure(self, diverging_config, tmp_path):
        path = tmp_path / "daten.dat"
        with pytest.raises(SimulationRunError, match="Worker Failure"):
            run_ensemble(diverging_config, RunSettings(backend="local", workers=2, output_path=str(path), timeout=10.0))
        assert not path.exists()


class TestCommandLine:

    def test_success(self, tmp_path):
        path = tmp_path / "daten.dat"
        code = main(["--replicates", "8", "--steps", "30", "--seed", "1", "--output", str(path)])
        assert code == EXIT_SUCCESS
        assert len(path.read_text(encoding="ascii").splitlines()) == 30

    def test_quantity_flags(self, tmp_path):
        path = tmp_path / "daten.dat"
        code = main([
            "--replicates", "2", "--steps", "10", "--step-size", "5 ms",
            "--stiffness", "9 kN/m", "--seed", "2", "--output", str(path),
        ])
        assert code == EXIT_SUCCESS
        times, _ = read_trajectory(path)
        assert times[-1] == pytest.approx(0.045)

    def test_invalid_configuration(self, tmp_path):
        path = tmp_path / "daten.dat"
        assert main(["--replicates", "0", "--output", str(path)]) == EXIT_CONFIG_ERROR
        assert not path.exists()

    def test_run_failure(self, tmp_path):
        path = tmp_path / "daten.dat"
        code = main(["--replicates", "2", "--step-size", "10", "--seed", "3", "--output", str(path)])
        assert code == EXIT_RUN_FAILURE
        assert not path.exists()

    def test_config_file(self, tmp_path):
        config_path = tmp_path / "run.yaml"
        output_path = tmp_path / "from_yaml.dat"
        config_path.write_text(
            "simulation:\n  replicates: 4\n  steps: 12\n  seed: 8\n"
            f"output:\n  path: {output_path}\n",
            encoding="utf-8",
        )
        assert main(["--config", str(config_path)]) == EXIT_SUCCESS
        assert len(output_path.read_text(encoding="ascii").splitlines()) == 12

    def test_unreadable_config_file(self, tmp_path):
        config_path = tmp_path / "run.yaml"
        config_path.write_bytes(b"\xff\xfe")
        assert main(["--config", str(config_path), "--output", str(tmp_path / "daten.dat")]) == EXIT_CONFIG_ERROR
