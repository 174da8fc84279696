# tests/test_config.py
import textwrap

import pytest

from oscsim_core import (
    SimulationConfig,
    RunSettings,
    ConfigurationError,
    ConfigSchemaError,
    load_config,
)
from oscsim_core.config import to_si
from oscsim_core.config.parser import merge_overrides


def write_yaml(tmp_path, text):
    path = tmp_path / "run.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


class TestSimulationConfig:

    def test_defaults(self):
        config = SimulationConfig()
        assert config.replicates == 1000
        assert config.steps == 200
        assert config.step_size == 0.01
        assert config.stiffness == 9000.0
        assert config.mass == 450.0
        assert (config.damping_min, config.damping_max) == (800.0, 1200.0)
        assert (config.initial_displacement, config.initial_velocity) == (0.0, 0.1)
        assert config.method == "rk4"
        assert config.seed is None
        assert not config.fixed_damping

    def test_equal_bounds_disable_sampling(self):
        assert SimulationConfig(damping_min=1000.0, damping_max=1000.0).fixed_damping

    @pytest.mark.parametrize("kwargs, field", [
        ({"replicates": 0}, "replicates"),
        ({"steps": 0}, "steps"),
        ({"steps": 2.5}, "steps"),
        ({"step_size": 0.0}, "step_size"),
        ({"step_size": -0.01}, "step_size"),
        ({"mass": 0.0}, "mass"),
        ({"stiffness": float("nan")}, "stiffness"),
        ({"damping_min": 1300.0}, "damping_min"),
        ({"seed": -1}, "seed"),
        ({"method": "euler"}, "method"),
    ])
    def test_invalid_settings_are_rejected(self, kwargs, field):
        with pytest.raises(ConfigurationError) as excinfo:
            SimulationConfig(**kwargs)
        assert excinfo.value.field == field
        assert "Invalid Configuration" in excinfo.value.get_diagnostic_report()

    def test_is_immutable(self):
        config = SimulationConfig()
        with pytest.raises(AttributeError):
            config.replicates = 5


class TestRunSettings:

    def test_defaults(self):
        settings = RunSettings()
        assert settings.backend == "serial"
        assert settings.workers == 1
        assert settings.reduction == "collective"
        assert settings.output_path == "daten.dat"
        assert settings.timeout is None

    @pytest.mark.parametrize("kwargs", [
        {"backend": "gpu"},
        {"reduction": "tree"},
        {"workers": 0},
        {"backend": "serial", "workers": 2},
        {"timeout": 0.0},
        {"output_path": ""},
    ])
    def test_invalid_settings_are_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            RunSettings(**kwargs)

    def test_local_backend_accepts_several_workers(self):
        assert RunSettings(backend="local", workers=4).workers == 4


class TestUnitConversion:

    @pytest.mark.parametrize("value, kind, expected", [
        ("10 ms", "time", 0.01),
        ("9 kN/m", "stiffness", 9000.0),
        ("450 kg", "mass", 450.0),
        ("1.2 kN*s/m", "damping", 1200.0),
        ("10 cm/s", "velocity", 0.1),
        (0.5, "time", 0.5),
        (3, "mass", 3.0),
    ])
    def test_to_si(self, value, kind, expected):
        assert to_si(value, kind) == pytest.approx(expected)

    def test_wrong_dimension(self):
        with pytest.raises(ValueError, match="dimensionality"):
            to_si("3 kg", "time")

    def test_unparseable(self):
        with pytest.raises(ValueError):
            to_si("ten seconds please", "time")


class TestConfigLoading:

    def test_no_file_gives_defaults(self):
        config, settings = load_config()
        assert config == SimulationConfig()
        assert settings == RunSettings()

    def test_yaml_with_units(self, tmp_path):
        path = write_yaml(tmp_path, """
            simulation:
              replicates: 50
              steps: 20
              step_size: 10 ms
              seed: 9
            oscillator:
              stiffness: 9 kN/m
              damping_min: 0.8 kN*s/m
              damping_max: 1200
            parallel:
              backend: local
              workers: 3
              timeout: 2 s
            output:
              path: mean.dat
        """)
        config, settings = load_config(path)
        assert config.replicates == 50
        assert config.steps == 20
        assert config.step_size == pytest.approx(0.01)
        assert config.stiffness == pytest.approx(9000.0)
        assert config.damping_min == pytest.approx(800.0)
        assert config.damping_max == 1200.0
        assert config.seed == 9
        assert settings.backend == "local"
        assert settings.workers == 3
        assert settings.timeout == pytest.approx(2.0)
        assert settings.output_path == "mean.dat"

    def test_empty_file(self, tmp_path):
        config, _ = load_config(write_yaml(tmp_path, ""))
        assert config == SimulationConfig()

    def test_overrides_take_precedence(self, tmp_path):
        path = write_yaml(tmp_path, """
            simulation:
              replicates: 50
              steps: 20
        """)
        config, settings = load_config(path, overrides={
            "simulation": {"replicates": 8, "steps": None},
            "parallel": {"backend": None},
            "output": {"path": "other.dat"},
        })
        assert config.replicates == 8
        assert config.steps == 20
        assert settings.backend == "serial"
        assert settings.output_path == "other.dat"

    def test_wrong_unit_is_a_schema_error(self, tmp_path):
        path = write_yaml(tmp_path, """
            oscillator:
              mass: 3 s
        """)
        with pytest.raises(ConfigSchemaError) as excinfo:
            load_config(path)
        assert "oscillator.mass" in excinfo.value.get_diagnostic_report()

    def test_unknown_key_is_a_schema_error(self, tmp_path):
        path = write_yaml(tmp_path, """
            simulation:
              replicate: 50
        """)
        with pytest.raises(ConfigSchemaError) as excinfo:
            load_config(path)
        assert "simulation.replicate" in str(excinfo.value)

    def test_semantic_error_names_the_source_file(self, tmp_path):
        path = write_yaml(tmp_path, """
            simulation:
              replicates: 0
        """)
        with pytest.raises(ConfigurationError) as excinfo:
            load_config(path)
        assert excinfo.value.field == "replicates"
        assert excinfo.value.source_file == path.resolve()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError, match="YAML"):
            load_config(write_yaml(tmp_path, "simulation: [unclosed\n"))

    def test_root_must_be_a_mapping(self, tmp_path):
        with pytest.raises(ConfigurationError, match="dictionary"):
            load_config(write_yaml(tmp_path, "- 1\n- 2\n"))

    def test_file_that_is_not_utf8(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_bytes(b"\xff\xfe")
        with pytest.raises(ConfigurationError, match="UTF-8") as excinfo:
            load_config(path)
        assert excinfo.value.source_file == path.resolve()

    def test_non_mapping_section_is_rejected_despite_overrides(self, tmp_path):
        path = write_yaml(tmp_path, "simulation: 5\n")
        with pytest.raises(ConfigSchemaError) as excinfo:
            load_config(path, overrides={"simulation": {"replicates": 3}})
        assert "simulation" in str(excinfo.value)


class TestMergeOverrides:

    def test_absent_section_is_created(self):
        assert merge_overrides({}, {"output": {"path": "a.dat"}}) == {"output": {"path": "a.dat"}}

    def test_document_is_not_mutated(self):
        document = {"simulation": {"replicates": 5}}
        merged = merge_overrides(document, {"simulation": {"replicates": 7, "steps": None}})
        assert merged == {"simulation": {"replicates": 7}}
        assert document == {"simulation": {"replicates": 5}}

    def test_non_mapping_section_is_kept(self):
        assert merge_overrides({"simulation": 5}, {"simulation": {"replicates": 3}}) == {"simulation": 5}
