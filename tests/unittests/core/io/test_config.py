#!/usr/bin/env python
"""Example usage and tests for :mod:`hyperion.core.io.config`."""
import pytest
import yaml

import hyperion.core
from hyperion.core.io.config import Configuration, ConfigurationError


@pytest.fixture
def config():
    """Return a configuration with a searcher and an ssh section"""
    config = Configuration()
    config.add_option("num_trials", option_type=int, default=10, env_var="TEST_TRIALS")

    config.ssh = Configuration()
    config.ssh.add_option(
        "machines", option_type=list, default=[], env_var="TEST_MACHINES"
    )
    config.ssh.add_option("user", option_type=str, default="me")
    return config


@pytest.fixture
def yaml_path(tmp_path):
    """Create a temporary yaml file and return the path"""
    file_path = tmp_path / "hyperion_config.yaml"
    file_path.write_text(
        yaml.dump({"num_trials": 20, "ssh": {"machines": ["a", "b"]}})
    )
    return str(file_path)


def test_fetch_non_existing_option():
    """Test that access to a non existing key raises ConfigurationError"""
    config = Configuration()
    with pytest.raises(ConfigurationError) as exc:
        config.voici_voila

    assert "Configuration does not have an attribute 'voici_voila'." in str(exc.value)


def test_access_config_without_values():
    """Test that access to config without values raises ConfigurationError"""
    config = Configuration()
    config.add_option("test", option_type=int)
    with pytest.raises(ConfigurationError) as exc:
        config.test

    assert "Configuration not set and no default provided: test." in str(exc.value)


def test_set_non_existing_option():
    """Test that setting a non existing option crash"""
    config = Configuration()
    with pytest.raises(TypeError) as exc:
        config.test = 1
    assert "Can only set test as a Configuration, not <class 'int'>" in str(exc.value)


def test_set_int_value(config):
    """Test that an integer option casts its value and rejects invalid ones"""
    config.num_trials = "5"
    assert config.num_trials == 5

    with pytest.raises(TypeError) as exc:
        config.num_trials = "voici_voila"
    assert "cannot be set to voici_voila" in str(exc.value)


def test_set_subconfig_over_option(config):
    """Test that overwriting an option with a subconfig is not possible"""
    with pytest.raises(TypeError) as exc:
        config.num_trials = Configuration()
    assert "Cannot overwrite option num_trials with a configuration" in str(exc.value)


def test_set_value_like_dict(config):
    """Test that values of subconfigs can be set and read with dotted keys"""
    config["ssh.user"] = "you"
    assert config.ssh.user == "you"
    assert config["ssh.user"] == "you"


def test_precedence(config, yaml_path, monkeypatch):
    """Test that value > env var > yaml > default"""
    assert config.num_trials == 10

    config.load_yaml(yaml_path)
    assert config.num_trials == 20

    monkeypatch.setenv("TEST_TRIALS", "30")
    assert config.num_trials == 30

    config.num_trials = 40
    assert config.num_trials == 40


def test_yaml_subconfig(config, yaml_path):
    """Test that nested sections of the yaml file go to the subconfigs"""
    config.load_yaml(yaml_path)
    assert config.ssh.machines == ["a", "b"]
    assert config.ssh.user == "me"


def test_yaml_unknown_option(config, tmp_path):
    """Test that unknown options of the yaml file raise ConfigurationError"""
    file_path = tmp_path / "broken.yaml"
    file_path.write_text(yaml.dump({"coucou": "from my yaml!"}))

    with pytest.raises(ConfigurationError) as exc:
        config.load_yaml(str(file_path))
    assert "coucou" in str(exc.value)


def test_empty_yaml(config, tmp_path):
    """Test that an empty yaml file changes nothing"""
    file_path = tmp_path / "empty.yaml"
    file_path.write_text("")

    config.load_yaml(str(file_path))
    assert config.num_trials == 10


def test_list_from_env_var(config, monkeypatch):
    """Test that list options are split on ':' in environment variables"""
    monkeypatch.setenv("TEST_MACHINES", "node1:node2::node3")
    assert config.ssh.machines == ["node1", "node2", "node3"]


def test_to_dict(config):
    """Test that to_dict holds the values of the options and subconfigurations"""
    config.ssh.user = "you"
    assert config.to_dict() == {
        "num_trials": 10,
        "ssh": {"machines": [], "user": "you"},
    }


def test_package_config_defaults():
    """Test the defaults of the package configuration"""
    config = hyperion.core.config
    assert config.searcher.num_trials == 10
    assert config.searcher.num_to_finish == 0
    assert config.searcher.seconds_to_sleep == 60
    assert config.executor.type == "PoolExecutor"
    assert config.executor.job_queue.poll_attempts == 10
    assert config.executor.job_queue.poll_interval == 1.0
    assert config.executor.ssh.dispatch == "LeastLoaded"


def test_package_config_env_var(monkeypatch):
    """Test that the package configuration reads HYPERION_ environment variables"""
    monkeypatch.setenv("HYPERION_NUM_TRIALS", "7")
    monkeypatch.setenv("HYPERION_SSH_MACHINES", "node1:node2")

    assert hyperion.core.config.searcher.num_trials == 7
    assert hyperion.core.config.executor.ssh.machines == ["node1", "node2"]
