import pytest

from pot_provider.config import Config, load_config, parse_config
from pot_provider.solver import DEFAULT_REQUEST_KEY


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("TOKEN_TTL", raising=False)
    monkeypatch.delenv("POT_SOLVER", raising=False)


def test_defaults_without_file():
    config = load_config()

    assert config == Config()
    assert config.token_ttl_hours == 6
    assert config.request_key == DEFAULT_REQUEST_KEY
    assert config.fetch.max_attempts == 3
    assert config.fetch.retry_delay_seconds == 5.0
    assert config.solver is None


def test_load_config_parses_file(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("""
token_ttl_hours: 12
request_key: my-key
solver: my_solvers.botguard:create_solver
fetch:
  max_attempts: 4
  retry_delay_seconds: 2.5
  timeout_seconds: 10
""")

    config = load_config(str(config_file))

    assert config.token_ttl_hours == 12
    assert config.request_key == "my-key"
    assert config.solver == "my_solvers.botguard:create_solver"
    assert config.fetch.max_attempts == 4
    assert config.fetch.retry_delay_seconds == 2.5
    assert config.fetch.timeout_seconds == 10.0


def test_empty_file_gives_defaults(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    assert load_config(str(config_file)) == Config()


def test_load_config_substitutes_env_vars(tmp_path, monkeypatch):
    monkeypatch.setenv("POT_REQUEST_KEY", "from-env")
    config_file = tmp_path / "config.yaml"
    config_file.write_text("request_key: ${POT_REQUEST_KEY}\n")

    config = load_config(str(config_file))

    assert config.request_key == "from-env"


def test_load_config_missing_env_var_raises(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("request_key: ${POT_UNSET_VARIABLE_XYZ}\n")

    with pytest.raises(ValueError, match="POT_UNSET_VARIABLE_XYZ"):
        load_config(str(config_file))


def test_token_ttl_env_overrides_file(tmp_path, monkeypatch):
    monkeypatch.setenv("TOKEN_TTL", "24")
    config_file = tmp_path / "config.yaml"
    config_file.write_text("token_ttl_hours: 12\n")

    assert load_config(str(config_file)).token_ttl_hours == 24


def test_solver_env_overrides_file():
    config = parse_config({"solver": "a:b"}, environ={"POT_SOLVER": "c:d"})

    assert config.solver == "c:d"


@pytest.mark.parametrize("raw,environ", [
    ({}, {"TOKEN_TTL": "six"}),
    ({"token_ttl_hours": 0}, {}),
    ({"fetch": {"max_attempts": 0}}, {}),
    ({"fetch": {"retry_delay_seconds": -1}}, {}),
    ({"fetch": {"timeout_seconds": "soon"}}, {}),
])
def test_invalid_values_raise(raw, environ):
    with pytest.raises(ValueError):
        parse_config(raw, environ=environ)
