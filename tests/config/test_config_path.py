from ledger_engine.config import ENGINE_CONFIG_ENV_VAR, EngineConfig, load_engine_config, resolve_engine_config_path


def test_load_from_default_location(tmp_path, monkeypatch):
    monkeypatch.delenv(ENGINE_CONFIG_ENV_VAR, raising=False)
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "engine-config.json").write_text('{"retry": {"retries": 7}}')

    config, path = load_engine_config(tmp_path)

    assert path == (config_dir / "engine-config.json").resolve()
    assert config.retry.retries == 7


def test_env_override(tmp_path, monkeypatch):
    override = tmp_path / "custom.json"
    override.write_text('{"log_level": "warning"}')
    monkeypatch.setenv(ENGINE_CONFIG_ENV_VAR, str(override))

    config, path = load_engine_config(tmp_path / "elsewhere")

    assert path == override
    assert config.log_level == "WARNING"


def test_relative_env_value_resolves_from_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(ENGINE_CONFIG_ENV_VAR, "conf/e.json")

    assert resolve_engine_config_path() == (tmp_path / "conf" / "e.json").resolve()


def test_missing_file_yields_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(ENGINE_CONFIG_ENV_VAR, raising=False)

    config, path = load_engine_config(tmp_path)

    assert not path.exists()
    assert config == EngineConfig()
