import pytest

from chatstep.config import (
    ChatstepConfig,
    ExecutionSettings,
    default_config_path,
    ensure_default_config,
    from_file,
    merge_settings,
    replace_placeholders,
    resolve_profile_name,
)
from chatstep.errors import ConfigurationError


SAMPLE = """
[fast]
API_KEY      = "k-fast"
MODEL_NAME   = "fast-model"
API_ENDPOINT = "https://fast.example/v1/chat/completions"

[smart]
API_KEY      = "k-smart"
MODEL_NAME   = "smart-model"
API_ENDPOINT = "https://smart.example/v1/chat/completions"

[scenarios]
dialogue      = "fast"
multifunction = "smart"

[aliases]
proj = { prompt = "create {0} named {1}", profile = "fast" }
plain = { prompt = "say hi" }
""".strip()


@pytest.fixture
def cfg(tmp_path) -> ChatstepConfig:
    p = tmp_path / "chatstep.conf"
    p.write_text(SAMPLE)
    return from_file(p)


def test_load_profiles_scenarios_aliases(cfg):
    assert set(cfg.profiles) == {"fast", "smart"}
    smart = cfg.profile("smart")
    assert smart.api_key == "k-smart"
    assert smart.model_name == "smart-model"
    assert smart.endpoint == "https://smart.example/v1/chat/completions"
    assert "k-smart" not in repr(smart)
    assert cfg.scenarios.dialogue == "fast"
    assert cfg.alias("proj").profile == "fast"
    assert cfg.alias("plain").profile is None
    assert cfg.execution == ExecutionSettings()


def test_unknown_profile_and_alias_are_configuration_errors(cfg):
    with pytest.raises(ConfigurationError):
        cfg.profile("missing")
    with pytest.raises(ConfigurationError):
        cfg.alias("missing")


def test_run_resolves_to_multifunction_and_ask_to_dialogue(cfg):
    assert resolve_profile_name(cfg, "run") == "smart"
    assert resolve_profile_name(cfg, "ask") == "fast"


def test_global_profile_beats_scenario_default(cfg):
    assert resolve_profile_name(cfg, "run", cli_profile="fast") == "fast"
    assert resolve_profile_name(cfg, "ask", cli_profile="smart") == "smart"


def test_alias_profile_beats_global_profile(cfg):
    assert resolve_profile_name(cfg, "run", cli_profile="smart", alias_profile="fast") == "fast"
    assert resolve_profile_name(cfg, "run", cli_profile="fast", alias_profile=None) == "fast"


def test_placeholders():
    assert replace_placeholders("create {0} named {1}", ["a", "b"]) == "create a named b"
    assert replace_placeholders("create {0} named {1}", ["a"]) == "create a named {1}"
    assert replace_placeholders("{0} and {0}", ["x", "unused"]) == "x and x"
    assert replace_placeholders("no slots", []) == "no slots"


def test_missing_scenarios_is_error(tmp_path):
    p = tmp_path / "c.conf"
    p.write_text('[a]\nAPI_KEY="k"\nMODEL_NAME="m"\nAPI_ENDPOINT="u"\n')
    with pytest.raises(ConfigurationError):
        from_file(p)


def test_incomplete_profile_is_error(tmp_path):
    p = tmp_path / "c.conf"
    p.write_text('[a]\nAPI_KEY="k"\n[scenarios]\ndialogue="a"\nmultifunction="a"\n')
    with pytest.raises(ConfigurationError) as exc:
        from_file(p)
    assert "MODEL_NAME" in str(exc.value)


def test_malformed_toml_is_error(tmp_path):
    p = tmp_path / "c.conf"
    p.write_text("[a\nnot toml")
    with pytest.raises(ConfigurationError):
        from_file(p)


def test_missing_file_is_error(tmp_path):
    with pytest.raises(ConfigurationError):
        from_file(tmp_path / "nope.conf")


def test_execution_table(tmp_path):
    p = tmp_path / "c.conf"
    p.write_text(SAMPLE + "\n\n[execution]\nstderr_is_failure = false\nmax_fix_attempts = 4\n")
    cfg = from_file(p)
    assert cfg.execution.stderr_is_failure is False
    assert cfg.execution.max_fix_attempts == 4
    assert "execution" not in cfg.profiles


def test_default_config_is_written_once_and_loads(tmp_path):
    path = tmp_path / "sub" / "chatstep.conf"
    assert ensure_default_config(path) is True
    assert ensure_default_config(path) is False
    cfg = from_file(path)
    assert cfg.scenarios.dialogue in cfg.profiles
    assert cfg.scenarios.multifunction in cfg.profiles
    assert "{0}" in cfg.alias("example2").prompt


def test_default_config_path_layers(tmp_path):
    assert default_config_path({"CHATSTEP_CONFIG": str(tmp_path / "x.conf")}) == tmp_path / "x.conf"
    assert default_config_path({"XDG_CONFIG_HOME": str(tmp_path)}) == tmp_path / "chatstep" / "chatstep.conf"
    assert default_config_path({}).parts[-3:] == (".config", "chatstep", "chatstep.conf")


def test_merge_settings_cli_over_env_over_file(cfg):
    env = {"CHATSTEP_PROFILE": "fast", "CHATSTEP_MAX_FIXES": "5", "CHATSTEP_TIMEOUT": "30"}
    merged = merge_settings(cfg, env, {"profile": "smart", "max_fixes": 2, "allow_stderr": False})
    assert merged.profile == "smart"  # from CLI
    assert merged.execution.max_fix_attempts == 2  # from CLI
    assert merged.execution.timeout == 30.0  # from ENV
    assert merged.execution.stderr_is_failure is True  # from file default

    merged = merge_settings(cfg, env, {})
    assert merged.profile == "fast"
    assert merged.execution.max_fix_attempts == 5


def test_merge_settings_defaults(cfg):
    merged = merge_settings(cfg, {}, {"profile": None, "max_fixes": None, "allow_stderr": False})
    assert merged.profile is None
    assert merged.execution.max_fix_attempts is None
    assert merged.execution.timeout == 1200.0


def test_merge_settings_allow_stderr(cfg):
    assert merge_settings(cfg, {}, {"allow_stderr": True}).execution.stderr_is_failure is False
    env = {"CHATSTEP_ALLOW_STDERR": "1"}
    assert merge_settings(cfg, env, {}).execution.stderr_is_failure is False


def test_merge_settings_rejects_bad_numbers(cfg):
    with pytest.raises(ConfigurationError):
        merge_settings(cfg, {"CHATSTEP_MAX_FIXES": "many"}, {})
    with pytest.raises(ConfigurationError):
        merge_settings(cfg, {}, {"max_fixes": -1})


def test_unreadable_config_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError) as exc:
        from_file(tmp_path)
    assert "cannot read" in str(exc.value)


def test_default_config_write_failure_is_configuration_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(ConfigurationError) as exc:
        ensure_default_config(blocker / "chatstep" / "chatstep.conf")
    assert "cannot write" in str(exc.value)
