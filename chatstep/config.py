from __future__ import annotations

import os
import pathlib
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError


RESERVED_TABLES = {"scenarios", "aliases", "execution"}

DEFAULT_CONFIG = '''\
##################################################
# Profiles: one table per endpoint/model/key.    #
##################################################
[example-reasoning]
API_KEY      = "sk-REPLACE-ME"
MODEL_NAME   = "QwQ-32B"
API_ENDPOINT = "https://api.example.com/v1/chat/completions"

[example-chat]
API_KEY      = "sk-REPLACE-ME"
MODEL_NAME   = "glm-4-flash"
API_ENDPOINT = "https://open.bigmodel.cn/api/paas/v4/chat/completions"

##################################################
# Scenarios: default profile per use case.       #
##################################################
[scenarios]
# chatstep ask
dialogue      = "example-chat"
# chatstep run
multifunction = "example-chat"

##################################################
# Aliases: chatstep <name> [args...]             #
# {0}, {1}, ... are replaced by the arguments.   #
##################################################
[aliases]
example1 = { prompt = "Generate a random number and save it to a file" }
example2 = { prompt = "Create a Python project named {0} with a pyproject.toml and a README.md", profile = "example-reasoning" }

# [execution]
# stderr_is_failure = true   # any stderr output counts as a failed run
# max_fix_attempts  = 0      # 0 = keep repairing while you approve
'''


@dataclass(frozen=True)
class Profile:
    name: str
    api_key: str = field(repr=False)
    model_name: str
    endpoint: str


@dataclass(frozen=True)
class Scenarios:
    dialogue: str
    multifunction: str


@dataclass(frozen=True)
class Alias:
    name: str
    prompt: str
    profile: Optional[str] = None


@dataclass(frozen=True)
class ExecutionSettings:
    stderr_is_failure: bool = True
    max_fix_attempts: Optional[int] = None  # None = unbounded
    timeout: float = 1200.0


@dataclass(frozen=True)
class ChatstepConfig:
    profiles: Dict[str, Profile]
    scenarios: Scenarios
    aliases: Dict[str, Alias] = field(default_factory=dict)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)

    def profile(self, name: str) -> Profile:
        try:
            return self.profiles[name]
        except KeyError:
            raise ConfigurationError(
                f"profile '{name}' does not exist, check your chatstep.conf"
            ) from None

    def alias(self, name: str) -> Alias:
        try:
            return self.aliases[name]
        except KeyError:
            raise ConfigurationError(f"alias '{name}' is not defined") from None


def default_config_path(env: Mapping[str, str] | None = None) -> pathlib.Path:
    env = os.environ if env is None else env
    explicit = env.get("CHATSTEP_CONFIG")
    if explicit:
        return pathlib.Path(explicit).expanduser()
    base = env.get("XDG_CONFIG_HOME")
    root = pathlib.Path(base).expanduser() if base else pathlib.Path.home() / ".config"
    return root / "chatstep" / "chatstep.conf"


def ensure_default_config(path: str | os.PathLike[str]) -> bool:
    """Write the template config at `path` unless a file is already there.

    Returns True when a new file was written.
    """
    p = pathlib.Path(path)
    if p.exists():
        return False
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(DEFAULT_CONFIG, encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot write {p}: {e}") from e
    return True


def load_toml(path: str | os.PathLike[str]) -> Dict[str, Any]:
    try:
        data = pathlib.Path(path).read_bytes()
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    try:
        return tomllib.loads(data.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"cannot parse {path}: {e}") from e


def from_file(path: str | os.PathLike[str]) -> ChatstepConfig:
    p = pathlib.Path(path)
    if not p.exists():
        raise ConfigurationError(f"config file not found: {p}")
    return parse_config(load_toml(p))


def _require_str(table: Mapping[str, Any], key: str, where: str) -> str:
    value = table.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{where}: missing or invalid '{key}'")
    return value


def _parse_execution(raw: Any) -> ExecutionSettings:
    if raw is None:
        return ExecutionSettings()
    if not isinstance(raw, dict):
        raise ConfigurationError("[execution] must be a table")
    stderr_is_failure = raw.get("stderr_is_failure", True)
    if not isinstance(stderr_is_failure, bool):
        raise ConfigurationError("[execution] stderr_is_failure must be true or false")
    limit = raw.get("max_fix_attempts", 0)
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 0:
        raise ConfigurationError("[execution] max_fix_attempts must be a non-negative integer")
    return ExecutionSettings(
        stderr_is_failure=stderr_is_failure,
        max_fix_attempts=limit or None,
    )


def parse_config(data: Mapping[str, Any]) -> ChatstepConfig:
    profiles: Dict[str, Profile] = {}
    for name, table in data.items():
        if name in RESERVED_TABLES:
            continue
        if not isinstance(table, dict):
            raise ConfigurationError(f"profile '{name}' must be a table")
        where = f"profile [{name}]"
        profiles[name] = Profile(
            name=name,
            api_key=_require_str(table, "API_KEY", where),
            model_name=_require_str(table, "MODEL_NAME", where),
            endpoint=_require_str(table, "API_ENDPOINT", where),
        )

    raw_scenarios = data.get("scenarios")
    if not isinstance(raw_scenarios, dict):
        raise ConfigurationError("missing [scenarios] table")
    scenarios = Scenarios(
        dialogue=_require_str(raw_scenarios, "dialogue", "[scenarios]"),
        multifunction=_require_str(raw_scenarios, "multifunction", "[scenarios]"),
    )

    aliases: Dict[str, Alias] = {}
    raw_aliases = data.get("aliases", {})
    if not isinstance(raw_aliases, dict):
        raise ConfigurationError("[aliases] must be a table")
    for name, entry in raw_aliases.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"alias '{name}' must be a table with a 'prompt'")
        profile = entry.get("profile")
        if profile is not None and not isinstance(profile, str):
            raise ConfigurationError(f"alias '{name}': 'profile' must be a string")
        aliases[name] = Alias(
            name=name,
            prompt=_require_str(entry, "prompt", f"alias '{name}'"),
            profile=profile,
        )

    return ChatstepConfig(
        profiles=profiles,
        scenarios=scenarios,
        aliases=aliases,
        execution=_parse_execution(data.get("execution")),
    )


def replace_placeholders(template: str, args: list[str] | tuple[str, ...]) -> str:
    result = template
    for i, arg in enumerate(args):
        result = result.replace(f"{{{i}}}", arg)
    return result


def _env_flag(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_number(env: Mapping[str, str], name: str, kind: type) -> Any:
    value = env.get(name)
    if value is None or value == "":
        return None
    try:
        return kind(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class RunSettings:
    profile: Optional[str]
    execution: ExecutionSettings


def merge_settings(
    file_cfg: ChatstepConfig,
    env: Mapping[str, str],
    cli: Dict[str, Any],
) -> RunSettings:
    # CLI > environment > config file
    profile = cli.get("profile") or env.get("CHATSTEP_PROFILE") or None

    max_fixes = cli.get("max_fixes")
    if max_fixes is None:
        max_fixes = _env_number(env, "CHATSTEP_MAX_FIXES", int)
    if max_fixes is None:
        max_fixes = file_cfg.execution.max_fix_attempts
    if max_fixes is not None and max_fixes < 0:
        raise ConfigurationError("the repair limit must not be negative")

    allow_stderr = cli.get("allow_stderr") or _env_flag(env.get("CHATSTEP_ALLOW_STDERR"))
    if allow_stderr is None:
        stderr_is_failure = file_cfg.execution.stderr_is_failure
    else:
        stderr_is_failure = not allow_stderr

    timeout = _env_number(env, "CHATSTEP_TIMEOUT", float)
    if timeout is None:
        timeout = file_cfg.execution.timeout

    return RunSettings(
        profile=profile,
        execution=ExecutionSettings(
            stderr_is_failure=stderr_is_failure,
            max_fix_attempts=max_fixes or None,
            timeout=timeout,
        ),
    )


def resolve_profile_name(
    cfg: ChatstepConfig,
    command: str,
    *,
    cli_profile: Optional[str] = None,
    alias_profile: Optional[str] = None,
) -> str:
    """Pick the profile name for `command` ("run" or "ask").

    An alias-level profile only exists for alias invocations, which always
    take the `run` path.
    """
    if command == "run":
        return alias_profile or cli_profile or cfg.scenarios.multifunction
    if command == "ask":
        return cli_profile or cfg.scenarios.dialogue
    raise ConfigurationError(f"no scenario for command '{command}'")
