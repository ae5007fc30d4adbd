from __future__ import annotations

import argparse
import functools
import os
import sys
from typing import Optional

from .errors import ChatstepError, ConfigurationError
from .llm import CompletionClient


COMMANDS = {"run", "ask", "profiles"}
# Global options that consume the following token.
VALUE_OPTIONS = {"-p", "--profile", "--config", "--max-fixes"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatstep",
        # split_alias only knows full option spellings
        allow_abbrev=False,
        description=(
            "Turn a request into a shell script, run it after confirmation, "
            "and ask the model to repair it when it fails."
        ),
        epilog="Aliases from chatstep.conf are invoked as: chatstep <alias> [args...]",
    )
    parser.add_argument(
        "--version", action="store_true", help="Print version and exit"
    )
    parser.add_argument(
        "-p", "--profile", type=str, default=None,
        help="Profile to use instead of the scenario default",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to chatstep.conf (default: ~/.config/chatstep/chatstep.conf)",
    )
    parser.add_argument(
        "--max-fixes", type=int, default=None,
        help="Stop after this many repair requests (0 or unset: no limit)",
    )
    parser.add_argument(
        "--allow-stderr", action="store_true",
        help="Treat a zero exit status as success even if the script wrote to stderr",
    )

    subparsers = parser.add_subparsers(dest="command")

    run_p = subparsers.add_parser(
        "run",
        help="Generate a shell script for a request and execute it",
        description=(
            "Ask the model for a shell script, confirm, execute it, and offer\n"
            "repaired scripts for as long as it keeps failing."
        ),
    )
    run_p.add_argument("prompt", type=str, help="Natural-language request")

    ask_p = subparsers.add_parser("ask", help="Plain dialogue with the model")
    ask_p.add_argument("prompt", type=str, help="Question for the model")

    subparsers.add_parser("profiles", help="List configured profiles and aliases")

    return parser


def split_alias(argv: list[str]) -> tuple[list[str], Optional[str], list[str]]:
    """Split `argv` into (global options, alias name, alias args).

    The alias name is the first positional token that is not a known
    command; when there is none the alias name is None.
    """
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok == "--":
            i += 1
            break
        if tok in VALUE_OPTIONS:
            i += 2
            continue
        if tok.startswith("-"):
            i += 1
            continue
        break
    if i >= len(argv) or argv[i] in COMMANDS:
        return argv, None, []
    return argv[:i], argv[i], argv[i + 1:]


def get_completion_client(timeout: float) -> CompletionClient:
    return CompletionClient(timeout=timeout)


def load_config(path: Optional[str]):
    from .config import default_config_path, ensure_default_config, from_file

    if path:
        return from_file(path)
    cfg_path = default_config_path()
    if ensure_default_config(cfg_path):
        print(f"[chatstep] wrote a template config to {cfg_path}; add your API keys there")
    return from_file(cfg_path)


def _print_profiles(cfg) -> None:
    print("Profiles:")
    for name, prof in cfg.profiles.items():
        marks = []
        if name == cfg.scenarios.dialogue:
            marks.append("dialogue")
        if name == cfg.scenarios.multifunction:
            marks.append("multifunction")
        suffix = f"  [{', '.join(marks)}]" if marks else ""
        print(f" - {name}: {prof.model_name} @ {prof.endpoint}{suffix}")
    print("\nAliases:")
    if not cfg.aliases:
        print(" (none)")
    for name, alias in cfg.aliases.items():
        via = f" (profile: {alias.profile})" if alias.profile else ""
        print(f" - {name}: {alias.prompt}{via}")


def _ask(client: CompletionClient, prompt: str, profile) -> int:
    from .llm import Message
    from .script import PlainReply

    reply = PlainReply(client.complete([Message.user(prompt)], profile))
    print(reply.text)
    return 0


def _run(client: CompletionClient, prompt: str, profile, cfg, settings) -> int:
    from .llm import Message
    from .llm.prompts import build_generation_prompt
    from .repair import LoopState, RepairLoop
    from .script import NoExecutionNeeded, interpret
    from .shell import executor as shell_executor
    from .shell import sysinfo

    sys_info = sysinfo.collect_system_info()
    reply = client.complete(
        [Message.user(build_generation_prompt(prompt, sys_info))], profile
    )
    interpretation = interpret(reply)
    if isinstance(interpretation, NoExecutionNeeded):
        # Not a shell task: answer it as plain dialogue instead.
        dialogue = cfg.profile(cfg.scenarios.dialogue)
        return _ask(client, prompt, dialogue)

    loop = RepairLoop(
        client,
        profile,
        executor=functools.partial(
            shell_executor.execute_script,
            shell=sys_info.shell,
            stderr_is_failure=settings.execution.stderr_is_failure,
        ),
        max_repairs=settings.execution.max_fix_attempts,
    )
    result = loop.run(interpretation.script)
    if result.state is LoopState.FAILED:
        return 2
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    global_argv, alias_name, alias_args = split_alias(list(argv))

    parser = build_parser()
    # Parse args, but convert argparse-triggered exits (e.g., --help) into return codes
    try:
        args = parser.parse_args(global_argv)
    except SystemExit as e:
        return int(e.code or 0)

    if args.version:
        from . import __version__

        print(__version__)
        return 0

    if not args.command and alias_name is None:
        parser.print_help()
        return 1

    try:
        from dotenv import find_dotenv, load_dotenv
        from .config import merge_settings, replace_placeholders, resolve_profile_name

        load_dotenv(find_dotenv(usecwd=True))
        cfg = load_config(args.config)
        settings = merge_settings(
            cfg,
            os.environ,
            {
                "profile": args.profile,
                "max_fixes": args.max_fixes,
                "allow_stderr": args.allow_stderr,
            },
        )

        if args.command == "profiles":
            _print_profiles(cfg)
            return 0

        alias_profile = None
        if alias_name is not None:
            alias = cfg.alias(alias_name)
            command = "run"
            prompt = replace_placeholders(alias.prompt, alias_args)
            alias_profile = alias.profile
        else:
            command = args.command
            prompt = args.prompt

        profile = cfg.profile(
            resolve_profile_name(
                cfg, command, cli_profile=settings.profile, alias_profile=alias_profile
            )
        )
        client = get_completion_client(settings.execution.timeout)
        if command == "ask":
            return _ask(client, prompt, profile)
        return _run(client, prompt, profile, cfg, settings)
    except ConfigurationError as e:
        print(f"[chatstep] configuration error: {e}", file=sys.stderr)
        return 2
    except ChatstepError as e:
        print(f"[chatstep] error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
