from __future__ import annotations

import os
import platform
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True)
class SystemInfo:
    os: str
    os_version: str
    shell: str
    shell_version: str


def is_windows() -> bool:
    return platform.system() == "Windows"


def linux_pretty_name(os_release: str | os.PathLike[str] = "/etc/os-release") -> str:
    try:
        data = Path(os_release).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return "Linux"
    for line in data.splitlines():
        if line.startswith("PRETTY_NAME="):
            return line.split("=", 1)[1].strip().strip('"')
    return "Linux"


def detect_shell(env: Mapping[str, str] | None = None) -> str:
    env = os.environ if env is None else env
    shell = env.get("SHELL")
    if shell:
        return shell
    return "cmd.exe" if is_windows() else "sh"


def shell_version(shell: str) -> str:
    try:
        proc = subprocess.run(
            [shell, "--version"],
            capture_output=True,
            stdin=subprocess.DEVNULL,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return "Unknown"
    return proc.stdout.decode("utf-8", errors="replace").strip() or "Unknown"


def host_shell_argv(shell: str, script: str) -> list[str]:
    """Command line that hands `script` to `shell` as one command string."""
    if is_windows():
        return [shell, "/C", script]
    return [shell, "-c", script]


def collect_system_info() -> SystemInfo:
    system = platform.system()
    if system == "Linux":
        os_name, os_version = "Linux", linux_pretty_name()
    elif system == "Windows":
        os_name, os_version = "Windows", platform.version() or "unknown"
    elif system == "Darwin":
        os_name, os_version = "macOS", platform.mac_ver()[0] or "unknown"
    else:
        os_name, os_version = system or "unknown", "unknown"
    shell = detect_shell()
    return SystemInfo(
        os=os_name,
        os_version=os_version,
        shell=shell,
        shell_version=shell_version(shell),
    )
