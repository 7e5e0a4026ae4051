from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "ServiceConfig",
    "DEFAULT_API_KEYS",
    "DEFAULT_REQUIRED_PACKAGES",
    "get_default_root",
    "get_default_entry_point",
    "get_default_data_dir",
]

ENV_ROOT = "ZENCTL_ROOT"
ENV_ENTRY_POINT = "ZENCTL_ENTRY_POINT"
ENV_DATA_DIR = "ZENCTL_DATA_DIR"

DEFAULT_ENTRY_POINT = "server.py"

DEFAULT_API_KEYS = (
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "XAI_API_KEY",
    "DIAL_API_KEY",
    "OPENROUTER_API_KEY",
)

DEFAULT_REQUIRED_PACKAGES = ("mcp", "httpx", "google-genai", "openai")


def _default_client_config() -> Path:
    return Path.home() / ".config" / "claude" / "claude_desktop_config.json"


@dataclass(frozen=True)
class ServiceConfig:
    """Where the managed server lives and how to recognise it.

    Built once by the CLI and handed to every component; nothing downstream
    reads the working directory or the environment on its own.
    """

    root: Path
    entry_point: str = DEFAULT_ENTRY_POINT
    interpreter: str = "python"
    venv_dir: str = ".zen_venv"
    env_file: str = ".env"
    version_file: str = "version.txt"
    requirements_file: str = "requirements.txt"
    log_dir: str = "logs"
    server_log: str = "mcp_server.log"
    activity_log: str = "mcp_activity.log"
    api_keys: tuple[str, ...] = DEFAULT_API_KEYS
    required_packages: tuple[str, ...] = DEFAULT_REQUIRED_PACKAGES
    client_config: Path = field(default_factory=_default_client_config)
    client_server_name: str = "zen-server"

    def __post_init__(self) -> None:
        # Frozen, so go through object.__setattr__ to normalise the root.
        object.__setattr__(self, "root", Path(self.root).expanduser().resolve())

    @property
    def entry_point_path(self) -> Path:
        return self.root / self.entry_point

    @property
    def venv_path(self) -> Path:
        return self.root / self.venv_dir

    @property
    def venv_python(self) -> Path:
        return self.venv_path / "bin" / "python"

    @property
    def venv_pip(self) -> Path:
        return self.venv_path / "bin" / "pip"

    @property
    def log_path(self) -> Path:
        return self.root / self.log_dir

    def site_packages_dirs(self) -> list[Path]:
        """Return the venv's ``site-packages`` directories (may be empty)."""
        lib = self.venv_path / "lib"
        if not lib.is_dir():
            return []
        return sorted(p for p in lib.glob("python*/site-packages") if p.is_dir())


def get_default_root() -> Path:
    """Return default installation root, honouring *ZENCTL_ROOT*."""

    if os.environ.get(ENV_ROOT):
        return Path(os.environ[ENV_ROOT]).expanduser().resolve()
    return Path.cwd()


def get_default_entry_point() -> str:
    """Return default entry-point file name, honouring *ZENCTL_ENTRY_POINT*."""

    return os.environ.get(ENV_ENTRY_POINT) or DEFAULT_ENTRY_POINT


def get_default_data_dir() -> Path:
    """Return default data directory, honouring *ZENCTL_DATA_DIR*."""

    if os.environ.get(ENV_DATA_DIR):
        return Path(os.environ[ENV_DATA_DIR]).expanduser().resolve()

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "zenctl"
    elif sys.platform.startswith("linux"):
        return (
            Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")
            / "zenctl"
        )
    return Path.home() / ".zenctl"
