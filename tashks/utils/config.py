"""Engine configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

SWEEP_POLICY_ABORT = "abort"
SWEEP_POLICY_SKIP = "skip"
SWEEP_POLICIES = (SWEEP_POLICY_ABORT, SWEEP_POLICY_SKIP)


def default_hooks_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    """Resolve the hooks directory: $XDG_CONFIG_HOME/tashks/hooks, else ~/.config/tashks/hooks."""
    env = os.environ if env is None else env

    xdg_config_home = env.get("XDG_CONFIG_HOME", "")
    if xdg_config_home:
        return Path(xdg_config_home) / "tashks" / "hooks"

    home = env.get("HOME", "")
    if home:
        return Path(home) / ".config" / "tashks" / "hooks"
    return Path(".config") / "tashks" / "hooks"


def default_data_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env

    xdg_data_home = env.get("XDG_DATA_HOME", "")
    if xdg_data_home:
        return Path(xdg_data_home) / "tashks"

    home = env.get("HOME", "")
    if home:
        return Path(home) / ".local" / "share" / "tashks"
    return Path(".local") / "share" / "tashks"


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"HOOK_TIMEOUT_SECONDS must be a number, got {raw!r}")
    return value if value > 0 else None


@dataclass(frozen=True)
class TashksConfig:
    """Runtime settings for the store, hook pipeline and sweep."""
    data_dir: Path
    hooks_dir: Path
    hook_timeout_seconds: Optional[float] = None
    sweep_failure_policy: str = SWEEP_POLICY_ABORT

    def __post_init__(self):
        if self.sweep_failure_policy not in SWEEP_POLICIES:
            raise ValueError(
                f"sweep_failure_policy must be one of {SWEEP_POLICIES}, got {self.sweep_failure_policy!r}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TashksConfig":
        """Build configuration from TASHKS_DATA_DIR, TASHKS_HOOKS_DIR, HOOK_TIMEOUT_SECONDS, SWEEP_FAILURE_POLICY."""
        env = os.environ if env is None else env

        data_dir_raw = env.get("TASHKS_DATA_DIR", "").strip()
        hooks_dir_raw = env.get("TASHKS_HOOKS_DIR", "").strip()

        return cls(
            data_dir=Path(data_dir_raw).expanduser() if data_dir_raw else default_data_dir(env),
            hooks_dir=Path(hooks_dir_raw).expanduser() if hooks_dir_raw else default_hooks_dir(env),
            hook_timeout_seconds=_parse_timeout(env.get("HOOK_TIMEOUT_SECONDS")),
            sweep_failure_policy=env.get("SWEEP_FAILURE_POLICY", SWEEP_POLICY_ABORT).strip().lower(),
        )
