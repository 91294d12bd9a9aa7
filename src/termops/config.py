"""
Runtime configuration for the command execution core.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

from termops.errors import ConfigurationError

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
DEFAULT_GRACE_PERIOD_MS = 5_000
DEFAULT_HISTORY_SIZE = 1000


def _default_base_dir() -> Path:
    return Path(os.environ.get("TERMINAL_BASE_DIR") or Path.home())


def _default_safe_roots() -> tuple[Path, ...]:
    roots = [Path.home(), Path("/tmp"), Path("/var/tmp"), Path(tempfile.gettempdir())]
    # Keep order, drop duplicates
    return tuple(dict.fromkeys(roots))


@dataclass(frozen=True)
class TerminalConfig:
    """
    Limits and defaults shared by the registry, runner and dispatcher.

    Attributes:
        base_dir: Working directory used when an operation names none.
        max_timeout_ms: Default and upper bound for execute/interactive timeouts.
        max_output_bytes: Per-stream capture limit for stdout and stderr.
        grace_period_ms: Delay between SIGTERM and SIGKILL.
        history_size: Number of results kept in the dispatcher history.
        safe_roots: Directories a working directory is expected to live under.
        confine_to_safe_roots: Reject (instead of warn about) working
            directories outside ``safe_roots``.
        inherit_interactive_stdio: Wire interactive commands to the parent's
            terminal instead of capturing their output.
    """

    base_dir: Path = field(default_factory=_default_base_dir)
    max_timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS
    history_size: int = DEFAULT_HISTORY_SIZE
    safe_roots: tuple[Path, ...] = field(default_factory=_default_safe_roots)
    confine_to_safe_roots: bool = False
    inherit_interactive_stdio: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_dir", Path(self.base_dir).expanduser())
        object.__setattr__(self, "safe_roots", tuple(Path(p) for p in self.safe_roots))
        for name in ("max_timeout_ms", "max_output_bytes", "grace_period_ms", "history_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    @property
    def grace_period(self) -> float:
        """Grace window in seconds."""
        return self.grace_period_ms / 1000

    def with_overrides(self, **changes: object) -> TerminalConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TerminalConfig:
        """
        Build a config from ``TERMINAL_*`` environment variables.

        Recognised variables: TERMINAL_BASE_DIR, TERMINAL_MAX_TIMEOUT_MS,
        TERMINAL_MAX_OUTPUT_BYTES, TERMINAL_GRACE_PERIOD_MS,
        TERMINAL_HISTORY_SIZE. Unset variables keep their defaults.

        Raises:
            ConfigurationError: If a numeric variable is not a positive integer.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        base_dir = env.get("TERMINAL_BASE_DIR")
        kwargs["base_dir"] = Path(base_dir) if base_dir else Path.home()

        numeric = {
            "TERMINAL_MAX_TIMEOUT_MS": "max_timeout_ms",
            "TERMINAL_MAX_OUTPUT_BYTES": "max_output_bytes",
            "TERMINAL_GRACE_PERIOD_MS": "grace_period_ms",
            "TERMINAL_HISTORY_SIZE": "history_size",
        }
        for var, attr in numeric.items():
            raw = env.get(var)
            if raw is None or not raw.strip():
                continue
            try:
                kwargs[attr] = int(raw)
            except ValueError:
                raise ConfigurationError(f"{var} must be an integer, got {raw!r}") from None

        return cls(**kwargs)  # type: ignore[arg-type]
