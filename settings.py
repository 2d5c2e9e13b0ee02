"""
Runtime configuration for the daily server.

Everything comes from environment variables and everything is optional:
with nothing set the server runs in dev mode on the local file backend.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

# Used when no daily secret is configured (dev mode)
DEV_SECRET = "dev-secret"

DEFAULT_KV_TIMEOUT = 5.0
DEFAULT_PORT = 5005


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


@dataclass
class Settings:
    """Server configuration, see from_env() for the variable names."""

    # secret keying the daily permutation; None means dev mode
    daily_secret: Optional[str] = None

    # Upstash / Vercel KV REST credentials
    kv_url: Optional[str] = None
    kv_token: Optional[str] = None
    kv_timeout: float = DEFAULT_KV_TIMEOUT

    # force the local file backend even when KV credentials are present
    use_file_stats: bool = False

    data_dir: Path = Path("data")
    var_dir: Path = Path("var")

    production: bool = False
    port: int = DEFAULT_PORT

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.var_dir = Path(self.var_dir)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            daily_secret=_first(env, "FRAMEMOJI_DAILY_SECRET", "EMOVI_DAILY_SECRET"),
            kv_url=_first(env, "KV_REST_API_URL", "UPSTASH_REDIS_REST_URL"),
            kv_token=_first(env, "KV_REST_API_TOKEN", "UPSTASH_REDIS_REST_TOKEN"),
            kv_timeout=float(_first(env, "FRAMEMOJI_KV_TIMEOUT") or DEFAULT_KV_TIMEOUT),
            use_file_stats=_first(env, "EMOVI_USE_FILE_STATS") == "1",
            data_dir=Path(_first(env, "FRAMEMOJI_DATA_DIR") or "data"),
            var_dir=Path(_first(env, "FRAMEMOJI_VAR_DIR") or "var"),
            production=_first(env, "FRAMEMOJI_ENV") == "production",
            port=int(_first(env, "PORT") or DEFAULT_PORT),
        )

    @property
    def dev_mode(self) -> bool:
        return self.daily_secret is None

    @property
    def secret(self) -> str:
        return self.daily_secret or DEV_SECRET

    @property
    def use_kv(self) -> bool:
        return bool(self.kv_url and self.kv_token and not self.use_file_stats)

    @property
    def puzzles_path(self) -> Path:
        return self.data_dir / "puzzles.json"

    @property
    def movies_path(self) -> Path:
        return self.data_dir / "movies.json"
