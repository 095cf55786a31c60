from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .types import ScoringCoefficients

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Top-level configuration for the application.

    - `root_dir`: Repository root (where `.env` is looked up).
    - `max_len`: Longest loop the search will follow.
    - `top_k`: Cap on the number of loops returned by one search.
    - `alpha`: Impact/control blend of the pairwise weight.
    - `min_loop_length`: Shortest loop reported (2 keeps mutual links).
    - `coefficients`: Weights of the weighted loop value terms.
    - `use_adjusted_independence`: Use the length-adjusted overlap as CIV.
    - `host`/`port`: Bind address of the HTTP server.
    """

    root_dir: Path
    max_len: int = 8
    top_k: int = 1000
    alpha: float = 0.5
    min_loop_length: int = 2
    coefficients: ScoringCoefficients = field(default_factory=ScoringCoefficients)
    use_adjusted_independence: bool = False
    host: str = "127.0.0.1"
    port: int = 5000


def detect_repo_root() -> Path:
    """Detect repository root by walking upwards until `pyproject.toml` or `.env` exists.

    Falls back to current working directory.
    """
    cwd = Path.cwd().resolve()
    for p in [cwd] + list(cwd.parents):
        if (p / "pyproject.toml").exists() or (p / ".env").exists():
            return p
    return cwd


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


def load_config() -> AppConfig:
    # Load .env file from repository root
    root = detect_repo_root()
    load_dotenv(root / ".env")

    coefficients = ScoringCoefficients(
        composite=_env_float("CLD_COEF_COMPOSITE", 1.0),
        steer=_env_float("CLD_COEF_STEER", 1.0),
        independence=_env_float("CLD_COEF_INDEPENDENCE", 1.0),
    )
    return AppConfig(
        root_dir=root,
        max_len=_env_int("CLD_MAX_LEN", 8),
        top_k=_env_int("CLD_TOP_K", 1000),
        alpha=_env_float("CLD_ALPHA", 0.5),
        min_loop_length=_env_int("CLD_MIN_LOOP_LENGTH", 2),
        coefficients=coefficients,
        use_adjusted_independence=os.getenv("CLD_ADJUSTED_INDEPENDENCE", "0") in {"1", "true", "True"},
        host=os.getenv("CLD_HOST", "127.0.0.1"),
        port=_env_int("CLD_PORT", 5000),
    )
