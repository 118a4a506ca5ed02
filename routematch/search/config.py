from __future__ import annotations
import os, json
from pathlib import Path
from typing import Any, Dict

def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name, str(default)).strip().lower()
    return v in ("1", "true", "yes", "y", "on")

def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return float(default)

def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return int(default)

MAX_INTERLEAVINGS = _env_int("MAX_INTERLEAVINGS", 500)
DEFAULT_MAX_DEVIATION_KM = _env_float("DEFAULT_MAX_DEVIATION_KM", 50.0)
SEARCH_WORKERS = _env_int("SEARCH_WORKERS", 1)
INCLUDE_BREAKDOWN = _env_bool("INCLUDE_BREAKDOWN", False)

SETTINGS_KEYS = ("max_interleavings", "default_max_deviation_km", "search_workers", "include_breakdown")

def dataset_dir() -> Path:
    base = Path(os.getenv("PRIVATE_DATA_DIR", "./data/private")).resolve()
    d = base / "active"
    return d if d.exists() else base

def _load_json(path: Path, default: Any) -> Any:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        pass
    return default

def read_search_env_defaults() -> Dict[str, Any]:
    """Re-read the environment; module constants only reflect import time."""
    return {
        "max_interleavings": _env_int("MAX_INTERLEAVINGS", 500),
        "default_max_deviation_km": _env_float("DEFAULT_MAX_DEVIATION_KM", 50.0),
        "search_workers": _env_int("SEARCH_WORKERS", 1),
        "include_breakdown": _env_bool("INCLUDE_BREAKDOWN", False),
    }

def load_search_settings() -> Dict[str, Any]:
    """
    Environment defaults overlaid with search_settings.json from the active
    dataset. Unknown keys are ignored; values that fail to coerce keep the
    default.
    """
    out = read_search_env_defaults()
    raw = _load_json(dataset_dir() / "search_settings.json", {})
    if not isinstance(raw, dict):
        return out
    for k in SETTINGS_KEYS:
        if k not in raw:
            continue
        try:
            if k == "include_breakdown":
                v = raw[k]
                out[k] = v if isinstance(v, bool) else str(v).strip().lower() in ("1", "true", "yes", "y", "on")
            elif k == "default_max_deviation_km":
                out[k] = float(raw[k])
            else:
                out[k] = int(raw[k])
        except Exception:
            continue
    out["max_interleavings"] = max(1, out["max_interleavings"])
    out["search_workers"] = max(1, out["search_workers"])
    return out
