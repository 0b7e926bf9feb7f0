import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dishguard.core.logging_config import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class AnalysisConfig:
    enabled: bool = True
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 3000
    timeout_seconds: float = 60.0


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _config_path() -> Path:
    return PROJECT_ROOT / "config" / "analysis_config.json"


def menu_snapshot_path() -> Path:
    """Snapshot file for the local menu source; MENU_SNAPSHOT_PATH overrides the bundled sample."""
    override = os.getenv("MENU_SNAPSHOT_PATH")
    if override:
        return Path(override)
    return PROJECT_ROOT / "data" / "sample_menu.json"


def load_analysis_config(path: Optional[Path] = None) -> AnalysisConfig:
    config_path = path or _config_path()
    data: Dict[str, Any] = {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        pass
    except json.JSONDecodeError as exc:
        logger.warning(f"Invalid analysis config JSON at {config_path}: {exc}")

    defaults = AnalysisConfig()
    enabled = _as_bool(data.get("enabled"), defaults.enabled)
    model = str(data.get("model") or defaults.model)

    # Environment wins over the JSON file.
    enabled = _as_bool(os.getenv("DIETARY_ANALYSIS_ENABLED"), enabled)
    model = os.getenv("DIETARY_ANALYSIS_MODEL") or model

    return AnalysisConfig(
        enabled=enabled,
        model=model,
        temperature=_as_float(data.get("temperature"), defaults.temperature),
        max_tokens=_as_int(data.get("max_tokens"), defaults.max_tokens),
        timeout_seconds=_as_float(data.get("timeout_seconds"), defaults.timeout_seconds)
    )
