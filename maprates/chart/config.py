from dataclasses import dataclass, field
from typing import Dict, List, Any
import os
import yaml
from pathlib import Path
from maprates.utils.paths import find_project_root


DEFAULT_INDICATORS: Dict[str, Dict[str, Any]] = {
    "sma": {"period": 20, "color": "#ff6b35"},
    "bollinger": {"period": 20, "color": "#9c27b0"},
    "rsi": {"period": 14, "color": "#ea4335"},
}


@dataclass
class ChartConfig:
    """Chart, overlay and indicator settings."""

    # Overlays
    overlay_colors: List[str] = field(
        default_factory=lambda: ["#34a853", "#ea4335", "#fbbc04", "#9c27b0", "#ff6b35"]
    )
    max_overlays_visible: int = 3
    normalize_overlays: bool = True

    # Tier caps
    max_destinations: Dict[str, int] = field(default_factory=lambda: {"free": 2, "premium": 5})

    # Indicators
    indicators: Dict[str, Dict[str, Any]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_INDICATORS.items()}
    )
    bollinger_width: float = 0.5  # observed default, narrower than the usual 2.0
    # Rendered period = min(configured period, len(data) // divisor)
    period_divisors: Dict[str, int] = field(
        default_factory=lambda: {"sma": 2, "bollinger": 2, "rsi": 3}
    )

    # Ranges
    timeframes: Dict[str, int] = field(
        default_factory=lambda: {"7D": 7, "1M": 30, "3M": 90, "1Y": 365}
    )
    default_timeframe: str = "7D"

    def destination_cap(self, is_premium: bool) -> int:
        return int(self.max_destinations["premium" if is_premium else "free"])

    def timeframe_days(self, label: str) -> int:
        return int(self.timeframes.get(label, self.timeframes[self.default_timeframe]))

    @classmethod
    def from_yaml(cls, config_path: str = "config.yaml") -> "ChartConfig":
        """Load the `chart:` section; missing keys keep their defaults."""
        env_cfg = os.getenv("MAPRATES_CONFIG")
        cfg_path = Path(env_cfg).expanduser() if env_cfg else Path(config_path)
        if not cfg_path.exists():
            candidate = find_project_root() / cfg_path.name
            if candidate.exists():
                cfg_path = candidate
        if not cfg_path.exists():
            return cls()

        with open(cfg_path, "r") as f:
            full_config = yaml.safe_load(f) or {}
        chart = dict(full_config.get("chart") or {})

        # Merge per-indicator settings over the defaults
        indicators = {k: dict(v) for k, v in DEFAULT_INDICATORS.items()}
        for key, settings in (chart.pop("indicators", None) or {}).items():
            indicators.setdefault(key, {}).update(settings or {})

        known = set(cls.__dataclass_fields__)
        kwargs = {k: v for k, v in chart.items() if k in known}
        if "timeframes" in kwargs:
            kwargs["timeframes"] = {str(k): int(v) for k, v in kwargs["timeframes"].items()}
        return cls(indicators=indicators, **kwargs)
