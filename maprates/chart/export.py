"""CSV and JSON export of chart datasets and conversions."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Union

import pandas as pd

from maprates.analysis.conversions import Conversion
from maprates.chart.dataset import ChartDataset
from maprates.utils.errors import ValidationError
from maprates.utils.logging import get_logger

logger = get_logger(__name__)

EXPORT_FORMATS = ("csv", "json")
EXPORT_FEATURE = "export_charts"
EXPORT_VERSION = "1.0"


def generate_filename(prefix: str, fmt: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{prefix}_{now.strftime('%Y%m%d_%H%M%S')}.{fmt}"


def dataset_to_csv(dataset: ChartDataset) -> str:
    """Date column followed by one column per series; gaps are empty cells."""
    return dataset.to_dataframe().to_csv(index_label="Date", na_rep="")


def dataset_to_json(dataset: ChartDataset, exported_at: Optional[datetime] = None) -> str:
    df = dataset.to_dataframe()
    payload = {
        "metadata": {
            "exported_at": (exported_at or datetime.now(timezone.utc)).isoformat(),
            "version": EXPORT_VERSION,
            "source": "MapRates",
        },
        "labels": list(dataset.labels),
        "series": [
            {
                "name": s.name,
                "kind": s.kind,
                "axis": s.axis,
                "color": s.color,
                "values": [None if pd.isna(v) else float(v) for v in df[s.name]],
            }
            for s in dataset.series
        ],
    }
    return json.dumps(payload, indent=2)


def conversions_to_frame(conversions: Sequence[Conversion]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "country": c.country,
                "currency": c.currency.name,
                "code": c.currency.code,
                "rate": c.rate,
                "amount": c.amount,
            }
            for c in conversions
        ],
        columns=["country", "currency", "code", "rate", "amount"],
    )


class ChartExporter:
    """Writes datasets to disk for users whose plan includes chart export."""

    def __init__(self, entitlements=None):
        self.entitlements = entitlements

    def allowed(self) -> bool:
        if self.entitlements is None:
            return True
        return self.entitlements.can_access_feature(EXPORT_FEATURE)

    def export(self, dataset: ChartDataset, fmt: str = "csv",
               path: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """
        Write `dataset` as CSV or JSON.

        Args:
            dataset: Dataset to export
            fmt: "csv" or "json"
            path: Target file; defaults to a timestamped name in the working directory

        Returns:
            The written path, or None when the plan does not include export

        Raises:
            ValidationError: If the format is not supported
        """
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {fmt}")
        if not self.allowed():
            logger.warning("Chart export requires a premium plan")
            return None

        content = dataset_to_csv(dataset) if fmt == "csv" else dataset_to_json(dataset)
        target = Path(path) if path else Path.cwd() / generate_filename("chart", fmt)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

        logger.info(f"Exported chart data to {target}")
        return target
