"""
Serialization utilities for harness outputs.
Handles JSON (with pandas/numpy types) and pickle.
"""

import json
import math
import pickle
import logging
from pathlib import Path
from typing import Any, Union
from datetime import date, datetime
import pandas as pd
import numpy as np

logger = logging.getLogger(__name__)


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime, pandas and numpy types."""

    def default(self, obj):
        if isinstance(obj, (datetime, date, pd.Timestamp)):
            return obj.isoformat()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, pd.Series):
            return {str(k): v for k, v in obj.items()}
        if isinstance(obj, pd.DataFrame):
            return obj.reset_index().to_dict(orient="records")
        return super().default(obj)


def _replace_non_finite(obj: Any) -> Any:
    """Replace NaN/inf floats with None so the output is strict JSON."""
    if isinstance(obj, dict):
        return {k: _replace_non_finite(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_replace_non_finite(v) for v in obj]
    if isinstance(obj, (float, np.floating)) and not math.isfinite(obj):
        return None
    return obj


def save_json(data: Any, path: Union[str, Path], **kwargs) -> None:
    """Save data to JSON with datetime support."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(_replace_non_finite(data), f, cls=DateTimeEncoder, indent=2, **kwargs)
    logger.debug(f"Saved JSON to {path}")


def load_json(path: Union[str, Path]) -> Any:
    """Load data from JSON."""
    with open(path, 'r') as f:
        return json.load(f)


def save_pickle(obj: Any, path: Union[str, Path]) -> None:
    """Save object to pickle."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'wb') as f:
        pickle.dump(obj, f)
    logger.debug(f"Saved pickle to {path}")


def load_pickle(path: Union[str, Path]) -> Any:
    """Load object from pickle."""
    with open(path, 'rb') as f:
        return pickle.load(f)
