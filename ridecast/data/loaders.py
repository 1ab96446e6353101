"""Loading of the ridership CSV files with schema validation."""

from typing import Dict, Optional, Any, List
from dataclasses import dataclass
import pandas as pd
import json
import logging
from pathlib import Path
from datetime import datetime

from ridecast.data.structs import TimeSeries

logger = logging.getLogger(__name__)

DAILY_SCHEMA = {"Date": "date", "Total_Rides": "numeric"}
MONTHLY_SCHEMA = {"Year": "integer", "Month": "integer", "number_of_rides": "numeric"}


@dataclass
class ValidationResult:
    """Result of schema validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    schema_violations: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "schema_violations": self.schema_violations,
        }


class RidershipLoader:
    """Loads the daily and monthly ridership files into TimeSeries."""

    def __init__(self, log_dir: Optional[str] = None):
        """Initialize the loader with an optional directory for validation reports."""
        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    def load_daily(
        self,
        path: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        date_format: Optional[str] = None,
    ) -> TimeSeries:
        """
        Load the daily total-rides file (columns ``Date``, ``Total_Rides``).

        Args:
            path: Path to the CSV file
            start: Optional first date to keep (inclusive)
            end: Optional last date to keep (inclusive)
            date_format: Optional explicit strptime format for ``Date``

        Returns:
            Daily TimeSeries sorted by date

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If schema validation fails, a date is malformed or a
                date appears more than once
        """
        df = self._read_csv(path, DAILY_SCHEMA)

        # Malformed dates are fatal: let the parser error propagate
        dates = pd.to_datetime(df["Date"], format=date_format)
        series = pd.Series(
            df["Total_Rides"].to_numpy(dtype=float),
            index=pd.DatetimeIndex(dates, name="Date"),
            name="Total_Rides",
        )
        series = self._check_unique(series, path)
        series = self._filter_range(series, start, end)

        return TimeSeries.from_series(
            series, period="D", metadata={"source": str(path)}
        )

    def load_monthly(
        self,
        path: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> TimeSeries:
        """
        Load the monthly file (columns ``Year``, ``Month``, ``number_of_rides``).

        Each row is labelled with the first day of its month.

        Args:
            path: Path to the CSV file
            start: Optional first month to keep (inclusive)
            end: Optional last month to keep (inclusive)

        Returns:
            Monthly TimeSeries sorted by month
        """
        df = self._read_csv(path, MONTHLY_SCHEMA)

        dates = pd.to_datetime(
            pd.DataFrame({"year": df["Year"], "month": df["Month"], "day": 1})
        )
        series = pd.Series(
            df["number_of_rides"].to_numpy(dtype=float),
            index=pd.DatetimeIndex(dates, name="Month"),
            name="number_of_rides",
        )
        series = self._check_unique(series, path)
        series = self._filter_range(series, start, end)

        return TimeSeries.from_series(
            series, period="M", metadata={"source": str(path)}
        )

    def validate_schema(
        self,
        df: pd.DataFrame,
        schema: Dict[str, str]
    ) -> ValidationResult:
        """
        Validate DataFrame columns against an expected schema.

        Schema kinds are ``numeric``, ``integer`` and ``date``. Date columns
        are only checked for presence here; parsing happens in the loader.

        Args:
            df: DataFrame to validate
            schema: Expected schema as {column_name: kind}

        Returns:
            ValidationResult with validation details
        """
        errors: List[str] = []
        warnings: List[str] = []
        schema_violations: Dict[str, str] = {}

        for col in schema.keys():
            if col not in df.columns:
                errors.append(f"Missing required column: {col}")
                schema_violations[col] = "missing"

        extra_cols = set(df.columns) - set(schema.keys())
        if extra_cols:
            warnings.append(f"Extra columns found: {sorted(extra_cols)}")

        for col, kind in schema.items():
            if col not in df.columns:
                continue
            if not self._kind_compatible(df[col], kind):
                errors.append(
                    f"Column '{col}' has dtype '{df[col].dtype}', expected {kind}"
                )
                schema_violations[col] = f"dtype_mismatch: {df[col].dtype} != {kind}"
            elif kind != "date" and df[col].isna().any():
                errors.append(f"Column '{col}' has {int(df[col].isna().sum())} missing values")
                schema_violations[col] = "missing_values"

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            schema_violations=schema_violations,
        )

    def log_validation_result(
        self,
        result: ValidationResult,
        run_id: str,
        source_path: str
    ) -> None:
        """Write a validation result to the report directory."""
        if not self.log_dir:
            logger.warning("No log directory configured")
            return

        log_data = {
            "run_id": run_id,
            "source_path": source_path,
            "timestamp": datetime.now().isoformat(),
            "validation_result": result.to_dict(),
        }

        log_path = self.log_dir / f"{run_id}_validation_report.json"
        with open(log_path, "w") as f:
            json.dump(log_data, f, indent=2)

        logger.info(f"Validation report saved to {log_path}")

    def _read_csv(self, path: str, schema: Dict[str, str]) -> pd.DataFrame:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {path}")

        df = pd.read_csv(file_path)
        logger.info(f"Loaded {len(df)} rows from {path}")

        result = self.validate_schema(df, schema)
        for warning in result.warnings:
            logger.warning(f"{path}: {warning}")
        if self.log_dir:
            self.log_validation_result(result, file_path.stem, str(path))
        if not result.is_valid:
            raise ValueError(f"Schema validation failed: {'; '.join(result.errors)}")

        return df

    def _kind_compatible(self, column: pd.Series, kind: str) -> bool:
        if kind == "numeric":
            return pd.api.types.is_numeric_dtype(column)
        if kind == "integer":
            return pd.api.types.is_integer_dtype(column)
        if kind == "date":
            return (
                pd.api.types.is_datetime64_any_dtype(column)
                or pd.api.types.is_object_dtype(column)
                or pd.api.types.is_string_dtype(column)
            )
        raise ValueError(f"Unknown schema kind: {kind}")

    def _check_unique(self, series: pd.Series, path: str) -> pd.Series:
        duplicated = series.index.duplicated()
        if duplicated.any():
            first = series.index[duplicated][0]
            raise ValueError(
                f"{path}: {int(duplicated.sum())} duplicate dates, first at {first.date()}"
            )
        return series.sort_index()

    def _filter_range(
        self,
        series: pd.Series,
        start: Optional[str],
        end: Optional[str],
    ) -> pd.Series:
        if start is not None:
            series = series[series.index >= pd.Timestamp(start)]
        if end is not None:
            series = series[series.index <= pd.Timestamp(end)]
        if series.empty:
            raise ValueError(f"No observations between {start} and {end}")
        return series
