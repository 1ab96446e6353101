"""Backtest harness: load, aggregate, split, diagnose, fit, forecast, evaluate.

Each (granularity, model) combination is one forward pass. Combinations run
sequentially and independently; a failure in one is recorded and the harness
moves on to the next.
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import pandas as pd

from ridecast.data.aggregators import Aggregator
from ridecast.data.loaders import RidershipLoader
from ridecast.data.preprocessors import Preprocessor
from ridecast.data.splitters import TimeSeriesSplitter
from ridecast.data.structs import Split, TimeSeries
from ridecast.diagnostics.stationarity import StationarityDiagnostics, StationarityReport
from ridecast.evaluation.comparison import ModelComparator, RunRecord
from ridecast.evaluation.evaluator import Evaluator
from ridecast.features.calendar import CalendarRegressors, RegressorDefinitions
from ridecast.models.base_model import DEFAULT_LEVELS
from ridecast.models.factory import build_model
from ridecast.models.specs import AutoSpec, DecompositionSpec, ModelSpec, spec_from_config
from ridecast.utils.config_manager import PROJECT_ROOT, ConfigManager
from ridecast.utils.error_handling import RecoveryContext
from ridecast.utils.serialization import save_json

logger = logging.getLogger(__name__)

SOURCES = ("daily", "monthly")


class BacktestHarness:
    """
    Runs every configured (granularity, model) combination.

    Args:
        config: Validated backtest configuration (see ``config/backtest.yaml``)
        loader: Optional RidershipLoader, e.g. one that writes validation reports
        run_id: Identifier used in model ids and output file names
    """

    def __init__(
        self,
        config: Dict[str, Any],
        loader: Optional[RidershipLoader] = None,
        run_id: Optional[str] = None,
    ):
        self.config = config
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.loader = loader or RidershipLoader()
        self.preprocessor = Preprocessor()
        self.aggregator = Aggregator(week_start=config.get("aggregation", {}).get("week_start", "MON"))
        self.splitter = TimeSeriesSplitter()

        diag_cfg = config.get("diagnostics", {})
        self.diagnostics = StationarityDiagnostics(
            alpha=diag_cfg.get("alpha", 0.05),
            seasonal_test=diag_cfg.get("seasonal_test", "ocsb"),
        )

        fitter_cfg = config.get("fitter", {})
        self.strict_convergence = fitter_cfg.get("strict_convergence", False)
        self.evaluator = Evaluator(levels=fitter_cfg.get("interval_levels", DEFAULT_LEVELS))

        self.comparator = ModelComparator()
        self.reports: Dict[str, StationarityReport] = {}
        self.splits: Dict[str, Split] = {}
        self._sources: Dict[str, TimeSeries] = {}
        self._series: Dict[str, TimeSeries] = {}

    @classmethod
    def from_config_file(
        cls,
        config_dir: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> "BacktestHarness":
        """Load and validate ``backtest.yaml`` and build a harness from it."""
        config = ConfigManager(config_dir=config_dir).load_backtest_config(overrides)
        return cls(config, **kwargs)

    @property
    def granularities(self) -> List[str]:
        return list(self.config["granularities"])

    def source_series(self, source: str) -> TimeSeries:
        """Load (once) the daily or monthly source file as a regular series."""
        if source not in SOURCES:
            raise ValueError(f"Unknown source: {source}. Supported sources are: {list(SOURCES)}")
        if source not in self._sources:
            data_cfg = self.config["data"]
            path = _resolve_path(data_cfg[f"{source}_path"])
            start, end = data_cfg.get("start"), data_cfg.get("end")
            if source == "daily":
                ts = self.loader.load_daily(path, start, end, date_format=data_cfg.get("date_format"))
            else:
                ts = self.loader.load_monthly(path, start, end)
            ts = self.preprocessor.fill_gaps(ts, data_cfg.get("gap_strategy", "reject"))
            logger.info(
                f"Loaded {source} series: {len(ts)} points "
                f"{ts.first_timestamp.date()} to {ts.last_timestamp.date()}"
            )
            self._sources[source] = ts
        return self._sources[source]

    def series(self, granularity: str) -> TimeSeries:
        """Series for ``granularity``, aggregated from its source."""
        if granularity not in self._series:
            gran_cfg = self._granularity_config(granularity)
            source = self.source_series(gran_cfg.get("source", "daily"))
            self._series[granularity] = self.aggregator.aggregate(source, gran_cfg["period"])
        return self._series[granularity]

    def split(self, granularity: str) -> Split:
        """Train/test split at the granularity's boundary, test truncated to ``horizon`` if set."""
        if granularity not in self.splits:
            gran_cfg = self._granularity_config(granularity)
            split = self.splitter.split_at(self.series(granularity), gran_cfg["boundary"])
            horizon = gran_cfg.get("horizon")
            if horizon is not None:
                split = Split(
                    series=split.series,
                    boundary=split.boundary,
                    position=split.position,
                    test_stop=min(split.position + horizon, len(split.series)),
                )
            self.splits[granularity] = split
        return self.splits[granularity]

    def diagnose(self, granularity: str) -> StationarityReport:
        """Stationarity diagnostics on the training window."""
        if granularity not in self.reports:
            gran_cfg = self._granularity_config(granularity)
            train = self.split(granularity).train
            self.reports[granularity] = self.diagnostics.diagnose(train, gran_cfg["seasonal_period"])
        return self.reports[granularity]

    def regressors(self, granularity: str) -> Tuple[Optional[pd.DataFrame], Optional[pd.DataFrame]]:
        """Calendar regressors for the (train, test) windows, or (None, None)."""
        gran_cfg = self._granularity_config(granularity)
        definitions = RegressorDefinitions.from_config(gran_cfg.get("exog"))
        if definitions.is_empty:
            return None, None

        split = self.split(granularity)
        ts = split.series
        exog = CalendarRegressors(definitions).build(ts.index, ts.period)
        stop = split.test_stop if split.test_stop is not None else len(ts)
        return exog.iloc[:split.position], exog.iloc[split.position:stop]

    def run(self, granularities: Optional[List[str]] = None) -> ModelComparator:
        """
        Run every model of every (selected) granularity.

        Args:
            granularities: Subset of configured granularities, default all

        Returns:
            ModelComparator holding one RunRecord per combination
        """
        for granularity in granularities or self.granularities:
            gran_cfg = self._granularity_config(granularity)
            split = self.split(granularity)
            logger.info(
                f"[{granularity}] {len(split.train)} training / {len(split.test)} test periods, "
                f"boundary {split.boundary.date()}"
            )

            report = self._diagnose_or_none(granularity)
            exog_train, exog_test = self.regressors(granularity)

            for model_cfg in gran_cfg["models"]:
                record = self.run_model(granularity, model_cfg, split, report, exog_train, exog_test)
                self.comparator.add_record(record)

        n_failed = len(self.comparator.failed)
        logger.info(
            f"Backtest {self.run_id} finished: {len(self.comparator.successful)} succeeded, "
            f"{n_failed} failed"
        )
        return self.comparator

    def run_model(
        self,
        granularity: str,
        model_cfg: Dict[str, Any],
        split: Split,
        report: Optional[StationarityReport] = None,
        exog_train: Optional[pd.DataFrame] = None,
        exog_test: Optional[pd.DataFrame] = None,
    ) -> RunRecord:
        """Fit one model on the training window and score it on the test window."""
        name = model_cfg["name"]
        run_key = f"{self.run_id}_{granularity}_{name}"
        diagnostics = report.to_dict() if report is not None else {}

        try:
            spec = self.model_spec(granularity, model_cfg, report, split)
            use_exog = self._uses_exog(model_cfg, spec) and exog_train is not None

            model = build_model(spec, model_id=run_key, strict_convergence=self.strict_convergence)
            model.fit(split.train, exog=exog_train if use_exog else None)
            forecast, accuracy = self.evaluator.evaluate(
                model,
                split.test,
                exog=exog_test if use_exog else None,
                seasonal_period=self._granularity_config(granularity)["seasonal_period"],
            )
        except Exception as e:
            context = RecoveryContext.from_exception(run_key, e)
            logger.error(
                f"[{granularity}] {name} failed: {type(e).__name__}: {e}",
                extra={"props": {"run_id": run_key}},
            )
            return RunRecord(
                granularity=granularity,
                model_name=name,
                status="failed",
                diagnostics=diagnostics,
                error=context.to_dict(),
            )

        if self.config.get("output", {}).get("save_models", False):
            model.save_model(str(self._output_dir() / "models" / granularity / name))

        return RunRecord(
            granularity=granularity,
            model_name=name,
            status="success",
            description=model.describe(),
            accuracy=accuracy,
            forecast=forecast,
            converged=model.converged,
            diagnostics=diagnostics,
        )

    def model_spec(
        self,
        granularity: str,
        model_cfg: Dict[str, Any],
        report: Optional[StationarityReport] = None,
        split: Optional[Split] = None,
    ) -> ModelSpec:
        """
        Build the spec for a model entry. Missing seasonal periods default to
        the granularity's; ``use_diagnostics`` pins an auto model's d and D to
        the recommended orders.

        Without a ``report``, the orders come from diagnosing the training side
        of ``split`` (the configured split when ``split`` is None), so a fold
        never sees data past its own boundary.
        """
        gran_cfg = self._granularity_config(granularity)
        entry = dict(model_cfg)
        if entry.get("kind") == "decomposition":
            entry.setdefault("seasonal_periods", [gran_cfg["seasonal_period"]])
        else:
            entry.setdefault("seasonal_period", gran_cfg["seasonal_period"])
        spec = spec_from_config(entry)

        if entry.get("use_diagnostics") and isinstance(spec, AutoSpec):
            if report is None:
                if split is None:
                    report = self.diagnose(granularity)
                else:
                    report = self.diagnostics.diagnose(split.train, gran_cfg["seasonal_period"])
            spec = replace(spec, D=report.seasonal_differences, d=report.non_seasonal_differences)
            logger.info(f"[{granularity}] {entry['name']}: pinned D={spec.D}, d={spec.d}")
        return spec

    def cross_validate(
        self,
        granularity: str,
        model_name: str,
        horizon: int,
        step: int = 1,
        initial_boundary: Optional[str] = None,
        max_folds: Optional[int] = None,
    ) -> pd.DataFrame:
        """
        Expanding-origin evaluation of one configured model.

        Args:
            granularity: Configured granularity
            model_name: Name of a model configured for it
            horizon: Test points per fold
            step: Points the origin moves between folds
            initial_boundary: First fold's test start, default the granularity boundary
            max_folds: Stop after this many folds

        Returns:
            DataFrame with one row per fold: boundary, train size, status and test metrics
        """
        gran_cfg = self._granularity_config(granularity)
        model_cfg = next((m for m in gran_cfg["models"] if m["name"] == model_name), None)
        if model_cfg is None:
            raise ValueError(f"No model named {model_name!r} for granularity {granularity!r}")

        ts = self.series(granularity)
        definitions = RegressorDefinitions.from_config(gran_cfg.get("exog"))
        exog = None if definitions.is_empty else CalendarRegressors(definitions).build(ts.index, ts.period)

        rows = []
        folds = self.splitter.expanding_origin_splits(
            ts, initial_boundary or gran_cfg["boundary"], horizon, step
        )
        for split in folds:
            fold = split.metadata["fold"]
            if max_folds is not None and fold >= max_folds:
                break
            exog_train = exog_test = None
            if exog is not None:
                exog_train = exog.iloc[:split.position]
                exog_test = exog.iloc[split.position:split.test_stop]

            record = self.run_model(granularity, model_cfg, split, None, exog_train, exog_test)
            row = {
                "fold": fold,
                "boundary": split.boundary,
                "train_size": len(split.train),
                "status": record.status,
            }
            if record.accuracy is not None:
                row.update(record.accuracy.test)
            rows.append(row)

        logger.info(f"[{granularity}] {model_name}: {len(rows)} expanding-origin folds")
        return pd.DataFrame(rows)

    def summary(self) -> Dict[str, Any]:
        """Configuration, per-granularity split info and every run record."""
        series_info = {}
        for granularity, split in self.splits.items():
            info = split.to_dict()
            info["partial_buckets"] = split.series.metadata.get("partial_buckets", [])
            series_info[granularity] = info

        return {
            "run_id": self.run_id,
            "created_at": datetime.now().isoformat(),
            "config": self.config,
            "series": series_info,
            "runs": [record.to_dict() for record in self.comparator.records.values()],
        }

    def save_summary(self, path: Optional[str] = None) -> Path:
        """Write ``summary()`` as JSON, by default into the configured output directory."""
        target = Path(path) if path else self._output_dir() / f"backtest_{self.run_id}.json"
        save_json(self.summary(), target)
        logger.info(f"Backtest summary saved to {target}")
        return target

    def _diagnose_or_none(self, granularity: str) -> Optional[StationarityReport]:
        if not self.config.get("diagnostics", {}).get("enabled", True):
            return None
        try:
            return self.diagnose(granularity)
        except Exception as e:
            logger.warning(f"[{granularity}] stationarity diagnostics failed: {type(e).__name__}: {e}")
            return None

    def _uses_exog(self, model_cfg: Dict[str, Any], spec: ModelSpec) -> bool:
        # TBATS has no regressor support
        default = not isinstance(spec, DecompositionSpec)
        return model_cfg.get("use_exog", default)

    def _granularity_config(self, granularity: str) -> Dict[str, Any]:
        try:
            return self.config["granularities"][granularity]
        except KeyError:
            raise ValueError(
                f"Unknown granularity: {granularity}. Configured: {self.granularities}"
            ) from None

    def _output_dir(self) -> Path:
        return _resolve_path(self.config.get("output", {}).get("dir", "outputs"))


def _resolve_path(path: str) -> Path:
    """Relative paths are taken from the project root."""
    resolved = Path(path)
    return resolved if resolved.is_absolute() else PROJECT_ROOT / resolved
