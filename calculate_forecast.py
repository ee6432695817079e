#!/usr/bin/env python
"""
Full forecasting pipeline for a single stock.
Coordinates price download, ARIMA trend, EMA volatility, random-forest
search and price path simulation.
"""
import sys
import os
from pathlib import Path
import argparse
import logging
from datetime import datetime
import time
import traceback
from typing import Any, Dict, List, Optional

import psutil
from dotenv import load_dotenv

from config import DataConfig, PipelineConfig
from data_manager import DataLoader, DataValidator, RetryBackoff, ReturnsPrep
from ensemble import EnsembleTrainer, FeatureBuilder, SearchSpace
from models import ForecastReport, PriceSeries
from strategy import PriceSimulator, StrategyEvaluator
from timeseries import ARIMAEstimator, EMAVolatility
from utils.visualization import ForecastVisualizer, build_combined_frame, build_signal_frame


class StageMonitor:
    """Tracks wall time and memory of each pipeline stage"""
    def __init__(self):
        self.start_time = time.time()
        self.last_checkpoint = self.start_time
        self.checkpoints = {}

    def checkpoint(self, name: str):
        """Record timing for the stage that just finished"""
        now = time.time()
        self.checkpoints[name] = {
            'duration': now - self.last_checkpoint,
            'memory': psutil.Process().memory_info().rss / 1024 / 1024  # MB
        }
        self.last_checkpoint = now

    def timings(self) -> Dict[str, float]:
        return {name: stats['duration'] for name, stats in self.checkpoints.items()}

    def report(self) -> str:
        """Generate checkpoint report"""
        total_time = time.time() - self.start_time
        report = ["Performance Report:", "-----------------"]

        for name, stats in self.checkpoints.items():
            report.append(f"{name}:")
            report.append(f"  Duration: {stats['duration']:.2f} seconds")
            report.append(f"  Memory: {stats['memory']:.2f} MB")

        report.append("-----------------")
        report.append(f"Total Time: {total_time:.2f} seconds")
        return "\n".join(report)


def setup_logging(output_dir: Path, level: int = logging.INFO) -> logging.Logger:
    """
    Configure logging with both file and console handlers

    Parameters:
    -----------
    output_dir : Path
        Directory for the logs/ subdirectory

    Returns:
    --------
    logging.Logger
        Pipeline logger; library modules log through the root handlers
    """
    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"forecast_{timestamp}.log"

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    return logging.getLogger("forecast")


def initialize_components(config: PipelineConfig, show_progress: bool = True) -> Dict[str, Any]:
    """Build every stage from one validated configuration"""
    config.validate()

    return {
        'loader': DataLoader(max_attempts=config.data.max_attempts),
        'validator': DataValidator(),
        'prep': ReturnsPrep(),
        'estimator': ARIMAEstimator(
            max_p=config.trend.max_p,
            max_d=config.trend.max_d,
            max_q=config.trend.max_q,
            min_observations=config.trend.min_observations,
            information_criterion=config.trend.information_criterion,
        ),
        'volatility': EMAVolatility(window=config.volatility.window),
        'features': FeatureBuilder(
            horizon=config.horizon,
            target_scale=config.search.target_scale,
        ),
        'trainer': EnsembleTrainer(
            search_space=SearchSpace(),
            n_trials=config.search.n_trials,
            n_folds=config.search.n_folds,
            patience=config.search.patience,
            random_seed=config.search.random_seed,
            buy_threshold=config.search.buy_threshold,
            sell_threshold=config.search.sell_threshold,
            n_jobs=config.search.n_jobs,
            show_progress=show_progress,
        ),
        'simulator': PriceSimulator(
            horizon=config.horizon,
            target_scale=config.search.target_scale,
            smoothing_window=config.volatility.path_window,
            seed=config.volatility.path_seed,
        ),
        'evaluator': StrategyEvaluator(
            buy_threshold=config.search.buy_threshold,
            sell_threshold=config.search.sell_threshold,
        ),
    }


def fetch_prices(config: DataConfig, loader: DataLoader, logger: logging.Logger,
                 backoff: Optional[RetryBackoff] = None) -> PriceSeries:
    """Download closes for the configured symbol and date range"""
    backoff = backoff or RetryBackoff(unit=config.backoff_unit)
    prices, backoff = loader.fetch_prices(
        config.symbol,
        config.start_date,
        config.resolved_end_date(),
        backoff=backoff,
    )
    logger.info(f"Fetched {len(prices)} prices in {backoff.attempt} attempt(s)")
    return prices


def run_pipeline(prices: PriceSeries, config: PipelineConfig,
                 components: Optional[Dict[str, Any]] = None,
                 monitor: Optional[StageMonitor] = None,
                 logger: Optional[logging.Logger] = None) -> ForecastReport:
    """Run every modelling stage on downloaded prices"""
    logger = logger or logging.getLogger("forecast")
    components = components or initialize_components(config)
    monitor = monitor or StageMonitor()

    try:
        logger.info(f"Starting forecast pipeline for {prices.symbol} ({len(prices)} prices)")

        validated = components['validator'].validate_prices(prices)
        cleaned, returns = components['prep'].prepare_returns(validated)
        logger.info(f"{len(cleaned)} prices after cleaning, {len(returns)} log returns")
        monitor.checkpoint('prepare')

        trend = components['estimator'].estimate(returns)
        volatility = components['volatility'].estimate(trend.residuals)
        monitor.checkpoint('trend_and_volatility')

        features = components['features'].build(trend.residuals, volatility, returns)
        search, model = components['trainer'].train(features)
        monitor.checkpoint('ensemble')

        # Full-set (in-sample) predictions drive the simulation
        raw_path, smoothed_path = components['simulator'].run(
            model.predictions, validated.last_price
        )
        strategy = components['evaluator'].evaluate(
            smoothed_path, search.best.oof_predictions, features.y
        )
        monitor.checkpoint('simulate_and_evaluate')

        last_date = validated.dates[-1]
        report = ForecastReport(
            symbol=prices.symbol,
            trend=trend,
            search=search,
            model=model,
            raw_path=raw_path,
            smoothed_path=smoothed_path,
            combined=build_combined_frame(validated.prices, smoothed_path),
            signals=build_signal_frame(last_date, strategy.predicted_signals, config.signal_days),
            directional_accuracy=strategy.directional_accuracy,
            sharpe_ratio=strategy.sharpe_ratio,
            stage_timings=monitor.timings(),
        )

        logger.info("Pipeline completed successfully")
        return report

    except Exception as e:
        logger.error(f"Error in forecast pipeline: {str(e)}")
        raise


def save_outputs(report: ForecastReport, output_dir: Path, logger: logging.Logger) -> List[Path]:
    """Write charts, summary and tables for one report"""
    output_dir.mkdir(parents=True, exist_ok=True)
    symbol = report.symbol
    written = []

    with ForecastVisualizer() as visualizer:
        chart = output_dir / f"{symbol}_forecast.png"
        visualizer.plot_forecast(report.combined, symbol, save_path=chart)
        written.append(chart)

        search_chart = output_dir / f"{symbol}_search.png"
        visualizer.plot_search(report.search.to_dataframe(), save_path=search_chart)
        written.append(search_chart)

        summary = output_dir / f"{symbol}_summary.txt"
        summary.write_text(visualizer.summary_text(report))
        written.append(summary)

    combined = output_dir / f"{symbol}_combined.csv"
    report.combined.to_csv(combined)
    written.append(combined)

    trials = output_dir / f"{symbol}_trials.csv"
    report.search.to_dataframe().to_csv(trials, index=False)
    written.append(trials)

    for path in written:
        logger.info(f"Wrote {path}")
    return written


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Forecast a stock's closing price")
    parser.add_argument('symbol', nargs='?', default=os.getenv('FORECAST_SYMBOL', 'AAPL'))
    parser.add_argument('start', nargs='?', default=os.getenv('FORECAST_START_DATE', '2010-01-01'))
    parser.add_argument('end', nargs='?', default=os.getenv('FORECAST_END_DATE'))
    parser.add_argument('--output-dir', default=os.getenv('FORECAST_OUTPUT_DIR', 'results'))
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with configuration and setup"""
    load_dotenv()
    args = parse_args(argv)

    config = PipelineConfig(
        data=DataConfig(symbol=args.symbol, start_date=args.start, end_date=args.end),
        output_dir=args.output_dir,
    )
    output_dir = Path(config.output_dir)
    logger = setup_logging(output_dir)

    try:
        logger.info(f"Starting forecast for {config.data.symbol}...")
        components = initialize_components(config)
        monitor = StageMonitor()

        prices = fetch_prices(config.data, components['loader'], logger)
        monitor.checkpoint('fetch')

        report = run_pipeline(prices, config, components, monitor, logger)
        save_outputs(report, output_dir, logger)

        logger.info(monitor.report())
        return 0

    except Exception as e:
        logger.error(f"Forecast failed: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
