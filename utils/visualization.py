from typing import Dict, List, Optional, Sequence
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.ticker import StrMethodFormatter
import seaborn as sns
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


def prediction_dates(last_date: pd.Timestamp, periods: int) -> pd.DatetimeIndex:
    """Business days following the last observed date"""
    return pd.bdate_range(pd.Timestamp(last_date) + pd.offsets.BDay(1), periods=periods)


def build_combined_frame(history: pd.Series, path: np.ndarray) -> pd.DataFrame:
    """
    Historical closes followed by the simulated path, tagged by type.

    path[0] is the last real price and is not repeated; predicted rows start
    on the next business day.
    """
    history = history.astype(float)
    predicted = np.asarray(path, dtype=float)[1:]
    future = prediction_dates(history.index[-1], len(predicted))

    combined = pd.concat([
        pd.DataFrame({'price': history.to_numpy(), 'type': 'historical'}, index=history.index),
        pd.DataFrame({'price': predicted, 'type': 'predicted'}, index=future),
    ])
    combined.index.name = 'date'
    return combined


def build_signal_frame(last_date: pd.Timestamp, signals: Sequence, days: int = 30) -> pd.DataFrame:
    """First `days` predicted signals, dated like the predicted path"""
    labels = [getattr(s, 'value', str(s)) for s in list(signals)[:days]]
    frame = pd.DataFrame({'signal': labels}, index=prediction_dates(last_date, len(labels)))
    frame.index.name = 'date'
    return frame


class ForecastVisualizer:
    """Charts and text summaries of a forecast run"""

    def __init__(self, style: str = 'seaborn-v0_8-whitegrid', currency: str = '$'):
        """
        Initialize visualizer

        Parameters:
        -----------
        style : str
            Matplotlib style to use. Falls back to seaborn's theme, then to
            matplotlib's default, when the style is not installed.
        currency : str
            Symbol used on the price axis
        """
        try:
            plt.style.use(style)
        except OSError:
            try:
                sns.set_theme(style='whitegrid')
            except Exception:
                plt.style.use('default')
                logger.warning(f"Style '{style}' not found, using default style")

        self.currency = currency
        self.colors = plt.rcParams['axes.prop_cycle'].by_key()['color']

    def plot_forecast(self,
                      combined: pd.DataFrame,
                      symbol: str,
                      title: Optional[str] = None,
                      save_path: Optional[Path] = None) -> plt.Figure:
        """
        Plot historical and predicted prices

        Parameters:
        -----------
        combined : DataFrame
            Output of build_combined_frame (columns price, type)
        symbol : str
            Ticker shown in the title
        title : str, optional
            Overrides the default title
        save_path : Path, optional
            Path to save figure
        """
        if combined.empty:
            raise ValueError("Empty input data")

        frame = combined.reset_index()
        fig, ax = plt.subplots(figsize=(12, 6))
        sns.lineplot(data=frame, x='date', y='price', hue='type',
                     palette={'historical': self.colors[0], 'predicted': self.colors[1]},
                     ax=ax)

        ax.yaxis.set_major_formatter(StrMethodFormatter(self.currency + '{x:,.2f}'))
        ax.set_xlabel('Date')
        ax.set_ylabel('Price')
        ax.set_title(title or f"{symbol} closing price: historical and predicted")
        ax.legend(title=None)

        if save_path:
            fig.savefig(save_path)

        return fig

    def plot_search(self,
                    trials: pd.DataFrame,
                    save_path: Optional[Path] = None) -> plt.Figure:
        """Mean validation RMSE per trial"""
        if trials.empty:
            raise ValueError("Empty input data")

        fig, ax = plt.subplots(figsize=(10, 4))
        ax.plot(trials['trial'], trials['valid_rmse'], marker='o', color=self.colors[0])
        best = trials.loc[trials['valid_rmse'].idxmin()]
        ax.scatter([best['trial']], [best['valid_rmse']], color=self.colors[1], zorder=3,
                   label=f"best (trial {int(best['trial'])})")
        ax.set_xlabel('Trial')
        ax.set_ylabel('Mean validation RMSE')
        ax.legend()

        if save_path:
            fig.savefig(save_path)

        return fig

    def summary_text(self, report) -> str:
        """Plain-text summary of a ForecastReport"""
        results: Dict = report.to_dict()
        cv = results['cv_metrics']
        in_sample = results['in_sample_metrics']

        def fmt(value, spec: str = '.4f', suffix: str = '') -> str:
            if value is None or (isinstance(value, float) and np.isnan(value)):
                return 'undefined'
            return f"{value:{spec}}{suffix}"

        lines: List[str] = [
            f"Forecast summary for {results['symbol']}",
            "-" * 50,
            f"ARIMA order: {results['arima_order']}",
            "Best hyperparameters:",
        ]
        lines += [f"  {name}: {value}" for name, value in results['best_params'].items()]
        lines += [
            f"Trials evaluated: {results['trials_evaluated']}"
            + (" (stopped early)" if results['stopped_early'] else ""),
            "Cross-validated metrics (mean over folds):",
            f"  Train RMSE: {fmt(cv['train_rmse'])}  R2: {fmt(cv['train_r2'])}  MAE: {fmt(cv['train_mae'])}",
            f"  Valid RMSE: {fmt(cv['valid_rmse'])}  R2: {fmt(cv['valid_r2'])}  MAE: {fmt(cv['valid_mae'])}",
            "Full-data refit (in-sample, not validation):",
            f"  RMSE: {fmt(in_sample['rmse'])}  R2: {fmt(in_sample['r2'])}  MAE: {fmt(in_sample['mae'])}",
            f"Directional accuracy: {fmt(results['directional_accuracy'], '.1f', '%')}",
            f"Sharpe ratio: {fmt(results['sharpe_ratio'], '.3f')}",
            f"Next {len(results['signals'])} signals:",
        ]
        lines += [
            f"  {pd.Timestamp(s['date']):%Y-%m-%d}: {s['signal']}" for s in results['signals']
        ]
        return "\n".join(lines)

    def close_all(self):
        """Close all open figures"""
        plt.close('all')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_all()
