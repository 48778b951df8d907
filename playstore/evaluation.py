"""
Model Evaluation Module
=======================

K-fold cross-validation scored with a binned accuracy metric: a prediction
counts as correct when it lands in the same install bin as the true value.

Features:
    - Cross-validation driver over any trainer/predictor pair
    - Optional parallel fold evaluation with joblib
    - Per-fold and aggregate accuracy
    - Fold accuracy plots and a JSON/CSV evaluation report
"""

import logging
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Any, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from joblib import Parallel, delayed

from .binning import same_bin, validate_thresholds
from .exceptions import TrainingFailure, PredictionFailure
from .folds import make_folds, check_partition, fold_sizes
from .model import Regressor
from .preprocessing import Observation

logger = logging.getLogger(__name__)

Trainer = Callable[[Sequence[Observation]], Any]
Predictor = Callable[[Any, Observation], float]


@dataclass(frozen=True)
class FoldResult:
    """Bin-match tally for one held-out fold."""
    fold_index: int
    correct: int
    incorrect: int

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else float('nan')


def _evaluate_fold(
    fold_index: int,
    model_trainer: Trainer,
    model_predictor: Predictor,
    observations: Sequence[Observation],
    folds: Dict[int, np.ndarray],
    thresholds: np.ndarray
) -> FoldResult:
    held_out = [int(i) for i in folds[fold_index]]
    training = [
        observations[int(i)]
        for other, indices in sorted(folds.items()) if other != fold_index
        for i in indices
    ]

    try:
        model = model_trainer(training)
    except Exception as e:
        raise TrainingFailure(fold_index, str(e)) from e

    correct = 0
    incorrect = 0
    for idx in held_out:
        observation = observations[idx]
        try:
            prediction = float(model_predictor(model, observation))
        except Exception as e:
            raise PredictionFailure(fold_index, idx, str(e)) from e

        if not math.isfinite(prediction):
            raise PredictionFailure(fold_index, idx, f"non-finite prediction {prediction}")

        if same_bin(prediction, observation.target, thresholds):
            correct += 1
        else:
            incorrect += 1

    logger.debug(f"Fold {fold_index}: {correct} correct, {incorrect} incorrect")
    return FoldResult(fold_index=fold_index, correct=correct, incorrect=incorrect)


def evaluate(
    model_trainer: Trainer,
    model_predictor: Predictor,
    observations: Sequence[Observation],
    folds: Dict[int, Iterable[int]],
    thresholds: Sequence[float],
    n_jobs: int = 1,
    prefer: Optional[str] = None
) -> List[FoldResult]:
    """
    Run k-fold cross-validation with the binned accuracy metric.

    For each fold the model is trained on every other fold and scored on the
    held-out observations. Folds share nothing but the read-only inputs, so
    with ``n_jobs != 1`` they run through joblib; results are always returned
    in fold order.

    Args:
        model_trainer: Callable mapping a training slice to a fitted model
        model_predictor: Callable mapping (model, observation) to a float
        observations: All observations
        folds: Fold id -> observation indices (array, list or set),
            partitioning the observations
        thresholds: Strictly increasing bin edges
        n_jobs: Parallel fold workers (1 runs sequentially, -1 uses all cores)
        prefer: joblib backend hint, "threads" or "processes"

    Returns:
        One FoldResult per fold, ordered by fold index

    Raises:
        InvalidConfiguration: If folds or thresholds are malformed
        TrainingFailure: If any fold's training fails
        PredictionFailure: If any prediction fails or is not finite
    """
    edges = validate_thresholds(thresholds)
    folds = check_partition(folds, len(observations))

    fold_ids = sorted(folds)
    logger.info(
        f"Cross-validating {len(observations)} observations over {len(fold_ids)} folds "
        f"(n_jobs={n_jobs})"
    )

    if n_jobs == 1:
        results = [
            _evaluate_fold(i, model_trainer, model_predictor, observations, folds, edges)
            for i in fold_ids
        ]
    else:
        results = Parallel(n_jobs=n_jobs, prefer=prefer)(
            delayed(_evaluate_fold)(i, model_trainer, model_predictor, observations, folds, edges)
            for i in fold_ids
        )

    return sorted(results, key=lambda r: r.fold_index)


def cross_validate(
    regressor: Regressor,
    observations: Sequence[Observation],
    thresholds: Sequence[float],
    k: int = 10,
    seed: Optional[int] = 42,
    n_jobs: int = 1,
    prefer: Optional[str] = None
) -> List[FoldResult]:
    """
    Cross-validate a Regressor on folds stratified by the target.

    Args:
        regressor: Trainer/predictor pair
        observations: All observations
        thresholds: Bin edges
        k: Number of folds
        seed: Fold assignment seed
        n_jobs: Parallel fold workers
        prefer: joblib backend hint

    Returns:
        One FoldResult per fold, ordered by fold index
    """
    targets = [obs.target for obs in observations]
    folds = make_folds(len(observations), k, targets, seed=seed)
    logger.info(f"Evaluating '{regressor.name}' with fold sizes {list(fold_sizes(folds).values())}")

    return evaluate(
        regressor.train,
        regressor.predict,
        observations,
        folds,
        thresholds,
        n_jobs=n_jobs,
        prefer=prefer
    )


def summarize_results(results: Sequence[FoldResult]) -> Dict[str, Any]:
    """
    Aggregate fold results.

    Args:
        results: Fold results from evaluate

    Returns:
        Dictionary with totals, pooled accuracy and per-fold accuracy stats
    """
    correct = sum(r.correct for r in results)
    incorrect = sum(r.incorrect for r in results)
    total = correct + incorrect
    fold_accuracy = [r.accuracy for r in results]

    return {
        'n_folds': len(results),
        'correct': int(correct),
        'incorrect': int(incorrect),
        'total': int(total),
        'accuracy': correct / total if total else float('nan'),
        'fold_accuracy': [float(a) for a in fold_accuracy],
        'mean_fold_accuracy': float(np.mean(fold_accuracy)) if results else float('nan'),
        'std_fold_accuracy': float(np.std(fold_accuracy)) if results else float('nan')
    }


def _nan_to_none(value: Any) -> Any:
    """Replace NaN floats with None so the value serializes as strict JSON."""
    if isinstance(value, dict):
        return {key: _nan_to_none(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_nan_to_none(item) for item in value]
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def results_to_frame(results: Sequence[FoldResult], model_name: Optional[str] = None) -> pd.DataFrame:
    """Fold results as a DataFrame, one row per fold."""
    frame = pd.DataFrame(
        [
            {
                'fold': r.fold_index,
                'correct': r.correct,
                'incorrect': r.incorrect,
                'total': r.total,
                'accuracy': r.accuracy
            }
            for r in results
        ],
        columns=['fold', 'correct', 'incorrect', 'total', 'accuracy']
    )
    if model_name is not None:
        frame.insert(0, 'model', model_name)
    return frame


def plot_fold_accuracy(
    frame: pd.DataFrame,
    figsize: tuple = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of binned accuracy per fold, one bar group per model.

    Args:
        frame: Concatenated results_to_frame output with a ``model`` column
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.barplot(data=frame, x='fold', y='accuracy', hue='model', ax=ax, alpha=0.85)

    ax.set_xlabel('Fold')
    ax.set_ylabel('Binned Accuracy')
    ax.set_ylim([0, 1])
    ax.set_title('Cross-Validated Binned Accuracy by Fold', fontsize=14, fontweight='bold')
    ax.legend(loc='upper right', fontsize=8)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Fold accuracy plot saved to {save_path}")

    return fig


def evaluate_models(
    regressors: Dict[str, Regressor],
    observations: Sequence[Observation],
    thresholds: Sequence[float],
    k: int = 10,
    seed: Optional[int] = 42,
    n_jobs: int = 1,
    output_dir: str = "reports/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Cross-validate every model on the same folds and write the report.

    Args:
        regressors: Model name -> Regressor
        observations: All observations
        thresholds: Bin edges
        k: Number of folds
        seed: Fold assignment seed
        n_jobs: Parallel fold workers
        output_dir: Directory for output files
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing per-model results, summaries, the fold table
        and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION")
    logger.info("=" * 60)

    results = {}
    summaries = {}
    frames = []

    for name, regressor in regressors.items():
        logger.info(f"Cross-validating {name}...")
        fold_results = cross_validate(
            regressor, observations, thresholds, k=k, seed=seed, n_jobs=n_jobs
        )
        results[name] = fold_results
        summaries[name] = summarize_results(fold_results)
        frames.append(results_to_frame(fold_results, model_name=name))
        logger.info(f"  {name}: binned accuracy {summaries[name]['accuracy']:.4f}")

    fold_table = pd.concat(frames, ignore_index=True)

    table_file = metrics_dir / "cv_results.csv"
    fold_table.to_csv(table_file, index=False)
    logger.info(f"Fold table saved to {table_file}")

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(
            _nan_to_none({'k': k, 'seed': seed, 'models': summaries}),
            f, indent=2, allow_nan=False
        )
    logger.info(f"Metrics saved to {metrics_file}")

    figures = []
    plot_fold_accuracy(fold_table, save_path=str(figures_dir / "cv_fold_accuracy.png"))
    figures.append("cv_fold_accuracy.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info("=" * 60)

    return {
        'results': results,
        'summaries': summaries,
        'fold_table': fold_table,
        'figures': figures,
        'metrics_file': str(metrics_file),
        'table_file': str(table_file)
    }


def print_evaluation_report(summaries: Dict[str, Dict[str, Any]]) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        summaries: Model name -> summarize_results output
    """
    print("\n" + "=" * 70)
    print("CROSS-VALIDATION REPORT (BINNED ACCURACY)")
    print("=" * 70)

    print(f"\n{'Model':<22} {'Correct':<10} {'Incorrect':<10} {'Accuracy':<10} {'Fold Std':<10}")
    print("-" * 70)

    for name, summary in summaries.items():
        print(f"{name:<22} {summary['correct']:<10d} {summary['incorrect']:<10d} "
              f"{summary['accuracy']:<10.4f} {summary['std_fold_accuracy']:<10.4f}")

    print("-" * 70)

    if summaries:
        best = max(summaries, key=lambda name: summaries[name]['accuracy'])
        print(f"\nBest model: {best} ({summaries[best]['accuracy']:.2%} of apps "
              f"predicted in the right install bin)")

    print("=" * 70 + "\n")
