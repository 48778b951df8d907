"""
Exploratory Data Analysis (EDA) Module
======================================

Looks at how install counts relate to ratings, app attributes and review
sentiment.

Functions:
    - plot_install_distribution: Raw vs log install box plots
    - fit_bivariate_regressions: One simple linear regression per predictor
    - plot_bivariate_relationships: Scatter plots with fitted lines
    - plot_correlation_matrix: Correlation heatmap
    - plot_category_installs: Median log installs per category
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

from .preprocessing import TARGET_COLUMN

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

EDA_PREDICTORS = [
    'Rating', 'Reviews', 'Size', 'Price',
    'average_polarity', 'average_subjectivity'
]


def _subplot_axes(n_plots: int, figsize: Tuple[int, int]):
    n_rows = (n_plots + 1) // 2
    fig, axes = plt.subplots(n_rows, 2, figsize=figsize, squeeze=False)
    return fig, axes.flatten()


def plot_install_distribution(
    df: pd.DataFrame,
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Box plots of install counts before and after the log transform.

    Args:
        df: DataFrame with ``Installs`` and ``log_installs``
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = plt.subplots(1, 2, figsize=figsize)

    sns.boxplot(y=df['Installs'], ax=axes[0])
    axes[0].set_title('Installs', fontsize=12, fontweight='bold')
    axes[0].set_ylabel('Installs')

    sns.boxplot(y=df[TARGET_COLUMN], ax=axes[1])
    axes[1].set_title('log(Installs)', fontsize=12, fontweight='bold')
    axes[1].set_ylabel('log(Installs)')

    plt.suptitle('Distribution of Number of Installations', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Install distribution plot saved to {save_path}")

    return fig


def fit_bivariate_regressions(
    df: pd.DataFrame,
    predictors: Sequence[str],
    target: str = TARGET_COLUMN
) -> pd.DataFrame:
    """
    Regress the target on each predictor separately.

    Rows missing either variable are dropped pairwise. Predictors with fewer
    than 3 complete rows or no variance are skipped.

    Args:
        df: DataFrame with the target and predictor columns
        predictors: Predictor column names
        target: Target column name

    Returns:
        DataFrame indexed by predictor with slope, intercept, r, r_squared,
        p_value, stderr and n
    """
    rows = []
    for predictor in predictors:
        pair = df[[predictor, target]].dropna()
        if len(pair) < 3 or pair[predictor].nunique() < 2:
            logger.warning(f"Skipping regression on {predictor}: not enough variation")
            continue

        fit = stats.linregress(pair[predictor], pair[target])
        rows.append({
            'predictor': predictor,
            'slope': float(fit.slope),
            'intercept': float(fit.intercept),
            'r': float(fit.rvalue),
            'r_squared': float(fit.rvalue ** 2),
            'p_value': float(fit.pvalue),
            'stderr': float(fit.stderr),
            'n': int(len(pair))
        })

    columns = ['predictor', 'slope', 'intercept', 'r', 'r_squared', 'p_value', 'stderr', 'n']
    return pd.DataFrame(rows, columns=columns).set_index('predictor')


def plot_bivariate_relationships(
    df: pd.DataFrame,
    regressions: pd.DataFrame,
    target: str = TARGET_COLUMN,
    figsize: Tuple[int, int] = (14, 12),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter each predictor against the target with its fitted line.

    Args:
        df: DataFrame with the target and predictor columns
        regressions: Output of fit_bivariate_regressions
        target: Target column name
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    predictors = list(regressions.index)
    fig, axes = _subplot_axes(max(len(predictors), 1), figsize)

    for idx, predictor in enumerate(predictors):
        ax = axes[idx]
        pair = df[[predictor, target]].dropna()
        fit = regressions.loc[predictor]

        ax.scatter(pair[predictor], pair[target], alpha=0.3, s=10)

        x_line = np.linspace(pair[predictor].min(), pair[predictor].max(), 100)
        ax.plot(x_line, fit['intercept'] + fit['slope'] * x_line, 'r--', linewidth=2,
                label=f"slope={fit['slope']:.3f}, R²={fit['r_squared']:.3f}")

        ax.set_xlabel(predictor)
        ax.set_ylabel('log(Installs)')
        ax.set_title(f'{predictor} (p={fit["p_value"]:.3g})', fontsize=10, fontweight='bold')
        ax.legend(loc='upper left', fontsize=8)

    # Hide unused subplots
    for idx in range(len(predictors), len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle('Bivariate Relationships with log(Installs)', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Bivariate plots saved to {save_path}")

    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    columns: Sequence[str],
    method: str = 'pearson',
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Create a correlation heatmap for the given columns.

    Args:
        df: DataFrame with numerical data
        columns: Columns to correlate
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    corr_matrix = df[list(columns)].corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.3f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def plot_category_installs(
    df: pd.DataFrame,
    target: str = TARGET_COLUMN,
    figsize: Tuple[int, int] = (12, 10),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.Series]:
    """
    Horizontal bar chart of median log installs per app category.

    Returns:
        Tuple of (Figure, median log installs by category, descending)
    """
    medians = df.groupby('Category')[target].median().sort_values(ascending=False)

    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(x=medians.values, y=medians.index, ax=ax, orient='h')
    ax.set_xlabel('Median log(Installs)')
    ax.set_ylabel('Category')
    ax.set_title('Median Installs by Category', fontsize=14, fontweight='bold')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Category plot saved to {save_path}")

    return fig, medians


def generate_eda_report(
    df: pd.DataFrame,
    predictors: Optional[List[str]] = None,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate a complete EDA report with all visualizations.

    Args:
        df: Merged DataFrame with ``Installs`` and ``log_installs``
        predictors: Columns to relate to installs (default: EDA_PREDICTORS
            present in df)
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing regressions, correlations and figure names
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if predictors is None:
        predictors = [col for col in EDA_PREDICTORS if col in df.columns]

    report = {
        "data_shape": df.shape,
        "predictors": list(predictors),
        "figures": [],
        "regressions": None,
        "correlation_matrix": None,
        "category_medians": None
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    # 1. Install distribution
    logger.info("Plotting install distribution...")
    plot_install_distribution(df, save_path=str(output_dir / "01_install_distribution.png"))
    report["figures"].append("01_install_distribution.png")

    # 2. Bivariate regressions
    logger.info("Fitting bivariate regressions...")
    regressions = fit_bivariate_regressions(df, predictors)
    report["regressions"] = regressions
    if not regressions.empty:
        plot_bivariate_relationships(
            df, regressions,
            save_path=str(output_dir / "02_bivariate_relationships.png")
        )
        report["figures"].append("02_bivariate_relationships.png")

    # 3. Correlation matrix
    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df, [TARGET_COLUMN, *predictors],
        save_path=str(output_dir / "03_correlation_matrix.png")
    )
    report["figures"].append("03_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix

    # 4. Categories
    if 'Category' in df.columns:
        logger.info("Summarizing installs by category...")
        _, medians = plot_category_installs(
            df, save_path=str(output_dir / "04_category_installs.png")
        )
        report["figures"].append("04_category_installs.png")
        report["category_medians"] = medians

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_regression_insights(regressions: pd.DataFrame, alpha: float = 0.05) -> None:
    """
    Print which predictors are significantly related to installs.

    Args:
        regressions: Output of fit_bivariate_regressions
        alpha: Significance level
    """
    print("\n" + "=" * 50)
    print("BIVARIATE REGRESSION INSIGHTS")
    print("=" * 50)

    if regressions.empty:
        print("\nNo regressions could be fitted")
        print("=" * 50 + "\n")
        return

    print(f"\n{'Predictor':<24} {'Slope':<10} {'R²':<8} {'p-value':<10}")
    print("-" * 50)
    for predictor, row in regressions.sort_values('r_squared', ascending=False).iterrows():
        marker = "*" if row['p_value'] < alpha else " "
        print(f"{predictor:<24} {row['slope']:<10.4f} {row['r_squared']:<8.4f} "
              f"{row['p_value']:<10.3g}{marker}")

    print(f"\n* significant at alpha={alpha}")
    print("=" * 50 + "\n")
