#!/usr/bin/env python3
"""
Play Store Installs Report - Main Pipeline
==========================================

Orchestrates the report on the Google Play Store exports.

Phases:
    1. Preprocessing - Clean apps, aggregate review sentiment, build observations
    2. EDA - Install distribution, bivariate regressions, correlations
    3. Evaluation - K-fold binned-accuracy cross-validation of each model

Usage:
    # Run complete pipeline
    python main.py --apps data/raw/googleplaystore.csv --reviews data/raw/googleplaystore_user_reviews.csv

    # Run specific phase
    python main.py --phase eda

    # Run with custom config
    python main.py --config config/config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

from playstore.data_loader import load_config, load_apps, load_reviews, validate_data, print_data_summary
from playstore.eda import generate_eda_report, print_regression_insights
from playstore.preprocessing import preprocess_pipeline, print_preprocessing_summary
from playstore.model import build_regressors, fit_full_models, print_model_summary
from playstore.evaluation import evaluate_models, print_evaluation_report


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def run_preprocessing(
    apps_path: str,
    reviews_path: str,
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 1: Load and clean the exports.

    Args:
        apps_path: Path to the apps CSV
        reviews_path: Path to the reviews CSV
        config: Configuration dictionary

    Returns:
        Preprocessing result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 1: DATA PREPROCESSING")
    print("=" * 70)

    apps = load_apps(apps_path)
    reviews = load_reviews(reviews_path)
    print_data_summary(apps, title="APPS EXPORT")
    print_data_summary(reviews, title="REVIEWS EXPORT")

    for name, table in (('apps', apps), ('reviews', reviews)):
        is_valid, _ = validate_data(table, strict=False)
        if not is_valid:
            print(f"⚠️  Data validation warnings in {name} export. Cleaning will handle them...")

    predictors = config.get('preprocessing', {}).get('predictors')
    result = preprocess_pipeline(apps, reviews, predictors=predictors)

    print_preprocessing_summary(result)

    return result


def run_eda(prep_result: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 2: Exploratory Data Analysis.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 2: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    eda_predictors = config.get('eda', {}).get('predictors')

    report = generate_eda_report(
        prep_result['merged'],
        predictors=eda_predictors,
        output_dir=output_dir,
        show_plots=False
    )

    print_regression_insights(report['regressions'])

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_evaluation(prep_result: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 3: Cross-validated model evaluation.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 3: MODEL EVALUATION")
    print("=" * 70)

    eval_config = config.get('evaluation', {})
    regressors = build_regressors(config, default_features=prep_result['predictors'])

    for summary in fit_full_models(regressors, prep_result['observations']):
        print_model_summary(summary)

    output_dir = config.get('output', {}).get('reports_path', 'reports/')

    result = evaluate_models(
        regressors,
        prep_result['observations'],
        prep_result['thresholds'],
        k=eval_config.get('k', 10),
        seed=eval_config.get('seed', 42),
        n_jobs=eval_config.get('n_jobs', 1),
        output_dir=output_dir,
        show_plots=False
    )

    print_evaluation_report(result['summaries'])

    return result


def run_pipeline(
    apps_path: str,
    reviews_path: str,
    config_path: str = "config/config.yaml",
    phase: str = "all",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute the pipeline, or the phases needed for a single phase.

    Args:
        apps_path: Path to the apps CSV
        reviews_path: Path to the reviews CSV
        config_path: Path to configuration file
        phase: 'preprocess', 'eda', 'evaluate' or 'all'
        log_level: Overrides the configured logging level

    Returns:
        Dictionary containing the results of each phase run
    """
    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    if phase not in ('preprocess', 'eda', 'evaluate', 'all'):
        raise ValueError(f"Unknown phase: {phase}. Choose from: preprocess, eda, evaluate, all")

    print("\n" + "=" * 70)
    print("PLAY STORE INSTALLS REPORT")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    results = {'config': config}
    results['preprocessing'] = run_preprocessing(apps_path, reviews_path, config)

    if phase in ('eda', 'all'):
        results['eda'] = run_eda(results['preprocessing'], config)

    if phase in ('evaluate', 'all'):
        results['evaluation'] = run_evaluation(results['preprocessing'], config)

    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Observations: {len(results['preprocessing']['observations'])}")
    if 'evaluation' in results:
        for name, summary in results['evaluation']['summaries'].items():
            print(f"  • {name}: binned accuracy {summary['accuracy']:.4f}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Google Play Store installs report with cross-validated models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --phase eda
  python main.py --apps data/raw/googleplaystore.csv --reviews data/raw/googleplaystore_user_reviews.csv
        """
    )

    parser.add_argument(
        '--apps', '-a',
        type=str,
        default=None,
        help='Path to the apps CSV (default: data.apps_path from config)'
    )

    parser.add_argument(
        '--reviews', '-r',
        type=str,
        default=None,
        help='Path to the reviews CSV (default: data.reviews_path from config)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['preprocess', 'eda', 'evaluate', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        return 1

    try:
        data_config = load_config(args.config).get('data', {})
        apps_path = args.apps or data_config.get('apps_path', 'data/raw/googleplaystore.csv')
        reviews_path = args.reviews or data_config.get(
            'reviews_path', 'data/raw/googleplaystore_user_reviews.csv'
        )

        for path in (apps_path, reviews_path):
            if not Path(path).exists():
                print(f"Error: Data file not found: {path}")
                print("\nPlace the Play Store CSV exports in the specified location.")
                return 1

        run_pipeline(
            apps_path,
            reviews_path,
            config_path=args.config,
            phase=args.phase,
            log_level='DEBUG' if args.verbose else None
        )
        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
