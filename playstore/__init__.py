"""
Play Store Installs Report
==========================

Cleans the Google Play Store app/review exports, explores how ratings and
review sentiment relate to install counts, and scores regression models with
a k-fold, binned-accuracy cross-validation.

Modules:
    - data_loader: Configuration and CSV ingestion
    - preprocessing: Cleaning pipeline, observations and bin thresholds
    - eda: Exploratory plots and bivariate regressions
    - binning: Binned-equality classifier
    - folds: Stratified fold partitioner
    - model: Trainer/predictor adapters over scikit-learn regressors
    - evaluation: Cross-validation driver and reporting
"""

__version__ = "1.0.0"
__author__ = "Predictive Analytics Team"
