"""
Error types raised by the cross-validation evaluator.

All of them are terminal for an evaluation run: callers fix the configuration
or data and rerun the whole evaluation.
"""


class EvaluationError(Exception):
    """Base class for evaluator errors."""


class InvalidConfiguration(EvaluationError, ValueError):
    """Bad fold count, thresholds, folds or model settings."""


class TrainingFailure(EvaluationError, RuntimeError):
    """A model trainer failed on one fold's training slice."""

    def __init__(self, fold_index: int, message: str):
        self.fold_index = fold_index
        super().__init__(f"Training failed on fold {fold_index}: {message}")


class PredictionFailure(EvaluationError, RuntimeError):
    """A predictor failed on a held-out observation."""

    def __init__(self, fold_index: int, observation_index: int, message: str):
        self.fold_index = fold_index
        self.observation_index = observation_index
        super().__init__(
            f"Prediction failed on fold {fold_index}, "
            f"observation {observation_index}: {message}"
        )
