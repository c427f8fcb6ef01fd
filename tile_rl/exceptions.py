class TransitionModelError(Exception):
    """Base class for errors raised while querying a state-action transition model."""


class UnmodeledStateError(TransitionModelError, KeyError):
    """Raised when a state (or state-action pair) was never recorded in a model."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message instead
        return str(self.args[0]) if self.args else ""


class EmptyModelError(TransitionModelError):
    """Raised when sampling a next state from a model with no recorded transitions."""


class ModelConsistencyError(TransitionModelError):
    """Raised when the weighted sampling scan ends without selecting a state."""


class FeatureIndexError(IndexError):
    """Raised when a feature index or grid coordinate falls outside the weight table."""
