"""Custom exceptions for the Production Sheet Assistant."""


class ProductionSheetError(Exception):
    """Base exception for the Production Sheet Assistant."""

    pass


class FeatureExtractionError(ProductionSheetError):
    """Raised when item text cannot be turned into features."""

    pass


class PredictionError(ProductionSheetError):
    """Raised when a single field prediction fails."""

    pass


class PersistenceError(ProductionSheetError):
    """Raised when no configured store accepts a read or write."""

    pass


class TrainingError(ProductionSheetError):
    """Raised when the neural network cannot be trained on an example."""

    pass


class InitializationError(ProductionSheetError):
    """Raised when the learning system cannot bootstrap its state."""

    pass


class ValidationError(ProductionSheetError):
    """Raised when input validation fails."""

    pass
