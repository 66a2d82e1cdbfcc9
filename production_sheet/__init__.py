"""Production Sheet Assistant - turns service running orders into production sheets."""

from .exceptions import ProductionSheetError
from .learning.coordinator import LearningCoordinator
from .processing.program_processor import ProcessedProgram, ProgramProcessor
from .processing.rule_engine import RuleEngine

__version__ = "0.1.0"

__all__ = [
    "LearningCoordinator",
    "ProcessedProgram",
    "ProductionSheetError",
    "ProgramProcessor",
    "RuleEngine",
    "__version__",
]
