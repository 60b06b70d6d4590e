from civic_intake.nlu.base import (
    EMPTY,
    INVALID,
    ConfirmationInterpreter,
    ExtractionResult,
    ExtractionStatus,
    FieldExtractor,
    ServiceClassifier,
)
from civic_intake.nlu.keyword import (
    KeywordConfirmationInterpreter,
    KeywordServiceClassifier,
    RuleBasedFieldExtractor,
)

__all__ = [
    "EMPTY",
    "INVALID",
    "ConfirmationInterpreter",
    "ExtractionResult",
    "ExtractionStatus",
    "FieldExtractor",
    "ServiceClassifier",
    "KeywordConfirmationInterpreter",
    "KeywordServiceClassifier",
    "RuleBasedFieldExtractor",
]
