"""Reference data store, rule expansion and the stream classifier."""
from stream_classifier.classifiers.classifier import (
    BatchItemResult,
    FakeStreamClassifier,
    StreamClassifier,
    StreamClassifierProtocol,
    validate_subject_ids,
)
from stream_classifier.classifiers.exceptions import (
    CombinationNotFoundError,
    DuplicateCombinationError,
    ReferenceDataError,
    SubjectValidationError,
)
from stream_classifier.classifiers.models import (
    ClassificationResult,
    Stream,
    StreamRule,
    Subject,
    ValidCombination,
)
from stream_classifier.classifiers.rules import (
    DEFAULT_PRIORITY,
    GeneratedCombination,
    generate_combinations,
    match_rule,
)
from stream_classifier.classifiers.store import CombinationStore

__all__ = [
    "BatchItemResult",
    "ClassificationResult",
    "CombinationNotFoundError",
    "CombinationStore",
    "DEFAULT_PRIORITY",
    "DuplicateCombinationError",
    "FakeStreamClassifier",
    "GeneratedCombination",
    "ReferenceDataError",
    "Stream",
    "StreamClassifier",
    "StreamClassifierProtocol",
    "StreamRule",
    "Subject",
    "SubjectValidationError",
    "ValidCombination",
    "generate_combinations",
    "match_rule",
    "validate_subject_ids",
]
