"""Gateway module - templated operations over the shared Vertex AI connection."""

from .schemas import (
    CONFIDENCE,
    OperationRequest,
    OperationResult,
    TranslateBody,
    ExplainKanjiBody,
    ExplainGrammarBody,
    ChatBody,
    GenerateExamplesBody,
)
from .operations import OPERATIONS, Operation, get_operation
from .service import RequestGateway


__all__ = [
    # Schemas
    "CONFIDENCE",
    "OperationRequest",
    "OperationResult",
    "TranslateBody",
    "ExplainKanjiBody",
    "ExplainGrammarBody",
    "ChatBody",
    "GenerateExamplesBody",
    # Operations
    "OPERATIONS",
    "Operation",
    "get_operation",
    # Service
    "RequestGateway",
]
