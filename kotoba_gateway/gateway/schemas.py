"""Pydantic schemas for gateway operations and their HTTP bodies."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Fixed placeholder reported with every successful result.
CONFIDENCE = 0.9


class OperationRequest(BaseModel):
    """A single templated operation call.

    Attributes:
        operation: Operation name (e.g. "translate").
        fields: Named request fields, already parsed from the body.
    """

    operation: str = Field(..., description="Operation to run")
    fields: dict[str, Any] = Field(default_factory=dict, description="Request fields")


class OperationResult(BaseModel):
    """Outcome of a successful operation.

    Attributes:
        operation: Operation that produced the result.
        result_key: Response key under which the text is returned.
        text: Model output trimmed of surrounding whitespace.
        echo: Request fields echoed back to the client.
        confidence: Fixed placeholder value.
        timestamp: When the result was produced (UTC).
    """

    model_config = ConfigDict(frozen=True)

    operation: str
    result_key: str
    text: str
    echo: dict[str, Any] = Field(default_factory=dict)
    confidence: float = CONFIDENCE
    timestamp: datetime

    def to_payload(self) -> dict[str, Any]:
        """Render the success body sent to the client."""
        return {
            "success": True,
            **self.echo,
            self.result_key: self.text,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }


class OperationBody(BaseModel):
    """Base for operation bodies.

    Every field is optional here; presence and emptiness are checked by
    the request gateway so all operations fail the same way.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TranslateBody(OperationBody):
    text: Any = Field(default=None, description="Text to translate")
    target_language: Any = Field(default=None, description="Target language (default Indonesian)")


class ExplainKanjiBody(OperationBody):
    kanji: Any = Field(default=None, description="Kanji character to explain")
    context: Any = Field(default=None, description="Optional additional context")


class ExplainGrammarBody(OperationBody):
    grammar: Any = Field(default=None, description="Grammar pattern to explain")
    examples: Any = Field(default=None, description="Optional example sentences")
    context: Any = Field(default=None, description="Optional additional context")


class ChatBody(OperationBody):
    message: Any = Field(default=None, description="User question")
    context: Any = Field(default=None, description="Optional conversation context")


class GenerateExamplesBody(OperationBody):
    word: Any = Field(default=None, description="Japanese word")
    reading: Any = Field(default=None, description="Optional reading")
    meaning: Any = Field(default=None, description="Optional meaning")
