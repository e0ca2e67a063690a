"""Templated operations exposed to the KotobaID front end.

Each operation names its required and optional fields, composes a prompt
from them and says how the model's text is returned.
"""

from typing import Any, Callable, Mapping, NamedTuple

from kotoba_gateway.exceptions import OperationValidationError


class Operation(NamedTuple):
    """Definition of a templated operation.

    Attributes:
        name: Operation name used in routes and logs.
        required: Required string fields with their validation messages.
        optional: Optional fields with their defaults.
        result_key: Response key carrying the model text.
        build_prompt: Composes the prompt from validated fields.
        echo: Maps response keys to the request fields echoed back.
    """

    name: str
    required: Mapping[str, str]
    optional: Mapping[str, Any]
    result_key: str
    build_prompt: Callable[[dict[str, Any]], str]
    echo: Mapping[str, str]

    def validate(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Check fields and return them with optional defaults filled in.

        Raises:
            OperationValidationError: If a required field is missing or empty,
                or a field has the wrong type.
        """
        validated: dict[str, Any] = {}

        for field, message in self.required.items():
            value = fields.get(field)
            if not isinstance(value, str) or not value.strip():
                raise OperationValidationError(message, operation=self.name, field=field)
            validated[field] = value

        for field, default in self.optional.items():
            value = fields.get(field)
            if value is None:
                validated[field] = list(default) if isinstance(default, list) else default
                continue
            if isinstance(default, list):
                if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                    raise OperationValidationError(
                        f"'{field}' must be a list of strings", operation=self.name, field=field
                    )
            elif not isinstance(value, str):
                raise OperationValidationError(
                    f"'{field}' must be a string", operation=self.name, field=field
                )
            validated[field] = value

        return validated

    def echo_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return {key: fields[source] for key, source in self.echo.items()}


def _context_line(label: str, context: str | None) -> str:
    return f"{label}: {context}" if context else ""


def connection_test_prompt(fields: dict[str, Any]) -> str:
    return 'Say "Hello from Vertex AI Gemini!" in Japanese and Indonesian.'


def translate_prompt(fields: dict[str, Any]) -> str:
    return (
        f"Translate the following text to {fields['targetLanguage']}. "
        "Only provide the translation, no additional explanation:\n\n"
        f'Text to translate: "{fields["text"]}"\n\n'
        "Translation:"
    )


def explain_kanji_prompt(fields: dict[str, Any]) -> str:
    return (
        f'Explain the kanji "{fields["kanji"]}" in Indonesian language. '
        "Include the following information:\n\n"
        "1. Arti dan makna kanji\n"
        "2. Cara baca (onyomi dan kunyomi)\n"
        "3. Penggunaan dalam kehidupan sehari-hari\n"
        "4. Contoh kata yang menggunakan kanji ini\n"
        "5. Sejarah atau asal-usul kanji (jika relevan)\n\n"
        f"{_context_line('Additional context', fields.get('context'))}\n\n"
        "Please provide a comprehensive but concise explanation in Indonesian:"
    )


def explain_grammar_prompt(fields: dict[str, Any]) -> str:
    examples = fields.get("examples") or []
    examples_text = ""
    if examples:
        numbered = "\n".join(f"{i}. {example}" for i, example in enumerate(examples, start=1))
        examples_text = f"\n\nContoh kalimat:\n{numbered}"

    return (
        f'Jelaskan pola tata bahasa Jepang "{fields["grammar"]}" dalam bahasa Indonesia. '
        "Sertakan informasi berikut:\n\n"
        "1. Struktur dan rumus tata bahasa\n"
        "2. Kapan dan bagaimana menggunakannya\n"
        "3. Nuansa makna yang terkandung\n"
        "4. Perbedaan dengan pola tata bahasa serupa (jika ada)\n"
        "5. Tips untuk mengingat dan menggunakan pola ini\n\n"
        f"{examples_text}\n\n"
        f"{_context_line('Konteks tambahan', fields.get('context'))}\n\n"
        "Berikan penjelasan yang komprehensif namun mudah dipahami dalam bahasa Indonesia:"
    )


def chat_prompt(fields: dict[str, Any]) -> str:
    return (
        "You are a helpful Japanese language learning assistant. "
        "Respond in Indonesian language.\n\n"
        f"{_context_line('Context', fields.get('context'))}\n\n"
        f"User question: {fields['message']}\n\n"
        "Please provide a helpful and educational response:"
    )


def generate_examples_prompt(fields: dict[str, Any]) -> str:
    return (
        f'Generate 3 example sentences using the Japanese word "{fields["word"]}" '
        f"(reading: {fields['reading']}, meaning: {fields['meaning']}).\n\n"
        "For each example, provide:\n"
        "1. Japanese sentence\n"
        "2. Romaji reading\n"
        "3. Indonesian translation\n\n"
        "Format the response as JSON array with objects containing: sentence, reading, meaning\n\n"
        "Examples:"
    )


OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        Operation(
            name="test",
            required={},
            optional={},
            result_key="response",
            build_prompt=connection_test_prompt,
            echo={},
        ),
        Operation(
            name="translate",
            required={"text": "Text is required for translation"},
            optional={"targetLanguage": "Indonesian"},
            result_key="translation",
            build_prompt=translate_prompt,
            echo={"originalText": "text", "targetLanguage": "targetLanguage"},
        ),
        Operation(
            name="explain-kanji",
            required={"kanji": "Kanji character is required"},
            optional={"context": None},
            result_key="explanation",
            build_prompt=explain_kanji_prompt,
            echo={"kanji": "kanji"},
        ),
        Operation(
            name="explain-grammar",
            required={"grammar": "Grammar pattern is required"},
            optional={"examples": [], "context": None},
            result_key="explanation",
            build_prompt=explain_grammar_prompt,
            echo={"grammar": "grammar", "examples": "examples"},
        ),
        Operation(
            name="chat",
            required={"message": "Message is required"},
            optional={"context": None},
            result_key="aiResponse",
            build_prompt=chat_prompt,
            echo={"userMessage": "message"},
        ),
        Operation(
            name="generate-examples",
            required={"word": "Word is required"},
            optional={"reading": "unknown", "meaning": "unknown"},
            result_key="examples",
            build_prompt=generate_examples_prompt,
            echo={"word": "word"},
        ),
    )
}


def get_operation(name: str) -> Operation:
    """Look up an operation by name.

    Raises:
        OperationValidationError: If the operation is not supported.
    """
    try:
        return OPERATIONS[name]
    except KeyError:
        raise OperationValidationError(f"Unsupported operation '{name}'", operation=name) from None
