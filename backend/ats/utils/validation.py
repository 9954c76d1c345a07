"""
Validation utilities for input validation and error handling.
"""
import json
import re
from typing import Any, Iterable

from .error_handlers import ValidationError

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_email(email: str, field_name: str = "Email") -> str:
    """Validate email format and return it normalized."""
    if not email or not isinstance(email, str):
        raise ValidationError(f"{field_name} is required")

    email = normalize_email(email)
    if len(email) > 255:
        raise ValidationError(f"{field_name} too long (max 255 characters)")

    if not re.match(EMAIL_PATTERN, email):
        raise ValidationError(f"Invalid {field_name.lower()} format")

    return email


def validate_string_field(
    value: Any,
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000,
    required: bool = True,
    pattern: str | None = None,
) -> str | None:
    """Validate a string field with common rules."""
    if value is None:
        if required:
            raise ValidationError(f"{field_name} is required")
        return None

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    value = value.strip()

    if not value:
        if required:
            raise ValidationError(f"{field_name} cannot be empty")
        return None

    if len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters")

    if len(value) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters")

    if pattern and not re.match(pattern, value):
        raise ValidationError(f"{field_name} format is invalid")

    return value


def validate_integer_field(
    value: Any,
    field_name: str,
    min_value: int | None = None,
    max_value: int | None = None,
    required: bool = True,
) -> int | None:
    """Validate an integer field."""
    if value is None:
        if required:
            raise ValidationError(f"{field_name} is required")
        return None

    if not isinstance(value, int):
        try:
            value = int(value)
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a valid integer") from None

    if min_value is not None and value < min_value:
        raise ValidationError(f"{field_name} must be at least {min_value}")

    if max_value is not None and value > max_value:
        raise ValidationError(f"{field_name} must not exceed {max_value}")

    return value


def validate_choice(value: str | None, field_name: str, choices: Iterable[str], default: str | None = None) -> str:
    """Case-insensitive membership check that returns the canonical spelling."""
    choices = list(choices)
    if value is None or not str(value).strip():
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required")

    wanted = str(value).strip().lower()
    for choice in choices:
        if choice.lower() == wanted:
            return choice

    raise ValidationError(f"Invalid {field_name.lower()}. Must be one of: {', '.join(choices)}")


def parse_json_field(raw: str | None, field_name: str, expected: type) -> Any:
    """Parse a JSON-encoded multipart form field into a list or dict."""
    if raw is None or not raw.strip():
        return expected()
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise ValidationError(f"{field_name} must be valid JSON") from None
    if not isinstance(parsed, expected):
        raise ValidationError(f"{field_name} must be a JSON {'array' if expected is list else 'object'}")
    return parsed


def validate_answers(questions: list[dict], answers: list[Any]) -> list[dict]:
    """
    Check submitted answers against a job's screening questions.

    Returns `{question_id, question, answer}` dicts with the question text
    snapshotted from the job, in the job's question order.
    """
    by_id = {str(q.get("id")): q for q in questions or [] if isinstance(q, dict)}
    given: dict[str, str] = {}
    for item in answers or []:
        if not isinstance(item, dict):
            raise ValidationError("Each answer must be an object with question_id and answer")
        qid = str(item.get("question_id") or item.get("questionId") or "").strip()
        if not qid:
            raise ValidationError("Each answer must include a question_id")
        if qid not in by_id:
            raise ValidationError(f"Unknown question: {qid}", details={"question_id": qid})
        if qid in given:
            raise ValidationError(f"Question answered more than once: {qid}", details={"question_id": qid})
        answer = item.get("answer")
        if isinstance(answer, list):
            answer = ", ".join(str(a) for a in answer)
        given[qid] = "" if answer is None else str(answer).strip()

    missing = [qid for qid, q in by_id.items() if q.get("is_required") and not given.get(qid)]
    if missing:
        raise ValidationError("Please answer all required questions", details={"missing_questions": missing})

    return [
        {"question_id": qid, "question": str(by_id[qid].get("question") or ""), "answer": given[qid]}
        for qid in by_id
        if qid in given
    ]


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise ValidationError("Filename is required")

    # Remove any path separators
    filename = filename.replace("/", "_").replace("\\", "_")

    # Remove any null bytes
    filename = filename.replace("\x00", "")

    # Remove directory traversal sequences
    filename = filename.replace("..", "_")

    # Remove leading dots to prevent hidden files
    filename = filename.lstrip(".")

    if len(filename) > 255:
        raise ValidationError("Filename too long")

    if not filename or filename == "_":
        raise ValidationError("Invalid filename")

    return filename


def sanitize_identifier(value: str, fallback: str | None = None) -> str:
    """
    Turn a company name or job title into a safe storage path segment.

    Letters and digits of any script are kept. When nothing usable is left,
    `fallback` is returned if given.
    """
    cleaned = re.sub(r"[\W_]+", "-", (value or "").strip().lower()).strip("-")
    if not cleaned:
        if fallback:
            return fallback
        raise ValidationError("Identifier must contain letters or digits")
    return cleaned[:100]
