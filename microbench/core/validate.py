from __future__ import annotations
from typing import Dict, Any, List, Optional
from jsonschema import Draft202012Validator, exceptions
import json
from pathlib import Path
from dataclasses import dataclass

# core/validate.py -> ../schema/suite-result-v1.json
DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schema" / "suite-result-v1.json"


def _location(error: exceptions.ValidationError) -> str:
    return " -> ".join(str(p) for p in error.path) if error.path else "root"


def load_schema(schema_path: str | Path | None = None) -> Dict[str, Any]:
    path = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Schema file parsing error: {e}")
    except FileNotFoundError:
        raise FileNotFoundError(f"Schema file not found: {path}")


class SuiteDocumentValidator:
    """Validates dumped suite result documents against the JSON schema."""

    def __init__(self, schema_path: str | Path | None = None):
        self.schema_path = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH
        self.schema = load_schema(self.schema_path)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, document: Dict[str, Any]) -> None:
        try:
            self.validator.validate(document)
        except exceptions.ValidationError as e:
            message = f"Validation failed (location: {_location(e)}): {e.message}"
            raise exceptions.ValidationError(
                message,
                validator=e.validator,
                validator_value=e.validator_value,
                instance=e.instance,
                schema_path=e.schema_path,
                schema=e.schema,
                cause=e.cause,
            )

    def is_valid(self, document: Dict[str, Any]) -> bool:
        return self.validator.is_valid(document)

    def iter_errors(self, document: Dict[str, Any]) -> List[str]:
        return [
            f"Validation error (location: {_location(error)}): {error.message}"
            for error in self.validator.iter_errors(document)
        ]


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


def validate_document(document: Dict[str, Any], schema: Dict[str, Any] | str | Path | None = None) -> ValidationResult:
    """
    Validate a suite document without raising.

    ``schema`` may be a schema mapping or a path to a schema file; the
    bundled schema is used when it is omitted.
    """
    try:
        if isinstance(schema, dict):
            validator = Draft202012Validator(schema)
            errors = [
                f"Validation error (location: {_location(error)}): {error.message}"
                for error in validator.iter_errors(document)
            ]
        else:
            errors = SuiteDocumentValidator(schema).iter_errors(document)
    except (OSError, ValueError, exceptions.SchemaError) as e:
        return ValidationResult(valid=False, error=f"Validation process error: {e}")

    if not errors:
        return ValidationResult(valid=True)
    return ValidationResult(valid=False, error="; ".join(errors))
