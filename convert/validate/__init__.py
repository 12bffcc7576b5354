"""
Upload validation.

The /api/convert route calls validate_content() before anything is forwarded,
so empty files and non-JPEG data are answered locally with a 400.
"""

from typing import Dict, Optional

from .base_validator import BaseFileValidator, ValidationError, create_validator_for_format

__all__ = ["FileValidator", "ValidationError", "get_validator", "validate_content"]


class FileValidator:
    """Keeps one validator instance per format name."""

    def __init__(self):
        self._validators: Dict[str, BaseFileValidator] = {}

    def _get_format_validator(self, expected_format: str) -> BaseFileValidator:
        key = expected_format.lower()
        validator = self._validators.get(key)
        if validator is None:
            validator = self._validators[key] = create_validator_for_format(key)
        return validator

    def validate_content(self, content: bytes, expected_format: str,
                         filename: Optional[str] = None, **options) -> bool:
        """
        Raises:
            ValidationError: If the content is rejected
            ValueError: If expected_format is not supported
        """
        return self._get_format_validator(expected_format).validate(content, filename=filename, **options)


_validator: Optional[FileValidator] = None


def get_validator() -> FileValidator:
    global _validator
    if _validator is None:
        _validator = FileValidator()
    return _validator


def validate_content(content: bytes, expected_format: str,
                     filename: Optional[str] = None, **options) -> bool:
    return get_validator().validate_content(content, expected_format, filename=filename, **options)
