"""
Base classes for upload validators.

The proxy holds uploads in memory, so validators inspect bytes rather than
paths. A format is recognised by its leading signature; subclasses can add
deeper structural checks on top.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple, Type

logger = logging.getLogger(__name__)

# Bytes shown in error details when a header is not recognised
HEADER_PREVIEW_BYTES = 4

# Accepted names for each supported source format
FORMAT_ALIASES = {
    'jfif': 'jfif',
    'jpg': 'jfif',
    'jpeg': 'jfif',
}


class ValidationError(Exception):
    """An upload does not look like the format it claims to be."""

    def __init__(self, message: str, format_type: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.format_type = format_type
        self.details = details or {}


class BaseFileValidator(ABC):
    """validate() runs the checks every format shares, then _validate_content()."""

    def __init__(self, format_name: str):
        self.format_name = format_name

    def validate(self, content: bytes, filename: Optional[str] = None, **options) -> bool:
        """
        Args:
            content: Upload bytes
            filename: Original filename, only used in messages
            **options: Passed to _validate_content (e.g. strict=True)

        Raises:
            ValidationError: If the content is rejected
        """
        self._check_not_empty(content, filename)
        logger.debug(f"Validating {filename or '<upload>'} as {self.format_name} ({len(content)} bytes)")
        return self._validate_content(content, **options)

    def _check_not_empty(self, content: bytes, filename: Optional[str]) -> None:
        if content:
            return
        raise ValidationError(
            f"File is empty: {filename}" if filename else "File is empty",
            format_type=self.format_name,
            details={"content_length": 0}
        )

    @abstractmethod
    def _validate_content(self, content: bytes, **options) -> bool:
        ...


class BinaryBasedValidator(BaseFileValidator):
    """Formats identified by one of a set of leading byte signatures."""

    signatures: Tuple[bytes, ...] = ()

    def _validate_signature(self, content: bytes) -> None:
        if content.startswith(self.signatures):
            return
        raise ValidationError(
            f"Invalid {self.format_name.upper()} file: unrecognized header",
            format_type=self.format_name,
            details={"header_found": content[:HEADER_PREVIEW_BYTES].hex()}
        )


def _validator_classes() -> Dict[str, Type[BaseFileValidator]]:
    from .formats.jfif import JFIFValidator

    return {'jfif': JFIFValidator}


def create_validator_for_format(format_name: str) -> BaseFileValidator:
    """
    Raises:
        ValueError: If format is not supported
    """
    canonical = FORMAT_ALIASES.get(format_name.lower())
    if canonical is None:
        raise ValueError(f"Unsupported format: {format_name}")
    return _validator_classes()[canonical]()
