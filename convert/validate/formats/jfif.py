"""
JFIF file validation.

JFIF is a JPEG container: the stream starts with the SOI marker (FF D8)
followed by a marker segment, normally APP0 carrying the "JFIF" identifier.
Files written by some cameras use APP1 (Exif) instead; those only fail in
strict mode.
"""

from typing import Optional

from ..base_validator import BinaryBasedValidator, ValidationError

SOI_MARKER = b'\xff\xd8'
APP0_MARKER = b'\xff\xe0'
JFIF_IDENTIFIER = b'JFIF\x00'


class JFIFValidator(BinaryBasedValidator):
    """JFIF/JPEG validator working on the first bytes of the stream."""

    signatures = (SOI_MARKER + b'\xff',)

    def __init__(self):
        super().__init__("jfif")

    def _validate_content(self, content: bytes, strict: bool = False, **options) -> bool:
        """
        Args:
            content: File content as bytes
            strict: Require the APP0 "JFIF" segment rather than any JPEG marker

        Raises:
            ValidationError: If validation fails
        """
        self._validate_signature(content)

        if strict and self.get_jfif_version(content) is None:
            raise ValidationError(
                "Invalid JFIF file: missing APP0 JFIF segment",
                format_type=self.format_name,
                details={"marker_found": content[2:4].hex()}
            )

        return True

    @staticmethod
    def get_jfif_version(content: bytes) -> Optional[str]:
        """Return the "major.minor" version from the APP0 segment, if present."""
        if content[2:4] != APP0_MARKER or content[6:11] != JFIF_IDENTIFIER:
            return None
        if len(content) < 13:
            return None
        return f"{content[11]}.{content[12]:02d}"
