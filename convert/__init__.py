"""
Conversion proxy for the jfif2jpg service.

This package provides the /api/convert endpoint, which relays one uploaded
JFIF image to the external conversion service, along with the configuration,
validation and HTTP utilities shared with the upload client.
"""

__version__ = "1.0.0"
