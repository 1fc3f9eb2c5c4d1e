"""
Domain utilities for the advisory gateway.

Includes the wire models, upstream output normalization, the CORS policy and
response composition; nothing here performs I/O directly.
"""

from .composition import AdvisoryComposer, compose, parse_identifier
from .cors import CORSPolicy

__all__ = [
    "AdvisoryComposer",
    "CORSPolicy",
    "compose",
    "parse_identifier",
]
