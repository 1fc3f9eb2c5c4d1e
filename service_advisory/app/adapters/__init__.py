"""
Adapters package for the advisory gateway.

Contains HTTP client wrappers for the upstream services (reference data,
text generation). These adapters encapsulate:

- Base URLs and request shapes
- Retry policies
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .advisory_client import AdvisoryClient
from .reference_data_client import ReferenceDataClient

__all__ = [
    "AdvisoryClient",
    "ReferenceDataClient",
]
