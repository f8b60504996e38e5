"""Official reference land values (Bodenrichtwerte) for German federal states."""

from .models import Descriptor, Estimation, LookupResult, Record
from .router import Router, supported_states
from .service import lookup

__all__ = [
    "Descriptor",
    "Estimation",
    "LookupResult",
    "Record",
    "Router",
    "lookup",
    "supported_states",
]
