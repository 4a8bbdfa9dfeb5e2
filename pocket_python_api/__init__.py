# Import API class and errors directly from the module
from .pocket_api import (
    PocketAPI,
    APIError,
    AuthenticationError,
    NormalizationError,
    SchemaValidationError,
    TransportError,
    ValidationError,
)

# Import the datatypes module so users can do `from pocket_python_api.datatypes import ...`
from . import datatypes
from .credentials import load_credentials

# Define the package version
# This is the single source of truth, read by setup.py and updated by bumpver.
__version__ = PocketAPI.VERSION

__all__ = [
    "PocketAPI",
    "APIError",
    "AuthenticationError",
    "NormalizationError",
    "SchemaValidationError",
    "TransportError",
    "ValidationError",
    "datatypes",
    "load_credentials",
    "__version__",
]
