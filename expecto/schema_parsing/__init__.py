"""
Schema Parsing for HTTP Test Collections

This package provides tools for parsing, validating, and working with
YAML collections of HTTP requests and their expected responses.

Usage:
    from expecto.schema_parsing import load_collection, validate_collection_yaml

    # Load from file
    collection, result = load_collection("collections/users.yaml")
    if not result.is_valid:
        print(result)

    # Or validate from string
    collection, result = validate_collection_yaml(yaml_string)
"""

# Public API
from .loader import load_collection, validate_collection_yaml

# Models (for type hints and isinstance checks)
from .models import (
    AuthConfig,
    AuthType,
    Check,
    CheckOp,
    Collection,
    Defaults,
    ExpectSpec,
    RequestStep,
    ServerConfig,
)

# Parser and validation (for custom loading if needed)
from .parser import SchemaParser
from .validation import SchemaValidator, ValidationError, ValidationResult

__all__ = [
    # Loader functions
    "load_collection",
    "validate_collection_yaml",
    # Models
    "Collection",
    "ServerConfig",
    "Defaults",
    "RequestStep",
    "ExpectSpec",
    "Check",
    "CheckOp",
    "AuthConfig",
    "AuthType",
    # Parsing and validation
    "SchemaParser",
    "ValidationResult",
    "ValidationError",
    "SchemaValidator",
]
