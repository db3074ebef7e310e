"""
Collection loader for HTTP test collections.

This module provides the public API for loading and validating
collection files from disk or YAML strings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .models import Collection
from .parser import SchemaParser
from .validation import SchemaValidator, ValidationResult


def load_collection(
    path: str | Path,
    environ: dict[str, str] | None = None,
) -> tuple[Collection | None, ValidationResult]:
    """
    Load and validate a collection from a YAML file.

    Args:
        path: Path to the YAML collection file
        environ: Fallback values for {{env.KEY}} templates (os.environ if None)

    Returns:
        Tuple of (Collection or None, ValidationResult)
        If validation fails, Collection will be None.

    Example:
        collection, result = load_collection("collections/users.yaml")
        if not result.is_valid:
            print(result)
            sys.exit(1)
        # Use collection...
    """
    path = Path(path)

    if not path.exists():
        result = ValidationResult()
        result.add_error(
            str(path),
            "File not found",
            suggestion="Check the file path is correct"
        )
        return None, result

    with open(path) as f:
        content = f.read()

    return _load(content, str(path), environ)


def validate_collection_yaml(
    yaml_string: str,
    environ: dict[str, str] | None = None,
) -> tuple[Collection | None, ValidationResult]:
    """
    Validate a collection from a YAML string (useful for testing).

    Args:
        yaml_string: YAML content as a string
        environ: Fallback values for {{env.KEY}} templates (os.environ if None)

    Returns:
        Tuple of (Collection or None, ValidationResult)
    """
    return _load(yaml_string, "yaml", environ)


def _load(
    content: str,
    source: str,
    environ: dict[str, str] | None,
) -> tuple[Collection | None, ValidationResult]:
    data, result = _parse_yaml(content, source)
    if data is None:
        return None, result

    validator = SchemaValidator(data)
    result = validator.validate()

    if not result.is_valid:
        return None, result

    parser = SchemaParser(data, environ=environ)
    return parser.parse(), result


def _parse_yaml(content: str, source: str) -> tuple[dict[str, Any] | None, ValidationResult]:
    result = ValidationResult()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        result.add_error(
            source,
            f"Invalid YAML syntax: {e}",
            suggestion="Check YAML formatting (indentation, colons, etc.)"
        )
        return None, result

    if not isinstance(data, dict):
        result.add_error(
            source,
            "File must contain a YAML object (not a list or scalar)",
            value=type(data).__name__
        )
        return None, result

    return data, result
