"""Utility modules."""
from api.utils.json_utils import json_dump, write_json_file
from api.utils.validation import validate_id

__all__ = [
    "json_dump",
    "write_json_file",
    "validate_id",
]
