import json
from typing import Dict, List

import jsonschema

from tent_sync.errors import CacheReadError, FormatError

# A cache entry maps every language code to the raw translated content.
TRANSLATION_SET_SCHEMA = {
    "type": "object",
    "patternProperties": {
        "^.*$": {"type": "string"}
    },
    "additionalProperties": False
}

# The translated content of a resource is itself a JSON list of records,
# each record mapping a field name to its text.
RESOURCE_RECORDS_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "additionalProperties": {"type": "string"}
    }
}


def decode_translation_set(raw: str) -> Dict[str, str]:
    """
    Decode the content of a cache entry into a translation mapping.

    Args:
        raw: The serialized mapping as stored on disk.

    Returns:
        A dictionary of language code to translated content.

    Raises:
        CacheReadError: If the text is not JSON or not a mapping of strings.
    """
    try:
        data = json.loads(raw)
        jsonschema.validate(instance=data, schema=TRANSLATION_SET_SCHEMA)
    except json.JSONDecodeError as exc:
        raise CacheReadError(f"Invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise CacheReadError("Invalid JSON: nested too deeply") from exc
    except jsonschema.ValidationError as exc:
        raise CacheReadError(f"Not a translation mapping: {exc.message}") from exc
    return data


def decode_resource_records(raw: str) -> List[Dict[str, str]]:
    """
    Decode a translated resource payload into its list of records.

    Args:
        raw: The translated content for one language.

    Returns:
        The list of string records.

    Raises:
        FormatError: If the text is not JSON or not a list of string records.
    """
    try:
        data = json.loads(raw)
        jsonschema.validate(instance=data, schema=RESOURCE_RECORDS_SCHEMA)
    except json.JSONDecodeError as exc:
        raise FormatError(f"Invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise FormatError("Invalid JSON: nested too deeply") from exc
    except jsonschema.ValidationError as exc:
        raise FormatError(f"Not a list of records: {exc.message}") from exc
    return data
