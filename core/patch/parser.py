"""
Patch Parser

Decodes patch JSON into an ordered list of raw operations.
"""
import json
import logging

from .errors import PatchErrorCode
from .schema import ParsedPatch, PatchOperation

logger = logging.getLogger(__name__)


def parse_patch(json_text) -> ParsedPatch:
    """
    Parse a patch document

    Accepted shapes:
    - {"operations": [{...}, ...], "metadata": {...}}: one operation per
      object element; non-object elements are skipped
    - {"type": "...", ...}: a single operation

    Anything else yields zero operations with error_code set.

    Args:
        json_text: Patch JSON text

    Returns:
        ParsedPatch
    """
    if not isinstance(json_text, str):
        return ParsedPatch(
            error_code=PatchErrorCode.MALFORMED_JSON,
            error_message="Invalid JSON format: patch must be text"
        )

    try:
        document = json.loads(json_text)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError, oversized integer literals and runaway nesting
        logger.error(f"Invalid JSON format: {e}")
        return ParsedPatch(
            error_code=PatchErrorCode.MALFORMED_JSON,
            error_message=f"Invalid JSON format: {e}"
        )

    if not isinstance(document, dict):
        logger.error("Invalid JSON format: patch is not a JSON object")
        return ParsedPatch(
            error_code=PatchErrorCode.MALFORMED_JSON,
            error_message="Invalid JSON format: patch is not a JSON object"
        )

    metadata = document.get("metadata")
    metadata = metadata if isinstance(metadata, dict) else {}

    operations = []
    if "operations" in document:
        elements = document["operations"]
        if isinstance(elements, list):
            for index, element in enumerate(elements):
                if isinstance(element, dict):
                    operations.append(PatchOperation(index=index, fields=element))
    elif "type" in document:
        operations.append(PatchOperation(index=0, fields=document))

    if not operations:
        return ParsedPatch(
            metadata=metadata,
            error_code=PatchErrorCode.EMPTY_PATCH,
            error_message="No valid operations found in patch JSON"
        )

    return ParsedPatch(operations=operations, metadata=metadata)
