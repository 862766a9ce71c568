# services/rhythmiq/lib/utils.py
"""
Utilities for pulling structured JSON out of free-text LLM replies
"""
import json
import math
import re
from typing import Optional, Dict, Any

_FENCED_BLOCK = re.compile(r'```(?:json)?\s*\n(.*?)\n```', re.DOTALL | re.IGNORECASE)
_decoder = json.JSONDecoder()


def parse_llm_json_response(text: str) -> Optional[Dict[str, Any]]:
    """
    Return the JSON object an LLM reply carries, or None.

    A fenced ```json block is preferred. Otherwise the object opened by the
    first `{` is decoded; prose before it and chatter after it are ignored.
    """
    if not text or not text.strip():
        return None

    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        found = _first_object(fenced.group(1))
        if found is not None:
            return found

    return _first_object(text)


def _first_object(text: str) -> Optional[Dict[str, Any]]:
    start = text.find('{')
    if start == -1:
        return None
    try:
        obj, _ = _decoder.raw_decode(text, start)
    except json.JSONDecodeError:
        return None
    return obj


def round_half_up(value: float) -> int:
    """Round halves upward (70.5 -> 71) instead of to the even neighbour."""
    return int(math.floor(value + 0.5))
