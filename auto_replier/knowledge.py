"""Static knowledge base loader.

The knowledge base is a JSON document (cruise schedule, packages, prices,
policies) that gets embedded verbatim into the model's system instruction.
It is read once at startup and never mutated afterwards.

A missing or malformed file is not fatal: the service starts with an empty
knowledge base and the model simply has no domain facts to rely on.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

logger = logging.getLogger(__name__)

EMPTY_KNOWLEDGE_BASE: Mapping[str, Any] = MappingProxyType({})


def load_knowledge_base(path: str | Path) -> Mapping[str, Any]:
    """Read and parse the knowledge base JSON file at *path*.

    Returns a read-only mapping.  Falls back to an empty mapping when the
    file is absent, unreadable, not valid JSON, or not a JSON object.
    """
    kb_path = Path(path)
    try:
        raw = kb_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.error("Knowledge base not found at %s; continuing without it", kb_path)
        return EMPTY_KNOWLEDGE_BASE
    except OSError as exc:
        logger.error("Could not read knowledge base %s: %s", kb_path, exc)
        return EMPTY_KNOWLEDGE_BASE

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Knowledge base %s is not valid JSON: %s", kb_path, exc)
        return EMPTY_KNOWLEDGE_BASE

    if not isinstance(data, dict):
        logger.error(
            "Knowledge base %s must be a JSON object, got %s",
            kb_path, type(data).__name__,
        )
        return EMPTY_KNOWLEDGE_BASE

    logger.info("Loaded knowledge base from %s (%d top-level keys)", kb_path, len(data))
    return MappingProxyType(data)


def serialize_knowledge_base(knowledge_base: Mapping[str, Any]) -> str:
    """Pretty-print the knowledge base for prompt injection."""
    return json.dumps(dict(knowledge_base), indent=2, ensure_ascii=False)
