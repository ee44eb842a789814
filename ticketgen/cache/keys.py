"""Cache-key derivation for generated tickets."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict

from ..models import GenerationRequest

KEY_PREFIX = "ticket"
DIGEST_LENGTH = 32


def cache_key_fields(strategy: str, request: GenerationRequest) -> Dict[str, Any]:
    """The normalized identity of a request for caching purposes."""
    return {
        "strategy": strategy,
        "documentType": request.document_type.value,
        "platform": request.platform.value,
        "techStack": request.tech_stack_list,
        "componentName": request.resolved_component_name,
        "hasScreenshot": request.has_screenshot,
    }


def derive_cache_key(strategy: str, request: GenerationRequest) -> str:
    """``ticket:<sha256 prefix>:<strategy>``; independent of field ordering."""
    canonical = json.dumps(
        cache_key_fields(strategy, request),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
    return f"{KEY_PREFIX}:{digest}:{strategy}"
