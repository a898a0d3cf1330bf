"""Helpers to parse Responses API outputs.

SDK response objects and plain dictionaries are both accepted so the
helpers work on typed responses and on serialized payloads alike.
"""

from typing import Any, Dict, List, Optional

from models.diagnosis_models import Citation


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _message_contents(response: Any):
    for item in _field(response, "output", None) or []:
        if _field(item, "type") != "message":
            continue
        for content in _field(item, "content", None) or []:
            yield content


def extract_text(response: Any) -> str:
    """Concatenate every output_text entry from the response."""
    texts = [
        _field(content, "text", "") or ""
        for content in _message_contents(response)
        if _field(content, "type") == "output_text"
    ]
    if texts:
        return "".join(texts)
    fallback = _field(response, "output_text", "")
    return fallback if isinstance(fallback, str) else ""


def extract_block_reason(response: Any) -> Optional[str]:
    """Return why the service declined to answer, if it did."""
    for content in _message_contents(response):
        if _field(content, "type") == "refusal":
            return _field(content, "refusal", None) or "refusal"
    if _field(response, "status") == "incomplete":
        reason = _field(_field(response, "incomplete_details", None), "reason", None)
        if reason == "content_filter":
            return reason
    return None


def extract_citations(response: Any) -> List[Citation]:
    """Return url citations from output_text annotations, de-duplicated in order."""
    citations: List[Citation] = []
    seen = set()
    for content in _message_contents(response):
        if _field(content, "type") != "output_text":
            continue
        for annotation in _field(content, "annotations", None) or []:
            if _field(annotation, "type") != "url_citation":
                continue
            uri = _field(annotation, "url", None)
            if not uri or uri in seen:
                continue
            seen.add(uri)
            citations.append(Citation(uri=uri, title=_field(annotation, "title", None) or uri))
    return citations


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = _field(response, "usage", None)
    return {
        "input_tokens": _field(usage, "input_tokens", None) if usage else None,
        "output_tokens": _field(usage, "output_tokens", None) if usage else None,
    }
