"""Coerce free-form model output into AnalysisResult / JobMatch batches.

Valid JSON is the common case; recoverable near-JSON (fenced blocks, prose
around the payload, single quotes, trailing commas, bare keys, loose item
objects) is the expected edge case. Each recovery step is a pure function
``(text) -> parsed | None`` tried in order by :func:`parse_structured`.
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Callable, Literal

from app.ai.errors import MalformedResponse
from app.schemas.ai import MAX_RECOMMENDATIONS, AnalysisResult, JobMatch

logger = logging.getLogger(__name__)

Shape = Literal["analysis", "matches"]
Strategy = Callable[[str], Any]

SCORE_FIELDS = ("overall_score", "ats_compatibility", "keyword_optimization", "experience_relevance")

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "overall_score": ("overallScore", "overall_score", "overallMatchScore", "overall", "score"),
    "ats_compatibility": ("atsCompatibility", "ats_compatibility", "atsScore", "ats_score", "ats"),
    "keyword_optimization": (
        "keywordOptimization",
        "keyword_optimization",
        "keywordScore",
        "keyword_score",
        "keywords",
    ),
    "experience_relevance": (
        "experienceRelevance",
        "experience_relevance",
        "experienceScore",
        "experience_score",
    ),
    "recommendations": ("recommendations", "suggestions", "improvements"),
    "id": ("id", "jobId", "job_id"),
    "title": ("title", "jobTitle", "job_title", "position", "role"),
    "company": ("company", "companyName", "company_name", "employer"),
    "location": ("location", "jobLocation", "job_location"),
    "salary": ("salary", "salaryRange", "salary_range", "compensation"),
    "posted_date": ("postedDate", "posted_date", "datePosted", "date_posted", "posted"),
    "match_score": ("matchScore", "match_score", "score", "match"),
}

BATCH_KEYS = ("jobs", "matches", "jobMatches", "job_matches", "results")

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_SMART_QUOTES = {"“": '"', "”": '"', "‘": "'", "’": "'"}
_SINGLE_QUOTED_RE = re.compile(r"([\[{,:]\s*)'((?:[^'\\]|\\.)*)'(?=\s*[:,}\]])")
_TRAILING_SEPARATOR_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_INT_RE = re.compile(r"-?\d+(?:\.\d+)?")
_QUOTED_ITEM_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')


# ---------------------------------------------------------------------------
# Recovery strategies
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_strict(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _matching_close(text: str, start: int) -> int | None:
    """Index of the bracket closing ``text[start]``, skipping string literals."""
    opener = text[start]
    closer = "]" if opener == "[" else "}"
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\":
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
    return None


def bracket_candidates(text: str, opener: str) -> list[str]:
    """All balanced ``opener``-delimited substrings, longest first."""
    found: list[str] = []
    for start, ch in enumerate(text):
        if ch != opener:
            continue
        end = _matching_close(text, start)
        if end is not None:
            found.append(text[start : end + 1])
    return sorted(dict.fromkeys(found), key=len, reverse=True)


def repair_json_text(text: str, *, quote_bare_keys: bool = True) -> str:
    repaired = text.strip()
    first = min((i for i in (repaired.find("{"), repaired.find("[")) if i != -1), default=-1)
    last = max(repaired.rfind("}"), repaired.rfind("]"))
    if first != -1 and last > first:
        repaired = repaired[first : last + 1]

    for smart, plain in _SMART_QUOTES.items():
        repaired = repaired.replace(smart, plain)

    def _double_quote(match: re.Match[str]) -> str:
        inner = match.group(2).replace("\\'", "'").replace('"', '\\"')
        return f'{match.group(1)}"{inner}"'

    repaired = _SINGLE_QUOTED_RE.sub(_double_quote, repaired)
    repaired = _TRAILING_SEPARATOR_RE.sub(r"\1", repaired)
    if quote_bare_keys:
        repaired = _BARE_KEY_RE.sub(r'\1"\2":', repaired)
    return repaired


def parse_repaired(text: str) -> Any:
    # Bare-key quoting is the second pass only.
    parsed = parse_strict(repair_json_text(text, quote_bare_keys=False))
    if parsed is None:
        parsed = parse_strict(repair_json_text(text))
    return parsed


def parse_as_single_item_batch(text: str) -> Any:
    if '"title"' not in text or '"company"' not in text:
        return None
    body = text.strip().rstrip(",")
    parsed = parse_strict(f"[{body}]")
    for quote_bare_keys in (False, True):
        if parsed is not None:
            break
        parsed = parse_strict(f"[{repair_json_text(body, quote_bare_keys=quote_bare_keys)}]")
    return parsed


# ---------------------------------------------------------------------------
# Shape markers
# ---------------------------------------------------------------------------


def _lookup(record: dict[str, Any], canonical: str) -> Any:
    for alias in FIELD_ALIASES[canonical]:
        if alias in record and record[alias] is not None:
            return record[alias]
    return None


def _looks_like_job(value: Any) -> bool:
    return isinstance(value, dict) and _lookup(value, "title") is not None and _lookup(value, "company") is not None


def _job_items(value: Any) -> list[dict[str, Any]] | None:
    if isinstance(value, list):
        items = [item for item in value if isinstance(item, dict)]
        return items if any(_looks_like_job(item) for item in items) else None
    if isinstance(value, dict):
        for key in BATCH_KEYS:
            nested = value.get(key)
            if isinstance(nested, list):
                return _job_items(nested)
        if _looks_like_job(value):
            return [value]
    return None


def _analysis_record(value: Any) -> dict[str, Any] | None:
    if isinstance(value, list) and len(value) == 1:
        value = value[0]
    if not isinstance(value, dict):
        return None
    for nested_key in ("analysis", "result"):
        nested = value.get(nested_key)
        if isinstance(nested, dict):
            value = nested
            break
    if any(_lookup(value, field) is not None for field in (*SCORE_FIELDS, "recommendations")):
        return value
    return None


def has_shape(value: Any, shape: Shape) -> bool:
    if shape == "matches":
        return _job_items(value) is not None
    return _analysis_record(value) is not None


def parse_structured(raw_text: str, shape: Shape) -> Any:
    """Run the recovery ladder; first parsed value carrying ``shape`` markers wins."""
    cleaned = strip_code_fences(raw_text)

    direct = parse_strict(cleaned)
    if direct is not None and has_shape(direct, shape):
        return direct

    for opener in ("[", "{"):
        for candidate in bracket_candidates(cleaned, opener):
            parsed = parse_strict(candidate)
            if parsed is None or not has_shape(parsed, shape):
                continue
            if shape == "matches" and _looks_like_job(parsed):
                # A loose run of item objects beats the single longest one.
                batch = parse_as_single_item_batch(cleaned)
                if batch is not None and len(_job_items(batch) or []) > 1:
                    return batch
            logger.debug("normalizer_candidate_accepted shape=%s len=%s", shape, len(candidate))
            return parsed

    strategies: list[Strategy] = [parse_repaired]
    if shape == "matches":
        strategies.append(parse_as_single_item_batch)
    for strategy in strategies:
        parsed = strategy(cleaned)
        if parsed is not None and has_shape(parsed, shape):
            logger.debug("normalizer_repair_accepted shape=%s strategy=%s", shape, strategy.__name__)
            return parsed
    return None


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _INT_RE.search(value)
        value = float(match.group(0)) if match else None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(round(value))
    return None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        low = value.get("min")
        high = value.get("max")
        if low is not None and high is not None:
            return f"{low} - {high}"
    return str(value).strip()


def _unescape(item: str) -> str:
    return item.replace('\\"', '"').replace("\\n", " ").replace("\\\\", "\\").strip()


def extract_int_field(raw_text: str, canonical: str) -> int | None:
    for alias in FIELD_ALIASES[canonical]:
        match = re.search(rf'(?<![\w])["\']?{re.escape(alias)}["\']?\s*:\s*"?(-?\d+)(?:\.\d+)?(?![\deE.])', raw_text)
        if match:
            return int(match.group(1))
    return None


def extract_string_list(raw_text: str, canonical: str = "recommendations") -> list[str] | None:
    for alias in FIELD_ALIASES[canonical]:
        match = re.search(
            rf'"{re.escape(alias)}"\s*:\s*\[((?:[^\]"]|"(?:[^"\\]|\\.)*")*)\]?',
            raw_text,
            flags=re.DOTALL,
        )
        if match:
            items = [_unescape(item) for item in _QUOTED_ITEM_RE.findall(match.group(1))]
            return [item for item in items if item]
    return None


def _recommendations(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [line.strip(" -*•\t") for line in value.splitlines()]
    if not isinstance(value, list):
        return []
    items: list[str] = []
    for entry in value:
        if isinstance(entry, dict):
            entry = entry.get("text") or entry.get("recommendation") or entry.get("title")
        text = _to_text(entry)
        if text:
            items.append(text)
    return items[:MAX_RECOMMENDATIONS]


def _build_analysis(record: dict[str, Any] | None, raw_text: str) -> AnalysisResult | None:
    record = record or {}
    scores: dict[str, int] = {}
    recovered = 0
    for field in SCORE_FIELDS:
        value = _to_int(_lookup(record, field))
        if value is None:
            value = extract_int_field(raw_text, field)
            if value is not None:
                recovered += 1
        if value is not None:
            scores[field] = value

    recommendations = _recommendations(_lookup(record, "recommendations"))
    if not recommendations:
        recommendations = (extract_string_list(raw_text) or [])[:MAX_RECOMMENDATIONS]

    if not scores:
        return None
    if recovered:
        logger.info("normalizer_field_recovery fields=%s", recovered)
    return AnalysisResult(**{field: scores.get(field, 0) for field in SCORE_FIELDS}, recommendations=recommendations)


def _unique_ids(items: list[dict[str, Any]]) -> list[str]:
    """Source ids where present and unused, else the first free ``job-<n>``."""
    source = [_to_text(_lookup(item, "id")) for item in items]
    reserved = {job_id for job_id in source if job_id}
    used: set[str] = set()
    ids: list[str] = []
    for position, job_id in enumerate(source, start=1):
        if not job_id or job_id in used:
            n = position
            while f"job-{n}" in used or f"job-{n}" in reserved:
                n += 1
            job_id = f"job-{n}"
        used.add(job_id)
        ids.append(job_id)
    return ids


def _build_match(item: dict[str, Any], job_id: str) -> JobMatch:
    return JobMatch(
        id=job_id,
        title=_to_text(_lookup(item, "title")),
        company=_to_text(_lookup(item, "company")),
        location=_to_text(_lookup(item, "location")),
        salary=_to_text(_lookup(item, "salary")),
        posted_date=_to_text(_lookup(item, "posted_date")),
        match_score=_to_int(_lookup(item, "match_score")) or 0,
    )


def normalize_analysis(raw_text: str) -> AnalysisResult:
    parsed = parse_structured(raw_text, "analysis")
    result = _build_analysis(_analysis_record(parsed), strip_code_fences(raw_text))
    if result is None:
        raise MalformedResponse(raw_text)
    return result


def normalize_matches(raw_text: str) -> list[JobMatch]:
    parsed = parse_structured(raw_text, "matches")
    items = _job_items(parsed) if parsed is not None else None
    if not items:
        raise MalformedResponse(raw_text)
    return [_build_match(item, job_id) for item, job_id in zip(items, _unique_ids(items))]


def normalize(raw_text: str, shape: Shape) -> AnalysisResult | list[JobMatch]:
    if shape == "analysis":
        return normalize_analysis(raw_text)
    if shape == "matches":
        return normalize_matches(raw_text)
    raise ValueError(f"Unsupported shape '{shape}'")
