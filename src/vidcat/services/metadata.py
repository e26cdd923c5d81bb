"""Normalization of provider metadata and free-text AI responses into catalog fields.

Every function in this module is pure and tolerant: malformed upstream output degrades to the
documented defaults and is reported through ``issues`` rather than raised.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from vidcat.models.metadata import NormalizedMetadata, ParsedAIResponse, ProviderMetadata, ThemeResolution
from vidcat.models.theme import DEFAULT_THEME_NAME, THEME_NAME_MAX_LENGTH, Theme, theme_key
from vidcat.models.video import MISSING_DURATION, PENDING_TITLE, UNKNOWN_UPLOADER
from vidcat.utils.validation import default_thumbnail_url

MISSING_SUMMARY = "no summary generated"
THUMBNAIL_PREFERENCE: Tuple[str, ...] = ("maxres", "standard", "high", "medium", "default")

AIResponse = Union[str, Mapping[str, object], None]
RawProviderMetadata = Union[ProviderMetadata, Mapping[str, object], None]

_DURATION_PATTERN = re.compile(
    r"P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?",
    re.IGNORECASE,
)
_CODE_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*(?P<body>.*?)\s*```$", re.DOTALL)
_EMPHASIS = r"(?:\*\*|__)?"
_SECTION_PATTERN = re.compile(
    rf"^[ \t]*{_EMPHASIS}(?:"
    r"(?P<summary>r[ée]sum[ée])"
    r"|(?P<keywords>mots?[ \t-]*cl[ée]s?)"
    r"|(?P<theme>th[ée]matique)"
    rf")[ \t]*{_EMPHASIS}[ \t]*:[ \t]*{_EMPHASIS}",
    re.IGNORECASE | re.MULTILINE,
)

_STRUCTURED_KEYS: Dict[str, Tuple[str, ...]] = {
    "summary": ("summary", "résumé", "resume"),
    "keywords": ("keywords", "mots-clés", "mots-cles", "mots_cles", "motscles"),
    "theme": ("theme", "thème", "thématique", "thematique"),
}


# ---------------------------------------------------------------------- #
# Provider metadata                                                      #
# ---------------------------------------------------------------------- #
def format_duration(token: Optional[str]) -> str:
    """Convert an ISO-8601 duration such as ``PT1H2M3S`` into ``1:02:03`` (or ``M:SS``).

    Day components are folded into hours. Anything unparseable yields ``"N/A"``.
    """

    if not token or not isinstance(token, str):
        return MISSING_DURATION

    match = _DURATION_PATTERN.fullmatch(token.strip())
    if match is None or not any(match.groupdict().values()):
        return MISSING_DURATION

    parts = {name: int(value) if value else 0 for name, value in match.groupdict().items()}
    hours = parts["days"] * 24 + parts["hours"]
    minutes, seconds = parts["minutes"], parts["seconds"]

    # Providers occasionally emit unnormalized values such as PT90S.
    minutes += seconds // 60
    seconds %= 60
    hours += minutes // 60
    minutes %= 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def pick_thumbnail(thumbnails: Mapping[str, str], external_id: Optional[str]) -> Optional[str]:
    """Return the highest-quality thumbnail URL available, synthesizing one when none is present."""

    for variant in THUMBNAIL_PREFERENCE:
        url = thumbnails.get(variant)
        if isinstance(url, str) and url.strip():
            return url.strip()
    if external_id:
        return default_thumbnail_url(external_id)
    return None


def shape_provider_metadata(
    raw: RawProviderMetadata,
    external_id: Optional[str] = None,
) -> NormalizedMetadata:
    """Map a provider payload onto the display fields of :class:`NormalizedMetadata`.

    AI-derived fields are left at their defaults. ``metadata_simulated`` is ``True`` when no usable
    payload was supplied.
    """

    issues: List[str] = []
    metadata = _coerce_provider_metadata(raw, issues)
    if metadata is None:
        return NormalizedMetadata(
            thumbnail_url=pick_thumbnail({}, external_id),
            keywords=[],
            issues=issues,
        )

    duration = format_duration(metadata.duration)
    if metadata.duration and duration == MISSING_DURATION:
        issues.append(f"unparseable duration {metadata.duration!r}")

    return NormalizedMetadata(
        title=_clean_text(metadata.title) or PENDING_TITLE,
        uploader=_clean_text(metadata.channel_title) or UNKNOWN_UPLOADER,
        view_count=_parse_count(metadata.view_count, issues),
        thumbnail_url=pick_thumbnail(metadata.thumbnails, external_id),
        duration=duration,
        description=_clean_text(metadata.description),
        published_at=_parse_timestamp(metadata.published_at, issues),
        keywords=clean_keywords(metadata.tags),
        metadata_simulated=False,
        issues=issues,
    )


# ---------------------------------------------------------------------- #
# AI responses                                                           #
# ---------------------------------------------------------------------- #
def clean_keywords(raw: Union[str, Iterable[object], None]) -> List[str]:
    """Split, trim, and filter keyword input.

    Strings are split on commas (and line breaks, tolerating bullet markers). Each item is trimmed,
    loses a single trailing period, and is dropped when empty.
    """

    if raw is None:
        return []
    if isinstance(raw, str):
        items: List[str] = re.split(r"[,\n]", raw)
    else:
        items = [item for item in raw if isinstance(item, str)]

    cleaned: List[str] = []
    for item in items:
        keyword = item.strip().lstrip("-*•").strip()
        if keyword.endswith("."):
            keyword = keyword[:-1].rstrip()
        if keyword:
            cleaned.append(keyword)
    return cleaned


def parse_ai_response(response: AIResponse) -> ParsedAIResponse:
    """Recover summary, keywords, and theme from an AI provider response.

    A ready-made object carrying both ``summary`` and ``keywords`` is used directly. Otherwise the
    text is scanned for the labeled-section convention::

        Résumé: <summary text>
        Mots-clés: <comma-separated keywords>
        Thématique: <theme name>

    Labels must open a line and are matched case-insensitively; each section extends to the next
    label. An empty or absent response yields the simulated defaults.
    """

    if response is None:
        return ParsedAIResponse(issues=["no AI response"])
    if not isinstance(response, (str, Mapping)):
        return ParsedAIResponse(issues=[f"unsupported AI response type {type(response).__name__}"])
    if isinstance(response, str) and not response.strip():
        return ParsedAIResponse(issues=["empty AI response"])

    issues: List[str] = []
    structured = _load_structured(response)
    if structured is not None:
        fields = _structured_fields(structured)
        if "summary" in fields and "keywords" in fields:
            return _parsed_from_fields(fields, structured=True, issues=issues)
        missing = sorted({"summary", "keywords"} - fields.keys())
        issues.append(f"structured response missing {', '.join(missing)}")
        if not isinstance(response, str):
            return _parsed_from_fields(fields, structured=False, issues=issues)

    text = response if isinstance(response, str) else ""
    sections = _extract_sections(text)
    if structured is not None:
        for name, value in _structured_fields(structured).items():
            sections.setdefault(name, value)
    if not sections:
        issues.append("no labeled sections found")
    return _parsed_from_fields(sections, structured=False, issues=issues)


def clean_theme_name(name: Optional[str]) -> Optional[str]:
    """Return ``name`` trimmed, ``None`` when blank, or the default theme when it is too long to store."""

    if not name or not name.strip():
        return None
    cleaned = name.strip()
    if len(cleaned) > THEME_NAME_MAX_LENGTH:
        return DEFAULT_THEME_NAME
    return cleaned


def resolve_theme(name: Optional[str], existing_themes: Sequence[Theme]) -> Optional[ThemeResolution]:
    """Match a proposed theme name against existing themes (case-insensitive, exact)."""

    cleaned = clean_theme_name(name)
    if cleaned is None:
        return None
    key = theme_key(cleaned)
    for theme in existing_themes:
        if theme.match_key == key:
            return ThemeResolution(theme=theme)
    return ThemeResolution(proposed_name=cleaned)


def normalize(
    provider_metadata: RawProviderMetadata = None,
    ai_response: AIResponse = None,
    existing_themes: Sequence[Theme] = (),
    *,
    external_id: Optional[str] = None,
) -> NormalizedMetadata:
    """Shape provider metadata and AI output into a record-ready :class:`NormalizedMetadata`.

    Never raises. When the AI response is simulated, keywords fall back to the provider tags and no
    theme is resolved.
    """

    shaped = shape_provider_metadata(provider_metadata, external_id)
    parsed = parse_ai_response(ai_response)

    issues = list(shaped.issues) + list(parsed.issues)
    if parsed.simulated:
        return shaped.model_copy(update={"simulated": True, "issues": issues})

    return shaped.model_copy(
        update={
            "summary": parsed.summary,
            "keywords": list(parsed.keywords),
            "theme_name": parsed.theme_name,
            "theme_resolution": resolve_theme(parsed.theme_name, existing_themes),
            "simulated": False,
            "issues": issues,
        }
    )


# ---------------------------------------------------------------------- #
# Internal helpers                                                       #
# ---------------------------------------------------------------------- #
def _coerce_provider_metadata(raw: RawProviderMetadata, issues: List[str]) -> Optional[ProviderMetadata]:
    if raw is None:
        return None
    if isinstance(raw, ProviderMetadata):
        return raw
    if not isinstance(raw, Mapping):
        issues.append(f"unsupported provider metadata type {type(raw).__name__}")
        return None
    try:
        return ProviderMetadata.model_validate(dict(raw))
    except ValidationError as exc:
        issues.append(f"invalid provider metadata ({exc.error_count()} errors)")
        return None


def _clean_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_count(value: object, issues: List[str]) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        issues.append(f"non-numeric view count {value!r}")
        return 0
    if isinstance(value, int):
        return max(value, 0)
    text = str(value).strip()
    if text.isdecimal():
        return int(text)
    issues.append(f"non-numeric view count {value!r}")
    return 0


def _parse_timestamp(value: Optional[str], issues: List[str]) -> Optional[datetime]:
    if not value:
        return None
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = f"{candidate[:-1]}+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        issues.append(f"unparseable publish date {value!r}")
        return None


def _load_structured(response: Union[str, Mapping[str, object]]) -> Optional[Mapping[str, object]]:
    """Return the response as a mapping when it is, or contains, a JSON object."""

    if isinstance(response, Mapping):
        return response

    text = response.strip()
    fenced = _CODE_FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group("body")

    candidates = [text]
    start, end = text.find("{"), text.rfind("}")
    if 0 < start < end:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            loaded = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(loaded, Mapping):
            return loaded
    return None


def _structured_fields(payload: Mapping[str, object]) -> Dict[str, object]:
    lowered = {str(key).strip().lower(): value for key, value in payload.items()}
    fields: Dict[str, object] = {}
    for name, aliases in _STRUCTURED_KEYS.items():
        for alias in aliases:
            if lowered.get(alias) is not None:
                fields[name] = lowered[alias]
                break
    return fields


def _extract_sections(text: str) -> Dict[str, object]:
    matches = list(_SECTION_PATTERN.finditer(text))
    sections: Dict[str, object] = {}
    for index, match in enumerate(matches):
        name = match.lastgroup
        if name is None or name in sections:
            continue
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        sections[name] = text[match.end() : end].strip()
    return sections


def _parsed_from_fields(fields: Mapping[str, object], *, structured: bool, issues: List[str]) -> ParsedAIResponse:
    summary = _clean_text(fields.get("summary")).strip("*_ ").strip()
    if not summary:
        summary = MISSING_SUMMARY
        if "summary" not in fields:
            issues.append("summary section missing")

    raw_keywords = fields.get("keywords")
    if isinstance(raw_keywords, (str, list, tuple)):
        keywords = clean_keywords(raw_keywords)
    else:
        keywords = []
        if raw_keywords is not None:
            issues.append(f"unsupported keywords value {type(raw_keywords).__name__}")

    raw_theme = _first_line(_clean_text(fields.get("theme")))
    theme_name = clean_theme_name(raw_theme) or DEFAULT_THEME_NAME
    if len(raw_theme) > THEME_NAME_MAX_LENGTH:
        issues.append(f"theme name longer than {THEME_NAME_MAX_LENGTH} characters replaced by {DEFAULT_THEME_NAME!r}")

    return ParsedAIResponse(
        summary=summary,
        keywords=keywords,
        theme_name=theme_name,
        simulated=False,
        structured=structured,
        issues=issues,
    )


def _first_line(text: str) -> str:
    for line in text.splitlines():
        cleaned = line.strip().strip("*_").strip()
        if cleaned.endswith("."):
            cleaned = cleaned[:-1].rstrip()
        if cleaned:
            return cleaned
    return ""


__all__ = [
    "MISSING_SUMMARY",
    "THUMBNAIL_PREFERENCE",
    "clean_keywords",
    "clean_theme_name",
    "format_duration",
    "normalize",
    "parse_ai_response",
    "pick_thumbnail",
    "resolve_theme",
    "shape_provider_metadata",
]
