import asyncio
import math
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from toolhub.infra.timeout import REGEX_TIMEOUT
from toolhub.tools.base import BuiltinTool, ToolParams

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
URL_PATTERN = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+")

# Named groups written as (?<name>...) and \k<name> are accepted
_JS_NAMED_GROUP = re.compile(r"\(\?<(?![=!])([A-Za-z_]\w*)>")
_JS_BACKREFERENCE = re.compile(r"\\k<([A-Za-z_]\w*)>")

MAX_REGEX_TEXT_CHARS = 100_000
# A quantified group whose body is itself quantified, e.g. (a+)+ or (\w*\s?)*
_NESTED_QUANTIFIER = re.compile(r"\((?:[^()\\]|\\.)*[+*}](?:[^()\\]|\\.)*\)(?:[+*]|\{\d*,)")


class TextOperation(str, Enum):
    SUMMARIZE_STATS = "summarize_stats"
    EXTRACT_EMAILS = "extract_emails"
    EXTRACT_URLS = "extract_urls"
    SLUG = "slug"
    TRUNCATE = "truncate"
    REGEX_MATCH = "regex_match"


class TextUtilitiesParams(ToolParams):
    text: str = Field(..., description="The text to process")
    operation: TextOperation = Field(
        ...,
        description=(
            "Operation: 'summarize_stats' = word/char/sentence counts, 'extract_emails' = find "
            "email addresses, 'extract_urls' = find URLs, 'slug' = create URL slug, "
            "'truncate' = truncate text, 'regex_match' = match regex pattern"
        ),
    )
    pattern: Optional[str] = Field(None, description="Regex pattern for regex_match operation")
    max_length: int = Field(100, description="Maximum length for truncate operation")


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def text_stats(text: str) -> Dict[str, Any]:
    words = text.split()
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    paragraphs = [p for p in re.split(r"\n\s*\n", text) if p.strip()]
    average = 0
    if words:
        average = math.floor(sum(len(w) for w in words) / len(words) * 10 + 0.5) / 10
    return {
        "characters": len(text),
        "words": len(words),
        "sentences": len(sentences),
        "paragraphs": len(paragraphs),
        "averageWordLength": average,
    }


def slugify(text: str) -> str:
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def truncate_words(text: str, max_length: int) -> Dict[str, Any]:
    if len(text) <= max_length:
        return {"result": text, "truncated": False}
    cut = re.sub(r"\s+\S*\Z", "", text[:max_length])
    return {"result": cut + "...", "truncated": True}


def compile_pattern(pattern: str) -> "re.Pattern":
    pattern = _JS_NAMED_GROUP.sub(r"(?P<\1>", pattern)
    pattern = _JS_BACKREFERENCE.sub(r"(?P=\1)", pattern)
    return re.compile(pattern)


def regex_matches(text: str, pattern: str) -> List[Dict[str, Any]]:
    regex = compile_pattern(pattern)
    return [
        {
            "match": m.group(0),
            "index": m.start(),
            "groups": m.groupdict() or None,
        }
        for m in regex.finditer(text)
    ]


async def process_text(params: TextUtilitiesParams, context) -> dict:
    text = params.text
    operation = params.operation

    if operation == TextOperation.SUMMARIZE_STATS:
        return {"success": True, "result": text_stats(text)}

    if operation == TextOperation.EXTRACT_EMAILS:
        emails = _unique(EMAIL_PATTERN.findall(text))
        return {"success": True, "result": emails, "count": len(emails)}

    if operation == TextOperation.EXTRACT_URLS:
        urls = _unique(URL_PATTERN.findall(text))
        return {"success": True, "result": urls, "count": len(urls)}

    if operation == TextOperation.SLUG:
        return {"success": True, "result": slugify(text)}

    if operation == TextOperation.TRUNCATE:
        max_length = params.max_length if params.max_length > 0 else 100
        return {"success": True, **truncate_words(text, max_length)}

    if not params.pattern:
        return {"success": False, "error": "'pattern' is required for regex_match operation"}
    if len(text) > MAX_REGEX_TEXT_CHARS:
        return {
            "success": False,
            "error": f"Text too long for regex_match (max {MAX_REGEX_TEXT_CHARS} characters)",
        }
    if _NESTED_QUANTIFIER.search(params.pattern):
        return {"success": False, "error": "Pattern rejected: nested quantifiers can backtrack catastrophically"}
    try:
        # Off the event loop, bounded by REGEX_TIMEOUT
        matches = await asyncio.wait_for(
            asyncio.to_thread(regex_matches, text, params.pattern),
            timeout=REGEX_TIMEOUT,
        )
    except re.error as e:
        return {"success": False, "error": f"Invalid regular expression: {e}"}
    except asyncio.TimeoutError:
        return {"success": False, "error": f"Regex match timed out after {int(REGEX_TIMEOUT * 1000)}ms"}
    return {"success": True, "result": matches, "count": len(matches)}


text_utilities_tool = BuiltinTool(
    name="text_utilities",
    display_name="Text Utilities",
    description=(
        "Process text: get word/character statistics, extract emails or URLs, create URL "
        "slugs, truncate text, or match regex patterns."
    ),
    parameters=TextUtilitiesParams,
    handler=process_text,
)
