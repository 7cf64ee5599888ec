"""
Agent Sync utility functions.

This module contains the frontmatter codec shared by every markdown-based
artifact, plus small JSON and checksum helpers.
"""

import hashlib
import json
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ValidationError

FRONTMATTER_DELIMITER = '---'


def calculate_content_checksum(content: str) -> str:
    """Calculate SHA256 checksum of string content.

    Args:
        content: String content to checksum

    Returns:
        SHA256 hex digest of the content
    """
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


def normalize_newlines(content: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return content.replace('\r\n', '\n').replace('\r', '\n')


def _trim_blank_lines(lines: List[str]) -> List[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def trim_body(body: str) -> str:
    """Remove leading and trailing blank lines from a body."""
    return '\n'.join(_trim_blank_lines(normalize_newlines(body).split('\n')))


def _split_block(lines: List[str]) -> Optional[int]:
    """Return the index of the closing delimiter of a leading block, if any."""
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None
    for i in range(1, len(lines)):
        if lines[i].strip() == FRONTMATTER_DELIMITER:
            return i
    return None


def parse_frontmatter(content: str) -> tuple[dict, str]:
    """Parse YAML frontmatter from markdown content.

    Both LF and CRLF line endings are accepted. Only the outermost block is
    consumed; the body is returned without leading or trailing blank lines.

    Args:
        content: Markdown content that may contain frontmatter

    Returns:
        Tuple of (frontmatter_dict, body_content)

    Raises:
        ValidationError: If the frontmatter block is not a YAML mapping
    """
    lines = normalize_newlines(content).split('\n')

    closing_idx = _split_block(lines)
    if closing_idx is None:
        return {}, '\n'.join(_trim_blank_lines(lines))

    try:
        frontmatter = yaml.safe_load('\n'.join(lines[1:closing_idx]))
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid frontmatter: {e}") from e

    if frontmatter is None:
        frontmatter = {}
    if not isinstance(frontmatter, dict):
        raise ValidationError(
            f"Invalid frontmatter: expected a mapping, got {type(frontmatter).__name__}"
        )

    return frontmatter, '\n'.join(_trim_blank_lines(lines[closing_idx + 1:]))


def serialize_frontmatter(frontmatter: Dict[str, Any], body: str) -> str:
    """Render frontmatter and body back into markdown.

    An empty frontmatter mapping renders the body alone, unless the body
    itself opens with a delimited block, which then gets an empty block ahead
    of it.
    """
    body = trim_body(body)
    if not frontmatter:
        if _split_block(body.split('\n')) is None:
            return body
        return f"{FRONTMATTER_DELIMITER}\n{FRONTMATTER_DELIMITER}\n\n{body}"

    yaml_str = yaml.dump(frontmatter, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return f"{FRONTMATTER_DELIMITER}\n{yaml_str}{FRONTMATTER_DELIMITER}\n\n{body}"


def strip_frontmatter(content: str) -> str:
    """Strip YAML frontmatter from markdown content.

    Args:
        content: Markdown content that may contain frontmatter

    Returns:
        Content with frontmatter removed
    """
    _, body = parse_frontmatter(content)
    return body


def strip_embedded_frontmatter(body: str) -> str:
    """Remove a stale frontmatter block left at the top of a body.

    Some producers write bodies that still start with an old metadata block.
    The block is only removed when it parses as a non-empty YAML mapping, so
    a body that merely opens with a horizontal rule is left alone.
    """
    lines = _trim_blank_lines(normalize_newlines(body).split('\n'))
    closing_idx = _split_block(lines)
    if closing_idx is None:
        return trim_body(body)

    try:
        block = yaml.safe_load('\n'.join(lines[1:closing_idx]))
    except yaml.YAMLError:
        return trim_body(body)

    if not isinstance(block, dict) or not block:
        return trim_body(body)

    return '\n'.join(_trim_blank_lines(lines[closing_idx + 1:]))


def load_json(content: str, source: str) -> Dict[str, Any]:
    """Parse a JSON document that must be an object."""
    try:
        data = json.loads(content) if content.strip() else {}
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {source}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid JSON in {source}: expected an object")
    return data


def dump_json(data: Dict[str, Any]) -> str:
    """Serialize a JSON document the way every generated file is written."""
    return json.dumps(data, indent=2, ensure_ascii=False)
