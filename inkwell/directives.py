"""Generic directive syntax for Inkwell's Markdown.

Directives name a semantic construct inside Markdown and carry optional
attributes. Three forms are recognized:

.. code-block:: text

    :::note[Heads up]{.warning #first}
    Container directive: its body is parsed as Markdown.
    :::

    ::note[Leaf directive on a single line]{.tip}

    Text directive :note[inline]{lang=en} inside a paragraph.

Parsing produces ``container_directive``, ``leaf_directive`` and
``text_directive`` tokens. ``rewrite_directives`` then walks the token tree
and turns each directive into either an HTML element (for names listed in
``DIRECTIVE_ELEMENTS``, i.e. ``note``) or its literal source text.

Attribute lists that cannot be parsed fail closed: the parser does not
produce a directive at all, so the source stays plain text.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Match, Optional

if TYPE_CHECKING:
    from mistune.block_parser import BlockParser
    from mistune.core import BlockState, InlineState
    from mistune.inline_parser import InlineParser
    from mistune.markdown import Markdown

__all__ = [
    "DIRECTIVE_ELEMENTS",
    "DirectiveAttributeError",
    "directives",
    "parse_attributes",
    "rewrite_directives",
]

NAME = r"[A-Za-z][A-Za-z0-9_-]*"

CONTAINER_PATTERN = (
    r"^ {0,3}(?P<container_directive_mark>:{3,})"
    r"(?P<container_directive_name>" + NAME + r")"
    r"(?P<container_directive_tail>[^\n]*)(?:\n|$)"
)
LEAF_PATTERN = (
    r"^ {0,3}::(?P<leaf_directive_name>" + NAME + r")"
    r"(?P<leaf_directive_tail>[^\n]*)(?:\n|$)"
)
TEXT_PATTERN = (
    r":(?P<text_directive_name>" + NAME + r")"
    r"(?:\[(?P<text_directive_label>[^\]\n]*)\])?"
    r"(?:\{(?P<text_directive_attrs>[^}\n]*)\})?"
)

# Label and attribute list after a block directive name; nothing else may follow
_TAIL_RE = re.compile(r"(?:\[(?P<label>[^\]\n]*)\])?(?:\{(?P<attrs>[^}\n]*)\})?[ \t]*")

_ATTR_RE = re.compile(
    r"""[ \t]*(?:
        \#(?P<id>[^\s#.="'{}]+)
      | \.(?P<cls>[^\s#.="'{}]+)
      | (?P<key>[A-Za-z_:][\w.:-]*)
        (?:=(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s"'=<>`{}]+)))?
    )[ \t]*""",
    re.VERBOSE,
)

# Directive name -> (tag for container/leaf forms, tag for the text form)
DIRECTIVE_ELEMENTS: Mapping[str, tuple[str, str]] = {
    "note": ("div", "span"),
}

DIRECTIVE_TYPES = ("container_directive", "leaf_directive", "text_directive")


class DirectiveAttributeError(ValueError):
    """An attribute list inside ``{...}`` could not be parsed."""


def parse_attributes(text: str | None) -> dict[str, str]:
    """Parse a directive attribute list.

    Supports ``#id``, ``.class`` (repeatable), ``key=value`` with bare,
    double- or single-quoted values, and bare ``key`` (empty value).

    Args:
        text: Content between the braces, or None.

    Returns:
        Attribute names to values, in source order. Classes are joined
        with spaces under ``class``.

    Raises:
        DirectiveAttributeError: If the list contains anything else.

    Examples:
        >>> parse_attributes('.tip #intro lang="en"')
        {'class': 'tip', 'id': 'intro', 'lang': 'en'}
    """
    attributes: dict[str, str] = {}
    if not text:
        return attributes
    pos = 0
    while pos < len(text):
        m = _ATTR_RE.match(text, pos)
        if not m or m.end() == pos:
            raise DirectiveAttributeError(f"Invalid attribute list: {text!r}")
        if m.group("id") is not None:
            attributes["id"] = m.group("id")
        elif m.group("cls") is not None:
            existing = attributes.get("class")
            attributes["class"] = f"{existing} {m.group('cls')}" if existing else m.group("cls")
        elif m.group("key") is not None:
            value = next(
                (v for v in (m.group("dq"), m.group("sq"), m.group("bare")) if v is not None),
                "",
            )
            attributes[m.group("key")] = value
        pos = m.end()
    return attributes


def _parse_tail(tail: str) -> tuple[str | None, dict[str, str]] | None:
    m = _TAIL_RE.fullmatch(tail)
    if not m:
        return None
    try:
        attributes = parse_attributes(m.group("attrs"))
    except DirectiveAttributeError:
        return None
    return m.group("label"), attributes


_CODE_FENCE_RE = re.compile(r" {0,3}(`{3,}|~{3,})")


def _find_container_end(
    src: str, start: int, marker_length: int
) -> tuple[int, int, str] | None:
    """Locate the line closing a container opened with ``marker_length`` colons.

    Lines inside fenced code blocks never close the container.

    Returns:
        (start, end, text) of the closing line, or None if it is missing.
    """
    closing_re = re.compile(r" {0,3}:{%d,}[ \t]*" % marker_length)
    fence: str | None = None
    pos = start
    while pos < len(src):
        newline = src.find("\n", pos)
        line_end = len(src) if newline == -1 else newline + 1
        line = src[pos:line_end].rstrip("\n")
        if fence is None:
            if closing_re.fullmatch(line):
                return pos, line_end, line.strip()
            m = _CODE_FENCE_RE.match(line)
            if m:
                fence = m.group(1)
        elif re.fullmatch(r" {0,3}%s{%d,}[ \t]*" % (re.escape(fence[0]), len(fence)), line):
            fence = None
        pos = line_end
    return None


def parse_container_directive(
    block: BlockParser, m: Match[str], state: BlockState
) -> Optional[int]:
    parsed = _parse_tail(m.group("container_directive_tail"))
    if parsed is None:
        return None
    label, attributes = parsed

    start = m.end()
    found = _find_container_end(state.src, start, len(m.group("container_directive_mark")))
    if found:
        close_start, end_pos, closing = found
        body = state.src[start:close_start]
    else:
        body = state.src[start:]
        end_pos = state.cursor_max
        closing = None

    rules = list(block.rules)
    if state.depth() >= block.max_nested_level - 1 and "container_directive" in rules:
        rules.remove("container_directive")
    child = state.child_state(body)
    block.parse(child, rules)

    children = list(child.tokens)
    if label:
        children.insert(0, {"type": "paragraph", "text": label, "directive_label": True})

    state.append_token(
        {
            "type": "container_directive",
            "children": children,
            "attrs": {"name": m.group("container_directive_name"), "attributes": attributes},
            "source": m.group(0).strip(),
            "closing": closing,
        }
    )
    return end_pos


def parse_leaf_directive(
    block: BlockParser, m: Match[str], state: BlockState
) -> Optional[int]:
    parsed = _parse_tail(m.group("leaf_directive_tail"))
    if parsed is None:
        return None
    label, attributes = parsed
    state.append_token(
        {
            "type": "leaf_directive",
            "text": label or "",
            "attrs": {"name": m.group("leaf_directive_name"), "attributes": attributes},
            "source": m.group(0).strip(),
        }
    )
    return m.end()


def parse_text_directive(
    inline: InlineParser, m: Match[str], state: InlineState
) -> Optional[int]:
    start, end = m.start(), m.end()
    if start > 0 and (state.src[start - 1].isalnum() or state.src[start - 1] in ":_"):
        return None
    # an unterminated label or attribute list
    if end < len(state.src) and state.src[end] in "[{":
        return None
    try:
        attributes = parse_attributes(m.group("text_directive_attrs"))
    except DirectiveAttributeError:
        return None

    new_state = state.copy()
    new_state.src = m.group("text_directive_label") or ""
    children = inline.render(new_state)
    state.append_token(
        {
            "type": "text_directive",
            "children": children,
            "attrs": {"name": m.group("text_directive_name"), "attributes": attributes},
            "source": m.group(0),
        }
    )
    return end


def _literal_text(source: str) -> dict[str, Any]:
    """Plain text showing a directive's source.

    The source is shown as written, so markup inside a label is escaped
    rather than passed through as raw HTML.
    """
    return {"type": "text", "raw": source}


def _literal_paragraph(source: str) -> dict[str, Any]:
    return {"type": "paragraph", "children": [_literal_text(source)]}


def _to_element(token: dict[str, Any], tags: tuple[str, str]) -> dict[str, Any]:
    block_tag, inline_tag = tags
    is_text = token["type"] == "text_directive"
    return {
        "type": "directive_element",
        "children": token.get("children", []),
        "attrs": {
            "tag": inline_tag if is_text else block_tag,
            "attributes": dict(token["attrs"]["attributes"]),
            "block": not is_text,
        },
    }


def _to_literal(token: dict[str, Any]) -> list[dict[str, Any]]:
    kind = token["type"]
    if kind == "text_directive":
        return [_literal_text(token["source"])]
    if kind == "leaf_directive":
        return [_literal_paragraph(token["source"])]
    body = [child for child in token.get("children", []) if not child.get("directive_label")]
    tokens = [_literal_paragraph(token["source"]), *body]
    if token.get("closing"):
        tokens.append(_literal_paragraph(token["closing"]))
    return tokens


def rewrite_directives(
    tokens: list[dict[str, Any]],
    elements: Mapping[str, tuple[str, str]] = DIRECTIVE_ELEMENTS,
) -> list[dict[str, Any]]:
    """Replace directive tokens throughout a token tree.

    Directives whose name is in ``elements`` become ``directive_element``
    tokens. Any other directive is replaced by its literal source text;
    a container's body is kept and rendered between its fence lines.

    Args:
        tokens: Parsed tokens, after inline parsing.
        elements: Directive names mapped to (block tag, inline tag).

    Returns:
        New token list without directive tokens.
    """
    result: list[dict[str, Any]] = []
    for token in tokens:
        if "children" in token:
            token = {**token, "children": rewrite_directives(token["children"], elements)}
        if token["type"] not in DIRECTIVE_TYPES:
            result.append(token)
            continue
        tags = elements.get(token["attrs"]["name"])
        if tags is None:
            result.extend(_to_literal(token))
        else:
            result.append(_to_element(token, tags))
    return result


def directives(md: Markdown) -> None:
    """Mistune plugin adding container, leaf and text directives.

    Args:
        md: Markdown instance.
    """
    md.block.register(
        "container_directive", CONTAINER_PATTERN, parse_container_directive, before="list"
    )
    md.block.register("leaf_directive", LEAF_PATTERN, parse_leaf_directive, before="list")
    for rules in (md.block.block_quote_rules, md.block.list_rules):
        md.block.insert_rule(rules, "container_directive", before="list")
        md.block.insert_rule(rules, "leaf_directive", before="list")
    md.inline.register("text_directive", TEXT_PATTERN, parse_text_directive, before="link")
