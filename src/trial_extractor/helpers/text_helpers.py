"""Cleanup of raw PubMed text (tags, character entities, whitespace)."""

import re

# Entities with a meaningful replacement. Anything else matching
# _ANY_ENTITY becomes a single space.
ENTITY_MAP: dict[str, str] = {
    "&#x2008;": " ",  # punctuation space
    "&#x2009;": " ",  # thin space
    "&#x200a;": " ",  # hair space
    "&#x2002;": " ",  # en space
    "&#x2003;": " ",  # em space
    "&#xd7;": "×",
    "&#x2010;": "-",
    "&#x2013;": "–",
    "&#x2014;": "—",
    "&#x2019;": "'",
    "&#x201c;": '"',
    "&#x201d;": '"',
    # Middle dot is a decimal separator in Lancet-style statistics (0·82)
    "&#xb7;": "·",
    "&#183;": "·",
    "&middot;": "·",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&apos;": "'",
}

# Characters an XML parser has already decoded from the entities above.
CHARACTER_MAP: dict[str, str] = {
    "‐": "-",
    "’": "'",
    "“": '"',
    "”": '"',
}

# Entities an XML parser decodes by itself.
XML_PREDEFINED_ENTITIES: frozenset[str] = frozenset(
    {"&amp;", "&lt;", "&gt;", "&quot;", "&apos;"}
)

# A real tag: name plus well-formed attributes. "<ULN and AST >2" is prose.
_TAG = re.compile(
    r"</?[A-Za-z][\w:.-]*"
    r"(?:\s+[\w:.-]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*"
    r"\s*/?>"
)
_ANY_ENTITY = re.compile(r"&(?:#[xX][0-9a-fA-F]+|#[0-9]+|[A-Za-z][A-Za-z0-9]*);")
_WHITESPACE = re.compile(r"\s+")
_XML_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&apos;"}


def _decode_entity(match: re.Match) -> str:
    return ENTITY_MAP.get(match.group(0).lower(), " ")


def _decode_entities(text: str) -> str:
    # Every replacement is shorter than its entity, so this terminates.
    while True:
        decoded = _ANY_ENTITY.sub(_decode_entity, text)
        if decoded == text:
            return decoded
        text = decoded


def normalize_pubmed_text(raw: str) -> str:
    """Strip tags, decode entities and collapse whitespace.

    Tags are stripped once, before decoding, so "&lt;" and "&gt;" always
    survive as "<" and ">". Entities are decoded until none are left
    (``&amp;lt;`` ends up as ``<``). Never raises. Normalizing the output
    again is a no-op unless the decoded text itself spells out a tag.

    >>> normalize_pubmed_text("Grade &#xb7;3&#x2013;4 toxicity")
    'Grade ·3–4 toxicity'
    >>> normalize_pubmed_text("ALT &lt;ULN and AST &gt;2&#xd7;ULN")
    'ALT <ULN and AST >2×ULN'
    """
    if not raw:
        return ""
    text = _decode_entities(_TAG.sub("", raw))
    for char, replacement in CHARACTER_MAP.items():
        text = text.replace(char, replacement)
    return _WHITESPACE.sub(" ", text).strip()


def escape_xml_text(text: str) -> str:
    """Re-escape text an XML parser has already decoded."""
    return "".join(_XML_ESCAPES.get(char, char) for char in text)


def normalize_parsed_text(text: str) -> str:
    """normalize_pubmed_text for text that came out of an XML parser.

    The parser has decoded "&lt;" to "<"; escaping first keeps such
    characters from being read as tags.
    """
    return normalize_pubmed_text(escape_xml_text(text or ""))


def fold_entities_for_xml(raw: str) -> str:
    """Resolve every entity except XML's predefined ones through ENTITY_MAP.

    Run over a document before parsing it, so a parser sees the same
    characters the pattern-based path produces (an entity outside the table
    becomes a space on both paths).
    """

    def fold(match: re.Match) -> str:
        entity = match.group(0)
        if entity in XML_PREDEFINED_ENTITIES:
            return entity
        return escape_xml_text(_decode_entity(match))

    return _ANY_ENTITY.sub(fold, raw or "")
