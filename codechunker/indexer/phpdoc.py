"""PHPDoc comment parsing."""

import re
from dataclasses import dataclass, field
from typing import List, Optional

PARAM_TAG_RE = re.compile(r"^@param\s+(?:(\S+)\s+)?(&?\.{0,3}\$\w+)\s*(.*)$")
TYPED_TAG_RE = re.compile(r"^@(return|returns|var)\s+(\S+)\s*(.*)$")


@dataclass
class ParamDoc:
    name: str
    type: str = ""
    description: str = ""


@dataclass
class PHPDoc:
    """Parsed contents of a ``/** ... */`` block."""

    description: str = ""
    params: List[ParamDoc] = field(default_factory=list)
    return_type: str = ""
    return_description: str = ""
    throws: List[str] = field(default_factory=list)
    var_type: str = ""
    var_description: str = ""
    deprecated: Optional[str] = None  # message, empty string when bare
    see: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)

    def param_type(self, name: str) -> str:
        for param in self.params:
            if param.name == name:
                return param.type
        return ""


def strip_comment_markers(comment: str) -> List[str]:
    """Remove ``/**``, ``*/`` and leading ``*`` from each line."""
    text = comment.strip()
    if text.startswith("/**"):
        text = text[3:]
    elif text.startswith("/*"):
        text = text[2:]
    if text.endswith("*/"):
        text = text[:-2]

    lines = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:]
            if line.startswith(" "):
                line = line[1:]
        lines.append(line.rstrip())
    return lines


def parse_phpdoc(comment: str) -> PHPDoc:
    """Parse a PHPDoc block.

    The description is every line before the first tag, joined with
    spaces. Recognized tags: @param, @return, @throws, @var, @deprecated,
    @see and @example. Unknown tags are ignored.

    Args:
        comment: Raw comment text including the comment markers

    Returns:
        Parsed PHPDoc
    """
    doc = PHPDoc()
    if not comment or not comment.lstrip().startswith("/*"):
        return doc

    description: List[str] = []
    in_tags = False
    last_tag = ""
    for line in strip_comment_markers(comment):
        stripped = line.strip()
        if stripped.startswith("@"):
            in_tags = True
            last_tag = stripped[1:].split(" ", 1)[0]
            _apply_tag(doc, stripped)
            continue
        if in_tags:
            if last_tag == "example" and stripped:
                doc.examples[-1] = f"{doc.examples[-1]}\n{stripped}".strip()
            continue
        if stripped:
            description.append(stripped)

    doc.description = " ".join(description)
    return doc


def _apply_tag(doc: PHPDoc, line: str) -> None:
    match = PARAM_TAG_RE.match(line)
    if match:
        name = match.group(2).lstrip("&.")
        doc.params.append(ParamDoc(name=name, type=match.group(1) or "", description=match.group(3).strip()))
        return

    match = TYPED_TAG_RE.match(line)
    if match:
        tag, tag_type, rest = match.group(1), match.group(2), match.group(3).strip()
        if tag == "var":
            doc.var_type = tag_type
            doc.var_description = rest
        else:
            doc.return_type = tag_type
            doc.return_description = rest
        return

    tag, _, rest = line[1:].partition(" ")
    rest = rest.strip()
    if tag == "throws" and rest:
        doc.throws.append(rest.split()[0])
    elif tag == "deprecated":
        doc.deprecated = rest
    elif tag == "see" and rest:
        doc.see.append(rest)
    elif tag == "example":
        doc.examples.append(rest)
