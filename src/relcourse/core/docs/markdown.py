"""Markdown document model: code fences, headings, anchors, links, directives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple
from urllib.parse import unquote

from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DIRECTIVE_PREFIX = "relcourse"

# Info-string words that mark a block as not claiming to be valid
BLOCK_FLAGS = {"skip", "invalid", "fragment"}

_FENCE_OPEN = re.compile(r"^(?P<indent>\s*)(?P<fence>`{3,}|~{3,})\s*(?P<info>.*?)\s*$")
_ATX_HEADING = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<text>.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT_UNDERLINE = re.compile(r"^ {0,3}(?P<char>=+|-+)[ \t]*$")
_CODE_SPAN = re.compile(r"(`+)(.+?)\1")
_INLINE_LINK = re.compile(
    r"(?P<bang>!?)\[(?P<text>(?:[^\[\]]|\[[^\]]*\])*)\]"
    r"\(\s*(?P<target><[^>]*>|[^)\s]+)(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)
_REFERENCE_DEF = re.compile(r"^ {0,3}\[(?P<label>[^\]]+)\]:\s*(?P<target><[^>]*>|\S+)")
_HTML_HREF = re.compile(r"<a\s[^>]*?href\s*=\s*[\"'](?P<target>[^\"']+)[\"']", re.IGNORECASE)
_HTML_ANCHOR = re.compile(
    r"<[a-zA-Z][^>]*?\s(?:id|name)\s*=\s*[\"'](?P<anchor>[^\"']+)[\"']", re.IGNORECASE
)
_EXTERNAL = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|//)")
_STAR_EMPHASIS = re.compile(r"(\*{1,3})(?=\S)(.+?)(?<=\S)\1")
# Underscores inside a word (order_items_pk) are not emphasis
_UNDERSCORE_EMPHASIS = re.compile(r"(?<!\w)(_{1,3})(?=\S)(.+?)(?<=\S)\1(?!\w)")
_MD_LINK_TEXT = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_HTML_TAG = re.compile(r"<[^>]+>")


def github_slug(text: str) -> str:
    """Anchor slug for a heading, as generated by GitHub.

    Markup is stripped first (links keep their text, code keeps its content),
    then the text is lower-cased, everything except letters, digits, spaces,
    hyphens and underscores is dropped, and spaces become hyphens.

    Example:
        >>> github_slug("1.2 What does `ON DELETE CASCADE` do?")
        '12-what-does-on-delete-cascade-do'
    """
    text = _MD_LINK_TEXT.sub(r"\1", text)
    text = _HTML_TAG.sub("", text)
    text = _CODE_SPAN.sub(lambda m: m.group(2), text)
    previous = None
    while previous != text:
        previous = text
        text = _STAR_EMPHASIS.sub(r"\2", text)
        text = _UNDERSCORE_EMPHASIS.sub(r"\2", text)
    text = text.strip().lower()
    text = re.sub(r"[^\w\- ]", "", text)
    return text.replace(" ", "-")


@dataclass
class Directive:
    """An HTML comment directive such as <!-- relcourse: elided customers -->."""

    name: str
    args: List[str]
    line: int


@dataclass
class CodeBlock:
    """A fenced code block."""

    language: str
    info: str
    content: str
    start_line: int  # line of the opening fence
    flags: Set[str] = field(default_factory=set)
    directives: List[Directive] = field(default_factory=list)
    closed: bool = True

    @property
    def content_line(self) -> int:
        """Line number of the first content line."""
        return self.start_line + 1

    def has_flag(self, name: str) -> bool:
        """Check an info-string flag or an attached directive."""
        return name in self.flags or any(d.name == name for d in self.directives)

    def directive_args(self, name: str) -> List[str]:
        args = []
        for directive in self.directives:
            if directive.name == name:
                args.extend(directive.args)
        return args


@dataclass
class Heading:
    level: int
    text: str
    anchor: str
    line: int


@dataclass
class Link:
    """A link or image target found in prose."""

    text: str
    target: str
    line: int
    is_image: bool = False
    kind: str = "inline"  # inline | reference | html

    @property
    def is_external(self) -> bool:
        return bool(_EXTERNAL.match(self.target))

    def split_target(self) -> Tuple[str, Optional[str]]:
        """Split into (path, fragment); both percent-decoded."""
        path, sep, fragment = self.target.partition("#")
        return unquote(path), (unquote(fragment) if sep else None)


@dataclass
class MarkdownDocument:
    """Parsed Markdown file."""

    text: str
    path: Optional[Path] = None
    code_blocks: List[CodeBlock] = field(default_factory=list)
    headings: List[Heading] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    html_anchors: Set[str] = field(default_factory=set)
    directives: List[Directive] = field(default_factory=list)
    _fenced_lines: Set[int] = field(default_factory=set, repr=False)

    @classmethod
    def from_file(
        cls, path: str | Path, directive_prefix: str = DEFAULT_DIRECTIVE_PREFIX
    ) -> MarkdownDocument:
        """Read and parse a Markdown file.

        Args:
            path: Markdown file path
            directive_prefix: Prefix of HTML comment directives

        Returns:
            MarkdownDocument
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Markdown file not found: {path}")
        text = path.read_text(encoding="utf-8")
        return cls.parse(text, path=path, directive_prefix=directive_prefix)

    @classmethod
    def parse(
        cls,
        text: str,
        path: Optional[str | Path] = None,
        directive_prefix: str = DEFAULT_DIRECTIVE_PREFIX,
    ) -> MarkdownDocument:
        """Parse Markdown text.

        Args:
            text: Markdown source
            path: Optional source path (used to resolve relative links)
            directive_prefix: Prefix of HTML comment directives

        Returns:
            MarkdownDocument
        """
        doc = cls(text=text, path=Path(path) if path is not None else None)
        _Parser(doc, directive_prefix).run()
        logger.debug(
            f"Parsed {doc.display_path}: {len(doc.headings)} headings, "
            f"{len(doc.code_blocks)} code blocks, {len(doc.links)} links"
        )
        return doc

    @property
    def display_path(self) -> str:
        return str(self.path) if self.path is not None else "<string>"

    @property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    def has_anchor(self, fragment: str) -> bool:
        """Check a link fragment; heading slugs match case-insensitively."""
        if fragment in self.html_anchors:
            return True
        return fragment.lower() in {h.anchor for h in self.headings}

    def disabled_checks(self) -> Set[str]:
        """Checks switched off with <!-- relcourse: disable name -->."""
        disabled = set()
        for directive in self.directives:
            if directive.name == "disable":
                disabled.update(directive.args)
        return disabled

    def prose_lines(self) -> Iterator[Tuple[int, str]]:
        """Yield (line number, text) for lines outside code fences."""
        for number, line in enumerate(self.lines, start=1):
            if number not in self._fenced_lines:
                yield number, line


class _Parser:
    """Single pass over the lines of a document."""

    def __init__(self, doc: MarkdownDocument, directive_prefix: str):
        self.doc = doc
        self.directive_re = re.compile(
            r"<!--\s*" + re.escape(directive_prefix) + r"\s*:\s*(?P<name>[\w-]+)(?P<args>.*?)\s*-->"
        )
        self.slug_counts: Dict[str, int] = {}
        self.pending: List[Directive] = []

    def run(self) -> None:
        lines = self.doc.text.splitlines()
        number = 0
        previous_paragraph: Optional[Tuple[int, str]] = None

        while number < len(lines):
            line = lines[number]
            lineno = number + 1
            fence = _FENCE_OPEN.match(line)
            if fence and not (fence.group("fence")[0] == "`" and "`" in fence.group("info")):
                number = self._code_block(lines, number, fence)
                previous_paragraph = None
                continue

            directives = self._directives(line, lineno)
            stripped = line.strip()

            heading = _ATX_HEADING.match(line)
            underline = _SETEXT_UNDERLINE.match(line)
            if heading:
                self._heading(len(heading.group("hashes")), heading.group("text") or "", lineno)
                previous_paragraph = None
            elif underline and previous_paragraph is not None:
                level = 1 if underline.group("char").startswith("=") else 2
                self._heading(level, previous_paragraph[1], previous_paragraph[0])
                previous_paragraph = None
            elif stripped and not directives:
                previous_paragraph = (lineno, stripped) if _is_paragraph(stripped) else None
            else:
                previous_paragraph = None

            if stripped and not directives:
                self.pending = []
            self._links(line, lineno)
            for match in _HTML_ANCHOR.finditer(line):
                self.doc.html_anchors.add(match.group("anchor"))
            number += 1

    def _directives(self, line: str, lineno: int) -> List[Directive]:
        found = []
        for match in self.directive_re.finditer(line):
            args = [a for a in re.split(r"[,\s]+", match.group("args")) if a]
            directive = Directive(match.group("name").lower(), args, lineno)
            found.append(directive)
            self.doc.directives.append(directive)
        if found and not self.directive_re.sub("", line).strip():
            self.pending.extend(found)
        return found

    def _heading(self, level: int, text: str, lineno: int) -> None:
        text = text.strip()
        base = github_slug(text)
        if base in self.slug_counts:
            self.slug_counts[base] += 1
            anchor = f"{base}-{self.slug_counts[base]}"
        else:
            self.slug_counts[base] = 0
            anchor = base
        self.doc.headings.append(Heading(level=level, text=text, anchor=anchor, line=lineno))

    def _code_block(self, lines: List[str], index: int, fence: re.Match) -> int:
        marker = fence.group("fence")
        indent = len(fence.group("indent"))
        info = fence.group("info")
        words = info.replace("{", " ").replace("}", " ").replace(",", " ").split()
        language = words[0].lower().lstrip(".") if words else ""
        flags = {w.lower().lstrip(".") for w in words[1:]} & BLOCK_FLAGS

        closing = re.compile(r"^\s*" + re.escape(marker[0]) + "{" + str(len(marker)) + r",}\s*$")
        content = []
        end = index + 1
        closed = False
        while end < len(lines):
            if closing.match(lines[end]):
                closed = True
                break
            raw = lines[end]
            content.append(raw[indent:] if raw[:indent].strip() == "" else raw.lstrip())
            end += 1

        for fenced in range(index + 1, end + 2):
            self.doc._fenced_lines.add(fenced)

        if not closed:
            logger.warning(
                f"{self.doc.display_path}:{index + 1}: unclosed code fence"
            )

        self.doc.code_blocks.append(
            CodeBlock(
                language=language,
                info=info,
                content="\n".join(content),
                start_line=index + 1,
                flags=flags,
                directives=list(self.pending),
                closed=closed,
            )
        )
        self.pending = []
        return end + 1

    def _links(self, line: str, lineno: int) -> None:
        # Blank out inline code so `[x](y)` inside backticks is not a link
        scan = _CODE_SPAN.sub(lambda m: " " * len(m.group(0)), line)

        definition = _REFERENCE_DEF.match(scan)
        if definition:
            self.doc.links.append(
                Link(
                    text=definition.group("label"),
                    target=definition.group("target").strip("<>"),
                    line=lineno,
                    kind="reference",
                )
            )
            return

        for match in _INLINE_LINK.finditer(scan):
            self.doc.links.append(
                Link(
                    text=match.group("text"),
                    target=match.group("target").strip("<>"),
                    line=lineno,
                    is_image=bool(match.group("bang")),
                )
            )
        for match in _HTML_HREF.finditer(scan):
            self.doc.links.append(
                Link(text="", target=match.group("target"), line=lineno, kind="html")
            )


def _is_paragraph(stripped: str) -> bool:
    """Lines that can be promoted to a setext heading by an underline."""
    return not re.match(r"^(?:[-*+>|]|\d+[.)]\s|<)", stripped)
