"""Markdown course documents."""

from relcourse.core.docs.markdown import (
    CodeBlock,
    Directive,
    Heading,
    Link,
    MarkdownDocument,
    github_slug,
)

__all__ = [
    "CodeBlock",
    "Directive",
    "Heading",
    "Link",
    "MarkdownDocument",
    "github_slug",
]
