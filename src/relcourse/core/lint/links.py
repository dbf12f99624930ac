"""Link and anchor resolution check."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from relcourse.core.docs.markdown import Link, MarkdownDocument
from relcourse.core.lint.base import LintCheck, LintContext
from relcourse.core.lint.findings import Finding
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown"}


class LinkCheck(LintCheck):
    """Relative links must name existing files and anchors."""

    name = "links"

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(config)
        self.check_files = self.config.get("check_files", True)
        self.check_anchors = self.config.get("check_anchors", True)

    def check(self, document: MarkdownDocument, context: LintContext) -> List[Finding]:
        findings = []
        for link in document.links:
            if link.is_external:
                logger.debug(f"Not checking external link {link.target}")
                continue
            message = self._resolve(document, link, context)
            if message:
                findings.append(self.finding(document, link.line, message))
        return findings

    def _resolve(
        self, document: MarkdownDocument, link: Link, context: LintContext
    ) -> Optional[str]:
        """Return an error message, or None when the link resolves."""
        path_part, fragment = link.split_target()

        if not path_part:
            if fragment and self.check_anchors and not document.has_anchor(fragment):
                return f"Anchor '#{fragment}' not found in this document"
            return None

        if not self.check_files:
            return None

        if path_part.startswith("/"):
            target = context.root / path_part.lstrip("/")
        else:
            base = document.path.parent if document.path is not None else context.root
            target = base / path_part

        if not target.exists():
            return f"Link target not found: {link.target}"

        if (
            fragment
            and self.check_anchors
            and target.is_file()
            and target.suffix.lower() in MARKDOWN_SUFFIXES
        ):
            try:
                other = context.get_document(target)
            except (UnicodeDecodeError, OSError) as e:
                logger.warning(f"Cannot read {target}: {e}")
                return (
                    f"Anchor '#{fragment}' cannot be resolved: "
                    f"{Path(path_part).name} is not readable"
                )
            if not other.has_anchor(fragment):
                return f"Anchor '#{fragment}' not found in {Path(path_part).name}"
        return None
