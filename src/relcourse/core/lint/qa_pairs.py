"""Question/answer pairing check.

Exercises are written as a question marker followed by an answer marker::

    **Q1:** Which key does a weak entity borrow?

    <details><summary>Answer</summary>
    ...
    </details>

Every question must be followed by exactly one answer before the next
question, and every answer must follow a question. A question and its answer
may share a line when the answer marker is emphasised and carries a colon
(``**Q:** What is a key? **A:** A minimal superkey.``); a bare inline ``A:``
is not treated as an answer.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from relcourse.core.docs.markdown import MarkdownDocument
from relcourse.core.lint.base import LintCheck, LintContext
from relcourse.core.lint.findings import Finding

DEFAULT_QUESTION_LABELS = ["Q", "Question"]
DEFAULT_ANSWER_LABELS = ["A", "Answer"]

QUESTION = "question"
ANSWER = "answer"


def marker_pattern(labels: Sequence[str]) -> re.Pattern:
    """Build the line pattern for a set of marker labels.

    Matches labels at the start of a line, optionally after heading hashes,
    a list bullet, a blockquote or emphasis, and followed by an optional
    number and a colon (``Q1:``, ``**Answer:**``, ``### Question 3``).
    ``Q1.`` and ``Q2)`` are accepted only when numbered.
    """
    alternatives = "|".join(re.escape(label) for label in sorted(labels, key=len, reverse=True))
    return re.compile(
        r"^\s{0,3}(?:(?:#{1,6}|[-*+]|\d+[.)]|>)\s*)*"
        r"(?:\*\*|__|\*|_)?\s*"
        r"(?:" + alternatives + r")"
        r"(?P<num>\s*#?\d+(?:\.\d+)*)?"
        r"\s*(?:\*\*|__|\*|_)?"
        r"(?::|\s[-–—]\s|\s*$|(?(num)[.)]|(?!)))"
    )


def inline_marker_pattern(labels: Sequence[str]) -> re.Pattern:
    """Pattern for an emphasised marker inside a line (``**A:**``, ``_Answer 2_:``)."""
    alternatives = "|".join(re.escape(label) for label in sorted(labels, key=len, reverse=True))
    return re.compile(
        r"(?<!\w)(?:\*\*|__|\*|_)(?:" + alternatives + r")(?:\s*\d+)?"
        r"(?::(?:\*\*|__|\*|_)|(?:\*\*|__|\*|_):)"
    )


def summary_pattern(labels: Sequence[str]) -> re.Pattern:
    """Pattern for ``<summary>Show answer</summary>`` style markers.

    Single-letter labels are ignored here ("a" is an ordinary word).
    """
    words = [label for label in labels if len(label) > 1]
    if not words:
        return re.compile(r"(?!)")
    alternatives = "|".join(re.escape(label) for label in words)
    return re.compile(
        r"<summary>[^<]*?\b(?:" + alternatives + r")\b", re.IGNORECASE
    )


class QAPairCheck(LintCheck):
    """Questions and answers must pair one to one."""

    name = "qa_pairs"

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(config)
        question_labels = self.config.get("question_labels") or DEFAULT_QUESTION_LABELS
        answer_labels = self.config.get("answer_labels") or DEFAULT_ANSWER_LABELS
        self.question_re = marker_pattern(question_labels)
        self.answer_re = marker_pattern(answer_labels)
        self.inline_answer_re = inline_marker_pattern(answer_labels)
        self.question_summary_re = summary_pattern(question_labels)
        self.answer_summary_re = summary_pattern(answer_labels)

    def classify(self, line: str) -> Optional[str]:
        """Return "question", "answer" or None for a prose line."""
        if self.question_re.match(line):
            return QUESTION
        if self.answer_re.match(line):
            return ANSWER
        if self.answer_summary_re.search(line):
            return ANSWER
        if self.question_summary_re.search(line):
            return QUESTION
        return None

    def markers(self, document: MarkdownDocument) -> List[tuple]:
        """(line, kind) for every marker outside code fences."""
        found = []
        for number, line in document.prose_lines():
            kind = self.classify(line)
            if kind is None:
                continue
            found.append((number, kind))
            question = self.question_re.match(line) if kind == QUESTION else None
            if question and self.inline_answer_re.search(line, question.end()):
                found.append((number, ANSWER))
        return found

    def check(self, document: MarkdownDocument, context: LintContext) -> List[Finding]:
        findings = []
        open_question: Optional[int] = None

        for line, kind in self.markers(document):
            if kind == QUESTION:
                if open_question is not None:
                    findings.append(
                        self.finding(document, open_question, "Question has no answer")
                    )
                open_question = line
            elif open_question is None:
                findings.append(
                    self.finding(document, line, "Answer does not follow a question")
                )
            else:
                open_question = None

        if open_question is not None:
            findings.append(self.finding(document, open_question, "Question has no answer"))
        return findings
