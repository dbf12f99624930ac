"""Tests for the course linter and its checks."""

import pytest

from relcourse.core.lint import (
    CourseLinter,
    Finding,
    LintReport,
    Severity,
    SQLSyntaxCheck,
    has_elision,
    parse_error,
)
from relcourse.core.lint.qa_pairs import QAPairCheck
from relcourse.utils.config import Config


def _lint(text, checks, config=None):
    return CourseLinter(config or Config(), checks=checks).lint_text(text)


# -- SQL syntax -------------------------------------------------------------


def test_invalid_sql_is_reported_at_its_line():
    text = "# Filters\n\n```sql\nSELECT * FROM orders WHERE (total > 10;\n```\n"

    report = _lint(text, ["sql_syntax"])

    assert len(report.findings) == 1
    finding = report.findings[0]
    assert finding.check == "sql_syntax"
    assert finding.severity == Severity.ERROR
    assert finding.line == 4
    assert finding.message.startswith("SQL does not parse as postgres")
    assert report.blocks_checked == 1


def test_valid_sql_passes():
    text = (
        "```sql\n"
        "CREATE TABLE customers (customer_id SERIAL PRIMARY KEY, email TEXT UNIQUE);\n"
        "SELECT c.email FROM customers AS c WHERE c.customer_id = 1;\n"
        "```\n"
    )

    assert _lint(text, ["sql_syntax"]).findings == []


def test_fence_language_selects_dialect():
    text = "```mysql\nSELECT * FROM t WHERE (a > 1;\n```\n"

    report = _lint(text, ["sql_syntax"])

    assert "as mysql" in report.findings[0].message


def test_marked_elided_and_empty_blocks_are_skipped():
    text = (
        "```sql invalid\nSELEC oops\n```\n\n"
        "<!-- relcourse: skip -->\n```sql\nSELECT (\n```\n\n"
        "```sql\nSELECT ... FROM orders;\n```\n\n"
        "```sql\n```\n\n"
        "```python\nprint((\n```\n"
    )

    report = _lint(text, ["sql_syntax"])

    assert report.findings == []
    assert report.blocks_checked == 4


def test_has_elision():
    assert has_elision("SELECT ... FROM orders")
    assert has_elision("SELECT a, … FROM orders")
    assert not has_elision("SELECT '...' FROM orders -- more ...")


def test_parse_error_line():
    assert parse_error("SELECT 1;") is None
    line, message = parse_error("SELECT 1;\nSELECT (2;")
    assert line == 2
    assert message


def test_unknown_dialect_rejected():
    with pytest.raises(ValueError):
        SQLSyntaxCheck({"dialect": "no-such-dialect"})


# -- Foreign keys -----------------------------------------------------------

ORDERS_DDL = """\
# Orders

```sql
CREATE TABLE orders (
    order_id INT PRIMARY KEY,
    customer_id INT NOT NULL REFERENCES customers (customer_id)
);
```
"""


def test_undefined_parent_table():
    report = _lint(ORDERS_DDL, ["foreign_keys"])

    assert len(report.findings) == 1
    finding = report.findings[0]
    assert finding.line == 6
    assert "references table 'customers' which is not defined earlier" in finding.message


def test_elided_parent_by_comment_or_directive():
    by_comment = ORDERS_DDL.replace("```sql\n", "```sql\n-- elided: customers\n")
    by_directive = ORDERS_DDL.replace("```sql\n", "<!-- relcourse: elided customers -->\n```sql\n")
    any_table = ORDERS_DDL.replace("```sql\n", "```sql\n-- defined above\n")

    for text in (by_comment, by_directive, any_table):
        assert _lint(text, ["foreign_keys"]).findings == []


def test_parent_defined_in_same_snippet():
    text = ORDERS_DDL.replace(
        "```sql\n",
        "```sql\nCREATE TABLE customers (customer_id INT PRIMARY KEY, email TEXT);\n",
    )

    assert _lint(text, ["foreign_keys"]).findings == []


def test_document_scope():
    text = (
        "```sql\nCREATE TABLE customers (customer_id INT PRIMARY KEY);\n```\n\n" + ORDERS_DDL
    )
    config = Config()

    assert len(_lint(text, ["foreign_keys"], config).findings) == 1

    config.set("lint.foreign_keys.scope", "document")
    assert _lint(text, ["foreign_keys"], config).findings == []


def test_parent_column_problems():
    text = """\
```sql
CREATE TABLE customers (customer_id INT PRIMARY KEY, email TEXT);
CREATE TABLE orders (
    order_id INT PRIMARY KEY,
    customer_id INT REFERENCES customers (id),
    contact TEXT REFERENCES customers (email),
    manager_id INT REFERENCES orders (order_id)
);
ALTER TABLE orders ADD FOREIGN KEY (buyer_id) REFERENCES customers;
```
"""
    findings = _lint(text, ["foreign_keys"]).findings
    messages = [f.message for f in findings]

    assert any("references missing column(s) in customers: id" in m for m in messages)
    assert any("uses column(s) not in orders: buyer_id" in m for m in messages)
    warnings = [f for f in findings if f.severity == Severity.WARNING]
    assert len(warnings) == 1
    assert "customers(email), which is not a primary or unique key" in warnings[0].message
    # Self-reference to a table being defined is fine
    assert not any("orders(manager_id)" in m for m in messages)


def test_invalid_scope_rejected():
    config = Config()
    config.set("lint.foreign_keys.scope", "course")

    with pytest.raises(ValueError, match="Invalid foreign key scope"):
        CourseLinter(config, checks=["foreign_keys"])


# -- Question / answer pairs -------------------------------------------------

QA_DOC = """\
# Exercises

**Q1:** What is a candidate key?

**A1:** A minimal superkey.

**Q2:** Which normal form removes transitive dependencies?

### Question 3

<details><summary>Show answer</summary>

Yes.
</details>

A: stray answer

```text
Q: inside a code fence
```
"""


def test_qa_pairs():
    findings = _lint(QA_DOC, ["qa_pairs"]).findings

    assert [(f.line, f.message) for f in findings] == [
        (7, "Question has no answer"),
        (16, "Answer does not follow a question"),
    ]


def test_qa_classify():
    check = QAPairCheck()

    assert check.classify("Q: plain") == "question"
    assert check.classify("- **Question 2.** Explain 3NF") == "question"
    assert check.classify("> A - yes") == "answer"
    assert check.classify("A table has rows.") is None
    assert check.classify("Q3. Why?") == "question"
    assert check.classify("A -> B is a dependency") is None


def test_qa_trailing_question():
    findings = _lint("Q: first\n\nA: yes\n\nQ: second\n", ["qa_pairs"]).findings

    assert [(f.line, f.message) for f in findings] == [(5, "Question has no answer")]


def test_qa_pair_on_one_line():
    text = (
        "**Q:** What is a key? **A:** A minimal superkey.\n\n"
        "**Q2:** What is 3NF? _Answer 2_: No transitive dependencies.\n\n"
        "Q: Is A: an answer here?\n"
    )

    findings = _lint(text, ["qa_pairs"]).findings

    assert [(f.line, f.message) for f in findings] == [(5, "Question has no answer")]


def test_qa_custom_labels():
    config = Config()
    config.set("lint.qa", {"question_labels": ["Exercise"], "answer_labels": ["Solution"]})

    findings = _lint("Exercise 1: Draw the ER diagram.\n", ["qa_pairs"], config).findings

    assert findings[0].message == "Question has no answer"


# -- Links ----------------------------------------------------------------


def test_links(tmp_path):
    (tmp_path / "chapter2.md").write_text("# Joins\n\nText.\n")
    (tmp_path / "chapter1.md").write_text(
        "# Intro\n\n"
        "See [next](chapter2.md#joins), [missing](nope.md), "
        "[bad anchor](chapter2.md#nothing-here), [self](#intro), "
        "[bad self](#outro), [site](https://example.com) and [root](/chapter2.md).\n"
    )

    report = CourseLinter(Config(), checks=["links"]).lint_paths([tmp_path])

    messages = sorted(f.message for f in report.findings)
    assert messages == [
        "Anchor '#nothing-here' not found in chapter2.md",
        "Anchor '#outro' not found in this document",
        "Link target not found: nope.md",
    ]
    assert report.files_checked == 2


def test_links_to_headings_with_underscores():
    text = (
        "- [order_items_pk](#order_items_pk)\n"
        "- [created_at_utc](#created_at_utc-column)\n\n"
        "## order_items_pk\n\n"
        "## created_at_utc column\n"
    )

    assert _lint(text, ["links"]).findings == []


def test_unreadable_file_does_not_stop_the_run(tmp_path):
    (tmp_path / "bad.md").write_bytes(b"# Caf\xe9\n")
    (tmp_path / "good.md").write_text("# Good\n\nSee [bad](bad.md#x) and [gone](#nowhere).\n")

    report = CourseLinter(Config(), checks=["links"]).lint_paths([tmp_path])

    assert report.files_checked == 1
    assert sorted((f.check, f.message.split(":")[0]) for f in report.findings) == [
        ("links", "Anchor '#nowhere' not found in this document"),
        ("links", "Anchor '#x' cannot be resolved"),
        ("read", "File cannot be read as UTF-8 Markdown"),
    ]
    unreadable = [f for f in report.findings if f.check == "read"][0]
    assert unreadable.path.endswith("bad.md")
    assert unreadable.severity == Severity.ERROR


def test_links_without_file_checks(tmp_path):
    (tmp_path / "chapter.md").write_text("[missing](nope.md)\n")
    config = Config()
    config.set("lint.links.check_files", False)

    assert CourseLinter(config, checks=["links"]).lint_paths([tmp_path]).findings == []


# -- Linter -----------------------------------------------------------------


def test_disable_directive():
    text = "<!-- relcourse: disable qa_pairs -->\n\nQ: orphan question\n"

    assert _lint(text, ["qa_pairs"]).findings == []
    assert len(_lint(text.split("\n", 2)[2], ["qa_pairs"]).findings) == 1


def test_discover_excludes_build_output(tmp_path):
    (tmp_path / "ch1.md").write_text("# One\n")
    (tmp_path / "notes.txt").write_text("not markdown\n")
    build = tmp_path / "_build"
    build.mkdir()
    (build / "ch1.md").write_text("[broken](missing.md)\n")

    linter = CourseLinter(Config())

    assert linter.discover([tmp_path]) == [tmp_path / "ch1.md"]
    report = linter.lint_paths([tmp_path])
    assert report.findings == []
    with pytest.raises(FileNotFoundError):
        linter.discover([tmp_path / "missing"])


def test_unknown_check():
    with pytest.raises(ValueError, match="Unknown check"):
        CourseLinter(Config(), checks=["spelling"])


def test_default_checks_run_together():
    text = ORDERS_DDL + "\nQ: unanswered\n\n[gone](#nowhere)\n"

    report = _lint(text, None)

    assert {f.check for f in report.findings} == {"foreign_keys", "qa_pairs", "links"}


# -- Report ---------------------------------------------------------------


def test_report_thresholds():
    report = LintReport(
        findings=[
            Finding("links", Severity.WARNING, "w", "b.md", 3),
            Finding("qa_pairs", Severity.ERROR, "e", "a.md", 9),
        ],
        files_checked=2,
    )

    assert report.fails("error")
    assert report.fails("warning")
    assert not report.fails("never")
    assert report.has_errors
    assert [f.path for f in report.sorted_findings()] == ["a.md", "b.md"]
    assert report.to_dict()["summary"] == {"error": 1, "warning": 1, "info": 0}
    assert str(report.findings[1]) == "a.md:9: error [qa_pairs] e"

    warnings_only = LintReport(findings=[report.findings[0]])
    assert not warnings_only.fails("error")
    assert warnings_only.fails(Severity.INFO)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
