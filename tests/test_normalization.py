"""Tests for functional dependencies, keys and normal forms."""

import pandas as pd
import pytest

from relcourse.core.schema.normalization import (
    FunctionalDependency,
    attribute_closure,
    candidate_keys,
    decompose_bcnf,
    discover_fds,
    is_superkey,
    minimal_cover,
    normal_form,
    parse_fd,
    parse_mvd,
    prime_attributes,
    project_fds,
    synthesize_3nf,
)

FD = FunctionalDependency

# Textbook relation: a student takes a course from one teacher, each teacher
# teaches one course.
SCT = ["student", "course", "teacher"]
SCT_FDS = [FD("student, course", "teacher"), FD("teacher", "course")]


def test_parse_fd():
    fd = parse_fd("a, b -> c")
    assert fd.lhs == frozenset({"a", "b"})
    assert fd.rhs == frozenset({"c"})
    assert str(fd) == "a, b -> c"
    assert parse_fd("a → b") == FD("a", "b")
    assert parse_fd("a b => c d") == FD(["a", "b"], ["c", "d"])


def test_parse_fd_errors():
    with pytest.raises(ValueError, match="MVD"):
        parse_fd("course ->> teacher")
    with pytest.raises(ValueError):
        parse_fd("a b c")
    with pytest.raises(ValueError, match="both sides"):
        parse_fd("-> b")


def test_parse_mvd():
    mvd = parse_mvd("course ->> teacher")
    assert mvd.lhs == frozenset({"course"})
    assert str(mvd) == "course ->> teacher"
    assert mvd.is_trivial(["course", "teacher"])
    assert not mvd.is_trivial(["course", "teacher", "book"])


def test_attribute_closure():
    fds = [FD("a", "b"), FD("b", "c"), FD("c, d", "e")]

    assert attribute_closure({"a"}, fds) == frozenset({"a", "b", "c"})
    assert attribute_closure({"a", "d"}, fds) == frozenset({"a", "b", "c", "d", "e"})
    assert is_superkey({"a", "d"}, "a b c d e", fds)
    assert not is_superkey({"a"}, "a b c d e", fds)


def test_candidate_keys():
    keys = candidate_keys(SCT, SCT_FDS)

    assert keys == [frozenset({"course", "student"}), frozenset({"student", "teacher"})]
    assert prime_attributes(SCT, SCT_FDS) == frozenset(SCT)


def test_candidate_keys_without_dependencies():
    assert candidate_keys(["a", "b"], []) == [frozenset({"a", "b"})]


def test_minimal_cover():
    fds = [FD("a", "b, c"), FD("b", "c"), FD("a", "b"), FD("a, b", "c")]

    assert minimal_cover(fds) == [FD("a", "b"), FD("b", "c")]


def test_normal_form_third_not_bcnf():
    result = normal_form(SCT, SCT_FDS)

    assert result.normal_form == "3NF"
    assert result.satisfies("2NF")
    assert not result.satisfies("BCNF")
    assert result.violations["BCNF"] == ["determinant is not a superkey: teacher -> course"]


def test_normal_form_partial_dependency():
    attributes = ["order_id", "product_id", "quantity", "product_name"]
    fds = [FD("order_id, product_id", "quantity"), FD("product_id", "product_name")]

    result = normal_form(attributes, fds)

    assert result.normal_form == "1NF"
    assert result.violations["2NF"] == ["partial dependency: product_id -> product_name"]


def test_normal_form_transitive_dependency():
    result = normal_form(
        ["emp_id", "dept_id", "dept_name"],
        [FD("emp_id", "dept_id"), FD("dept_id", "dept_name")],
    )

    assert result.normal_form == "2NF"
    assert "3NF" in result.violations
    assert "2NF" not in result.violations


def test_normal_form_repeating_group():
    result = normal_form(["id", "phones"], [FD("id", "phones")], multivalued_attributes=["phones"])

    assert result.normal_form == "UNF"
    assert result.violations["1NF"] == ["repeating group: phones"]


def test_normal_form_fourth():
    attributes = ["course", "teacher", "book"]

    assert normal_form(attributes, [], [parse_mvd("course ->> teacher")]).normal_form == "BCNF"
    assert normal_form(["a", "b"], [FD("a", "b")]).normal_form == "4NF"
    assert normal_form(["a", "b"], [FD("a", "b")]).to_dict()["5NF"] == "not assessed"


def test_project_fds():
    fds = [FD("a", "b"), FD("b", "c")]

    assert project_fds(["a", "c"], fds) == [FD("a", "c")]


def test_decompose_bcnf():
    relations = decompose_bcnf(SCT, SCT_FDS)

    assert relations == [frozenset({"course", "teacher"}), frozenset({"student", "teacher"})]
    for relation in relations:
        local = project_fds(relation, SCT_FDS)
        assert normal_form(sorted(relation), local).satisfies("BCNF")


def test_synthesize_3nf():
    relations = synthesize_3nf(
        ["emp_id", "dept_id", "dept_name"],
        [FD("emp_id", "dept_id"), FD("dept_id", "dept_name")],
    )

    assert relations == [frozenset({"dept_id", "dept_name"}), frozenset({"dept_id", "emp_id"})]


def test_synthesize_3nf_adds_key_relation():
    relations = synthesize_3nf(["a", "b", "c"], [FD("a", "b")])

    assert frozenset({"a", "c"}) in relations
    assert frozenset({"a", "b"}) in relations


def test_discover_fds():
    df = pd.DataFrame(
        {
            "emp_id": [1, 2, 3],
            "dept_id": [10, 10, 20],
            "dept_name": ["Sales", "Sales", "Ops"],
        }
    )

    fds = discover_fds(df)

    assert FD("dept_id", "dept_name") in fds
    assert FD("dept_id", "emp_id") not in fds
    assert all(not fd.is_trivial for fd in fds)
    assert discover_fds(df.iloc[0:0]) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
