"""Functional dependencies, keys and normal forms.

The algorithms here are the textbook ones taught alongside normalization:
attribute closure, candidate key enumeration, minimal cover, normal form
classification (1NF through 4NF), BCNF decomposition and 3NF synthesis.
Attribute sets are small in course examples, so candidate keys are
enumerated exhaustively by increasing size.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

import pandas as pd

from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

NORMAL_FORMS = ["UNF", "1NF", "2NF", "3NF", "BCNF", "4NF"]

_FD_ARROW = re.compile(r"\s*(?:->|→|=>)\s*")
_MVD_ARROW = re.compile(r"\s*(?:->>|↠)\s*")


def _attrs(value: Iterable[str] | str) -> FrozenSet[str]:
    if isinstance(value, str):
        value = re.split(r"[,\s]+", value)
    return frozenset(v.strip() for v in value if v and v.strip())


@dataclass(frozen=True)
class FunctionalDependency:
    """X -> Y: equal X values imply equal Y values."""

    lhs: FrozenSet[str]
    rhs: FrozenSet[str]

    def __init__(self, lhs: Iterable[str] | str, rhs: Iterable[str] | str):
        object.__setattr__(self, "lhs", _attrs(lhs))
        object.__setattr__(self, "rhs", _attrs(rhs))

    @property
    def is_trivial(self) -> bool:
        return self.rhs <= self.lhs

    def __str__(self) -> str:
        return f"{', '.join(sorted(self.lhs))} -> {', '.join(sorted(self.rhs))}"


@dataclass(frozen=True)
class MultivaluedDependency:
    """X ->> Y: the set of Y values for an X is independent of the rest."""

    lhs: FrozenSet[str]
    rhs: FrozenSet[str]

    def __init__(self, lhs: Iterable[str] | str, rhs: Iterable[str] | str):
        object.__setattr__(self, "lhs", _attrs(lhs))
        object.__setattr__(self, "rhs", _attrs(rhs))

    def is_trivial(self, attributes: Iterable[str]) -> bool:
        """Trivial if Y is inside X or X and Y together cover the relation."""
        return self.rhs <= self.lhs or (self.lhs | self.rhs) >= frozenset(attributes)

    def __str__(self) -> str:
        return f"{', '.join(sorted(self.lhs))} ->> {', '.join(sorted(self.rhs))}"


def parse_fd(text: str) -> FunctionalDependency:
    """Parse "a, b -> c" (also accepts → and =>).

    Raises:
        ValueError: If the text has no arrow or an empty side
    """
    if _MVD_ARROW.search(text):
        raise ValueError(f"Expected a functional dependency, got an MVD: {text!r}")
    parts = _FD_ARROW.split(text.strip())
    if len(parts) != 2:
        raise ValueError(f"Invalid functional dependency: {text!r}")
    fd = FunctionalDependency(parts[0], parts[1])
    if not fd.lhs or not fd.rhs:
        raise ValueError(f"Functional dependency needs both sides: {text!r}")
    return fd


def parse_mvd(text: str) -> MultivaluedDependency:
    """Parse "a ->> b" (also accepts ↠)."""
    parts = _MVD_ARROW.split(text.strip())
    if len(parts) != 2:
        raise ValueError(f"Invalid multivalued dependency: {text!r}")
    mvd = MultivaluedDependency(parts[0], parts[1])
    if not mvd.lhs or not mvd.rhs:
        raise ValueError(f"Multivalued dependency needs both sides: {text!r}")
    return mvd


def attribute_closure(
    attributes: Iterable[str], fds: Iterable[FunctionalDependency]
) -> FrozenSet[str]:
    """Compute X+ under the given dependencies."""
    closure = set(attributes)
    fds = list(fds)
    changed = True
    while changed:
        changed = False
        for fd in fds:
            if fd.lhs <= closure and not fd.rhs <= closure:
                closure |= fd.rhs
                changed = True
    return frozenset(closure)


def is_superkey(
    candidate: Iterable[str],
    attributes: Iterable[str],
    fds: Iterable[FunctionalDependency],
) -> bool:
    return attribute_closure(candidate, fds) >= frozenset(attributes)


def candidate_keys(
    attributes: Iterable[str], fds: Iterable[FunctionalDependency]
) -> List[FrozenSet[str]]:
    """Enumerate all minimal keys.

    Attributes that never appear on a right-hand side belong to every key,
    so the search starts from them and only adds the remaining attributes.

    Returns:
        Candidate keys ordered by size, then alphabetically
    """
    attributes = frozenset(attributes)
    fds = [fd for fd in fds if fd.lhs <= attributes]
    rhs_attrs = set().union(*(fd.rhs for fd in fds)) if fds else set()
    core = attributes - rhs_attrs
    optional = sorted(attributes - core)

    keys: List[FrozenSet[str]] = []
    for size in range(0, len(optional) + 1):
        for extra in combinations(optional, size):
            candidate = core | frozenset(extra)
            if any(key <= candidate for key in keys):
                continue
            if is_superkey(candidate, attributes, fds):
                keys.append(candidate)
    return sorted(keys, key=lambda k: (len(k), sorted(k)))


def prime_attributes(
    attributes: Iterable[str], fds: Iterable[FunctionalDependency]
) -> FrozenSet[str]:
    """Attributes that belong to at least one candidate key."""
    keys = candidate_keys(attributes, fds)
    return frozenset().union(*keys) if keys else frozenset()


def minimal_cover(fds: Iterable[FunctionalDependency]) -> List[FunctionalDependency]:
    """Canonical cover: singleton RHS, no extraneous LHS attributes, no redundancy."""
    split = []
    for fd in fds:
        for attr in sorted(fd.rhs - fd.lhs):
            single = FunctionalDependency(fd.lhs, [attr])
            if single not in split:
                split.append(single)

    reduced = []
    for fd in split:
        lhs = set(fd.lhs)
        for attr in sorted(fd.lhs):
            if len(lhs) > 1 and fd.rhs <= attribute_closure(lhs - {attr}, split):
                lhs.discard(attr)
        candidate = FunctionalDependency(lhs, fd.rhs)
        if candidate not in reduced:
            reduced.append(candidate)

    cover = list(reduced)
    for fd in list(cover):
        rest = [other for other in cover if other != fd]
        if fd.rhs <= attribute_closure(fd.lhs, rest):
            cover = rest
    return cover


@dataclass
class NormalFormResult:
    """Outcome of a normal form analysis."""

    normal_form: str
    candidate_keys: List[FrozenSet[str]]
    violations: Dict[str, List[str]] = field(default_factory=dict)

    def satisfies(self, form: str) -> bool:
        """Check whether the relation is at least in the given normal form."""
        return NORMAL_FORMS.index(self.normal_form) >= NORMAL_FORMS.index(form)

    def to_dict(self) -> Dict:
        return {
            "normal_form": self.normal_form,
            "candidate_keys": [sorted(key) for key in self.candidate_keys],
            "violations": self.violations,
            "5NF": "not assessed",
        }


def normal_form(
    attributes: Sequence[str],
    fds: Iterable[FunctionalDependency],
    mvds: Iterable[MultivaluedDependency] = (),
    multivalued_attributes: Iterable[str] = (),
) -> NormalFormResult:
    """Classify a relation into the highest normal form it satisfies.

    Args:
        attributes: Relation attributes
        fds: Functional dependencies holding on the relation
        mvds: Multivalued dependencies (for 4NF)
        multivalued_attributes: Attributes holding repeating groups (break 1NF)

    Returns:
        NormalFormResult with the highest form and the violations found for
        each higher form
    """
    attributes = frozenset(attributes)
    fds = [fd for fd in fds if not fd.is_trivial]
    keys = candidate_keys(attributes, fds)
    prime = frozenset().union(*keys) if keys else frozenset()
    violations: Dict[str, List[str]] = {}

    repeating = sorted(set(multivalued_attributes) & attributes)
    if repeating:
        violations["1NF"] = [f"repeating group: {attr}" for attr in repeating]

    singles = [
        FunctionalDependency(fd.lhs, [attr])
        for fd in fds
        for attr in sorted(fd.rhs - fd.lhs)
    ]

    partial = [
        str(fd)
        for fd in singles
        if not fd.rhs <= prime and any(fd.lhs < key for key in keys)
    ]
    if partial:
        violations["2NF"] = [f"partial dependency: {fd}" for fd in partial]

    transitive = [
        str(fd)
        for fd in singles
        if not is_superkey(fd.lhs, attributes, fds) and not fd.rhs <= prime
    ]
    if transitive:
        violations["3NF"] = [f"non-key determinant: {fd}" for fd in transitive]

    bcnf = [str(fd) for fd in singles if not is_superkey(fd.lhs, attributes, fds)]
    if bcnf:
        violations["BCNF"] = [f"determinant is not a superkey: {fd}" for fd in bcnf]

    fourth = [
        str(mvd)
        for mvd in mvds
        if not mvd.is_trivial(attributes)
        and not is_superkey(mvd.lhs, attributes, fds)
    ]
    if fourth:
        violations["4NF"] = [f"non-key multivalued dependency: {m}" for m in fourth]

    reached = "UNF"
    for form in NORMAL_FORMS[1:]:
        if form in violations:
            break
        reached = form

    return NormalFormResult(normal_form=reached, candidate_keys=keys, violations=violations)


def project_fds(
    attributes: Iterable[str], fds: Iterable[FunctionalDependency]
) -> List[FunctionalDependency]:
    """Project dependencies onto a subset of attributes."""
    attributes = frozenset(attributes)
    fds = list(fds)
    projected = []
    for size in range(1, len(attributes)):
        for lhs in combinations(sorted(attributes), size):
            rhs = (attribute_closure(lhs, fds) & attributes) - set(lhs)
            if rhs:
                projected.append(FunctionalDependency(lhs, rhs))
    return minimal_cover(projected)


def decompose_bcnf(
    attributes: Iterable[str], fds: Iterable[FunctionalDependency]
) -> List[FrozenSet[str]]:
    """Lossless decomposition into BCNF relations.

    Splits on a violating dependency X -> Y into (X+ ∩ R) and R - (X+ - X),
    repeating on the projected dependencies of each part.
    """
    fds = list(fds)
    pending = [frozenset(attributes)]
    result: List[FrozenSet[str]] = []

    while pending:
        relation = pending.pop()
        local = project_fds(relation, fds)
        violation = next(
            (fd for fd in local if not is_superkey(fd.lhs, relation, local)), None
        )
        if violation is None:
            result.append(relation)
            continue
        closure = attribute_closure(violation.lhs, local) & relation
        logger.debug(f"BCNF split of {sorted(relation)} on {violation}")
        pending.append(closure)
        pending.append(relation - (closure - violation.lhs))

    return sorted(result, key=lambda r: sorted(r))


def synthesize_3nf(
    attributes: Iterable[str], fds: Iterable[FunctionalDependency]
) -> List[FrozenSet[str]]:
    """Dependency-preserving, lossless 3NF synthesis (Bernstein)."""
    attributes = frozenset(attributes)
    cover = minimal_cover(fds)

    grouped: Dict[FrozenSet[str], Set[str]] = {}
    for fd in cover:
        grouped.setdefault(fd.lhs, set()).update(fd.rhs)
    relations = [frozenset(lhs | rhs) for lhs, rhs in grouped.items()]

    keys = candidate_keys(attributes, cover)
    if keys and not any(keys[0] <= relation for relation in relations):
        relations.append(keys[0])

    covered = frozenset().union(*relations) if relations else frozenset()
    leftover = attributes - covered
    if leftover:
        relations.append(leftover)

    # Drop relations contained in another one
    unique = []
    for relation in sorted(set(relations), key=len, reverse=True):
        if not any(relation < other for other in unique):
            unique.append(relation)
    return sorted(unique, key=lambda r: sorted(r))


def discover_fds(
    df: pd.DataFrame,
    max_lhs: int = 2,
    columns: Optional[Sequence[str]] = None,
) -> List[FunctionalDependency]:
    """Discover exact functional dependencies that hold on sample rows.

    A dependency X -> a holds when every X value group has a single a value.
    Only minimal left-hand sides are reported.

    Args:
        df: Sample data
        max_lhs: Largest left-hand side to test
        columns: Columns to consider (default: all)

    Returns:
        Minimal cover of the discovered dependencies
    """
    columns = list(columns or df.columns)
    if df.empty or len(columns) < 2:
        return []

    found: List[FunctionalDependency] = []
    for size in range(1, max_lhs + 1):
        for lhs in combinations(columns, size):
            groups = df.groupby(list(lhs), dropna=False)
            for target in columns:
                if target in lhs:
                    continue
                if any(fd.lhs <= set(lhs) and target in fd.rhs for fd in found):
                    continue
                if (groups[target].nunique(dropna=False) <= 1).all():
                    found.append(FunctionalDependency(lhs, [target]))

    logger.debug(f"Discovered {len(found)} functional dependencies")
    return minimal_cover(found)
