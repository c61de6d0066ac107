"""Test filtering by regular expression."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from testfront.models import Test


class Membership(str, Enum):
    """Whether tests matching a filter are included or excluded."""

    INCLUDING = "including"
    EXCLUDING = "excluding"


class FilterOperator(str, Enum):
    """How two filters are combined."""

    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class TestFilter:
    """Predicate selecting which tests run.

    A filter is either unfiltered (selects everything), a set of patterns with
    a membership, or a combination of two filters. An including filter selects
    tests whose ID or an ancestor's ID, rendered without its source location,
    matches any pattern; an excluding filter selects tests for which none match.
    """

    __test__ = False

    membership: Optional[Membership] = None
    patterns: tuple[re.Pattern, ...] = ()
    operator: Optional[FilterOperator] = None
    operands: tuple["TestFilter", ...] = ()

    @classmethod
    def unfiltered(cls) -> "TestFilter":
        return cls()

    @classmethod
    def matching(cls, pattern: str, membership: Membership = Membership.INCLUDING) -> "TestFilter":
        """Create a filter from one regular expression.

        Raises:
            re.error: If the pattern does not compile
        """
        return cls(membership=membership, patterns=(re.compile(pattern),))

    @property
    def is_unfiltered(self) -> bool:
        return self.membership is None and self.operator is None

    def combining(self, other: "TestFilter", operator: FilterOperator = FilterOperator.AND) -> "TestFilter":
        """Return a filter combining this one with another."""
        if self.is_unfiltered:
            return other
        if other.is_unfiltered:
            return self
        if (
            operator == FilterOperator.OR
            and self.membership is not None
            and self.membership == other.membership
        ):
            # Either pattern matching is the same as one alternation.
            return TestFilter(membership=self.membership, patterns=self.patterns + other.patterns)
        return TestFilter(operator=operator, operands=(self, other))

    def _matches(self, test: Test) -> bool:
        return any(
            pattern.search(str(test_id)) is not None
            for test_id in test.id.ancestors()
            if test_id.source_location is None
            for pattern in self.patterns
        )

    def includes(self, test: Test) -> bool:
        """Check whether the filter selects a test."""
        if self.operator == FilterOperator.AND:
            return all(operand.includes(test) for operand in self.operands)
        if self.operator == FilterOperator.OR:
            return any(operand.includes(test) for operand in self.operands)
        if self.membership == Membership.INCLUDING:
            return self._matches(test)
        if self.membership == Membership.EXCLUDING:
            return not self._matches(test)
        return True

    def apply(self, tests: Iterable[Test]) -> list[Test]:
        """Return the selected tests, preserving order."""
        return [test for test in tests if self.includes(test)]
