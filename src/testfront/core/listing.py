"""Listing discovered tests."""

from typing import Iterable

from testfront.models import Test, TestID


def list_tests_for_entry_point(tests: Iterable[Test]) -> list[str]:
    """List tests by ID, as printed for --list-tests.

    Suites and hidden tests are left out. Tests are grouped by name
    components; a test alone in its group is listed without its source
    location, while tests sharing a name keep the location so each line
    stays unambiguous.

    Args:
        tests: All discovered tests

    Returns:
        Rendered test IDs, sorted
    """
    groups: dict[tuple[str, ...], list[TestID]] = {}
    for test in tests:
        if test.is_suite or test.is_hidden:
            continue
        groups.setdefault(test.id.name_components, []).append(test.id)

    result = []
    for test_ids in groups.values():
        is_ambiguous = len(test_ids) > 1
        for test_id in test_ids:
            if not is_ambiguous and test_id.source_location is not None:
                test_id = test_id.parent or test_id
            result.append(str(test_id))

    return sorted(result)
