"""Test discovery through decorators.

Usage:
    from testfront.core.registry import suite, test

    @test
    def addition():
        assert 1 + 1 == 2

    @suite
    class Strings:
        @test
        def upper(self):
            assert "a".upper() == "A"
"""

import functools
import os
from typing import Any, Callable, Optional

from testfront.models import SourceLocation, Test, TestID

_TEST_OPTIONS_ATTRIBUTE = "__testfront_test__"


class TestRegistry:
    """Collects tests as modules declaring them are imported."""

    __test__ = False

    def __init__(self) -> None:
        self._tests: list[Test] = []

    def register(self, test: Test) -> Test:
        self._tests.append(test)
        return test

    def all(self) -> list[Test]:
        """Get every registered test and suite, in registration order."""
        return list(self._tests)

    def clear(self) -> None:
        self._tests.clear()


registry = TestRegistry()


def _source_location(func: Callable[..., Any]) -> Optional[SourceLocation]:
    code = getattr(func, "__code__", None)
    if code is None:
        return None
    return SourceLocation(file_id=os.path.basename(code.co_filename), line=code.co_firstlineno)


def _is_method(func: Callable[..., Any]) -> bool:
    parts = func.__qualname__.split(".")
    return len(parts) > 1 and parts[-2] != "<locals>"


def test(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    hidden: bool = False,
    exit_code: Optional[int] = None,
    target: Optional[TestRegistry] = None,
):
    """Declare a test.

    Functions are registered immediately; methods are registered when their
    class is decorated with @suite.

    Args:
        name: Display name (default: the function name)
        hidden: Leave the test out of --list-tests output
        exit_code: Declare an exit test expected to end the process with this status
        target: Registry to add the test to (default: the global registry)
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        options = {"name": name, "hidden": hidden, "exit_code": exit_code}
        if _is_method(func):
            setattr(func, _TEST_OPTIONS_ATTRIBUTE, options)
            return func

        (target or registry).register(
            Test(
                name=name or func.__name__,
                id=TestID(func.__module__, (func.__name__,), _source_location(func)),
                is_hidden=hidden,
                body=func,
                expected_exit_code=exit_code,
            )
        )
        return func

    if func is not None:
        return decorator(func)
    return decorator


# Keep pytest from collecting the decorator when it is imported into a test module.
test.__test__ = False


def _call_method(cls: type, method_name: str) -> Any:
    return getattr(cls(), method_name)()


def suite(cls: Optional[type] = None, *, hidden: bool = False, target: Optional[TestRegistry] = None):
    """Declare a class as a suite and register its @test methods."""

    def decorator(cls: type) -> type:
        target_registry = target or registry
        components = tuple(cls.__qualname__.split("."))
        target_registry.register(
            Test(
                name=cls.__name__,
                id=TestID(cls.__module__, components),
                is_suite=True,
                is_hidden=hidden,
            )
        )

        for attribute, member in vars(cls).items():
            options = getattr(member, _TEST_OPTIONS_ATTRIBUTE, None)
            if options is None:
                continue
            target_registry.register(
                Test(
                    name=options["name"] or attribute,
                    id=TestID(cls.__module__, components + (attribute,), _source_location(member)),
                    is_hidden=hidden or options["hidden"],
                    body=functools.partial(_call_method, cls, attribute),
                    expected_exit_code=options["exit_code"],
                )
            )
        return cls

    if cls is not None:
        return decorator(cls)
    return decorator
