"""
Assertion chain.

Every fluent object (RequestBuilder, Response, Value) owns a Chain. The
chain knows where the object is, for diagnostics, and whether its branch
has already failed, so later assertions can short-circuit silently.

Chains form a tree. Deriving a fluent object from another one clones the
chain: the clone gets its own copy of the path and a copy of the failure
flag, so sibling branches (e.g. elements of an array) never corrupt each
other. Each chain also owns a small _TreeState record linked to the
record of the chain it was cloned from. A failure walks these records to
raise the "descendant failed" indicator on every ancestor, even when the
intermediate fluent objects are already gone. Records point only from
child to parent, so no chain is kept alive by its clones.

Typical assertion method:

    def equal(self, expected):
        if self._chain.failed():
            return self

        with self._chain.step("equal()"):
            if self._value != expected:
                self._chain.fail(Failure(...))

        return self

step() pairs enter() and leave(). leave() reports success to the handler
unless the chain has failed, then pops the path segment pushed by enter().
"""

from __future__ import annotations

import dataclasses
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator

from .exceptions import ChainUsageError
from .models import AssertionContext, Failure, Severity
from .validation import validate_failure

if TYPE_CHECKING:
    from ..request import RequestBuilder
    from ..response import Response
    from .handler import AssertionHandler


FailCallback = Callable[[Failure], Any]


class _TreeState:
    """Descendant-failed flag of one chain, linked to its parent's."""

    __slots__ = ("descendant_failed", "parent")

    def __init__(self, parent: _TreeState | None = None):
        self.descendant_failed = False
        self.parent = parent


class Chain:
    """
    Per-branch assertion state.

    Attributes:
        fail_callback: Optional callable invoked after the first failure.
            Lets an enclosing operation (e.g. a retry loop) abort early.
            Not inherited by clones.
    """

    def __init__(
        self,
        handler: AssertionHandler,
        name: str = "",
        test_name: str = "",
        severity: Severity = Severity.FATAL,
        validate: bool = False,
    ):
        """
        Create a root chain.

        Args:
            handler: Sink for success and failure events
            name: Initial path segment (e.g. "Request()")
            test_name: Test name stored in the context
            severity: Severity stamped on every failure in this branch
            validate: Check every failure record against its kind (strict mode)
        """
        segments = [name] if name else []
        self._context = AssertionContext(
            test_name=test_name,
            path=list(segments),
            aliased_path=list(segments),
        )
        self._handler = handler
        self._severity = severity
        self._validate = validate
        self._failed = False
        self._tree = _TreeState()
        # (path length, aliased path length) saved by each enter()
        self._stack: list[tuple[int, int]] = []
        self.fail_callback: FailCallback | None = None

    # ------------------------------------------------------------------
    # Tree
    # ------------------------------------------------------------------

    def clone(self) -> Chain:
        """Create an independent copy for a derived fluent object."""
        child = Chain.__new__(Chain)
        child._context = self._context.copy()
        child._handler = self._handler
        child._severity = self._severity
        child._validate = self._validate
        child._failed = self._failed
        child._tree = _TreeState(parent=self._tree)
        child._stack = []
        child.fail_callback = None
        return child

    # ------------------------------------------------------------------
    # Path
    # ------------------------------------------------------------------

    def enter(self, label: str) -> None:
        """Push a path segment. Must be paired with leave()."""
        self._stack.append((len(self._context.path), len(self._context.aliased_path)))
        if label:
            self._context.path.append(label)
            self._context.aliased_path.append(label)

    def leave(self) -> None:
        """
        Finish the current assertion.

        Reports success unless the chain failed, then pops the segment
        pushed by the matching enter().

        Raises:
            ChainUsageError: If there is no matching enter()
        """
        self._leave(report=True)

    def replace(self, label: str) -> None:
        """Replace the last path segment. Allowed only between enter() and leave()."""
        if not self._stack:
            raise ChainUsageError("replace() allowed only between enter() and leave()")
        if not self._context.path or not self._context.aliased_path:
            raise ChainUsageError("replace() allowed only if path is non-empty")
        self._context.path[-1] = label
        self._context.aliased_path[-1] = label

    @contextmanager
    def step(self, label: str) -> Iterator[Chain]:
        """
        Enter a path segment for the duration of a with-block.

        On normal exit leave() runs as usual. If the block raises, the
        segment is popped without reporting success and the exception
        propagates.
        """
        self.enter(label)
        try:
            yield self
        except BaseException:
            self._leave(report=False)
            raise
        self._leave(report=True)

    def _leave(self, report: bool) -> None:
        if not self._stack:
            raise ChainUsageError("unpaired enter()/leave()")

        try:
            if report and not self._failed:
                self._handler.success(self._context.copy())
        finally:
            path_len, aliased_len = self._stack.pop()
            del self._context.path[path_len:]
            del self._context.aliased_path[aliased_len:]

    @property
    def depth(self) -> int:
        """Number of enter() calls not yet matched by leave()."""
        return len(self._stack)

    # ------------------------------------------------------------------
    # Failure
    # ------------------------------------------------------------------

    def fail(self, failure: Failure) -> None:
        """
        Report a failure and mark the chain failed.

        The first failure wins: later calls are no-ops. The handler and
        fail_callback get a copy of the record stamped with the branch
        severity.

        Raises:
            ChainUsageError: In strict mode, if the record is malformed
        """
        if self._failed:
            return

        if self._validate:
            problem = validate_failure(failure)
            if problem is not None:
                raise ChainUsageError(problem)

        self._failed = True
        failure = dataclasses.replace(
            failure,
            severity=self._severity,
            is_fatal=self._severity == Severity.FATAL,
        )

        self._mark_ancestors()

        try:
            self._handler.failure(self._context.copy(), failure)
        finally:
            if self.fail_callback is not None:
                self.fail_callback(failure)

    def failed(self) -> bool:
        """Return True if fail() was called on this chain (or inherited)."""
        return self._failed

    def tree_failed(self) -> bool:
        """Return True if this chain or any of its descendants failed."""
        return self._failed or self._tree.descendant_failed

    def reset(self) -> None:
        """Clear failure flags. For test harnesses only."""
        self._failed = False
        self._tree.descendant_failed = False

    def _mark_ancestors(self) -> None:
        node = self._tree.parent
        while node is not None:
            node.descendant_failed = True
            node = node.parent

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    @property
    def context(self) -> AssertionContext:
        """Snapshot of the current context."""
        return self._context.copy()

    @property
    def handler(self) -> AssertionHandler:
        return self._handler

    @property
    def severity(self) -> Severity:
        return self._severity

    def set_severity(self, severity: Severity) -> None:
        """Set severity for this branch and every clone made afterwards."""
        self._severity = severity

    def set_alias(self, name: str) -> None:
        """Restart the aliased path at name."""
        self._context.aliased_path = [name] if name else []

    def set_request_name(self, name: str) -> None:
        self._context.request_name = name

    def set_request(self, request: RequestBuilder) -> None:
        self._context.request = request

    def set_response(self, response: Response, rtt: float | None = None) -> None:
        self._context.response = response
        self._context.rtt = rtt

    def __repr__(self) -> str:
        status = "failed" if self._failed else "ok"
        return f"Chain(path={self._context.path_string!r}, status={status})"
