"""
Exceptions raised by the assertion layer.
"""


class ChainUsageError(RuntimeError):
    """
    Raised when a chain is used incorrectly.

    Examples:
    - leave() without a matching enter()
    - replace() outside of enter()/leave()
    - malformed Failure record in strict mode

    This is a programming error in the calling code, not an assertion
    failure, and is never routed through the handler.
    """
    pass


class AssertionFailedError(AssertionError):
    """
    Raised by RaisingReporter when a fatal assertion fails.

    Subclasses AssertionError so pytest renders it as a test failure.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
