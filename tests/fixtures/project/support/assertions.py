"""A small expect() helper living in the support directory."""
from failtrace.errors import AssertionFailure


class Expectation:

    def __init__(self, actual):
        self.actual = actual

    @property
    def to(self):
        return self

    @property
    def be(self):
        return self

    @property
    def true(self):
        self._check(True)

    @property
    def false(self):
        self._check(False)

    def _check(self, expected):
        if self.actual is not expected:
            raise AssertionFailure(
                f"expected {self.actual!r} to be {str(expected).lower()}",
                expected=expected,
                actual=self.actual,
            )


def expect(actual):
    return Expectation(actual)
