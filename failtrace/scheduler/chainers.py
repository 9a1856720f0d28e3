"""
Chainers
========
Built-in assertions available to ``should("<chainer>", *args)``.

Each chainer is a function (subject, *args) -> new subject that raises
AssertionFailure when the expectation does not hold. The scheduler retries
them until the command's timeout, so they must be side-effect free.

Messages follow the "expected <actual> to <verb> <expected>" shape, with
values rendered by repr():
    expected {} to have property 'foo'
    expected 'foo' to equal 'bar'
"""
from typing import Any, Callable

from failtrace.core.output_formatter import format_value
from failtrace.errors import AssertionFailure

__tracebackhide__ = True

Chainer = Callable[..., Any]

_MISSING = object()


def _fail(subject: Any, verb: str, expected: Any = _MISSING, actual: Any = _MISSING) -> None:
    message = f"expected {format_value(subject)} to {verb}"
    raise AssertionFailure(
        message,
        expected=None if expected is _MISSING else expected,
        actual=subject if actual is _MISSING else actual,
    )


def _is_present(subject: Any) -> bool:
    if subject is None:
        return False
    if isinstance(subject, (list, tuple)):
        return len(subject) > 0
    return True


# ---------------------------------------------------------------------------
# Chainer Implementations
# ---------------------------------------------------------------------------
def _exist(subject: Any) -> Any:
    if not _is_present(subject):
        _fail(subject, "exist")
    return subject


def _not_exist(subject: Any) -> Any:
    if _is_present(subject):
        _fail(subject, "not exist")
    return subject


def _equal(subject: Any, expected: Any) -> Any:
    if subject != expected:
        _fail(subject, f"equal {format_value(expected)}", expected=expected)
    return subject


def _deep_equal(subject: Any, expected: Any) -> Any:
    if subject != expected:
        _fail(subject, f"deeply equal {format_value(expected)}", expected=expected)
    return subject


def _have_property(subject: Any, name: str, *value: Any) -> Any:
    """Passes the property value on as the new subject."""
    if isinstance(subject, dict):
        found, actual = name in subject, subject.get(name)
    else:
        found, actual = hasattr(subject, name), getattr(subject, name, None)

    if not found:
        _fail(subject, f"have property {format_value(name)}", expected=name)
    if value and actual != value[0]:
        _fail(
            subject,
            f"have property {format_value(name)} of {format_value(value[0])}, but got {format_value(actual)}",
            expected=value[0], actual=actual,
        )
    return actual


def _have_length(subject: Any, length: int) -> Any:
    actual = len(subject) if hasattr(subject, "__len__") else None
    if actual != length:
        _fail(subject, f"have a length of {length} but got {actual}", expected=length, actual=actual)
    return subject


def _include(subject: Any, member: Any) -> Any:
    try:
        present = member in subject
    except TypeError:
        present = False
    if not present:
        _fail(subject, f"include {format_value(member)}", expected=member)
    return subject


def _be(expected: Any, label: str) -> Chainer:
    def check(subject: Any) -> Any:
        if subject is not expected:
            _fail(subject, f"be {label}", expected=expected)
        return subject
    return check


def _be_empty(subject: Any) -> Any:
    if not hasattr(subject, "__len__") or len(subject) != 0:
        _fail(subject, "be empty")
    return subject


CHAINERS: dict[str, Chainer] = {
    "exist":        _exist,
    "not.exist":    _not_exist,
    "equal":        _equal,
    "eq":           _equal,
    "deep.equal":   _deep_equal,
    "have.property": _have_property,
    "have.length":  _have_length,
    "include":      _include,
    "be.true":      _be(True, "true"),
    "be.false":     _be(False, "false"),
    "be.null":      _be(None, "null"),
    "be.empty":     _be_empty,
}


def resolve_chainer(name: str, args: tuple) -> Callable[[Any], Any]:
    """
    Bind a chainer name and its arguments into a single-argument resolver.

    Raises
    ------
    ValueError
        For an unknown chainer name (a usage error, never retried).
    """
    key = name.strip()
    if key not in CHAINERS:
        raise ValueError(
            f"The chainer '{name}' was not found. "
            f"Available chainers: {sorted(CHAINERS)}"
        )
    chainer = CHAINERS[key]

    def resolver(subject: Any) -> Any:
        return chainer(subject, *args)
    return resolver
