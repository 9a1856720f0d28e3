import importlib.util
import os
import sys
from dataclasses import dataclass, field

import pytest

from failtrace.harness.verification import VerificationHarness, load_expectations
from failtrace.scheduler.clock import VirtualClock

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
FIXTURES_DIR = os.path.join(TESTS_DIR, "fixtures")
PROJECT_DIR = os.path.join(FIXTURES_DIR, "project")
SUPPORT_DIR = os.path.join(PROJECT_DIR, "support")
OUTSIDE_DIR = os.path.join(FIXTURES_DIR, "outside")
VARIOUS_FAILURES = os.path.join(PROJECT_DIR, "integration", "various_failures.py")
EXPECTATIONS = os.path.join(FIXTURES_DIR, "expectations.yaml")

# The fixture bodies import their support helpers and the outside module
for path in (PROJECT_DIR, OUTSIDE_DIR):
    if path not in sys.path:
        sys.path.insert(0, path)


@dataclass
class Node:
    tag: str
    children: list = field(default_factory=list)


class StaticDom:
    """A fixed element tree; query() returns descendants with a matching tag."""

    def __init__(self, roots):
        self.roots = roots

    def query(self, selector, within=None):
        found = []
        if within is None:
            stack = list(reversed(self.roots))
        else:
            stack = [c for node in reversed(within) for c in reversed(node.children)]
        while stack:
            node = stack.pop()
            if node.tag == selector:
                found.append(node)
            stack.extend(reversed(node.children))
        return found


def load_module(path, name):
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def dom():
    return StaticDom([Node("div", [Node("span")]), Node("p")])


@pytest.fixture
def harness(dom):
    """Harness rooted at the fixture project, on virtual time."""
    return VerificationHarness(
        project_root=PROJECT_DIR,
        support_dir=SUPPORT_DIR,
        dom=dom,
        clock_factory=VirtualClock,
    )


@pytest.fixture
def inline_harness(dom):
    """Harness for bodies written inline in the test modules."""
    return VerificationHarness(
        project_root=TESTS_DIR,
        support_dir=SUPPORT_DIR,
        dom=dom,
        clock_factory=VirtualClock,
    )


@pytest.fixture(scope="session")
def various_failures():
    return load_module(VARIOUS_FAILURES, "various_failures")


@pytest.fixture(scope="session")
def expectations():
    return load_expectations(EXPECTATIONS)
