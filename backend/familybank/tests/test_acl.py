"""Tests for child access rules."""

import pathlib
import sys

import pytest

# Allow importing the familybank package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from familybank.acl import can_mutate, can_read, check_access, require_access
from familybank.errors import Forbidden, NotFound
from familybank.models import Child, Parent

PARENT = Parent(id=1, family_id=10, name="Pat", email="pat@example.com", password_hash="x")
OUTSIDER = Parent(id=2, family_id=20, name="Oli", email="oli@example.com", password_hash="x")
ANN = Child(id=100, family_id=10, first_name="Ann", password_hash="x")
BEN = Child(id=101, family_id=10, first_name="Ben", password_hash="x")


def test_parent_in_family_may_read_and_mutate():
    assert check_access(("parent", PARENT), ANN, mutate=False) == "allowed"
    assert check_access(("parent", PARENT), ANN, mutate=True) == "allowed"
    assert can_read(("parent", PARENT), ANN)
    assert can_mutate(("parent", PARENT), ANN)


def test_child_reads_only_itself():
    assert check_access(("child", ANN), ANN, mutate=False) == "allowed"
    assert check_access(("child", ANN), ANN, mutate=True) == "forbidden"
    assert check_access(("child", ANN), BEN, mutate=False) == "forbidden"
    assert not can_mutate(("child", ANN), ANN)


def test_other_family_and_missing_child_look_missing():
    assert check_access(("parent", OUTSIDER), ANN, mutate=False) == "not_found"
    assert check_access(("parent", PARENT), None, mutate=False) == "not_found"
    assert not can_read(("parent", OUTSIDER), ANN)


def test_require_access_raises():
    assert require_access(("parent", PARENT), ANN, mutate=True) is ANN
    with pytest.raises(NotFound):
        require_access(("parent", OUTSIDER), ANN)
    with pytest.raises(Forbidden):
        require_access(("child", BEN), ANN)
