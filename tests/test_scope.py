# tests/test_scope.py
import dataclasses

import pytest
from rl_common import call_named, go_file

from retrylint import golang
from retrylint.scope import PACKAGE_SCOPE, ScopeFrame


@pytest.fixture
def retry_call():
    src = go_file(
        """
        func TestX(t *testing.T) {
            retry.Run(t, func(r *retry.R) {})
        }
        """
    )
    return call_named(golang.parse(src.encode()).root_node, "retry.Run")


def test_default_frame():
    f = ScopeFrame()
    assert (f.depth, f.retry_depth, f.retrying) == (0, 0, False)
    assert f.function.name == PACKAGE_SCOPE


def test_frames_are_immutable(retry_call):
    f = ScopeFrame()
    with pytest.raises(dataclasses.FrozenInstanceError):
        f.depth = 3  # type: ignore[misc]
    child = f.descend(retry_call)
    assert (f.depth, child.depth) == (0, 1)


def test_enter_function_gives_fresh_helper_state(retry_call):
    f = ScopeFrame().enter_function("TestOne")
    f.function.helper_bound = True
    # frames derived inside the function share its scope
    assert f.descend(retry_call).function is f.function
    g = f.enter_function("TestTwo")
    assert g.function.name == "TestTwo"
    assert not g.function.helper_bound
    assert f.function.helper_bound


def test_retry_activates_only_inside_the_literal(retry_call):
    call_frame = ScopeFrame(depth=5).enter_retry(
        golang.call_arguments(retry_call)[1], "r"
    )
    assert not call_frame.retrying

    selector = retry_call.child_by_field_name("function")
    assert call_frame.descend(selector).pending is None

    args = retry_call.child_by_field_name("arguments")
    in_args = call_frame.descend(args)
    assert not in_args.retrying and in_args.pending is not None

    first, literal = golang.call_arguments(retry_call)
    assert not in_args.descend(first).retrying
    body = in_args.descend(literal)
    assert body.retrying
    assert (body.retry_depth, body.retry_handle, body.pending) == (5, "r", None)
    # siblings still see the untouched parent frame
    assert not in_args.retrying
