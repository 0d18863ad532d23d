from __future__ import annotations

from repo_symlink.reconcile import DeletionTrace, paths_equal


def test_paths_equal_ignores_order() -> None:
    assert paths_equal({"a", "b"}, {"b", "a"})
    assert paths_equal(["a", "b"], ("b", "a"))
    assert not paths_equal({"a", "b"}, {"a"})
    assert not paths_equal({"a"}, {"b"})
    assert paths_equal(set(), set())


def test_trace_settles_only_after_removal_phase() -> None:
    trace = DeletionTrace()
    trace.record_deleted("alpha/README.md")
    trace.confirm_removed("alpha/README.md")

    assert not trace.is_settled()

    trace.mark_removal_complete()

    assert trace.is_settled()


def test_empty_trace_settles_once_marked() -> None:
    trace = DeletionTrace()
    trace.mark_removal_complete()

    assert trace.is_settled()
    assert trace.pending() == ()


def test_confirmations_arriving_first_still_match() -> None:
    trace = DeletionTrace()
    trace.confirm_removed("alpha")
    trace.record_deleted("alpha/docs")
    trace.record_deleted("alpha")
    trace.mark_removal_complete()

    assert not trace.is_settled()
    assert trace.pending() == ("alpha/docs",)

    trace.confirm_removed("alpha/docs")

    assert trace.is_settled()
    assert trace.deleted_paths == ("alpha/docs", "alpha")
    assert trace.cache_confirmed_paths == ("alpha", "alpha/docs")


def test_unexpected_confirmation_keeps_trace_unsettled() -> None:
    trace = DeletionTrace()
    trace.record_deleted("alpha")
    trace.confirm_removed("alpha")
    trace.confirm_removed("beta")
    trace.mark_removal_complete()

    assert not trace.is_settled()
