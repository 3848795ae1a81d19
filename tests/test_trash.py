"""Tests for the TrashBin state machine."""

from __future__ import annotations

import pytest

from tracecore.errors import InvalidTransitionError, NotFoundError
from tracecore.store.artifacts import ArtifactStore
from tracecore.store.trash import TrashBin, TrashState


class _Clock:
    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture()
def store() -> ArtifactStore:
    return ArtifactStore(clock=_Clock())


@pytest.fixture()
def trash(store: ArtifactStore) -> TrashBin:
    return TrashBin(store)


def _risk(store: ArtifactStore, title: str = "Outage"):
    return store.create("risk", title=title)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    def test_active_to_trashed_to_active(self, store: ArtifactStore, trash: TrashBin):
        risk = _risk(store)
        assert trash.state_of(risk.id) is TrashState.ACTIVE
        trash.trash(risk.id)
        assert trash.state_of(risk.id) is TrashState.TRASHED
        restored = trash.restore(risk.id)
        assert trash.state_of(risk.id) is TrashState.ACTIVE
        assert restored.revision == "03"

    def test_purge_is_terminal(self, store: ArtifactStore, trash: TrashBin):
        risk = _risk(store)
        trash.trash(risk.id)
        trash.purge(risk.id)
        assert trash.state_of(risk.id) is TrashState.PURGED
        for action in (trash.trash, trash.restore, trash.purge):
            with pytest.raises(InvalidTransitionError):
                action(risk.id)

    def test_cannot_purge_active(self, store: ArtifactStore, trash: TrashBin):
        risk = _risk(store)
        with pytest.raises(InvalidTransitionError):
            trash.purge(risk.id)
        assert store.exists(risk.id)

    def test_cannot_restore_active(self, store: ArtifactStore, trash: TrashBin):
        risk = _risk(store)
        with pytest.raises(InvalidTransitionError):
            trash.restore(risk.id)
        assert store.get(risk.id).revision == "01"

    def test_cannot_trash_twice(self, store: ArtifactStore, trash: TrashBin):
        risk = _risk(store)
        trash.trash(risk.id)
        with pytest.raises(InvalidTransitionError):
            trash.trash(risk.id)

    def test_unknown_id(self, trash: TrashBin):
        with pytest.raises(NotFoundError):
            trash.state_of("RISK-042")

    def test_purged_number_is_reused(self, store: ArtifactStore, trash: TrashBin):
        risk = _risk(store)
        trash.trash(risk.id)
        trash.purge(risk.id)
        again = _risk(store, "Second outage")
        assert again.id == risk.id
        assert trash.state_of(again.id) is TrashState.ACTIVE


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListing:
    def test_list_trashed_newest_first(self, store: ArtifactStore, trash: TrashBin):
        a, b = _risk(store, "A"), _risk(store, "B")
        doc = store.create("document", title="Spec")
        trash.trash(a.id)
        trash.trash(doc.id)
        trash.trash(b.id)
        assert [x.id for x in trash.list_trashed()] == [b.id, doc.id, a.id]
        assert [x.id for x in trash.list_trashed("risk")] == [b.id, a.id]
        assert trash.count() == 3

    def test_index_follows_transitions(self, store: ArtifactStore, trash: TrashBin):
        a = _risk(store)
        assert trash.list_trashed() == []
        trash.trash(a.id)
        assert len(trash.list_trashed()) == 1
        trash.restore(a.id)
        assert trash.list_trashed() == []

    def test_index_follows_direct_store_changes(self, store: ArtifactStore, trash: TrashBin):
        a = _risk(store)
        assert trash.count() == 0
        store.soft_delete(a.id)
        assert trash.count() == 1

    def test_change_during_scan_is_not_cached(self, store: ArtifactStore, trash: TrashBin, monkeypatch):
        a, b = _risk(store, "A"), _risk(store, "B")
        trash.trash(a.id)
        scan = store.all_artifacts

        def scan_then_trash():
            snapshot = scan()
            monkeypatch.setattr(store, "all_artifacts", scan)
            store.soft_delete(b.id)
            return snapshot

        monkeypatch.setattr(store, "all_artifacts", scan_then_trash)
        assert [x.id for x in trash.list_trashed()] == [a.id]
        assert [x.id for x in trash.list_trashed()] == [b.id, a.id]
        assert trash.count() == 2

    def test_stale_index_entry_for_restored_artifact(self, store: ArtifactStore, trash: TrashBin):
        a = _risk(store)
        trash.trash(a.id)
        store.restore(a.id)
        trash._index = {a.kind: [a.id]}
        assert trash.list_trashed() == []

    def test_empty(self, store: ArtifactStore, trash: TrashBin):
        a, b = _risk(store, "A"), _risk(store, "B")
        doc = store.create("document", title="Spec")
        for artifact in (a, b, doc):
            trash.trash(artifact.id)
        assert sorted(trash.empty("risk")) == [a.id, b.id]
        assert [x.id for x in trash.list_trashed()] == [doc.id]
        assert trash.empty() == [doc.id]
        assert len(store) == 0
