import asyncio

from connect4.logic.enums import PresenceState, QueueEntryState
from connect4.session.presence import PresenceTracker
from connect4.session.types import QueueEntryView, QueueSnapshot, RosterView
from connect4.tests.helpers.session import make_participant


def _empty_queue():
    return QueueSnapshot(entries=[], queue_size=0, max_size=25)


class TestPresenceTracker:
    def test_connect_and_disconnect(self):
        tracker = PresenceTracker()
        tracker.record_connect(make_participant("alice"))
        assert tracker.is_tracked("alice")

        tracker.record_disconnect("alice")
        tracker.record_disconnect("alice")
        assert not tracker.is_tracked("alice")

    def test_classify_by_idle_time(self):
        tracker = PresenceTracker(active_threshold_seconds=10)
        tracker.record_connect(make_participant("alice"))
        tracker.record_connect(make_participant("bob"))
        record = tracker._records["bob"]
        record.last_activity -= 20

        states = tracker.classify()

        assert states == {"alice": PresenceState.ACTIVE, "bob": PresenceState.INACTIVE}

    def test_activity_refreshes_state(self):
        tracker = PresenceTracker(active_threshold_seconds=10)
        tracker.record_connect(make_participant("alice"))
        tracker._records["alice"].last_activity -= 20

        tracker.record_activity("alice")
        tracker.record_activity("ghost")

        assert tracker.classify()["alice"] == PresenceState.ACTIVE
        assert not tracker.is_tracked("ghost")

    def test_build_snapshot_counts(self):
        tracker = PresenceTracker(active_threshold_seconds=10)
        tracker.record_connect(make_participant("alice", is_admin=True))
        tracker.record_connect(make_participant("bob"))
        now = tracker._records["bob"].last_activity + 15
        tracker._records["alice"].last_activity = now
        queue = QueueSnapshot(
            entries=[
                QueueEntryView(
                    position=1,
                    participant_id="bob",
                    display_name="BOB",
                    status=QueueEntryState.WAITING,
                ),
            ],
            queue_size=1,
            max_size=25,
        )

        snapshot = tracker.build_snapshot(queue, RosterView(), [], now=now)

        assert snapshot.counts.connected == 2
        assert snapshot.counts.active == 1
        assert snapshot.counts.inactive == 1
        assert snapshot.counts.waiting == 1
        assert snapshot.counts.active_sessions == 0
        rows = {row.participant_id: row for row in snapshot.users}
        assert rows["alice"].is_admin is True
        assert rows["bob"].state == PresenceState.INACTIVE
        assert rows["bob"].idle_seconds == 15.0

    async def test_publishing_loop(self):
        tracker = PresenceTracker()
        published = asyncio.Event()
        calls = []

        async def publish():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("admin socket gone")
            published.set()

        tracker.start_publishing(0.01, publish)
        assert tracker.is_publishing

        await asyncio.wait_for(published.wait(), timeout=1.0)
        await tracker.aclose()

        assert len(calls) >= 2
        assert not tracker.is_publishing

    async def test_snapshot_without_participants(self):
        tracker = PresenceTracker()
        snapshot = tracker.build_snapshot(_empty_queue(), RosterView(), [])
        assert snapshot.counts.connected == 0
        assert snapshot.users == []
