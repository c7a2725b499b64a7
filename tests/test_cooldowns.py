from services.cooldowns import PRUNE_EVERY, CooldownTracker


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_first_hit_starts_window():
    tracker = CooldownTracker(window_ms=3000, clock=FakeClock())
    assert tracker.hit("ban", 1) is None
    assert len(tracker) == 1


def test_second_hit_inside_window_reports_remaining_without_reset():
    clock = FakeClock()
    tracker = CooldownTracker(window_ms=3000, clock=clock)
    tracker.hit("ban", 1)
    clock.now += 1.0
    assert tracker.hit("ban", 1) == 2.0
    clock.now += 1.5
    # The window was not extended by the rejected attempt.
    assert tracker.hit("ban", 1) == 0.5


def test_hit_after_window_runs_again():
    clock = FakeClock()
    tracker = CooldownTracker(window_ms=3000, clock=clock)
    tracker.hit("ban", 1)
    clock.now += 3.0
    assert tracker.hit("ban", 1) is None
    assert tracker.remaining("ban", 1) == 3.0


def test_cooldowns_are_per_command_and_user():
    tracker = CooldownTracker(window_ms=3000, clock=FakeClock())
    tracker.hit("ban", 1)
    assert tracker.hit("kick", 1) is None
    assert tracker.hit("ban", 2) is None


def test_prune_drops_expired_entries():
    clock = FakeClock()
    tracker = CooldownTracker(window_ms=1000, clock=clock)
    tracker.hit("ban", 1)
    tracker.hit("kick", 1)
    clock.now += 0.5
    tracker.hit("warn", 1)
    clock.now += 0.6
    assert tracker.prune() == 2
    assert len(tracker) == 1


def test_reset_clears_entry():
    tracker = CooldownTracker(window_ms=3000, clock=FakeClock())
    tracker.hit("ban", 1)
    tracker.reset("ban", 1)
    assert tracker.remaining("ban", 1) == 0.0


def test_stale_entries_are_swept_periodically():
    clock = FakeClock()
    tracker = CooldownTracker(window_ms=1000, clock=clock)
    for user_id in range(PRUNE_EVERY - 1):
        tracker.hit("xp", user_id)
    assert len(tracker) == PRUNE_EVERY - 1

    clock.now += 5.0
    tracker.hit("xp", 10_000)

    assert len(tracker) == 1
