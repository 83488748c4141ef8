from sprite_editor.core.autosave import AutosaveScheduler


def _scheduler(single_shot_timers, result=True):
    saved = []

    def save(sprite):
        saved.append(sprite)
        return result

    scheduler = AutosaveScheduler(save, delay_ms=500, timer_factory=single_shot_timers)
    return scheduler, saved, single_shot_timers.created[0]


def test_many_schedules_coalesce_into_one_write(single_shot_timers, sprite_factory):
    scheduler, saved, timer = _scheduler(single_shot_timers)
    sprite = sprite_factory()
    for _ in range(10):
        scheduler.schedule(sprite)
    assert saved == []
    assert timer.interval == 500
    assert timer.start_count == 10

    timer.fire()
    assert saved == [sprite]
    assert not scheduler.has_pending
    timer.fire()
    assert saved == [sprite]


def test_flush_writes_immediately(single_shot_timers, sprite_factory):
    scheduler, saved, timer = _scheduler(single_shot_timers)
    sprite = sprite_factory()
    scheduler.schedule(sprite)
    assert scheduler.flush() is True
    assert saved == [sprite]
    assert timer.active is False
    assert scheduler.flush() is False


def test_cancel_drops_pending(single_shot_timers, sprite_factory):
    scheduler, saved, timer = _scheduler(single_shot_timers)
    scheduler.schedule(sprite_factory())
    scheduler.cancel()
    timer.fire()
    assert saved == []


def test_scheduling_another_sprite_flushes_first(single_shot_timers, sprite_factory):
    scheduler, saved, timer = _scheduler(single_shot_timers)
    first = sprite_factory(name="first")
    second = sprite_factory(name="second")
    scheduler.schedule(first)
    scheduler.schedule(second)
    assert saved == [first]
    timer.fire()
    assert saved == [first, second]


def test_discard_only_matching_sprite(single_shot_timers, sprite_factory):
    scheduler, saved, _ = _scheduler(single_shot_timers)
    sprite = sprite_factory()
    scheduler.schedule(sprite)
    scheduler.discard(sprite_factory())
    assert scheduler.has_pending
    scheduler.discard(sprite)
    assert not scheduler.has_pending


def test_failed_save_reported(single_shot_timers, sprite_factory):
    scheduler, saved, _ = _scheduler(single_shot_timers, result=False)
    scheduler.schedule(sprite_factory())
    assert scheduler.flush() is False
    assert len(saved) == 1
