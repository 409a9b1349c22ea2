import asyncio
from datetime import timedelta

from draft.logic.enums import DraftErrorCode, DraftMode, DraftStatus, OscarDraftStyle, ScoringDirection
from draft.logic.events import DraftCreatedEvent, PickCommittedEvent, TurnStartedEvent
from draft.logic.state import PickRequest
from draft.session.service import DraftService
from draft.tests.conftest import PARTICIPANTS, create_settings, movie_catalog, nominee
from draft.tests.mocks import ContendedDraftStore, MockCandidateSource


async def _start(service, draft_id="d1", participants=PARTICIPANTS, **settings):
    await service.create_draft(draft_id, create_settings(**settings))
    result = await service.start(draft_id, participants)
    assert result.ok
    return result.draft


async def _wait_for_picks(service, draft_id, count, timeout=1.0):
    async def poll():
        while True:
            draft = (await service.current_state(draft_id)).draft
            if len(draft.picks) >= count:
                return draft
            await asyncio.sleep(0.005)

    return await asyncio.wait_for(poll(), timeout)


class TestCreateDraft:
    async def test_returns_created_event(self, service):
        result = await service.create_draft("d1", create_settings(), league_id="L1")

        assert result.ok
        assert result.draft.status == DraftStatus.PENDING
        assert result.events == (DraftCreatedEvent(draft_id="d1"),)

    async def test_duplicate_id(self, service):
        await service.create_draft("d1", create_settings())

        result = await service.create_draft("d1", create_settings())

        assert result.error_code == DraftErrorCode.INVALID_CONFIGURATION

    async def test_invalid_settings(self, service):
        result = await service.create_draft("d1", create_settings(pick_timer_seconds=-1))

        assert result.draft is None
        assert result.error_code == DraftErrorCode.INVALID_CONFIGURATION

    async def test_open_draft_limit(self, store, clock):
        service = DraftService(store, clock=clock, max_active_drafts=2)
        await service.create_draft("d1", create_settings())
        await service.create_draft("d2", create_settings())

        result = await service.create_draft("d3", create_settings())

        assert result.error_code == DraftErrorCode.INVALID_CONFIGURATION
        assert "limit" in result.error.message

    async def test_completed_drafts_do_not_count_toward_limit(self, store, clock):
        service = DraftService(store, clock=clock, max_active_drafts=1)
        await service.create_draft("d1", create_settings(units_per_participant=1, pick_timer_seconds=0))
        await service.start("d1", ["A", "B"])
        await service.apply("d1", PickRequest(requester_id="A", selection_id="x", expected_overall_pick=1))
        await service.apply("d1", PickRequest(requester_id="B", selection_id="y", expected_overall_pick=2))

        result = await service.create_draft("d2", create_settings())

        assert result.ok


class TestErrorMapping:
    async def test_unknown_draft(self, service):
        for result in (
            await service.current_state("ghost"),
            await service.start("ghost", ["A", "B"]),
            await service.pause("ghost"),
        ):
            assert result.error_code == DraftErrorCode.DRAFT_NOT_FOUND

    async def test_not_your_turn_is_logged(self, service, caplog):
        await _start(service)

        result = await service.apply("d1", PickRequest(requester_id="B", selection_id="movie_1", expected_overall_pick=1))

        assert result.error_code == DraftErrorCode.NOT_YOUR_TURN
        assert "draft operation rejected" in caplog.text

    async def test_start_with_one_participant(self, service):
        await service.create_draft("d1", create_settings())

        result = await service.start("d1", ["A"])

        assert result.error_code == DraftErrorCode.INVALID_CONFIGURATION
        assert (await service.current_state("d1")).draft.status == DraftStatus.PENDING

    async def test_stale_manual_pick(self, service):
        await _start(service)
        await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))

        result = await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_2", expected_overall_pick=1))

        assert result.error_code == DraftErrorCode.STALE_TURN


class TestPicks:
    async def test_pick_result_carries_events(self, service):
        await _start(service)

        result = await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_9", expected_overall_pick=1))

        assert result.pick.selection_id == "movie_9"
        assert isinstance(result.events[0], PickCommittedEvent)
        assert isinstance(result.events[1], TurnStartedEvent)
        assert result.draft.current_picker_id == "B"

    async def test_schedule_then_start(self, service, clock):
        await service.create_draft("d1", create_settings())

        scheduled = await service.schedule("d1", clock.now() + timedelta(hours=1))
        started = await service.start("d1", PARTICIPANTS)

        assert scheduled.draft.status == DraftStatus.SCHEDULED
        assert started.draft.status == DraftStatus.IN_PROGRESS

    async def test_list_drafts_by_league(self, service):
        await service.create_draft("d1", create_settings(), league_id="L1")
        await service.create_draft("d2", create_settings(), league_id="L2")

        drafts = await service.list_drafts("L1")

        assert [draft.id for draft in drafts] == ["d1"]


class TestTimers:
    async def test_start_arms_timer(self, service):
        await _start(service)

        assert service.scheduler.is_armed("d1")

    async def test_untimed_draft_has_no_timer(self, service):
        await _start(service, pick_timer_seconds=0)

        assert not service.scheduler.is_armed("d1")
        assert (await service.remaining_time("d1")).remaining_seconds is None

    async def test_pause_cancels_timer(self, service):
        await _start(service)

        await service.pause("d1")

        assert not service.scheduler.is_armed("d1")

    async def test_completion_cleans_up_timer(self, service):
        draft = await _start(service, participants=("A", "B"), units_per_participant=1)
        await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))

        result = await service.apply("d1", PickRequest(requester_id="B", selection_id="movie_2", expected_overall_pick=2))

        assert draft.total_picks == 2
        assert result.draft.status == DraftStatus.COMPLETED
        assert service.scheduler.active_count == 0

    async def test_remaining_time(self, service, clock):
        draft = await _start(service)
        clock.advance(25)

        result = await service.remaining_time("d1")

        assert result.remaining_seconds == 35.0
        assert result.deadline == draft.timer_deadline

    async def test_resume_after_deadline_fires_auto_pick(self, service, clock):
        await _start(service)
        await service.pause("d1")
        clock.advance(300)

        await service.resume("d1")
        draft = await _wait_for_picks(service, "d1", 1)

        pick = draft.picks[0]
        assert pick.was_auto_pick is True
        assert pick.participant_id == "A"
        assert pick.selection_id == "movie_1"

    async def test_restore_timers(self, store, clock, candidates):
        first = DraftService(store, clock=clock, candidates=candidates)
        await _start(first, "d1")
        await _start(first, "d2")
        await first.create_draft("d3", create_settings())
        first.shutdown()

        second = DraftService(store, clock=clock, candidates=candidates)
        try:
            assert await second.restore_timers() == 2
            assert second.scheduler.is_armed("d1")
            assert not second.scheduler.is_armed("d3")
        finally:
            second.shutdown()


class TestAutoPick:
    async def test_before_deadline_rearms_without_picking(self, service, clock):
        await _start(service)
        service.scheduler.cancel("d1")
        clock.advance(30)

        result = await service.auto_pick("d1", 1)

        assert result.pick is None
        assert result.ok
        assert service.scheduler.is_armed("d1")

    async def test_after_deadline_takes_most_popular(self, service, clock):
        await _start(service)
        clock.advance(61)

        result = await service.auto_pick("d1", 1)

        assert result.pick.selection_id == "movie_1"
        assert result.pick.was_auto_pick is True
        assert result.pick.seconds_taken == 61

    async def test_skips_already_picked(self, service, clock):
        await _start(service)
        await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))
        clock.advance(61)

        result = await service.auto_pick("d1", 2)

        assert result.pick.participant_id == "B"
        assert result.pick.selection_id == "movie_2"

    async def test_old_pick_number_is_stale(self, service, clock):
        await _start(service)
        await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))
        clock.advance(61)

        result = await service.auto_pick("d1", 1)

        assert result.error_code == DraftErrorCode.STALE_TURN
        assert len((await service.current_state("d1")).draft.picks) == 1

    async def test_three_concurrent_observers_make_one_pick(self, service, clock):
        await _start(service)
        service.scheduler.cancel("d1")
        clock.advance(61)

        results = await asyncio.gather(*(service.auto_pick("d1", 1) for _ in range(3)))

        assert sum(1 for result in results if result.pick is not None) == 1
        assert all(result.error_code == DraftErrorCode.STALE_TURN for result in results if result.pick is None)
        draft = (await service.current_state("d1")).draft
        assert len(draft.picks) == 1
        assert draft.current_overall_pick == 2

    async def test_paused_draft_is_not_auto_picked(self, service, clock):
        await _start(service)
        await service.pause("d1")
        clock.advance(61)

        result = await service.auto_pick("d1", 1)

        assert result.error_code == DraftErrorCode.STALE_TURN
        assert (await service.current_state("d1")).draft.picks == ()

    async def test_no_candidates_logs_warning(self, store, clock, caplog):
        service = DraftService(store, clock=clock, candidates=MockCandidateSource([]))
        try:
            await _start(service)
            service.scheduler.cancel("d1")
            clock.advance(61)

            result = await service.auto_pick("d1", 1)
        finally:
            service.shutdown()

        assert result.pick is None
        assert "no auto-pick candidate available" in caplog.text

    async def test_no_candidates_retries_until_catalog_arrives(self, store, clock):
        source = MockCandidateSource([])
        service = DraftService(store, clock=clock, candidates=source, auto_pick_retry_seconds=0.01)
        try:
            await _start(service)
            clock.advance(61)

            result = await service.auto_pick("d1", 1)
            assert result.pick is None
            assert service.scheduler.is_armed("d1")

            source.items = movie_catalog()
            draft = await _wait_for_picks(service, "d1", 1)
        finally:
            service.shutdown()

        assert draft.picks[0].was_auto_pick is True
        assert draft.picks[0].selection_id == "movie_1"

    async def test_run_overdue(self, service, clock):
        await _start(service, "d1")
        await _start(service, "d2")
        await _start(service, "d3", pick_timer_seconds=600)
        service.scheduler.shutdown()
        clock.advance(61)

        made = await service.run_overdue()

        assert made == 2
        assert len((await service.current_state("d3")).draft.picks) == 0

    async def test_oscar_auto_pick_uses_odds(self, store, clock):
        nominees = [
            nominee("n_long_shot", "best_picture", "Long Shot"),
            nominee("n_favourite", "best_picture", "Favourite"),
        ]
        source = MockCandidateSource(nominees, odds={"n_long_shot": 0.1, "n_favourite": 0.8})
        service = DraftService(store, clock=clock, candidates=source)
        try:
            await service.create_draft(
                "d1",
                create_settings(
                    mode=DraftMode.OSCAR_PREDICTION,
                    oscar_draft_style=OscarDraftStyle.CATEGORY_ROUNDS,
                    units_per_participant=1,
                    categories=("best_picture",),
                ),
            )
            await service.start("d1", ["A", "B"])
            service.scheduler.cancel("d1")
            clock.advance(61)

            result = await service.auto_pick("d1", 1)
        finally:
            service.shutdown()

        assert result.pick.selection_id == "n_favourite"
        assert result.pick.category_id == "best_picture"


class TestCommitConflicts:
    async def test_apply_returns_conflict_instead_of_raising(self, clock, candidates, caplog):
        store = ContendedDraftStore()
        service = DraftService(store, clock=clock, candidates=candidates)
        try:
            await _start(service)
            store.contended = True

            result = await service.apply(
                "d1",
                PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1),
            )
            paused = await service.pause("d1")
        finally:
            service.shutdown()

        assert result.error_code == DraftErrorCode.COMMIT_CONFLICT
        assert paused.error_code == DraftErrorCode.COMMIT_CONFLICT
        assert store.attempts == 10
        assert "draft operation rejected" in caplog.text
        assert (await store.get_draft("d1")).picks == ()

    async def test_auto_pick_conflict_rearms_and_recovers(self, clock, candidates):
        store = ContendedDraftStore()
        service = DraftService(store, clock=clock, candidates=candidates, auto_pick_retry_seconds=0.01)
        try:
            await _start(service)
            service.scheduler.cancel("d1")
            store.contended = True
            clock.advance(61)

            result = await service.auto_pick("d1", 1)
            assert result.error_code == DraftErrorCode.COMMIT_CONFLICT
            assert service.scheduler.is_armed("d1")

            store.contended = False
            draft = await _wait_for_picks(service, "d1", 1)
        finally:
            service.shutdown()

        assert draft.picks[0].was_auto_pick is True
        assert draft.current_overall_pick == 2


class TestStandings:
    async def test_recomputed_from_pick_log(self, service):
        await _start(service, participants=("A", "B"))
        await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))
        await service.apply("d1", PickRequest(requester_id="B", selection_id="movie_2", expected_overall_pick=2))
        scores = {"movie_1": 10.0, "movie_2": 30.0}

        result = await service.standings("d1", lambda selection_id: scores.get(selection_id, 0.0))

        assert [(s.participant_id, s.rank, s.total_score) for s in result.standings] == [("B", 1, 30.0), ("A", 2, 10.0)]

    async def test_lowest_direction(self, service):
        await _start(service, participants=("A", "B"))
        await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))
        await service.apply("d1", PickRequest(requester_id="B", selection_id="movie_2", expected_overall_pick=2))
        scores = {"movie_1": 10.0, "movie_2": 30.0}

        result = await service.standings(
            "d1",
            lambda selection_id: scores.get(selection_id, 0.0),
            direction=ScoringDirection.LOWEST,
        )

        assert result.standings[0].participant_id == "A"

    async def test_unknown_draft(self, service):
        result = await service.standings("ghost", lambda _: 0.0)

        assert result.standings == []
        assert result.error.code == DraftErrorCode.DRAFT_NOT_FOUND


class TestSubscribe:
    async def test_receives_committed_snapshots(self, service):
        await _start(service)

        with service.subscribe("d1") as subscription:
            await service.apply("d1", PickRequest(requester_id="A", selection_id="movie_1", expected_overall_pick=1))
            await service.pause("d1")

            first = await subscription.next(timeout=1)
            second = await subscription.next(timeout=1)

        assert first.current_overall_pick == 2
        assert second.status == DraftStatus.PAUSED

    async def test_rejected_pick_publishes_nothing(self, service):
        await _start(service)

        with service.subscribe("d1") as subscription:
            await service.apply("d1", PickRequest(requester_id="B", selection_id="movie_1", expected_overall_pick=1))

            assert await subscription.next(timeout=0.05) is None

    async def test_shutdown_closes_subscriptions(self, service):
        await _start(service)
        subscription = service.subscribe("d1")

        service.shutdown()

        assert subscription.closed
        assert [draft async for draft in subscription] == []
