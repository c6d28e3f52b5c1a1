"""Login reward cycle state machine tests (pure: latest claim + today)."""

from datetime import date, datetime, timedelta, timezone

from mirrorplay.db.models import UserLoginReward
from mirrorplay.gamification.login_rewards import resolve_cycle_state

TODAY = date(2026, 3, 4)


def _claim(claimed_day: int, claim_date: date, cycle_start_date: date) -> UserLoginReward:
    return UserLoginReward(
        user_id=1,
        claimed_day=claimed_day,
        claimed_at=datetime.combine(claim_date, datetime.min.time(), tzinfo=timezone.utc),
        claim_date=claim_date,
        cycle_start_date=cycle_start_date,
    )


class TestResolveCycleState:
    def test_no_previous_claim_starts_cycle_today(self):
        state = resolve_cycle_state(None, TODAY)
        assert state.can_claim is True
        assert state.current_day == 1
        assert state.cycle_start_date == TODAY

    def test_claimed_today_is_not_claimable(self):
        start = TODAY - timedelta(days=2)
        state = resolve_cycle_state(_claim(3, TODAY, start), TODAY)
        assert state.can_claim is False
        assert state.current_day == 3
        assert state.cycle_start_date == start

    def test_claimed_yesterday_continues_cycle(self):
        start = TODAY - timedelta(days=3)
        state = resolve_cycle_state(_claim(3, TODAY - timedelta(days=1), start), TODAY)
        assert state.can_claim is True
        assert state.current_day == 4
        assert state.cycle_start_date == start

    def test_day_seven_yesterday_restarts_cycle(self):
        start = TODAY - timedelta(days=7)
        state = resolve_cycle_state(_claim(7, TODAY - timedelta(days=1), start), TODAY)
        assert state.current_day == 1
        assert state.cycle_start_date == TODAY

    def test_day_seven_long_ago_restarts_cycle(self):
        start = TODAY - timedelta(days=30)
        state = resolve_cycle_state(_claim(7, TODAY - timedelta(days=20), start), TODAY, reset_on_missed_day=False)
        assert state.current_day == 1
        assert state.cycle_start_date == TODAY

    def test_missed_day_forfeits_progress(self):
        start = TODAY - timedelta(days=6)
        state = resolve_cycle_state(_claim(3, TODAY - timedelta(days=4), start), TODAY)
        assert state.can_claim is True
        assert state.current_day == 1
        assert state.cycle_start_date == TODAY

    def test_missed_day_with_grace_policy_continues(self):
        start = TODAY - timedelta(days=6)
        state = resolve_cycle_state(
            _claim(3, TODAY - timedelta(days=4), start), TODAY, reset_on_missed_day=False
        )
        assert state.can_claim is True
        assert state.current_day == 4
        assert state.cycle_start_date == start

    def test_every_branch_except_same_day_is_claimable(self):
        start = TODAY - timedelta(days=10)
        for gap in range(1, 10):
            for day in range(1, 8):
                state = resolve_cycle_state(_claim(day, TODAY - timedelta(days=gap), start), TODAY)
                assert state.can_claim is True
                assert 1 <= state.current_day <= 7
