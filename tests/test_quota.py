"""Tests for the weekly quota tracker."""

from datetime import timedelta

import pytest

from conftest import NOW, insert_user, load_user, make_user


@pytest.mark.asyncio
async def test_no_reset_inside_window(db, quota):
    user = await insert_user(db, make_user(attempted=2, last_reset=NOW - timedelta(days=6, hours=23)))

    checked = await quota.check_and_reset(user, NOW)

    assert checked.weekly_exams_attempted == 2
    stored = await load_user(db, user.user_id)
    assert stored.weekly_exams_attempted == 2


@pytest.mark.asyncio
async def test_reset_after_seven_whole_days(db, quota):
    user = await insert_user(db, make_user(attempted=3, last_reset=NOW - timedelta(days=7)))

    checked = await quota.check_and_reset(user, NOW)

    assert checked.weekly_exams_attempted == 0
    assert checked.last_week_reset == NOW
    stored = await load_user(db, user.user_id)
    assert stored.weekly_exams_attempted == 0


def test_can_attempt_limits_free_users(quota):
    assert quota.can_attempt(make_user(attempted=2))
    assert not quota.can_attempt(make_user(attempted=3))
    assert quota.can_attempt(make_user(premium=True, attempted=50))


@pytest.mark.asyncio
async def test_increment_stops_at_limit_for_free_users(db, quota):
    user = await insert_user(db, make_user(attempted=2))

    assert await quota.increment(user) is True
    assert await quota.increment(user) is False
    stored = await load_user(db, user.user_id)
    assert stored.weekly_exams_attempted == 3


@pytest.mark.asyncio
async def test_increment_is_unbounded_for_premium(db, quota):
    user = await insert_user(db, make_user(premium=True, attempted=3))

    assert await quota.increment(user) is True
    stored = await load_user(db, user.user_id)
    assert stored.weekly_exams_attempted == 4


def test_remaining_display_value(quota):
    assert quota.remaining(make_user(attempted=1)) == 2
    assert quota.remaining(make_user(attempted=5)) == 0
    assert quota.remaining(make_user(premium=True)) == "Unlimited"
