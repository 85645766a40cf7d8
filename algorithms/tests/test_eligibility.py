from types import SimpleNamespace

import pytest

from algorithms.eligibility import (
    MS_PER_DAY,
    RECOVERY_DAYS,
    days_since_donation,
    eligibility_label,
    is_eligible,
    next_eligible_at,
    recovery_days_remaining,
)

NOW = 1_700_000_000_000


def donor(last_donation_date=None):
    return SimpleNamespace(last_donation_date=last_donation_date)


def test_never_donated_is_eligible_without_countdown():
    d = donor()
    assert is_eligible(d, NOW)
    assert recovery_days_remaining(d, NOW) is None
    assert days_since_donation(d, NOW) is None
    assert next_eligible_at(d) is None
    assert eligibility_label(d, NOW) == 'Eligible'


def test_just_donated():
    d = donor(NOW)
    assert not is_eligible(d, NOW)
    assert recovery_days_remaining(d, NOW) == RECOVERY_DAYS


def test_exact_boundary_is_eligible_with_zero_remaining():
    d = donor(NOW - RECOVERY_DAYS * MS_PER_DAY)
    assert is_eligible(d, NOW)
    assert recovery_days_remaining(d, NOW) == 0


def test_one_millisecond_before_boundary():
    d = donor(NOW - RECOVERY_DAYS * MS_PER_DAY + 1)
    assert not is_eligible(d, NOW)
    assert recovery_days_remaining(d, NOW) == 1


@pytest.mark.parametrize('elapsed_ms', [
    0, 1, MS_PER_DAY // 2, MS_PER_DAY, 10 * MS_PER_DAY + 5, 55 * MS_PER_DAY,
    56 * MS_PER_DAY - 1, 56 * MS_PER_DAY, 57 * MS_PER_DAY, 400 * MS_PER_DAY,
])
def test_zero_remaining_iff_eligible(elapsed_ms):
    d = donor(NOW - elapsed_ms)
    remaining = recovery_days_remaining(d, NOW)
    assert (remaining == 0) == is_eligible(d, NOW)
    if not is_eligible(d, NOW):
        assert remaining >= 1


def test_partial_days_round_up():
    d = donor(NOW - int(10.2 * MS_PER_DAY))
    assert recovery_days_remaining(d, NOW) == 46
    assert eligibility_label(d, NOW) == 'In Recovery (Available in 46 days)'


def test_next_eligible_at():
    d = donor(NOW)
    assert next_eligible_at(d) == NOW + RECOVERY_DAYS * MS_PER_DAY
    assert is_eligible(d, next_eligible_at(d))
