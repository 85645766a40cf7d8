import math
import time
from typing import Optional

# Constants
RECOVERY_DAYS = 56  # Whole blood: 8 weeks between donations
MS_PER_DAY = 1000 * 60 * 60 * 24


def now_ms() -> int:
    """Current wall clock in milliseconds since the epoch."""
    return int(time.time() * 1000)


def days_since_donation(donor, now: Optional[int] = None) -> Optional[float]:
    """
    Fractional days elapsed since the donor's last donation.

    Args:
        donor: Any record with a ``last_donation_date`` attribute (epoch ms or None)
        now (int): Clock reading in epoch ms, defaults to the wall clock

    Returns:
        float, or None if the donor has never donated
    """
    if donor.last_donation_date is None:
        return None
    if now is None:
        now = now_ms()
    return (now - donor.last_donation_date) / MS_PER_DAY


def is_eligible(donor, now: Optional[int] = None) -> bool:
    """
    A donor can give blood if they never donated or the recovery window has passed.
    """
    elapsed = days_since_donation(donor, now)
    if elapsed is None:
        return True
    return elapsed >= RECOVERY_DAYS


def recovery_days_remaining(donor, now: Optional[int] = None) -> Optional[int]:
    """
    Whole days left before the donor is eligible again.

    Returns:
        None if the donor never donated, 0 once eligible,
        otherwise a positive integer (ceiling of the remaining fraction)
    """
    elapsed = days_since_donation(donor, now)
    if elapsed is None:
        return None
    if elapsed >= RECOVERY_DAYS:
        return 0
    return math.ceil(RECOVERY_DAYS - elapsed)


def next_eligible_at(donor) -> Optional[int]:
    if donor.last_donation_date is None:
        return None
    return donor.last_donation_date + RECOVERY_DAYS * MS_PER_DAY


def eligibility_label(donor, now: Optional[int] = None) -> str:
    if is_eligible(donor, now):
        return "Eligible"
    return f"In Recovery (Available in {recovery_days_remaining(donor, now)} days)"
