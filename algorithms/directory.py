"""
Directory Query Engine
Filters, sorts and summarises the donor collection for display
"""
import unicodedata
from dataclasses import dataclass
from typing import Optional

from algorithms.blood_compatibility import BLOOD_GROUPS
from algorithms.eligibility import is_eligible, now_ms

ALL = 'All'

SORT_NAME_ASC = 'name-asc'
SORT_NAME_DESC = 'name-desc'
SORT_BLOOD_GROUP = 'blood-group'
SORT_STATUS = 'status'
SORT_OPTIONS = (SORT_NAME_ASC, SORT_NAME_DESC, SORT_BLOOD_GROUP, SORT_STATUS)

_BLOOD_GROUP_RANK = {bg: index for index, bg in enumerate(BLOOD_GROUPS)}


@dataclass(frozen=True)
class DirectoryFilter:
    search_text: str = ''
    blood_group: str = ALL
    group_id: str = ALL
    sort_by: str = SORT_NAME_ASC


def name_sort_key(name):
    """
    Collation key approximating a locale-aware compare:
    accents and case are ignored first, the raw name breaks ties.
    """
    decomposed = unicodedata.normalize('NFKD', name or '')
    folded = ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return (folded, name or '')


def matches_search(donor, search_text):
    q = (search_text or '').lower()
    if not q:
        return True
    return (
        q in donor.name.lower()
        or q in donor.phone_number.lower()
        or q in donor.blood_group.lower()
    )


def matches_filters(donor, directory_filter):
    if not matches_search(donor, directory_filter.search_text):
        return False
    if directory_filter.blood_group != ALL and donor.blood_group != directory_filter.blood_group:
        return False
    if directory_filter.group_id != ALL and directory_filter.group_id not in (donor.group_ids or []):
        return False
    return True


def query_donors(donors, directory_filter: Optional[DirectoryFilter] = None, now: Optional[int] = None):
    """
    Filter and sort donors for the directory view.

    Filtering is conjunctive (search AND blood group AND group membership).
    The input collection is never mutated and the result only depends on
    the arguments, so repeated calls give the same ordering.

    Args:
        donors: Iterable of Donor records
        directory_filter (DirectoryFilter): Search text, filters and sort key
        now (int): Clock reading in epoch ms, used by the status sort;
            read once when omitted

    Returns:
        New list of donors in display order
    """
    if directory_filter is None:
        directory_filter = DirectoryFilter()
    if now is None:
        now = now_ms()

    result = [d for d in donors if matches_filters(d, directory_filter)]
    sort_by = directory_filter.sort_by

    if sort_by == SORT_NAME_ASC:
        result.sort(key=lambda d: name_sort_key(d.name))
    elif sort_by == SORT_NAME_DESC:
        result.sort(key=lambda d: name_sort_key(d.name), reverse=True)
    elif sort_by == SORT_BLOOD_GROUP:
        result.sort(key=lambda d: _BLOOD_GROUP_RANK.get(d.blood_group, len(BLOOD_GROUPS)))
    elif sort_by == SORT_STATUS:
        # Eligible first, then name ascending within each bucket
        result.sort(key=lambda d: (not is_eligible(d, now), name_sort_key(d.name)))
    else:
        raise ValueError(f"Unknown sort option: {sort_by!r}")

    return result


def blood_group_distribution(donors):
    """
    Count donors per blood group, canonical order, zero groups omitted
    """
    counts = {bg: 0 for bg in BLOOD_GROUPS}
    for donor in donors:
        if donor.blood_group in counts:
            counts[donor.blood_group] += 1

    return [
        {'name': bg, 'value': count}
        for bg, count in counts.items()
        if count > 0
    ]


def directory_summary(donors, now: Optional[int] = None):
    if now is None:
        now = now_ms()
    donors = list(donors)
    eligible = sum(1 for d in donors if is_eligible(d, now))
    return {
        'total': len(donors),
        'eligible': eligible,
        'in_recovery': len(donors) - eligible,
        'by_blood_group': blood_group_distribution(donors),
    }
