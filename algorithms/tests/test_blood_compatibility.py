import pytest

from algorithms.blood_compatibility import (
    BLOOD_GROUPS,
    COMPATIBILITY_MAP,
    get_compatibility,
    get_compatible_donors,
    get_compatible_recipients,
    is_compatible,
    is_valid_blood_group,
)


def test_table_covers_exactly_the_eight_groups():
    assert set(COMPATIBILITY_MAP) == set(BLOOD_GROUPS)
    assert len(BLOOD_GROUPS) == 8


@pytest.mark.parametrize('donor', BLOOD_GROUPS)
@pytest.mark.parametrize('recipient', BLOOD_GROUPS)
def test_donate_and_receive_sets_agree(donor, recipient):
    can_give = recipient in COMPATIBILITY_MAP[donor]['can_donate_to']
    can_take = donor in COMPATIBILITY_MAP[recipient]['can_receive_from']
    assert can_give == can_take


def test_universal_donor_and_recipient():
    assert set(get_compatible_recipients('O-')) == set(BLOOD_GROUPS)
    assert set(get_compatible_donors('AB+')) == set(BLOOD_GROUPS)
    assert get_compatible_recipients('AB+') == ['AB+']
    assert get_compatible_donors('O-') == ['O-']


def test_every_group_can_give_to_itself():
    for bg in BLOOD_GROUPS:
        assert is_compatible(bg, bg)


def test_rh_negative_cannot_receive_positive():
    assert not is_compatible('A+', 'A-')
    assert not is_compatible('O+', 'O-')
    assert is_compatible('A-', 'A+')


def test_unknown_groups():
    assert not is_valid_blood_group('C+')
    assert not is_compatible('C+', 'A+')
    assert get_compatible_donors('C+') == []
    with pytest.raises(ValueError):
        get_compatibility('C+')
