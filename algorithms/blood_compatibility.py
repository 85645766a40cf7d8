"""
Blood Type Compatibility Table
Determines which blood types a donor can give to and receive from
"""

# Canonical display/sort order (not alphabetical)
BLOOD_GROUPS = ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-')

# ABO/Rh compatibility matrix
COMPATIBILITY_MAP = {
    'A+': {
        'can_donate_to': ('A+', 'AB+'),
        'can_receive_from': ('A+', 'A-', 'O+', 'O-'),
    },
    'A-': {
        'can_donate_to': ('A+', 'A-', 'AB+', 'AB-'),
        'can_receive_from': ('A-', 'O-'),
    },
    'B+': {
        'can_donate_to': ('B+', 'AB+'),
        'can_receive_from': ('B+', 'B-', 'O+', 'O-'),
    },
    'B-': {
        'can_donate_to': ('B+', 'B-', 'AB+', 'AB-'),
        'can_receive_from': ('B-', 'O-'),
    },
    'AB+': {
        'can_donate_to': ('AB+',),  # Universal recipient
        'can_receive_from': ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'),
    },
    'AB-': {
        'can_donate_to': ('AB+', 'AB-'),
        'can_receive_from': ('A-', 'B-', 'AB-', 'O-'),
    },
    'O+': {
        'can_donate_to': ('O+', 'A+', 'B+', 'AB+'),
        'can_receive_from': ('O+', 'O-'),
    },
    'O-': {
        'can_donate_to': ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'),  # Universal donor
        'can_receive_from': ('O-',),
    },
}


def is_valid_blood_group(blood_group):
    return blood_group in COMPATIBILITY_MAP


def get_compatibility(blood_group):
    """
    Look up the fixed compatibility entry for a blood type

    Args:
        blood_group: Blood type code (e.g., 'O+')

    Returns:
        Dict with 'can_donate_to' and 'can_receive_from' tuples

    Raises:
        ValueError: if the blood type is not one of the 8 known types
    """
    try:
        return COMPATIBILITY_MAP[blood_group]
    except KeyError:
        raise ValueError(f"Unknown blood group: {blood_group!r}") from None


def is_compatible(donor_blood_type, recipient_blood_type):
    """
    Check if donor blood type is compatible with recipient

    Args:
        donor_blood_type: Donor's blood type (e.g., 'O+')
        recipient_blood_type: Recipient's blood type (e.g., 'A+')

    Returns:
        Boolean: True if compatible, False otherwise
    """
    if donor_blood_type not in COMPATIBILITY_MAP:
        return False

    return recipient_blood_type in COMPATIBILITY_MAP[donor_blood_type]['can_donate_to']


def get_compatible_donors(recipient_blood_type):
    """
    Get list of blood types that can donate to recipient
    """
    if recipient_blood_type not in COMPATIBILITY_MAP:
        return []
    return list(COMPATIBILITY_MAP[recipient_blood_type]['can_receive_from'])


def get_compatible_recipients(donor_blood_type):
    """
    Get list of blood types that can receive from donor
    """
    if donor_blood_type not in COMPATIBILITY_MAP:
        return []
    return list(COMPATIBILITY_MAP[donor_blood_type]['can_donate_to'])
