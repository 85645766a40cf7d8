"""
In-process records for donors, groups and the cloud configuration
"""
import uuid
from dataclasses import dataclass, field, replace
from typing import List, Optional

GROUP_COLORS = [
    'bg-blue-100 text-blue-700',
    'bg-green-100 text-green-700',
    'bg-purple-100 text-purple-700',
    'bg-amber-100 text-amber-700',
    'bg-pink-100 text-pink-700',
    'bg-indigo-100 text-indigo-700',
]


def new_identifier() -> str:
    return str(uuid.uuid4())


def pick_group_color(group_count: int) -> str:
    """Palette entry for a new group, indexed by how many groups exist."""
    return GROUP_COLORS[group_count % len(GROUP_COLORS)]


@dataclass
class Donor:
    id: str
    name: str
    phone_number: str
    blood_group: str
    notes: str = ''
    group_ids: List[str] = field(default_factory=list)
    last_donation_date: Optional[int] = None  # epoch ms, None = never donated
    location: Optional[str] = None

    def __post_init__(self):
        self.id = str(self.id)
        self.group_ids = [str(gid) for gid in (self.group_ids or [])]

    def copy(self, **changes):
        """Shallow copy with its own group list."""
        changes.setdefault('group_ids', list(self.group_ids))
        return replace(self, **changes)

    def __str__(self):
        return f"{self.name} ({self.blood_group})"


@dataclass
class Group:
    id: str
    name: str
    color: str

    def __post_init__(self):
        self.id = str(self.id)

    def __str__(self):
        return self.name


@dataclass
class CloudConfig:
    supabase_url: str = ''
    supabase_key: str = ''
    active: bool = False

    @property
    def is_usable(self) -> bool:
        return bool(self.active and self.supabase_url and self.supabase_key)
