import pytest

from donors.records import CloudConfig, Donor, Group
from donors.storage import RemoteStore

from .fakes import FakeSupabase

NOW = 1_700_000_000_000


@pytest.fixture
def cloud_config():
    return CloudConfig(supabase_url='https://demo.supabase.co', supabase_key='service-key', active=True)


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def remote_store(cloud_config, supabase):
    return RemoteStore(cloud_config, session=supabase, timeout=5)


@pytest.fixture
def staff():
    return Group(id='g-staff', name='Staff', color='bg-blue-100 text-blue-700')


@pytest.fixture
def alice(staff):
    return Donor(
        id='d-alice',
        name='Alice',
        phone_number='+1 555 0100',
        blood_group='A+',
        notes='Prefers mornings',
        group_ids=[staff.id],
        last_donation_date=NOW - 10 * 86_400_000,
        location='Kathmandu',
    )


@pytest.fixture
def bob():
    return Donor(id='d-bob', name='Bob', phone_number='555-0199', blood_group='O-')
