import json

import pytest
from rest_framework.test import APIClient

from algorithms.eligibility import MS_PER_DAY, RECOVERY_DAYS
from api import views
from donors.exceptions import ConnectivityError
from donors.records import CloudConfig
from donors.storage import LocalStore, RemoteStore, save_cloud_config
from donors.tests.fakes import FakeResponse, FakeSupabase

pytestmark = pytest.mark.django_db


@pytest.fixture
def client():
    return APIClient()


def register(client, name, blood_group, phone='555', **extra):
    response = client.post('/api/donors/', {
        'name': name, 'phoneNumber': phone, 'bloodGroup': blood_group, **extra,
    }, format='json')
    assert response.status_code == 201, response.data
    return response.data


def test_register_and_list(client):
    register(client, 'Bob', 'O-')
    register(client, 'Alice', 'A+')
    response = client.get('/api/donors/')
    assert [d['name'] for d in response.data] == ['Alice', 'Bob']
    assert response.data[0]['eligible'] is True
    assert response.data[0]['recoveryDaysRemaining'] is None
    assert response.data[0]['nextEligibleAt'] is None
    assert response.data[0]['canDonateTo'] == ['A+', 'AB+']


def test_search_and_filters(client):
    register(client, 'Alice', 'A+')
    register(client, 'Bob', 'O-')
    assert [d['name'] for d in client.get('/api/donors/', {'search': 'ali'}).data] == ['Alice']
    assert [d['name'] for d in client.get('/api/donors/', {'search': '+'}).data] == ['Alice']
    assert [d['name'] for d in client.get('/api/donors/', {'blood_group': 'O-'}).data] == ['Bob']
    assert client.get('/api/donors/', {'sort': 'age'}).status_code == 400


def test_validation_failure_is_rejected(client):
    response = client.post('/api/donors/', {'name': '', 'phoneNumber': '1', 'bloodGroup': 'A+'}, format='json')
    assert response.status_code == 400
    assert LocalStore().fetch_donors() == []


def test_edit_mark_donated_and_delete(client):
    donor = register(client, 'Cara', 'B+')
    url = f"/api/donors/{donor['id']}/"

    response = client.put(url, {'name': 'Cara B', 'phoneNumber': '777', 'bloodGroup': 'B+'}, format='json')
    assert response.data['name'] == 'Cara B'

    response = client.post(url + 'donated/')
    assert response.data['eligible'] is False
    assert response.data['recoveryDaysRemaining'] == RECOVERY_DAYS
    assert response.data['nextEligibleAt'] == response.data['lastDonationDate'] + RECOVERY_DAYS * MS_PER_DAY

    assert client.delete(url).status_code == 204
    assert client.get('/api/donors/').data == []
    assert client.delete(url).status_code == 404


def test_groups_and_cascade(client):
    group = client.post('/api/groups/', {'name': 'Staff'}, format='json').data
    donor = register(client, 'Dan', 'AB-', groupIds=[group['id']])
    assert client.get('/api/donors/', {'group': group['id']}).data[0]['id'] == donor['id']

    assert client.delete(f"/api/groups/{group['id']}/").status_code == 204
    assert client.get('/api/groups/').data == []
    assert client.get('/api/donors/').data[0]['groupIds'] == []


def test_compatibility_and_stats(client):
    response = client.get('/api/compatibility/O-/')
    assert response.data['canReceiveFrom'] == ['O-']
    assert client.get('/api/compatibility/Q+/').status_code == 404

    register(client, 'Eve', 'O+')
    stats = client.get('/api/stats/').data
    assert stats['total'] == 1
    assert stats['by_blood_group'] == [{'name': 'O+', 'value': 1}]


def test_remote_failure_is_visible(client, monkeypatch):
    session = FakeSupabase()
    session.failures[('GET', 'people')] = FakeResponse(401, text='Invalid API key')
    config = CloudConfig('https://demo.supabase.co', 'bad-key', active=True)
    monkeypatch.setattr(views, 'get_controller', lambda: views.DirectoryController(RemoteStore(config, session=session)).refresh())

    response = client.get('/api/donors/')
    assert response.status_code == 502
    assert response.data['operation'] == 'fetch_donors'
    assert response.data['remote_status'] == 401


def test_failed_delete_reports_rollback(client, monkeypatch):
    session = FakeSupabase()
    session.tables['people']['1'] = {'id': '1', 'name': 'A', 'phone_number': '1', 'blood_group': 'A+'}
    session.failures[('DELETE', 'people')] = FakeResponse(500, text='boom')
    config = CloudConfig('https://demo.supabase.co', 'key', active=True)
    monkeypatch.setattr(views, 'get_controller', lambda: views.DirectoryController(RemoteStore(config, session=session)).refresh())

    response = client.delete('/api/donors/1/')
    assert response.status_code == 502
    assert response.data['operation'] == 'delete_donor'
    assert '1' in session.tables['people']


def test_cloud_config_masks_key(client):
    response = client.put('/api/cloud-config/', {
        'supabaseUrl': 'https://demo.supabase.co', 'supabaseKey': 'secret-1234', 'active': False,
    }, format='json')
    assert response.status_code == 200
    assert response.data['supabaseKey'].endswith('1234')
    assert 'secret' not in response.data['supabaseKey']
    assert client.put('/api/cloud-config/', {'active': True}, format='json').status_code == 400


def test_sync_requires_cloud_config(client):
    assert client.post('/api/sync/').status_code == 400
    assert client.post('/api/sync/?wait=1').status_code == 400


def test_sync_is_queued(client, monkeypatch):
    save_cloud_config(CloudConfig('https://demo.supabase.co', 'key', active=True))

    class QueuedTask:
        id = 'task-1'

    class Task:
        def delay(self):
            return QueuedTask()

    monkeypatch.setattr(views, 'push_local_to_remote_task', Task())
    response = client.post('/api/sync/')
    assert response.status_code == 202
    assert response.data == {'task_id': 'task-1'}


def test_export_and_import(client):
    register(client, 'Fay', 'A-')
    response = client.get('/api/export/')
    assert response['Content-Disposition'].startswith('attachment; filename="bloodline-backup-')
    document = json.loads(response.content)
    assert document['people'][0]['name'] == 'Fay'

    document['people'][0]['name'] = 'Faye'
    response = client.post('/api/import/?mode=append', document, format='json')
    assert response.status_code == 200
    assert [d['name'] for d in client.get('/api/donors/').data] == ['Faye']
    assert client.post('/api/import/?mode=merge', document, format='json').status_code == 400


def test_assistant(client, monkeypatch):
    register(client, 'Gus', 'O-')

    class Stub:
        def complete(self, prompt, system_instruction=''):
            assert 'Name: Gus' in system_instruction
            return 'Gus is a universal donor.'

    monkeypatch.setattr(views, 'get_completion_service', lambda: Stub())
    response = client.post('/api/assistant/', {'question': 'Who can give to anyone?'}, format='json')
    assert response.data == {'role': 'model', 'text': 'Gus is a universal donor.'}


def test_assistant_unavailable(client, monkeypatch):
    class Offline:
        def complete(self, prompt, system_instruction=''):
            raise ConnectivityError('offline')

    monkeypatch.setattr(views, 'get_completion_service', lambda: Offline())
    response = client.post('/api/assistant/', {'question': 'hi'}, format='json')
    assert response.status_code == 503


def test_programming_errors_are_not_reported_as_missing(client, monkeypatch):
    def broken():
        raise KeyError('bloodGroup')

    monkeypatch.setattr(views, 'get_controller', broken)
    with pytest.raises(KeyError):
        client.get('/api/stats/')


def test_export_reads_the_active_store(client, monkeypatch):
    register(client, 'Local only', 'A+')
    session = FakeSupabase()
    session.tables['people']['c1'] = {'id': 'c1', 'name': 'Cloud only', 'phone_number': '1', 'blood_group': 'B-'}
    config = CloudConfig('https://demo.supabase.co', 'key', active=True)
    monkeypatch.setattr(views, 'build_store', lambda _: RemoteStore(config, session=session))

    document = json.loads(client.get('/api/export/').content)
    assert [p['name'] for p in document['people']] == ['Cloud only']

    session.failures[('GET', 'groups')] = FakeResponse(503, text='unavailable')
    response = client.get('/api/export/')
    assert response.status_code == 502
    assert response.data['operation'] == 'fetch_groups'
