import pytest
import requests

from algorithms.eligibility import MS_PER_DAY
from donors.assistant import (
    FALLBACK_REPLY,
    DonorAssistant,
    GeminiCompletionService,
    build_donor_context,
    build_system_instruction,
)
from donors.exceptions import ConnectivityError
from donors.records import Donor

from .fakes import FakeResponse

NOW = 1_700_000_000_000


class StubCompletion:
    def __init__(self, reply='', error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, prompt, system_instruction=''):
        self.prompts.append((prompt, system_instruction))
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def donors():
    return [
        Donor(id='1', name='Alice', phone_number='111', blood_group='A+', notes='Night shift'),
        Donor(id='2', name='Bob', phone_number='222', blood_group='O-', last_donation_date=NOW - 6 * MS_PER_DAY),
    ]


def test_context_has_one_line_per_donor(donors):
    lines = build_donor_context(donors, NOW).split('\n')
    assert lines == [
        'ID: 1, Name: Alice, Phone: 111, Blood: A+, Status: Eligible, Notes: Night shift',
        'ID: 2, Name: Bob, Phone: 222, Blood: O-, Status: In Recovery (Available in 50 days), Notes: N/A',
    ]


def test_instruction_wraps_context(donors):
    instruction = build_system_instruction(donors, NOW)
    assert instruction.startswith('You are BloodLine AI')
    assert 'ID: 2, Name: Bob' in instruction
    assert 'NEVER provide actual medical diagnoses.' in instruction


def test_ask_forwards_question_and_context(donors):
    service = StubCompletion(reply='  Bob can donate to everyone.  ')
    answer = DonorAssistant(service).ask('Who is O-?', donors, NOW)
    assert answer == 'Bob can donate to everyone.'
    prompt, instruction = service.prompts[0]
    assert prompt == 'Who is O-?'
    assert 'Name: Alice' in instruction


def test_empty_reply_uses_fallback(donors):
    assert DonorAssistant(StubCompletion(reply='')).ask('hi', donors, NOW) == FALLBACK_REPLY


def test_blank_question_is_rejected(donors):
    service = StubCompletion()
    with pytest.raises(ValueError):
        DonorAssistant(service).ask('   ', donors, NOW)
    assert service.prompts == []


def test_connectivity_error_propagates(donors):
    service = StubCompletion(error=ConnectivityError('offline'))
    with pytest.raises(ConnectivityError):
        DonorAssistant(service).ask('hi', donors, NOW)


class FakeHttp:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, params=None, json=None, timeout=None):
        self.requests.append((url, params, json))
        if self.error:
            raise self.error
        return self.response


class JsonResponse(FakeResponse):
    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f'{self.status_code} error')


def test_gemini_service_builds_request():
    http = FakeHttp(JsonResponse(200, {'candidates': [{'content': {'parts': [{'text': 'Hello'}]}}]}))
    service = GeminiCompletionService(api_key='k', model='m', temperature=0.7, timeout=3, session=http)
    assert service.complete('q', 'sys') == 'Hello'
    url, params, body = http.requests[0]
    assert url.endswith('/models/m:generateContent')
    assert params == {'key': 'k'}
    assert body['contents'][0]['parts'][0]['text'] == 'q'
    assert body['systemInstruction']['parts'][0]['text'] == 'sys'
    assert body['generationConfig']['temperature'] == 0.7


def test_gemini_service_maps_failures():
    service = GeminiCompletionService(api_key='k', model='m', timeout=3, session=FakeHttp(error=requests.Timeout('slow')))
    with pytest.raises(ConnectivityError):
        service.complete('q')

    service = GeminiCompletionService(api_key='k', model='m', timeout=3, session=FakeHttp(JsonResponse(403, {})))
    with pytest.raises(ConnectivityError):
        service.complete('q')


def test_gemini_service_without_key():
    with pytest.raises(ConnectivityError):
        GeminiCompletionService(api_key='', model='m', timeout=3, session=FakeHttp()).complete('q')


def test_gemini_service_empty_candidates():
    service = GeminiCompletionService(api_key='k', model='m', timeout=3, session=FakeHttp(JsonResponse(200, {'candidates': []})))
    assert service.complete('q') == ''
