# donors/assistant.py
"""
Natural-language assistant over the donor directory.

The language model is an injected text-completion service; this module
only builds the prompt and interprets the reply.
"""
import logging
from typing import Protocol

import requests
from django.conf import settings

from algorithms.eligibility import eligibility_label, now_ms
from .exceptions import ConnectivityError

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm sorry, I couldn't process that request."

INSTRUCTION_PREAMBLE = """You are BloodLine AI, an assistant for a blood donor management app.
You have access to a directory of donors:
{context}

Your tasks:
1. Answer questions about the donors (find matches, counts, or specific info).
2. Provide general, non-diagnostic information about blood compatibility.
3. Be helpful, concise, and professional.
4. IMPORTANT: If a donor is "In Recovery", do NOT recommend them for immediate donation needs.
5. If a user asks for someone who can donate to a specific blood group, use standard compatibility rules but prioritize "Eligible" donors.
6. NEVER provide actual medical diagnoses."""


class CompletionService(Protocol):
    def complete(self, prompt: str, system_instruction: str = '') -> str:
        """Return the model's text or raise ConnectivityError."""


def format_donor_line(donor, now=None):
    return (
        f"ID: {donor.id}, Name: {donor.name}, Phone: {donor.phone_number}, "
        f"Blood: {donor.blood_group}, Status: {eligibility_label(donor, now)}, "
        f"Notes: {donor.notes or 'N/A'}"
    )


def build_donor_context(donors, now=None):
    if now is None:
        now = now_ms()
    return '\n'.join(format_donor_line(d, now) for d in donors)


def build_system_instruction(donors, now=None):
    return INSTRUCTION_PREAMBLE.format(context=build_donor_context(donors, now))


class GeminiCompletionService:
    """
    Google Gemini `generateContent` over plain HTTPS.
    """
    endpoint = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'

    def __init__(self, api_key=None, model=None, temperature=None, timeout=None, session=None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.BLOODLINE_ASSISTANT_MODEL
        self.temperature = temperature if temperature is not None else settings.BLOODLINE_ASSISTANT_TEMPERATURE
        self.timeout = timeout or settings.BLOODLINE_REMOTE_TIMEOUT
        self.session = session or requests.Session()

    def complete(self, prompt, system_instruction=''):
        if not self.api_key:
            raise ConnectivityError("No API key configured for the assistant.")

        body = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'generationConfig': {'temperature': self.temperature},
        }
        if system_instruction:
            body['systemInstruction'] = {'parts': [{'text': system_instruction}]}

        try:
            response = self.session.post(
                self.endpoint.format(model=self.model),
                params={'key': self.api_key},
                json=body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Assistant request failed: {e}")
            raise ConnectivityError(str(e)) from e

        try:
            parts = data['candidates'][0]['content']['parts']
        except (KeyError, IndexError, TypeError):
            return ''
        return ''.join(part.get('text', '') for part in parts if isinstance(part, dict))


class DonorAssistant:
    def __init__(self, service: CompletionService):
        self.service = service

    def ask(self, question, donors, now=None):
        """
        Answer a free-text question about the given donors.

        Raises:
            ValueError: blank question
            ConnectivityError: the completion service failed
        """
        question = (question or '').strip()
        if not question:
            raise ValueError("Question must not be empty.")

        instruction = build_system_instruction(donors, now)
        reply = self.service.complete(question, instruction)
        return reply.strip() or FALLBACK_REPLY
