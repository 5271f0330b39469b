# ================================================================================
# Chat Service
# ================================================================================
# Thin proxy to OpenAI chat completions.
#
# Conversation history lives in process memory, keyed by chat id, so it is
# lost on restart and not shared between workers.
# ================================================================================

import threading
import time
import uuid

from flask import current_app
from openai import OpenAI, OpenAIError, RateLimitError

from ..errors import ExternalServiceError
from ..models import isoformat, utcnow

CHATBOT_SYSTEM_PROMPT = (
    'You are a helpful assistant for the Learnrithm platform. '
    'Provide concise and accurate responses.'
)
CHATBOT_RETRIES = 3


class MessageStore:
    """Per-chat message history guarded by a lock."""

    def __init__(self):
        self._chats = {}
        self._lock = threading.Lock()

    def append(self, chat_id, message):
        with self._lock:
            self._chats.setdefault(chat_id, []).append(message)

    def history(self, chat_id):
        with self._lock:
            return list(self._chats.get(chat_id, []))

    def clear(self, chat_id=None):
        with self._lock:
            if chat_id is None:
                self._chats.clear()
            else:
                self._chats.pop(chat_id, None)


message_store = MessageStore()


def _openai_client():
    api_key = current_app.config.get('OPENAI_API_KEY')
    if not api_key:
        raise ExternalServiceError('AI service is not configured')
    return OpenAI(api_key=api_key)


def _message(chat_id, role, content, files=None):
    return {
        'id': str(uuid.uuid4()),
        'content': content,
        'role': role,
        'timestamp': isoformat(utcnow()),
        'files': files or [],
        'chatId': chat_id,
    }


def _prompt_content(message):
    """What the model sees: the text plus the names of any attached files."""
    if not message['files']:
        return message['content']
    names = ', '.join(f['name'] for f in message['files'])
    return f"{message['content']}\n\nAttached files: {names}"


def send_chat_message(chat_id, content, files=None):
    """Append the user's message, ask the model with the full history, store the reply."""
    user_message = _message(chat_id, 'user', content, files)
    message_store.append(chat_id, user_message)

    history = [
        {'role': message['role'], 'content': _prompt_content(message)}
        for message in message_store.history(chat_id)
    ]

    config = current_app.config
    try:
        completion = _openai_client().chat.completions.create(
            model=config.get('OPENAI_MODEL'),
            messages=history,
            temperature=config.get('OPENAI_TEMPERATURE', 0.7)
        )
    except OpenAIError as e:
        current_app.logger.error(f"OpenAI chat error for chat {chat_id}: {e}")
        raise ExternalServiceError('Failed to get a response from the AI service')

    ai_message = _message(chat_id, 'assistant', completion.choices[0].message.content or '')
    message_store.append(chat_id, ai_message)
    return user_message, ai_message


def ask_chatbot(message, context=None, retries=CHATBOT_RETRIES):
    """
    One-shot question to the Learnrithm assistant.

    Rate-limit errors are retried with exponential backoff (2s, 4s, ...).
    """
    messages = [{'role': 'system', 'content': CHATBOT_SYSTEM_PROMPT}]
    if context:
        messages.append({'role': 'system', 'content': f'Context: {context}'})
    messages.append({'role': 'user', 'content': message})

    config = current_app.config
    client = _openai_client()

    for attempt in range(1, retries + 1):
        try:
            completion = client.chat.completions.create(
                model=config.get('OPENAI_CHAT_MODEL'),
                messages=messages,
                max_tokens=config.get('OPENAI_MAX_TOKENS', 500),
                temperature=config.get('OPENAI_TEMPERATURE', 0.7)
            )
            return completion.choices[0].message.content
        except RateLimitError:
            if attempt == retries:
                current_app.logger.error(f"Chatbot rate limited after {retries} attempts")
                raise ExternalServiceError('AI service is busy. Please try again later.', status_code=429)
            delay = 2 ** attempt
            current_app.logger.warning(f"Chatbot rate limited, retrying in {delay}s ({attempt}/{retries})")
            time.sleep(delay)
        except OpenAIError as e:
            current_app.logger.error(f"OpenAI chatbot error: {e}")
            raise ExternalServiceError('Failed to get a response from the AI service')
