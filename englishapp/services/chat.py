"""Chat tutor backed by an OpenRouter-compatible chat-completions endpoint."""
import os, json, logging, urllib.request, urllib.error

from ..chat_db import add_chat
from ..errors import UpstreamError

logger = logging.getLogger(__name__)

OPENROUTER_KEY = os.environ.get('OPENROUTER_API_KEY')
OPENROUTER_BASE = os.environ.get('OPENROUTER_BASE', 'https://openrouter.ai/api/v1')
DEFAULT_MODEL = os.environ.get('CHAT_DEFAULT_MODEL', 'nousresearch/deephermes-3-mistral-24b-preview:free')
APP_PUBLIC_URL = os.environ.get('APP_PUBLIC_URL', 'http://localhost:5000')
APP_TITLE = 'English Learning App'
REQUEST_TIMEOUT = 60

SYSTEM_PROMPT = (
    "You are an English language tutor specializing in business English. "
    "Help the user learn professional English vocabulary and expressions. "
    "Provide explanations in Vietnamese when necessary. "
    "Keep responses concise and focused on business contexts."
)

MOCK_MODEL = 'mock'
MOCK_RESPONSE = (
    "This is a mock response since the OpenRouter API key is not configured. "
    "Please contact the administrator to set up the API key for real AI responses."
)

PAYMENT_REQUIRED_MESSAGE = (
    "The OpenRouter account has insufficient credits or the model requires payment. "
    "Please try another model or contact the administrator."
)

# Served without calling the API
AVAILABLE_MODELS = [
    {
        'id': 'nousresearch/deephermes-3-mistral-24b-preview:free',
        'name': 'DeepHermes 3 Mistral 24B',
        'description': 'Affordable and fast model for general English tutoring',
        'context_length': 16385,
    },
    {
        'id': 'microsoft/phi-4-reasoning:free',
        'name': 'Phi 4 Reasoning',
        'description': 'Fast and affordable model for English learning assistance',
        'context_length': 100000,
    },
    {
        'id': 'meta-llama/llama-3.3-8b-instruct:free',
        'name': 'Llama 3.3 8B Instruct',
        'description': 'Efficient model for English tutoring and explanations',
        'context_length': 32000,
    },
    {
        'id': 'qwen/qwen3-1.7b:free',
        'name': 'Qwen3 1.7B',
        'description': 'Open source model for English learning assistance',
        'context_length': 4096,
    },
]


def _http_json(url, payload, headers):
    """POST ``payload`` as JSON; HTTP and network failures raise UpstreamError"""
    req = urllib.request.Request(url, data=json.dumps(payload).encode('utf-8'), headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT) as resp:
            return json.loads(resp.read().decode('utf-8'))
    except urllib.error.HTTPError as e:
        body = e.read().decode('utf-8', errors='replace')
        try:
            detail = json.loads(body)
        except ValueError:
            detail = body
        logger.warning("OpenRouter API error %s: %s", e.code, detail)
        if e.code == 402:
            raise UpstreamError(PAYMENT_REQUIRED_MESSAGE, 'PAYMENT_REQUIRED', status_code=402) from e
        raise UpstreamError('Error calling OpenRouter API', detail, status_code=e.code) from e
    except (urllib.error.URLError, TimeoutError, ValueError) as e:
        logger.warning("OpenRouter API unreachable: %s", e)
        raise UpstreamError('Error calling OpenRouter API', str(e), status_code=502) from e


def complete_chat(message, model_id=None):
    """Ask the tutor model and return the reply text"""
    payload = {
        'model': model_id or DEFAULT_MODEL,
        'messages': [
            {'role': 'system', 'content': SYSTEM_PROMPT},
            {'role': 'user', 'content': message},
        ],
    }
    headers = {
        'Content-Type': 'application/json',
        'Authorization': f'Bearer {OPENROUTER_KEY}',
        'HTTP-Referer': APP_PUBLIC_URL,
        'X-Title': APP_TITLE,
    }
    data = _http_json(f'{OPENROUTER_BASE}/chat/completions', payload, headers)
    try:
        return data['choices'][0]['message']['content']
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamError('Unexpected response from OpenRouter API', str(e), status_code=502) from e


def send_message(user_id, message, model_id=None):
    """Get a reply (mocked without an API key) and store the exchange"""
    if not OPENROUTER_KEY:
        logger.info("Using mock response (no API key)")
        return add_chat(user_id, message, MOCK_RESPONSE, model_id or MOCK_MODEL)

    logger.info("User %s sending message with model %s", user_id, model_id or 'default')
    reply = complete_chat(message, model_id)
    return add_chat(user_id, message, reply, model_id)
