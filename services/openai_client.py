import logging
from openai import OpenAI
from typing import Dict, List

logger = logging.getLogger("martivi-chat.openai")

_clients: Dict[str, OpenAI] = {}


class MissingCredentialError(RuntimeError):
    """OPENAI_API_KEY is not configured."""


class ProviderError(RuntimeError):
    """The chat completion call failed."""


def get_client(api_key: str) -> OpenAI:
    # lazy, so GET/OPTIONS never need the key
    client = _clients.get(api_key)
    if client is None:
        client = OpenAI(api_key=api_key)
        _clients[api_key] = client
    return client

def chat_completion(messages: List[Dict[str, str]],
                    system_prompt: str | None = None,
                    model: str = "gpt-4o-mini",
                    temperature: float = 0.4,
                    api_key: str | None = None) -> str:
    if not api_key:
        raise MissingCredentialError("OPENAI_API_KEY missing")

    msg_stack = []
    if system_prompt:
        msg_stack.append({"role": "system", "content": system_prompt})
    msg_stack.extend(messages)

    logger.info("[OPENAI] completion: model=%s messages=%d", model, len(msg_stack))
    try:
        resp = get_client(api_key).chat.completions.create(
            model=model,
            messages=msg_stack,
            temperature=temperature,
        )
    except Exception as e:
        raise ProviderError(str(e)) from e

    if not resp.choices:
        return ""
    return resp.choices[0].message.content or ""
