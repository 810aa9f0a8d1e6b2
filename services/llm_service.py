from typing import Optional

from groq import Groq
from loguru import logger

from config import GROQ_API_KEY, GROQ_MODEL
from services.errors import TextGenerationError

# Groq client (optional: without a key every call fails and callers fall back)
client: Optional[Groq] = None
if GROQ_API_KEY:
    client = Groq(api_key=GROQ_API_KEY)


def generate_text(prompt: str, max_tokens: int = 400) -> str:
    """
    Single chat completion. Raises TextGenerationError when no client is
    configured, the API call fails, or the reply is empty. Never retries.
    """
    if client is None:
        raise TextGenerationError("Text generation is not configured (GROQ_API_KEY missing).")

    try:
        response = client.chat.completions.create(
            model=GROQ_MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            max_tokens=max_tokens,
        )
    except Exception as e:
        logger.error("Groq API error: {}", e)
        raise TextGenerationError(f"Groq API error: {e}") from e

    raw = response.choices[0].message.content if response.choices else None
    if not raw:
        raise TextGenerationError("Groq returned an empty response.")

    logger.debug("Raw LLM response: {}", raw)
    return raw
