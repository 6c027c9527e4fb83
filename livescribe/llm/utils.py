import os
from collections import OrderedDict
from typing import Any, Hashable, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def get_api_credentials() -> Tuple[Optional[str], Optional[str]]:
    """Get API key and base URL for LLM services.

    Returns:
        tuple: (api_key, base_url) - base_url is None for OpenAI direct
    """
    api_key = os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY")
    base_url = "https://openrouter.ai/api/v1" if os.getenv("OPENROUTER_API_KEY") else None
    return api_key, base_url


def truncate_context(text: str, max_length: int) -> str:
    """Keep the most recent `max_length` characters of a transcript, starting at a word boundary.

    Args:
        text: Transcript context, oldest text first
        max_length: Maximum allowed length

    Returns:
        str: The tail of the text
    """
    if len(text) <= max_length:
        return text

    tail = text[-max_length:]
    first_space = tail.find(" ")
    # Only drop the partial first word if that loses little
    if 0 <= first_space < max_length * 0.2:
        tail = tail[first_space + 1 :]
    return tail


def base_language(code: str) -> str:
    """'pt-BR' -> 'pt'."""
    return code.split("-")[0].lower() if code else ""


class LRUCache:
    """Small least-recently-used cache."""

    def __init__(self, max_size: int = 100):
        self.max_size = max_size
        self._items: "OrderedDict[Hashable, Any]" = OrderedDict()

    def get(self, key: Hashable) -> Tuple[bool, Any]:
        """Get item from cache.

        Returns:
            tuple: (found, value) where value is None on a miss
        """
        if key not in self._items:
            return False, None
        self._items.move_to_end(key)
        return True, self._items[key]

    def put(self, key: Hashable, value: Any):
        if self.max_size <= 0:
            return
        self._items[key] = value
        self._items.move_to_end(key)
        while len(self._items) > self.max_size:
            self._items.popitem(last=False)

    def clear(self):
        self._items.clear()

    def size(self) -> int:
        return len(self._items)
