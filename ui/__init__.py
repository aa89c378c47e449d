# ui/__init__.py
from .helpers import ensure_session_keys
from .runner import get_context
__all__ = ["ensure_session_keys", "get_context"]
