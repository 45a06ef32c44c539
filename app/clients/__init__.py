"""Expose constructed client wrappers."""

from .identity import IdentityClient, IdentityProviderError
from .openai_completion import OpenAICompletionClient
from .sqlite_store import SQLiteStore
from .supabase import SupabaseStore

__all__ = [
    "IdentityClient",
    "IdentityProviderError",
    "OpenAICompletionClient",
    "SQLiteStore",
    "SupabaseStore",
]
