"""Infrastructure adapter exports."""

from .local_store import LocalStoreAdapter
from .openai_enrichment import OpenAIEnrichmentAdapter
from .scripture_api import ScriptureApiAdapter
from .supabase import SupabaseAdapter

__all__ = [
    "LocalStoreAdapter",
    "OpenAIEnrichmentAdapter",
    "ScriptureApiAdapter",
    "SupabaseAdapter",
]
