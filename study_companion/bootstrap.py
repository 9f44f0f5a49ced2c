"""Application bootstrap helpers for assembling the service container."""

from __future__ import annotations

from study_companion.adapters.local_store import LocalStoreAdapter
from study_companion.adapters.openai_enrichment import OpenAIEnrichmentAdapter
from study_companion.adapters.scripture_api import ScriptureApiAdapter
from study_companion.adapters.supabase import SupabaseAdapter
from study_companion.services import ServiceContainer, build_default_services
from study_companion.services.local_guard import LocalCorruptionGuard


def build_default_service_container() -> ServiceContainer:
    """Return the default service container wired to production adapters."""

    guard = LocalCorruptionGuard(LocalStoreAdapter())
    supabase = SupabaseAdapter(guard)
    return build_default_services(
        guard=guard,
        auth_port=supabase,
        profile_backend_port=supabase,
        scripture_port=ScriptureApiAdapter(),
        enrichment_port=OpenAIEnrichmentAdapter(),
    )


__all__ = ["build_default_service_container"]
