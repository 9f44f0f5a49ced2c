"""Application service layer: profile sync, chapter content and study session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from study_companion.core.ports import (
    AuthPort,
    EnrichmentPort,
    ProfileBackendPort,
    ScripturePort,
)

if TYPE_CHECKING:  # pragma: no cover - type narrowing only
    from .local_guard import LocalCorruptionGuard
    from .profile_service import ProfileService
    from .session import StudySession


@dataclass(slots=True)
class ServiceContainer:
    """Aggregate of the adapters and services a UI layer needs."""

    guard: "LocalCorruptionGuard"
    auth: AuthPort
    profile_backend: ProfileBackendPort
    scripture: ScripturePort
    enrichment: EnrichmentPort
    profiles: "ProfileService"
    session: "StudySession"


def build_default_services(
    *,
    guard: "LocalCorruptionGuard",
    auth_port: AuthPort,
    profile_backend_port: ProfileBackendPort,
    scripture_port: ScripturePort,
    enrichment_port: EnrichmentPort,
) -> ServiceContainer:
    """Return a service container with the profile service and session wired up."""

    # pylint: disable=import-outside-toplevel
    from .profile_service import ProfileService
    from .session import StudySession

    profiles = ProfileService(profile_backend_port)
    session = StudySession(auth_port, profiles, guard, scripture_port, enrichment_port)
    return ServiceContainer(
        guard=guard,
        auth=auth_port,
        profile_backend=profile_backend_port,
        scripture=scripture_port,
        enrichment=enrichment_port,
        profiles=profiles,
        session=session,
    )


__all__ = ["ServiceContainer", "build_default_services"]
