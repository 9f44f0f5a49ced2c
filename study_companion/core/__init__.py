"""Core configuration, models, ports and cross-cutting helpers."""
