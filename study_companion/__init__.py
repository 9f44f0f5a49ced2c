"""Bible study companion: profile sync, chapter content caching and AI study aids."""
