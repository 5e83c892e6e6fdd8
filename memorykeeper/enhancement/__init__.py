"""
Story Enhancement

The 7-step enhancement pipeline, the response normalizer, prompt templates
and the daily prompt cache.

Usage:
    >>> from memorykeeper.config import AppConfig
    >>> from memorykeeper.enhancement.orchestrator import EnhancementOrchestrator
    >>> from memorykeeper.enhancement.schemas import EnhancementRequest
    >>>
    >>> with EnhancementOrchestrator.from_config(AppConfig.load_from_yaml()) as orchestrator:
    ...     handle = orchestrator.enhance(EnhancementRequest(transcript="..."))
    ...     handle.wait_for_image(timeout=120)
"""
