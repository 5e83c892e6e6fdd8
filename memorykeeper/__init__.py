"""
Memory Keeper AI

Story enhancement orchestration for recorded family memories: provider
gateways, a long-running job poller, response normalization, the 7-step
enhancement pipeline and the daily prompt cache.
"""

__version__ = "0.1.0"
