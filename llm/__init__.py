"""
LLM Module

Chat completion boundary consumed by the optimization core.

This module provides:
- Message, config and response types for a single completion call
- BaseLLMProvider with call/latency/token accounting
- OpenAI-compatible provider and a deterministic fake provider
- Transport-level retry policy
"""

__version__ = "0.1.0"
