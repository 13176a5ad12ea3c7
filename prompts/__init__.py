"""
Prompt templates for the LLM step.

Prompt Files:
- profile_summary.md: regulatory mindset summary followed by a json scorecard
"""

from ._loader import PromptLoader

__all__ = ["PromptLoader"]
