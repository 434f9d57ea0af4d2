"""LLM-backed wellness insights.

Modules:
    generator: prompt assembly, OpenAI calls, fallback tips
"""

from lunara.insights.generator import (
    GeneratedInsight,
    InsightGenerator,
    OpenAIInsightGenerator,
    build_insight_prompt,
    fallback_tip,
)

__all__ = [
    "GeneratedInsight",
    "InsightGenerator",
    "OpenAIInsightGenerator",
    "build_insight_prompt",
    "fallback_tip",
]
