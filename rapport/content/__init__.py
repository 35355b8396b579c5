"""Content generation package.

Generates:
    - Attention brief
"""

from rapport.content.attention_brief import AttentionBrief, generate_attention_brief

__all__ = [
    "AttentionBrief",
    "generate_attention_brief",
]
