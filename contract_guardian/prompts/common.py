"""
Rendering helpers shared by the language-specific prompt modules.
"""
from typing import Iterable


def render_policy_list(policies: Iterable) -> str:
    """Render policies as a markdown bullet list: - **name** (category): content"""
    return '\n'.join(
        f"- **{p.name}** ({p.category or 'general'}): {p.content}"
        for p in policies
    )


def render_norm_list(norms: Iterable) -> str:
    """Render legal norms as: - [norm_id] citation: title"""
    return '\n'.join(f"- [{n.norm_id}] {n.citation}: {n.title}" for n in norms)
