"""
ns2stat Domains - Match analysis modules.

This module contains:
- filters: Genuine match classification
- aggregate: Per-player and per-map statistics with merge
- balance: Balanced team suggestions
- skill: Pairwise kill-ratio skill ranking
- summary: Per-game summaries and past lineups
"""

__all__: list[str] = []
