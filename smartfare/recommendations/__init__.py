"""
Offer recommendation.

Responsibilities:
- Ask the AI provider for a best offer, alternatives and price analysis.
- Fall back to a deterministic heuristic ranking when every model fails.
"""
