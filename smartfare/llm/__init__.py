"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and the ordered model priority list.
- Run prompts through the model fallback chain, first success wins.
- Pull the first balanced JSON object or array out of free-form model text.
"""
