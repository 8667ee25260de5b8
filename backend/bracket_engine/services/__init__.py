"""
Services Layer

Bracket engine services that:
- Accept domain inputs (IDs, sessions, team seed lists)
- Return domain outputs (models, graphs, pydantic summaries)
- Do NOT depend on HTTP request/response objects or push transports
- Commit once per call, after all validation has passed
"""
