"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: Ollama, Gemini, the Fitbit REST API and
OAuth flow, and local JSON storage.
Depends on domain/ only (implements ports). Never imported by application/.
"""
