"""
agent - Conversational agent orchestration layer.

Contains the tool-call protocol parser, tools and their registry, memory,
prompts, and the executor that runs the LLM+tool loop.
Depends on domain/ and application/. Never imports from infrastructure/.
"""
