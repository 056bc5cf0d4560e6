"""LLM layer: providers, prompt templates and tracing."""
