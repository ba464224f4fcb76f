"""Discovery prompt catalog, prompt builders, and LLM-generated questions."""
