"""
AlignAI pipeline package.

Provides:
- embedder: embedding provider abstraction (OpenAI HTTP API, local sentence-transformers)
- completion: chat completion provider (Anthropic Messages API), blocking and streaming
- similarity: cosine similarity and ranking
- parsing: JSON extraction from model output
"""
