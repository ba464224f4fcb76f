"""Semantic conflict detection for section responses.

Embeddings decide whether a team disagrees; the LLM is asked only when they
do, and explains how (severity, differences, agreement, suggested merge).
"""
