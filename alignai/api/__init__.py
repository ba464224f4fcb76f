"""AlignAI REST API package.

Mount point: /api/v1/
Auth:        Bearer JWT issued by the hosted auth provider (HS256)
"""
