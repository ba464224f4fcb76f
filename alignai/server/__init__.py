"""AlignAI HTTP server package.

Entry point:
    uvicorn alignai.server.main:app --host 0.0.0.0 --port 8000
"""
