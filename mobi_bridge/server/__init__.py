"""HTTP download server for converted books.

WHY: Books converted in chat must also be reachable by a plain link.
This package exposes the slug registry read-only over HTTP.

HOW: app.py builds the FastAPI app around an injected registry and
runs it with uvicorn; models.py holds the response schemas.
"""
