"""
Rate Confirmation Extraction Backend.

A FastAPI service that turns freight rate confirmation documents into
structured load records using a document-understanding model (OpenAI).
"""

__version__ = "1.0.0"
