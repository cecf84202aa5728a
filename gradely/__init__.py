"""
Gradely - AI-assisted code review for assignments.

Routes review, assistant and chat requests through a chain of free LLM
models and normalizes whatever comes back into structured feedback.
"""

__version__ = "1.0.0"
