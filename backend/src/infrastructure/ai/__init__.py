"""AI Infrastructure - adapters for document extraction providers."""

from .openai_provider import OpenAIExtractionProvider

__all__ = ["OpenAIExtractionProvider"]
