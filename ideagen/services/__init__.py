"""
Services module.

Contains external service integrations: the LLM and the mailer.
"""

from ideagen.services.llm import ChatCompletionLLMService, LLMService, MockLLMService
from ideagen.services.mailer import Mailer, MockMailer, ResendMailer

__all__ = [
    "LLMService",
    "ChatCompletionLLMService",
    "MockLLMService",
    "Mailer",
    "ResendMailer",
    "MockMailer",
]
