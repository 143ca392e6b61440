"""
Backend selection.

The Reddit source, the LLM and the mailer each have a live and a mock
variant. One MOCK_MODE flag, read once at process start, picks the set.
Storage is Airtable when credentials are configured, otherwise in-memory.
"""

from dataclasses import dataclass
from typing import Optional

from ideagen.config import AIRTABLE_API_KEY, GROQ_API_KEY, MOCK_MODE, RESEND_API_KEY
from ideagen.digest.notifier import Notifier
from ideagen.services import (
    ChatCompletionLLMService,
    LLMService,
    Mailer,
    MockLLMService,
    MockMailer,
    ResendMailer,
)
from ideagen.sources import MockRedditSource, RedditSource, Source, SourceCacheGateway
from ideagen.storage import AirtableStorage, MockAirtableStorage, Storage


@dataclass
class Backends:
    """The collaborators a workflow run needs."""
    store: Storage
    source: Source
    llm: LLMService
    mailer: Mailer
    mock_mode: bool = False

    def gateway(self, verbose: bool = False) -> SourceCacheGateway:
        return SourceCacheGateway(self.store, self.source, verbose=verbose)

    def notifier(self, verbose: bool = False) -> Notifier:
        return Notifier(self.mailer, verbose=verbose)

    def describe(self) -> str:
        return (f"store={self.store.name} source={self.source.name} "
                f"llm={self.llm.name} mailer={self.mailer.name}")


def build_backends(mock_mode: Optional[bool] = None) -> Backends:
    """
    Build the backend set.

    Args:
        mock_mode: Override MOCK_MODE. None uses the configured value.
    """
    mock_mode = MOCK_MODE if mock_mode is None else mock_mode

    store = AirtableStorage() if AIRTABLE_API_KEY else MockAirtableStorage()

    if mock_mode:
        return Backends(
            store=store,
            source=MockRedditSource(),
            llm=MockLLMService(),
            mailer=MockMailer(),
            mock_mode=True,
        )

    return Backends(
        store=store,
        source=RedditSource(),
        llm=ChatCompletionLLMService() if GROQ_API_KEY else MockLLMService(),
        mailer=ResendMailer() if RESEND_API_KEY else MockMailer(),
        mock_mode=False,
    )


# Singleton instance
_backends: Optional[Backends] = None


def get_backends() -> Backends:
    """Get the process-wide backend set, built on first use."""
    global _backends
    if _backends is None:
        _backends = build_backends()
    return _backends


def set_backends(backends: Optional[Backends]) -> None:
    """Replace (or with None, reset) the process-wide backend set."""
    global _backends
    _backends = backends
