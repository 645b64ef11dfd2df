"""Abstract base class for all provider adapters.

Defines the ProviderAdapter interface that every backend adapter must
implement. The orchestrator interacts exclusively through this interface;
it never calls provider SDKs directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from promptx.schemas.models import Provider
from promptx.schemas.streaming import RefinementRequest, TextDelta


class ProviderAdapter(ABC):
    """Abstract interface for a backend that can stream a refinement.

    One subclass per backend family. Each translates the canonical
    RefinementRequest into the backend's native call and exposes the
    response as an async iterator of TextDelta records.
    """

    #: Provider this adapter serves
    provider: Provider

    @abstractmethod
    def stream(self, request: RefinementRequest) -> AsyncIterator[TextDelta]:
        """Stream the refined prompt for a request.

        Implementations are async generators. They yield one TextDelta per
        non-empty text fragment in arrival order, never buffer the whole
        response, and finish with a single ``TextDelta(is_complete=True)``.

        Args:
            request: The canonical refinement request.

        Yields:
            TextDelta records in emission order.

        Raises:
            PromptxError: A classified backend failure, raised either when
                opening the stream or while iterating it.
        """
