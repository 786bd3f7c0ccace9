from abc import ABC, abstractmethod

from renewal_worker.extraction.models import BinaryPayload


class BaseExtractionClient(ABC):
    """Contract for provider-specific multimodal extraction clients."""

    @abstractmethod
    def generate(
        self,
        *,
        model: str,
        temperature: float,
        payload: BinaryPayload,
        instruction: str,
        timeout_seconds: float,
    ) -> str:
        """Send *payload* with *instruction* and return the model's raw text.

        Raises:
            ExtractionNetworkError: on transport, timeout, rate-limit or API errors.
            ExtractionError: when the provider returns no usable text.
        """
