from renewal_worker.extraction.client_base import BaseExtractionClient
from renewal_worker.extraction.factory import ExtractionClientFactory
from renewal_worker.extraction.openai_client_adapter import OpenAIClientAdapter

__all__ = ["BaseExtractionClient", "ExtractionClientFactory", "OpenAIClientAdapter"]
