from renewal_worker.config.settings import Settings
from renewal_worker.database.connection import close_pool, init_pool
from renewal_worker.database.repositories.event_repository import EventRepository
from renewal_worker.database.repositories.policy_repository import PolicyRepository
from renewal_worker.database.repositories.processing_log_repository import (
    ProcessingLogRepository,
)
from renewal_worker.extraction.factory import ExtractionClientFactory
from renewal_worker.logging.logger import Log
from renewal_worker.pdf.factory import PdfInspectorFactory
from renewal_worker.pipelines.dispatcher import EventDispatcher, build_dispatcher
from renewal_worker.pipelines.pdf_ingestion import PdfIngestionPipeline
from renewal_worker.pipelines.policy_cleanup import PolicyCleanupPipeline
from renewal_worker.pipelines.receipt_verification import ReceiptVerificationPipeline
from renewal_worker.storage.local_store import LocalArtifactStore
from renewal_worker.worker.event_runner import EventRunner
from renewal_worker.worker.worker import Worker


def build_event_dispatcher(settings: Settings) -> EventDispatcher:
    """Wire the pipelines with shared collaborators created once per process."""
    store = LocalArtifactStore(root=settings.artifact_root)
    client = ExtractionClientFactory.create(settings)
    policy_repo = PolicyRepository()
    log_repo = ProcessingLogRepository()
    return build_dispatcher(
        settings,
        pdf_pipeline=PdfIngestionPipeline(
            store=store,
            client=client,
            inspector=PdfInspectorFactory.create(settings),
            policy_repo=policy_repo,
            log_repo=log_repo,
            settings=settings,
        ),
        receipt_pipeline=ReceiptVerificationPipeline(
            store=store,
            client=client,
            policy_repo=policy_repo,
            log_repo=log_repo,
            settings=settings,
        ),
        cleanup_pipeline=PolicyCleanupPipeline(
            store=store,
            log_repo=log_repo,
            settings=settings,
        ),
    )


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        event_repo = EventRepository()
        event_runner = EventRunner(build_event_dispatcher(settings), event_repo)
        worker = Worker(event_repo, event_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
