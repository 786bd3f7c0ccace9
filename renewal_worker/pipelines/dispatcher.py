"""Routes pipeline events to the first handler whose predicate accepts them."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from renewal_worker.config.settings import Settings
from renewal_worker.database.models import OBJECT_FINALIZED, POLICY_DELETED, PipelineEventRecord
from renewal_worker.logging.logger import Log
from renewal_worker.pipelines.base import BasePipeline

EventPredicate = Callable[[PipelineEventRecord], bool]


@dataclass(frozen=True)
class Route:
    name: str
    predicate: EventPredicate
    handler: BasePipeline


class EventDispatcher:
    """Ordered registry of routes; the first match wins."""

    def __init__(self, routes: Sequence[Route] = ()) -> None:
        self._routes: list[Route] = list(routes)

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    def register(self, route: Route) -> None:
        self._routes.append(route)

    def dispatch(self, event: PipelineEventRecord) -> str | None:
        """Run the matching handler and return its route name.

        Events no route accepts are ignored and ``None`` is returned.
        """
        for route in self._routes:
            if route.predicate(event):
                Log.info(
                    f"Dispatching event {event.id} to {route.name}",
                    object_name=event.object_name,
                )
                route.handler.handle(event)
                return route.name
        Log.info(
            f"Ignoring event {event.id}: no route matches",
            event_type=event.event_type,
            object_name=event.object_name,
        )
        return None


def is_pdf_upload(prefix: str) -> EventPredicate:
    def predicate(event: PipelineEventRecord) -> bool:
        return (
            event.event_type == OBJECT_FINALIZED
            and event.object_name.startswith(prefix)
            and event.object_name.endswith(".pdf")
        )

    return predicate


def is_receipt_upload(prefix: str) -> EventPredicate:
    def predicate(event: PipelineEventRecord) -> bool:
        return (
            event.event_type == OBJECT_FINALIZED
            and event.object_name.startswith(prefix)
            and len(event.object_name) > len(prefix)
        )

    return predicate


def is_policy_deletion(event: PipelineEventRecord) -> bool:
    return event.event_type == POLICY_DELETED


def build_dispatcher(
    settings: Settings,
    *,
    pdf_pipeline: BasePipeline,
    receipt_pipeline: BasePipeline,
    cleanup_pipeline: BasePipeline,
) -> EventDispatcher:
    """Register the PDF, receipt and policy cleanup routes, in that order."""
    return EventDispatcher(
        [
            Route("pdf_ingestion", is_pdf_upload(settings.pdf_upload_prefix), pdf_pipeline),
            Route(
                "receipt_verification",
                is_receipt_upload(settings.receipt_upload_prefix),
                receipt_pipeline,
            ),
            Route("policy_cleanup", is_policy_deletion, cleanup_pipeline),
        ]
    )
