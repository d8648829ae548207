"""OpenTelemetry envelope wrapped around every inbound Slack event.

Each event gets its own root span in an empty context, so traces never leak
between events handled on the same worker thread. The handler receives a
``TraceContext`` and threads it through every step explicitly.

On failure the envelope records the exception, sends one generic notice to
the originator when nothing has been sent yet, and re-raises.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Generator, Protocol, TypeVar

import structlog
from opentelemetry import metrics, trace
from opentelemetry.context import Context
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, SpanKind, Status, StatusCode
from structlog.contextvars import bind_contextvars, unbind_contextvars

from land_workflow_bot.events import InboundEvent

T = TypeVar("T")

TRACER_NAME = "land_workflow_bot"

GENERIC_FAILURE_MESSAGE = (
    "An unexpected error occurred while processing your request. "
    "If this issue persists, please file a bug report."
)

_AttributeValue = str | bool | int | float


def _coerce(value: Any) -> _AttributeValue:
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


class TraceContext:
    """Per-event span handle plus a structlog logger bound to the same event."""

    def __init__(self, span: Span, tracer: trace.Tracer, *, event: InboundEvent, operation: str) -> None:
        self._span = span
        self._tracer = tracer
        self._event = event
        self.log = structlog.get_logger(__name__).bind(
            event_id=event.event_id,
            operation=operation,
        )

    @property
    def span(self) -> Span:
        return self._span

    @property
    def event(self) -> InboundEvent:
        return self._event

    def set(self, key: str, value: Any) -> None:
        if value is None:
            return
        self._span.set_attribute(key, _coerce(value))

    def fail(self, reason: str, **fields: Any) -> None:
        """Mark the event as a handled failure (validation or lookup miss)."""

        self.set("command.status", "failed")
        self.set("command.status_reason", reason)
        self.log.info("workflow_step_failed", reason=reason, **fields)

    def succeed(self, **fields: Any) -> None:
        self.set("command.status", "success")
        self.log.info("workflow_completed", **fields)

    @contextmanager
    def step(self, name: str, op: str, **attributes: Any) -> Generator[Span, None, None]:
        """Run one workflow step inside a child span of the event span."""

        parent = trace.set_span_in_context(self._span)
        with self._tracer.start_as_current_span(
            name,
            context=parent,
            kind=SpanKind.INTERNAL,
            attributes={"op": op, **{k: _coerce(v) for k, v in attributes.items() if v is not None}},
            record_exception=False,
            set_status_on_exception=False,
        ) as child:
            try:
                yield child
            except Exception as exc:
                child.record_exception(exc)
                child.set_status(Status(StatusCode.ERROR, type(exc).__name__))
                raise
            status = getattr(child, "status", None)
            if status is None or status.status_code is StatusCode.UNSET:
                child.set_status(Status(StatusCode.OK))


class ExceptionReporter(Protocol):
    def capture_exception(self, exc: BaseException, *, trace_context: TraceContext, event: InboundEvent) -> None:
        ...


class SpanExceptionReporter:
    """Record exceptions on the event span and emit them as structured logs."""

    def __init__(self) -> None:
        self._log = structlog.get_logger(__name__)

    def capture_exception(self, exc: BaseException, *, trace_context: TraceContext, event: InboundEvent) -> None:
        trace_context.span.record_exception(exc, attributes={"interaction.id": event.event_id})
        self._log.error(
            "exception_captured",
            event_id=event.event_id,
            interaction_type=event.kind,
            user_id=event.user_id,
            error_type=type(exc).__name__,
            exc_info=exc,
        )


class ObservabilityEnvelope:
    """Uniform tracing and error envelope applied to every entry point."""

    def __init__(
        self,
        *,
        tracer: trace.Tracer | None = None,
        reporter: ExceptionReporter | None = None,
        meter: metrics.Meter | None = None,
    ) -> None:
        self._tracer = tracer or trace.get_tracer(TRACER_NAME)
        self._reporter = reporter or SpanExceptionReporter()
        meter = meter or metrics.get_meter(TRACER_NAME)
        self._interaction_counter = meter.create_counter(
            "interaction.create.count",
            description="Inbound Slack interactions handled by the bot",
        )
        self._log = structlog.get_logger(__name__)

    def run(
        self,
        event: InboundEvent,
        span_name: str,
        operation: str,
        handler: Callable[[TraceContext], T],
    ) -> T:
        attributes = {key: _coerce(value) for key, value in event.attributes().items()}
        attributes["operation"] = operation
        self._interaction_counter.add(1, attributes={"interaction.type": event.kind, "operation": operation})

        with self._tracer.start_as_current_span(
            span_name,
            context=Context(),
            kind=SpanKind.SERVER,
            attributes=attributes,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            trace_id = trace.format_trace_id(span.get_span_context().trace_id)
            bind_contextvars(event_id=event.event_id, trace_id=trace_id)
            context = TraceContext(span, self._tracer, event=event, operation=operation)
            try:
                result = handler(context)
            except Exception as exc:
                span.set_status(Status(StatusCode.ERROR, "internal_error"))
                context.set("command.status", "error")
                self._reporter.capture_exception(exc, trace_context=context, event=event)
                self._send_failure_notice(event)
                raise
            else:
                span.set_status(Status(StatusCode.OK))
                return result
            finally:
                unbind_contextvars("event_id", "trace_id")

    def _send_failure_notice(self, event: InboundEvent) -> None:
        if not event.can_reply or event.responded:
            return
        try:
            event.reply(GENERIC_FAILURE_MESSAGE)
        except Exception:
            # the original failure is re-raised by the caller
            self._log.exception("failure_notice_failed", event_id=event.event_id)


def configure_tracing(settings, *, version: str = "unknown") -> TracerProvider:
    """Install the process-wide tracer and meter providers described by *settings*."""

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "service.version": version,
        }
    )
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.traces_sample_rate)),
    )
    if settings.trace_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    readers = []
    if settings.trace_console_export:
        readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=readers))
    return provider
