"""
Audit Logging Service.

Emits one immutable, hash-stamped record per negotiation decision to an
audit sink. Sink failures are logged and counted but never propagate to the
negotiation caller.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol
from uuid import uuid4

from src.constants import AUDIT_EVENT_NEGOTIATION_DECISION
from src.models.audit import AuditRecord, StrategySummary
from src.models.responses import ConflictEscalation, NegotiationParameters
from src.models.shared import MitigationStrategy
from src.utils.business_metrics import audit_write_failures_total
from src.utils.canonical_hash import canonical_json_hash

logger = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "audit.negotiation"


class AuditSink(Protocol):
    """Append-only destination for audit records."""

    def append(self, record: AuditRecord) -> None:
        ...


class LoggingAuditSink:
    """Writes each record as one structured log line."""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME):
        self._logger = logging.getLogger(logger_name)

    def append(self, record: AuditRecord) -> None:
        self._logger.info(
            "audit_record",
            extra={"audit_record": record.model_dump(mode="json", by_alias=True)},
        )


class InMemoryAuditSink:
    """Keeps records in process memory. For tests and local development."""

    def __init__(self) -> None:
        self._records: List[AuditRecord] = []

    def append(self, record: AuditRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> List[AuditRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()


def compute_record_hash(record: AuditRecord) -> str:
    """SHA-256 over the canonical JSON of every field except the hash."""
    return canonical_json_hash(record.hashable_payload())


def verify_record_hash(record: AuditRecord) -> bool:
    """True when the stored hash matches the record's content."""
    return bool(record.record_hash) and record.record_hash == compute_record_hash(record)


def build_rationale(
    selected: List[MitigationStrategy],
    parameters: NegotiationParameters,
    escalation: Optional[ConflictEscalation],
) -> str:
    """Human-readable rationale for a negotiation decision."""
    parts = ["Cross-agent negotiation completed."]

    if escalation is not None:
        parts.append(f"Conflict detected: {escalation.explanation}")
    else:
        parts.append(f"Consensus reached on {len(selected)} balanced strategies.")

    parts.append(
        "Negotiation weights applied: "
        f"Cost ({parameters.cost_weight * 100:.0f}%), "
        f"Risk ({parameters.risk_weight * 100:.0f}%), "
        f"Sustainability ({parameters.sustainability_weight * 100:.0f}%)."
    )

    if selected:
        top = selected[0]
        parts.append(
            f'Top recommended strategy: "{top.name}" '
            f"with cost impact of {round(top.cost_impact):,}, "
            f"risk reduction of {top.risk_reduction * 100:.0f}%, "
            f"and sustainability impact of {round(top.sustainability_impact):,} kg CO2."
        )

    return " ".join(parts)


class AuditLogger:
    """Builds audit records and hands them to the configured sink."""

    def __init__(self, sink: Optional[AuditSink] = None, enabled: bool = True):
        self.sink = sink if sink is not None else LoggingAuditSink()
        self.enabled = enabled

    def build_record(
        self,
        scenario_id: str,
        user_id: str,
        correlation_id: str,
        selected: List[MitigationStrategy],
        parameters: NegotiationParameters,
        escalation: Optional[ConflictEscalation] = None,
    ) -> AuditRecord:
        """Build a hash-stamped record."""
        record = AuditRecord(
            record_id=f"audit_{uuid4().hex}",
            timestamp=datetime.now(timezone.utc).isoformat(),
            event_type=AUDIT_EVENT_NEGOTIATION_DECISION,
            scenario_id=scenario_id,
            user_id=user_id,
            correlation_id=correlation_id,
            selected_strategies=[StrategySummary.from_strategy(s) for s in selected],
            negotiation_parameters=parameters.model_copy(deep=True),
            conflict_escalated=escalation is not None,
            conflict_reason=escalation.reason if escalation else None,
            conflicting_objectives=list(escalation.conflicting_objectives) if escalation else [],
            rationale=build_rationale(selected, parameters, escalation),
        )
        return record.model_copy(update={"record_hash": compute_record_hash(record)})

    def log_decision(
        self,
        scenario_id: str,
        user_id: str,
        correlation_id: str,
        selected: List[MitigationStrategy],
        parameters: NegotiationParameters,
        escalation: Optional[ConflictEscalation] = None,
    ) -> Optional[AuditRecord]:
        """
        Record a negotiation decision.

        Returns:
            The record written, or None when auditing is disabled or the
            sink rejected it
        """
        if not self.enabled:
            return None

        record = self.build_record(
            scenario_id=scenario_id,
            user_id=user_id,
            correlation_id=correlation_id,
            selected=selected,
            parameters=parameters,
            escalation=escalation,
        )

        try:
            self.sink.append(record)
        except Exception as e:
            audit_write_failures_total.inc()
            logger.error(
                "audit_write_failed",
                extra={
                    "record_id": record.record_id,
                    "scenario_id": scenario_id,
                    "error": str(e),
                },
                exc_info=True,
            )
            return None

        logger.info(
            "audit_record_written",
            extra={
                "record_id": record.record_id,
                "scenario_id": scenario_id,
                "conflict_escalated": record.conflict_escalated,
            },
        )
        return record
