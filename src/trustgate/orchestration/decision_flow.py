"""Decision Flow - The Only Place Access Decisions Happen.

Lifecycle of one attempt:
1. Verify the principal with the identity provider
2. Resolve external signals (geolocation, device compliance) with a deadline
3. Under the principal's registry lock: read baseline, evaluate, update baseline
4. Record the audit entry (non-blocking)
5. Publish the entry to live subscribers

Error handling:
- Unknown principal or identity provider failure -> BLOCKED, score 100
- Provider timeouts -> degraded signals, never errors
- Trust registry failure -> BLOCKED, score 100 (fail closed)
- Audit and dispatch failures are logged; the decision stands
The caller always receives a DecisionOutcome.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from trustgate.common.config import BaselineUpdatePolicy
from trustgate.common.constants import ProviderConstants
from trustgate.common.exceptions import BaselineConflictError
from trustgate.core.types import AccessDecision, FactorCode, Pillar, Signal
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import Decision
from trustgate.data.schemas.login_attempt import LoginAttempt, new_attempt_id
from trustgate.events.dispatcher import EventDispatcher
from trustgate.governance.audit.writer import AuditWriter
from trustgate.governance.schemas import AuditEntry
from trustgate.orchestration.aggregator import RiskAggregator
from trustgate.orchestration.decision_context import (
    AccessRequest,
    DecisionOutcome,
    ResolvedSignals,
)
from trustgate.orchestration.reasons import ReasonCategory
from trustgate.orchestration.signal_router import call_with_timeout, provider_executor
from trustgate.providers.compliance import ComplianceProvider
from trustgate.providers.geolocation import GeolocationProvider
from trustgate.providers.identity import IdentityProvider
from trustgate.registry.store import TrustRegistry


logger = logging.getLogger(__name__)


class AccessDecisionFlow:
    """Orchestrates the complete access decision lifecycle."""

    def __init__(
        self,
        registry: TrustRegistry,
        audit_writer: AuditWriter,
        dispatcher: EventDispatcher,
        identity_provider: IdentityProvider,
        geolocation_provider: Optional[GeolocationProvider] = None,
        compliance_provider: Optional[ComplianceProvider] = None,
        aggregator: Optional[RiskAggregator] = None,
        update_policy: BaselineUpdatePolicy = BaselineUpdatePolicy.GRANTED,
        provider_timeout: float = ProviderConstants.DEFAULT_TIMEOUT_SECONDS,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.registry = registry
        self.audit_writer = audit_writer
        self.dispatcher = dispatcher
        self.identity_provider = identity_provider
        self.geolocation_provider = geolocation_provider
        self.compliance_provider = compliance_provider
        self.aggregator = aggregator or RiskAggregator()
        self.update_policy = update_policy
        self.provider_timeout = provider_timeout
        self._executor = executor

    def _get_executor(self) -> ThreadPoolExecutor:
        return self._executor or provider_executor()

    def process(self, request: AccessRequest) -> DecisionOutcome:
        """Process one access request through the full pipeline.

        Never raises once the request itself is well formed.
        """
        attempt_id = request.attempt_id or new_attempt_id()
        principal = request.principal.strip().lower()
        timestamp = request.timestamp or datetime.now(timezone.utc)

        # 1. Identity
        try:
            known = call_with_timeout(
                lambda: self.identity_provider.verify(principal),
                self.provider_timeout,
                self._executor,
            )
        except FutureTimeoutError:
            logger.warning("Identity provider timed out", extra={"attempt_id": attempt_id})
            return self._blocked(request, attempt_id, timestamp, ReasonCategory.IDENTITY_UNAVAILABLE)
        except Exception as e:
            logger.error(
                f"Identity provider failed: {type(e).__name__}: {e}",
                extra={"attempt_id": attempt_id},
            )
            return self._blocked(request, attempt_id, timestamp, ReasonCategory.IDENTITY_UNAVAILABLE)

        if not known:
            logger.info("Unknown principal", extra={"attempt_id": attempt_id})
            return self._blocked(request, attempt_id, timestamp, ReasonCategory.UNKNOWN_PRINCIPAL)

        # 2. External signals
        signals = self._resolve_signals(request, principal, attempt_id)
        attempt = LoginAttempt(
            attempt_id=attempt_id,
            principal=principal,
            device_fingerprint=request.device_fingerprint,
            ip_address=request.ip_address,
            location=signals.location,
            timestamp=timestamp,
            user_agent=request.user_agent,
            posture=signals.posture,
            degraded_signals=signals.degraded,
        )

        # 3. Evaluate inside the principal's critical section
        notes: list[str] = []
        try:
            with self.registry.lock(principal):
                baseline = self.registry.get_baseline(principal)
                decision = self.aggregator.evaluate(attempt, baseline)
                updated = self._update_baseline(attempt, baseline, decision, notes)
        except Exception as e:
            logger.error(
                f"Trust registry failure, failing closed: {type(e).__name__}: {e}",
                extra={"attempt_id": attempt_id},
            )
            decision = RiskAggregator.blocked_decision(ReasonCategory.SYSTEM_FAILURE, attempt_id)
            return self._finalize(attempt, decision, False, ["registry_unavailable"])

        return self._finalize(attempt, decision, updated, notes)

    def _resolve_signals(
        self,
        request: AccessRequest,
        principal: str,
        attempt_id: str,
    ) -> ResolvedSignals:
        """Query geolocation and compliance in parallel under one deadline."""
        executor = self._get_executor()
        futures = {}
        if self.geolocation_provider is not None:
            futures[Signal.GEOLOCATION] = executor.submit(
                self.geolocation_provider.resolve, request.ip_address
            )
        if self.compliance_provider is not None:
            futures[Signal.COMPLIANCE] = executor.submit(
                self.compliance_provider.posture, principal, request.device_fingerprint
            )

        deadline = time.monotonic() + self.provider_timeout
        results: Dict[str, Any] = {}
        degraded: list[str] = []
        for signal, future in futures.items():
            try:
                results[signal] = future.result(timeout=max(0.0, deadline - time.monotonic()))
            except FutureTimeoutError:
                future.cancel()
                logger.warning(
                    f"{signal.value} provider timed out",
                    extra={"attempt_id": attempt_id},
                )
                degraded.append(signal.value)
            except Exception as e:
                logger.warning(
                    f"{signal.value} provider failed: {type(e).__name__}: {e}",
                    extra={"attempt_id": attempt_id},
                )
                degraded.append(signal.value)

        location = results.get(Signal.GEOLOCATION)
        if location is None and Signal.GEOLOCATION.value not in degraded:
            degraded.append(Signal.GEOLOCATION.value)

        return ResolvedSignals(
            location=location,
            posture=results.get(Signal.COMPLIANCE),
            degraded=tuple(degraded),
        )

    def _update_baseline(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
        decision: Decision,
        notes: list[str],
    ) -> bool:
        """Apply the baseline update policy. Conflicts are logged, not raised."""
        current = baseline or TrustBaseline.empty(attempt.principal)

        if decision.decision == AccessDecision.GRANTED:
            # A degraded pillar never promotes what it failed to check
            device = decision.factor(Pillar.DEVICE)
            behavior = decision.factor(Pillar.BEHAVIOR)
            updated = current.after_grant(
                attempt,
                trust_device=device is not None and not device.degraded,
                trust_location=behavior is not None and not behavior.degraded,
            )
        elif self.update_policy == BaselineUpdatePolicy.EVERY_ATTEMPT:
            updated = current.after_observation(attempt)
        else:
            return False

        if updated is current:
            return False

        try:
            self.registry.update_baseline(attempt.principal, updated)
        except BaselineConflictError as e:
            logger.warning(
                f"Baseline update lost a concurrent write: {e.message}",
                extra={"attempt_id": attempt.attempt_id},
            )
            notes.append("baseline_conflict")
            return False
        return True

    def _blocked(
        self,
        request: AccessRequest,
        attempt_id: str,
        timestamp: datetime,
        category: str,
    ) -> DecisionOutcome:
        attempt = LoginAttempt(
            attempt_id=attempt_id,
            principal=request.principal,
            device_fingerprint=request.device_fingerprint,
            ip_address=request.ip_address,
            timestamp=timestamp,
            user_agent=request.user_agent,
        )
        decision = RiskAggregator.blocked_decision(category, attempt_id)
        return self._finalize(attempt, decision, False, [category])

    def _finalize(
        self,
        attempt: LoginAttempt,
        decision: Decision,
        baseline_updated: bool,
        notes: list[str],
    ) -> DecisionOutcome:
        """Record and publish. Failures here never change the decision."""
        entry: Optional[AuditEntry] = None
        recorded = True
        try:
            entry = self.audit_writer.record(
                attempt, decision, self._audit_metadata(decision, baseline_updated, notes)
            )
        except Exception as e:
            logger.error(
                f"Audit record failed: {type(e).__name__}: {e}",
                extra={"attempt_id": attempt.attempt_id},
            )
            notes.append("audit_failed")
            recorded = False

        delivered = 0
        if entry is not None:
            try:
                delivered = self.dispatcher.publish(entry)
            except Exception as e:
                logger.error(
                    f"Event dispatch failed: {type(e).__name__}: {e}",
                    extra={"attempt_id": attempt.attempt_id},
                )
        elif recorded:
            notes.append("already_recorded")

        logger.info(
            f"Access {decision.decision.value} (score {decision.risk_score})",
            extra={
                "attempt_id": attempt.attempt_id,
                "principal": attempt.principal,
                "decision": decision.decision.value,
                "risk_score": decision.risk_score,
            },
        )

        return DecisionOutcome.create(
            attempt=attempt,
            decision=decision,
            audit_entry=entry,
            baseline_updated=baseline_updated,
            delivered=delivered,
            notes=tuple(notes),
        )

    @staticmethod
    def _audit_metadata(
        decision: Decision,
        baseline_updated: bool,
        notes: list[str],
    ) -> Dict[str, Any]:
        device = decision.factor(Pillar.DEVICE)
        behavior = decision.factor(Pillar.BEHAVIOR)
        details = behavior.details if behavior is not None else {}
        return {
            "is_trusted_device": device is not None and device.code == FactorCode.TRUSTED_DEVICE,
            "is_impossible_travel": behavior is not None and behavior.code == FactorCode.IMPOSSIBLE_TRAVEL,
            "travel_distance_km": details.get("travel_distance_km"),
            "time_since_last_login_minutes": details.get("time_since_last_login_minutes"),
            "degraded": decision.is_degraded,
            "baseline_updated": baseline_updated,
            "notes": list(notes),
        }
