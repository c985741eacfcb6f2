"""Access Evaluation Service - wires the pipeline together for the API layer.

Design principles:
- Clean separation between API and domain logic
- Collaborators built from Config unless injected
- Every evaluation path produces a valid response
"""

import logging
from typing import Iterable, List, Optional

from trustgate.api.schemas import (
    AuditEventResponse,
    CheckAccessRequest,
    CheckAccessResponse,
    RiskFactorResponse,
)
from trustgate.common.config import Config, GeolocationProviderType, get_config
from trustgate.common.constants import DataConstants
from trustgate.events.dispatcher import EventDispatcher, Subscription
from trustgate.governance.audit.config import create_audit_writer
from trustgate.governance.audit.writer import AuditWriter
from trustgate.orchestration.decision_context import AccessRequest, DecisionOutcome
from trustgate.orchestration.decision_flow import AccessDecisionFlow
from trustgate.providers.compliance import ComplianceProvider
from trustgate.providers.geolocation import GeolocationProvider, IpApiGeolocationProvider
from trustgate.providers.identity import IdentityProvider, InMemoryIdentityProvider
from trustgate.registry.config import create_trust_registry
from trustgate.registry.store import TrustRegistry


logger = logging.getLogger(__name__)


def _default_geolocation(config: Config) -> Optional[GeolocationProvider]:
    if config.geolocation_provider == GeolocationProviderType.IP_API:
        return IpApiGeolocationProvider(
            url_template=config.geolocation_url,
            timeout=config.provider_timeout_seconds,
        )
    return None


class AccessEvaluationService:
    """Service for evaluating access attempts.

    Orchestrates:
    1. Input transformation from API schema to AccessRequest
    2. Decision flow execution
    3. Response transformation

    Audit and dispatch happen inside the decision flow; their failures
    never fail the request.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        registry: Optional[TrustRegistry] = None,
        audit_writer: Optional[AuditWriter] = None,
        dispatcher: Optional[EventDispatcher] = None,
        identity_provider: Optional[IdentityProvider] = None,
        geolocation_provider: Optional[GeolocationProvider] = None,
        compliance_provider: Optional[ComplianceProvider] = None,
    ):
        self.config = config or get_config()
        self.registry = registry or create_trust_registry(self.config)
        self.audit_writer = audit_writer or create_audit_writer(self.config)
        self.dispatcher = dispatcher or EventDispatcher(queue_size=self.config.dispatcher_queue_size)
        self.identity_provider = identity_provider or InMemoryIdentityProvider(
            self.config.known_principals
        )
        self.geolocation_provider = (
            geolocation_provider if geolocation_provider is not None
            else _default_geolocation(self.config)
        )
        self.compliance_provider = compliance_provider

        self.decision_flow = AccessDecisionFlow(
            registry=self.registry,
            audit_writer=self.audit_writer,
            dispatcher=self.dispatcher,
            identity_provider=self.identity_provider,
            geolocation_provider=self.geolocation_provider,
            compliance_provider=self.compliance_provider,
            update_policy=self.config.baseline_update_policy,
            provider_timeout=self.config.provider_timeout_seconds,
        )

    def shutdown(self) -> None:
        """Close subscriptions, flush pending audit writes and release providers."""
        self.dispatcher.close_all()
        self.audit_writer.shutdown()
        if self.geolocation_provider is not None:
            self.geolocation_provider.close()
        logger.info("AccessEvaluationService shutdown complete")

    def check(self, request: AccessRequest) -> DecisionOutcome:
        """Run one request through the decision flow."""
        return self.decision_flow.process(request)

    def evaluate(self, request: CheckAccessRequest) -> CheckAccessResponse:
        """Evaluate an API request and shape the public response."""
        outcome = self.check(AccessRequest(
            principal=request.email,
            device_fingerprint=request.device_fingerprint,
            ip_address=request.ip,
            user_agent=request.user_agent,
            timestamp=request.timestamp,
            attempt_id=request.attempt_id,
        ))
        decision = outcome.decision
        return CheckAccessResponse(
            decision=decision.decision.value,
            risk_score=decision.risk_score,
            reason=decision.reason,
            risk_factors=[
                RiskFactorResponse(**factor.to_public()) for factor in decision.risk_factors
            ],
            attempt_id=outcome.attempt.attempt_id,
        )

    def get_audit_entries(
        self,
        principal: Optional[str] = None,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEventResponse]:
        entries = self.audit_writer.get_entries(principal=principal, limit=limit)
        return [AuditEventResponse(**entry.to_event()) for entry in entries]

    def subscribe(self, principals: Optional[Iterable[str]] = None) -> Subscription:
        return self.dispatcher.subscribe(principals)
