"""Signal Router - Parallel, Bounded Evaluator Invocation."""

import atexit
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from trustgate.common.constants import ProviderConstants
from trustgate.common.exceptions import EvaluatorError
from trustgate.core.types import PILLAR_ORDER, Pillar
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.evaluators import SignalEvaluator, default_evaluators


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PillarFailure:
    """Structured error from evaluator execution."""
    pillar: str
    error_type: str
    error_message: str


@dataclass
class RouterResult:
    """Result of signal routing.

    `factors` always holds one factor per pillar in evaluation order;
    failed pillars are represented by their degraded factor.
    """
    factors: list[RiskFactor]
    errors: list[PillarFailure] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


# Module-level shared executors. Evaluators and provider calls never share
# a pool.
EVALUATOR_POOL = "SignalWorker"
PROVIDER_POOL = "ProviderWorker"

_shared_executors: dict[str, ThreadPoolExecutor] = {}
_executor_lock = threading.Lock()


def _get_shared_executor(
    name: str = EVALUATOR_POOL,
    max_workers: int = ProviderConstants.EXECUTOR_MAX_WORKERS,
) -> ThreadPoolExecutor:
    """Get or create a named shared thread pool executor.

    Reuses module-level executors to avoid thread creation overhead per request.
    """
    with _executor_lock:
        executor = _shared_executors.get(name)
        if executor is None:
            if not _shared_executors:
                atexit.register(_shutdown_shared_executor)
            executor = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix=name,
            )
            _shared_executors[name] = executor
            logger.info(f"Created shared {name} executor with {max_workers} workers")

    return executor


def _shutdown_shared_executor() -> None:
    """Shutdown the shared executors on process exit."""
    with _executor_lock:
        executors = list(_shared_executors.items())
        _shared_executors.clear()
    for name, executor in executors:
        executor.shutdown(wait=True, cancel_futures=True)
        logger.info(f"Shared {name} executor shutdown complete")


def provider_executor() -> ThreadPoolExecutor:
    """The process-wide executor for identity, geolocation and compliance calls."""
    return _get_shared_executor(PROVIDER_POOL, ProviderConstants.PROVIDER_EXECUTOR_MAX_WORKERS)


def call_with_timeout(
    fn: Callable[[], T],
    timeout: float,
    executor: Optional[ThreadPoolExecutor] = None,
) -> T:
    """Run a blocking provider call with a deadline.

    Raises:
        concurrent.futures.TimeoutError: if the call does not finish in time
        Exception: whatever the call itself raised
    """
    pool = executor or provider_executor()
    future = pool.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise


class SignalRouter:
    """Routes an attempt to every pillar evaluator and collects factors.

    Execution model:
    1. All evaluators are submitted in parallel (they are independent)
    2. Each result is awaited with a bounded timeout
    3. A failing or slow evaluator is replaced by its degraded factor

    Features:
    - Reuses a shared evaluator pool that provider calls never use
    - Injectable evaluators and executor for testing
    - Structured error collection
    """

    def __init__(
        self,
        evaluators: Optional[list[SignalEvaluator]] = None,
        timeout: float = ProviderConstants.EVALUATOR_TIMEOUT_SECONDS,
        max_workers: int = ProviderConstants.EXECUTOR_MAX_WORKERS,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """Initialize router.

        Args:
            evaluators: One evaluator per pillar. Uses defaults if not provided.
            timeout: Per-evaluator deadline in seconds
            max_workers: Maximum parallel evaluations (if using shared executor)
            executor: Custom executor. Uses shared executor if not provided.
        """
        evaluators = evaluators if evaluators is not None else default_evaluators()
        self.evaluators: dict[Pillar, SignalEvaluator] = {e.pillar: e for e in evaluators}
        missing = [p.value for p in PILLAR_ORDER if p not in self.evaluators]
        if missing:
            raise ValueError(f"Missing evaluators for pillars: {missing}")

        self.timeout = timeout
        self.max_workers = max_workers
        self._executor = executor

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is not None:
            return self._executor
        return _get_shared_executor(EVALUATOR_POOL, self.max_workers)

    def route(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> RouterResult:
        """Evaluate all pillars for an attempt.

        Args:
            attempt: The attempt being evaluated
            baseline: Stored baseline, or None

        Returns:
            RouterResult with factors in fixed pillar order. Never raises.
        """
        executor = self._get_executor()
        errors: list[PillarFailure] = []

        futures = {
            pillar: executor.submit(self.evaluators[pillar].evaluate, attempt, baseline)
            for pillar in PILLAR_ORDER
        }

        factors: list[RiskFactor] = []
        for pillar in PILLAR_ORDER:
            evaluator = self.evaluators[pillar]
            future = futures[pillar]
            try:
                factor = future.result(timeout=self.timeout)
                if factor.pillar != pillar:
                    raise EvaluatorError(
                        f"Evaluator returned factor for {factor.pillar.value}",
                        pillar=pillar.value,
                    )
                factors.append(factor)
            except FutureTimeoutError:
                future.cancel()
                logger.warning(
                    f"Evaluator {pillar.value} timed out after {self.timeout}s",
                    extra={"attempt_id": attempt.attempt_id},
                )
                errors.append(PillarFailure(
                    pillar=pillar.value,
                    error_type="TimeoutError",
                    error_message=f"exceeded {self.timeout}s",
                ))
                factors.append(evaluator.degraded("evaluator timeout"))
            except Exception as e:
                logger.warning(
                    f"Evaluator {pillar.value} failed: {type(e).__name__}: {e}",
                    extra={"attempt_id": attempt.attempt_id},
                )
                errors.append(PillarFailure(
                    pillar=pillar.value,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ))
                factors.append(evaluator.degraded("evaluator error"))

        return RouterResult(factors=factors, errors=errors)


def shutdown_executor() -> None:
    """Explicitly shutdown the shared executors.

    Call this during application shutdown for clean termination.
    """
    _shutdown_shared_executor()
