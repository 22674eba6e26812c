"""Bridge orchestrator: drives one transfer attempt through its stages."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from functools import partial

from .annotator import Annotator, StaticAnnotator
from .assets import AssetCatalog
from .config import BridgeConfig
from .exceptions import (
    BridgeError,
    ChainMismatch,
    ConfigurationError,
    EndpointsExhausted,
    ErrorKind,
    SignerUnavailable,
    TransactionFailed,
    TransferInProgress,
    UserRejected,
    ValidationError,
)
from .monitor import BalanceMonitor
from .proofs import ProofStatus, ProofWaiter
from .protocols import BridgeProtocol, ContractCall, build_protocols, resolve_protocol
from .registry import NetworkRegistry
from .rpc import RpcFallbackClient
from .session import SessionContext
from .transactions import TransactionSubmitter
from .types import (
    FailureInfo,
    Network,
    Outcome,
    ProtocolKind,
    Stage,
    StageEvent,
    StageVariant,
    TransferAttempt,
    TransferRecord,
    TransferRequest,
)
from .utils import from_base_units, parse_token_id, to_base_units

logger = logging.getLogger(__name__)

StageListener = Callable[[StageEvent], None]


class BridgeOrchestrator:
    """Run at most one non-terminal transfer attempt at a time.

    ``advance`` executes stages until the attempt completes, fails, or must
    pause: after a network switch request (the user re-triggers once the
    wallet confirms) and while the off-chain proof is still pending.
    ``wait_for_completion`` drives the same steps to the end, sleeping with
    backoff during the proof wait; ``abandon`` may be called from any thread.

    ``_lock`` guards attempt state and records and is never held across
    signer prompts or RPC calls; ``_drive_lock`` serializes the drivers.
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        catalog: AssetCatalog,
        rpc: RpcFallbackClient,
        config: BridgeConfig | None = None,
        *,
        protocols: Mapping[ProtocolKind, BridgeProtocol] | None = None,
        submitter: TransactionSubmitter | None = None,
        annotator: Annotator | None = None,
        balance_monitor: BalanceMonitor | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._registry = registry
        self._catalog = catalog
        self._rpc = rpc
        self._config = config or BridgeConfig()
        self._protocols = dict(protocols or build_protocols(catalog, config=self._config))
        self._submitter = submitter or TransactionSubmitter(rpc, self._config)
        self._annotator = annotator or StaticAnnotator()
        self._balances = balance_monitor
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._config.max_workers, thread_name_prefix="bridge"
        )

        self._lock = threading.RLock()
        self._drive_lock = threading.RLock()
        self._attempt: TransferAttempt | None = None
        self._session: SessionContext | None = None
        self._waiter: ProofWaiter | None = None
        self._records: list[TransferRecord] = []
        self._listeners: list[StageListener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    @property
    def current(self) -> TransferAttempt | None:
        with self._lock:
            return self._attempt

    @property
    def records(self) -> tuple[TransferRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def subscribe(self, listener: StageListener) -> Callable[[], None]:
        """Register a stage listener; returns a callable that removes it."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def begin(
        self,
        session: SessionContext,
        request: TransferRequest,
        resume: TransferRecord | None = None,
    ) -> TransferAttempt:
        """Validate ``request`` and open a new attempt in IDLE.

        ``resume`` carries the artifacts of an earlier failed or abandoned
        attempt for the same request; steps whose transactions already exist
        are skipped instead of resubmitted.
        """

        session.require_signer()
        sender = session.address

        with self._lock:
            active = self._attempt
            if active is not None and active.stage != Stage.COMPLETED:
                if active.stage == Stage.FAILED:
                    raise TransferInProgress(
                        "Previous transfer failed; reset before starting another",
                        stage=active.stage.name,
                    )
                raise TransferInProgress(
                    "A transfer is already in progress", stage=active.stage.name
                )

            attempt = self._prepare(request, resume)
            self._attempt = attempt
            self._session = session
            self._waiter = None
            attempt.history.append((Stage.IDLE, None))
            logger.info(
                "Transfer %s created: %s %s %s -> %s via %s for %s",
                attempt.id,
                request.amount,
                attempt.asset.symbol,
                attempt.source.id,
                attempt.destination.id,
                attempt.protocol.value,
                sender,
            )
            self._emit(StageEvent(attempt.id, Stage.IDLE))
            return attempt

    def advance(self) -> Stage:
        with self._drive_lock:
            return self._drive(self._require_attempt())

    def poll_proof(self) -> ProofStatus:
        """One non-blocking poll of the pending proof; advances the attempt when ready."""

        with self._drive_lock:
            attempt = self._require_attempt()
            if attempt.stage != Stage.AWAITING_PROOF:
                raise TransferInProgress(
                    "Transfer is not waiting for a proof", stage=attempt.stage.name
                )
            waiter = self._waiter_for(attempt)
            self._drive(attempt)
            return waiter.status

    def wait_for_completion(self, timeout: float | None = None) -> TransferRecord | None:
        """Drive the current attempt to a terminal outcome.

        Returns the attempt's record, or ``None`` when ``timeout`` elapsed
        first. A wallet that still reports the wrong chain after one switch
        request fails the attempt with ``ChainMismatch``.
        """

        attempt = self._require_attempt()
        deadline = None if timeout is None else time.monotonic() + timeout
        switch_requested = False

        while True:
            with self._drive_lock:
                if not self._is_current(attempt):
                    return self._record_for(attempt)
                if switch_requested and attempt.stage == Stage.CHECKING_NETWORK:
                    self._guarded(attempt, self._verify_source_chain)
                stage = self._drive(attempt)
                with self._lock:
                    waiter = self._waiter if self._attempt is attempt else None

            record = self._record_for(attempt)
            if record is not None:
                return record
            if stage == Stage.CHECKING_NETWORK:
                switch_requested = True
                continue

            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
            if waiter is None:
                continue
            try:
                waiter.wait(remaining)
            except Exception as exc:
                self._handle_error(attempt, exc)

    def run_in_background(self, executor: Executor | None = None) -> Future:
        return (executor or self._executor).submit(self.wait_for_completion)

    def abandon(self) -> TransferRecord | None:
        """Stop waiting on the current attempt and return the orchestrator to IDLE.

        Already submitted transactions cannot be cancelled; their ids are kept
        on the ABANDONED record for later reconciliation.
        """

        with self._lock:
            target = self._attempt
            waiter = self._waiter
        if waiter is not None:
            waiter.abandon()
        with self._lock:
            attempt = self._attempt
            if attempt is not None and not attempt.is_terminal:
                return self._abandon(attempt)
        if target is None or target.is_terminal:
            return None
        # A concurrent driver observed the abandoned wait first.
        return self._record_for(target)

    def reset(self) -> None:
        """Clear a terminal attempt, abandoning a running one first."""

        self.abandon()
        with self._lock:
            if self._attempt is not None:
                attempt = self._attempt
                logger.info("Reset after transfer %s (%s)", attempt.id, attempt.stage.name)
            self._attempt = None
            self._session = None
            self._waiter = None

    def _drive(self, attempt: TransferAttempt) -> Stage:
        while self._is_live(attempt):
            if not self._guarded(attempt, self._step):
                break
        return attempt.stage

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------
    def _step(self, attempt: TransferAttempt) -> bool:
        """Run the work of the current stage; ``False`` pauses ``advance``."""

        stage = attempt.stage
        if stage == Stage.IDLE:
            return self._transition(attempt, Stage.CHECKING_NETWORK)
        if stage == Stage.CHECKING_NETWORK:
            return self._check_network(attempt)
        if stage == Stage.APPROVING:
            return self._approve(attempt)
        if stage == Stage.SENDING:
            return self._send(attempt)
        if stage == Stage.AWAITING_PROOF:
            return self._await_proof(attempt)
        if stage == Stage.FINALIZING:
            return self._finalize(attempt)
        return False

    def _check_network(self, attempt: TransferAttempt) -> bool:
        session = self._require_session()
        source = attempt.source
        active = session.require_signer().active_chain()
        if active != source.chain_id:
            logger.info(
                "Stage %s [%s]: wallet on chain %s, requesting %s (chain_id=%s)",
                attempt.protocol.value,
                attempt.id,
                active,
                source.name,
                source.chain_id,
            )
            self._registry.switch_or_register(session, source)
            # Stay put until the user re-triggers with the wallet on the source chain.
            self._transition(attempt, Stage.CHECKING_NETWORK)
            return False

        if self._needs_approval(attempt):
            return self._transition(attempt, Stage.APPROVING)
        return self._transition(attempt, Stage.SENDING, self._protocol(attempt).send_variant)

    def _approve(self, attempt: TransferAttempt) -> bool:
        protocol = self._protocol(attempt)
        session = self._require_session()
        call = protocol.build_approval(attempt)
        logger.debug(
            "Stage %s [%s]: approve %s for %s (amount=%s)",
            attempt.protocol.value,
            attempt.id,
            call.to,
            protocol.spender(attempt.source),
            attempt.amount_units,
        )
        tx_id = self._submitter.send(session, call)
        self._record_artifact(attempt, "approval_tx", tx_id)
        self._submitter.confirm(call, tx_id)
        return self._transition(attempt, Stage.SENDING, protocol.send_variant)

    def _send(self, attempt: TransferAttempt) -> bool:
        protocol = self._protocol(attempt)
        session = self._require_session()
        if attempt.artifacts.send_tx:
            logger.info(
                "Stage %s [%s]: reusing send tx %s",
                attempt.protocol.value,
                attempt.id,
                attempt.artifacts.send_tx,
            )
        else:
            call = protocol.build_send(attempt, session.address)
            tx_id = self._submitter.send(session, call)
            # Kept on the attempt even when confirmation fails.
            self._record_artifact(attempt, "send_tx", tx_id)
            self._submitter.confirm(call, tx_id)
            self._executor.submit(self._annotate, attempt, tx_id)
            self._refresh_balances(session, attempt, attempt.source)
        return self._transition(attempt, Stage.AWAITING_PROOF, protocol.proof_variant)

    def _await_proof(self, attempt: TransferAttempt) -> bool:
        protocol = self._protocol(attempt)
        if attempt.artifacts.proof is None:
            waiter = self._waiter_for(attempt)
            status = waiter.poll()
            if status == ProofStatus.ABANDONED:
                with self._lock:
                    if self._attempt is attempt:
                        self._abandon(attempt)
                return False
            if status != ProofStatus.READY:
                return False
            self._record_artifact(attempt, "proof", waiter.proof)
            logger.debug("Stage %s [%s]: proof ready", attempt.protocol.value, attempt.id)
        return self._transition(attempt, Stage.FINALIZING, protocol.finalize_variant)

    def _finalize(self, attempt: TransferAttempt) -> bool:
        protocol = self._protocol(attempt)
        session = self._require_session()
        if attempt.artifacts.finalize_tx:
            logger.info(
                "Stage %s [%s]: reusing finalize tx %s",
                attempt.protocol.value,
                attempt.id,
                attempt.artifacts.finalize_tx,
            )
        else:
            call = protocol.build_finalize(attempt, session.address)
            if call is None:
                proof = attempt.artifacts.proof
                self._record_artifact(attempt, "finalize_tx", proof.reference if proof else None)
                logger.debug(
                    "Stage %s [%s]: settled on delivery", attempt.protocol.value, attempt.id
                )
            else:
                self._ensure_chain(attempt.destination)
                self._record_artifact(attempt, "finalize_tx", self._submit_with_retry(call))

        with self._lock:
            if not self._transition(attempt, Stage.COMPLETED):
                return False
            self._records.append(self._snapshot(attempt, Outcome.COMPLETED))
        self._refresh_balances(session, attempt, attempt.destination)
        self._refresh_balances(session, attempt, attempt.source)
        logger.info("Transfer %s completed", attempt.id)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _prepare(self, request: TransferRequest, resume: TransferRecord | None) -> TransferAttempt:
        source = self._registry.get(request.source)
        destination = self._registry.get(request.destination)
        if source.id == destination.id:
            raise ValidationError(
                "Source and destination networks must differ",
                field="destination",
                value=request.destination,
            )

        asset = self._catalog.get(request.asset)
        kind = resolve_protocol(asset, request.protocol)
        if kind not in self._protocols:
            raise ConfigurationError(f"No strategy registered for {kind.value}")

        # Missing address entries must surface before anything is signed.
        self._catalog.resolve_address(asset, source)
        self._catalog.resolve_address(asset, destination)

        if asset.is_non_fungible:
            amount_units = parse_token_id(request.amount)
        else:
            amount_units, truncated = to_base_units(request.amount, asset.decimals)
            if truncated:
                logger.warning(
                    "Amount %s truncated to %s %s",
                    request.amount,
                    from_base_units(amount_units, asset.decimals),
                    asset.symbol,
                )

        attempt = TransferAttempt(
            id=uuid.uuid4().hex,
            request=request,
            asset=asset,
            source=source,
            destination=destination,
            protocol=kind,
            amount_units=amount_units,
        )
        if resume is not None:
            if resume.request != request:
                raise ValidationError(
                    "Resume record belongs to a different request",
                    field="resume",
                    value=resume.attempt_id,
                )
            attempt.artifacts = resume.artifacts.copy()
            logger.info("Transfer resumes artifacts of %s", resume.attempt_id)
        return attempt

    def _needs_approval(self, attempt: TransferAttempt) -> bool:
        artifacts = attempt.artifacts
        if artifacts.approval_tx or artifacts.send_tx:
            return False
        if attempt.asset.is_native:
            return False
        if attempt.asset.is_non_fungible:
            return self._config.approve_non_fungible
        return True

    def _protocol(self, attempt: TransferAttempt) -> BridgeProtocol:
        return self._protocols[attempt.protocol]

    def _submit(self, call: ContractCall) -> str:
        return self._submitter.submit(self._require_session(), call)

    def _submit_with_retry(self, call: ContractCall) -> str:
        policy = self._config.finalize_retry
        tries = 0
        while True:
            try:
                return self._submit(call)
            except (UserRejected, TransactionFailed, EndpointsExhausted) as exc:
                rejected = isinstance(exc, UserRejected)
                if tries >= policy.retries or (rejected and not policy.retry_on_rejection):
                    raise
                tries += 1
                logger.warning("Retrying %s (%s/%s): %s", call.action, tries, policy.retries, exc)

    def _ensure_chain(self, network: Network) -> None:
        session = self._require_session()
        signer = session.require_signer()
        if signer.active_chain() == network.chain_id:
            return
        self._registry.switch_or_register(session, network)
        active = signer.active_chain()
        if active != network.chain_id:
            raise ChainMismatch(expected=network.chain_id, actual=active)

    def _verify_source_chain(self, attempt: TransferAttempt) -> bool:
        signer = self._require_session().require_signer()
        active = signer.active_chain()
        if active != attempt.source.chain_id:
            raise ChainMismatch(expected=attempt.source.chain_id, actual=active)
        return True

    def _waiter_for(self, attempt: TransferAttempt) -> ProofWaiter:
        with self._lock:
            if self._waiter is None:
                protocol = self._protocol(attempt)
                self._waiter = ProofWaiter(
                    partial(protocol.fetch_proof, attempt),
                    self._config.proof,
                    label=f"{protocol.proof_variant.value.lower()} for {attempt.id}",
                )
            return self._waiter

    def _is_current(self, attempt: TransferAttempt) -> bool:
        with self._lock:
            return self._attempt is attempt

    def _is_live(self, attempt: TransferAttempt) -> bool:
        with self._lock:
            return self._attempt is attempt and not attempt.is_terminal

    def _record_artifact(self, attempt: TransferAttempt, name: str, value: object) -> None:
        """Store an artifact on the attempt and on any record already written for it."""

        with self._lock:
            setattr(attempt.artifacts, name, value)
            for index, record in enumerate(self._records):
                if record.attempt_id == attempt.id:
                    self._records[index] = replace(record, artifacts=attempt.artifacts.copy())

    def _transition(
        self, attempt: TransferAttempt, stage: Stage, variant: StageVariant | None = None
    ) -> bool:
        """Move ``attempt`` forward; ``False`` once it is no longer the current attempt."""

        with self._lock:
            if self._attempt is not attempt:
                logger.debug("Transfer %s detached; dropping %s", attempt.id, stage.name)
                return False
            if attempt.is_terminal or stage < attempt.stage:
                raise BridgeError(
                    f"Illegal transition {attempt.stage.name} -> {stage.name}",
                    details={"attempt": attempt.id},
                )
            attempt.stage = stage
            attempt.variant = variant
            attempt.history.append((stage, variant))
            logger.debug(
                "Stage %s [%s]: %s%s",
                attempt.protocol.value,
                attempt.id,
                stage.name,
                f"({variant.value})" if variant else "",
            )
            self._emit(StageEvent(attempt.id, stage, variant))
            return True

    def _guarded(self, attempt: TransferAttempt, step: Callable[[TransferAttempt], bool]) -> bool:
        try:
            return step(attempt)
        except Exception as exc:
            self._handle_error(attempt, exc)
            return False

    def _handle_error(self, attempt: TransferAttempt, exc: Exception) -> None:
        if isinstance(exc, BridgeError):
            logger.warning(
                "Transfer %s failed at %s: %s", attempt.id, attempt.stage.name, exc.message
            )
            self._fail(attempt, exc)
        else:
            logger.exception("Unexpected error during transfer %s", attempt.id)
            self._fail(attempt, exc, kind=ErrorKind.UNEXPECTED)

    def _fail(
        self, attempt: TransferAttempt, exc: Exception, kind: ErrorKind | None = None
    ) -> None:
        if isinstance(exc, BridgeError):
            kind = kind or exc.kind
            message = exc.user_message
        else:
            message = f"Unexpected error: {exc}"

        with self._lock:
            if self._attempt is not attempt or attempt.is_terminal:
                logger.warning(
                    "Ignoring failure after %s for %s: %s", attempt.stage.name, attempt.id, exc
                )
                return
            failure = FailureInfo(
                kind=kind or ErrorKind.UNEXPECTED,
                message=message,
                stage=attempt.stage,
                variant=attempt.variant,
            )
            attempt.error = failure
            attempt.stage = Stage.FAILED
            attempt.history.append((Stage.FAILED, None))
            self._waiter = None
            self._records.append(self._snapshot(attempt, Outcome.FAILED))
            self._emit(StageEvent(attempt.id, Stage.FAILED, error=failure))

    def _abandon(self, attempt: TransferAttempt) -> TransferRecord:
        record = self._snapshot(attempt, Outcome.ABANDONED)
        self._records.append(record)
        logger.info(
            "Transfer %s abandoned at %s; send tx %s kept for reconciliation",
            attempt.id,
            attempt.stage.name,
            attempt.artifacts.send_tx,
        )
        self._attempt = None
        self._session = None
        self._waiter = None
        return record

    def _snapshot(self, attempt: TransferAttempt, outcome: Outcome) -> TransferRecord:
        return TransferRecord(
            attempt_id=attempt.id,
            request=attempt.request,
            protocol=attempt.protocol,
            outcome=outcome,
            stage=attempt.error.stage if attempt.error else attempt.stage,
            variant=attempt.error.variant if attempt.error else attempt.variant,
            artifacts=attempt.artifacts.copy(),
            error=attempt.error,
            summary=attempt.summary,
        )

    def _record_for(self, attempt: TransferAttempt) -> TransferRecord | None:
        with self._lock:
            for record in reversed(self._records):
                if record.attempt_id == attempt.id:
                    return record
        return None

    def _annotate(self, attempt: TransferAttempt, tx_id: str) -> None:
        amount = attempt.request.amount
        try:
            summary = self._annotator.summarize(
                amount,
                attempt.source.name,
                attempt.destination.name,
                tx_id,
                attempt.asset.symbol,
            )
        except Exception as exc:
            logger.warning("Annotation for %s failed: %s", attempt.id, exc)
            return
        with self._lock:
            attempt.summary = summary
            for index, record in enumerate(self._records):
                if record.attempt_id == attempt.id:
                    self._records[index] = replace(record, summary=summary)

    def _refresh_balances(
        self, session: SessionContext, attempt: TransferAttempt, network: Network
    ) -> None:
        if self._balances is None:
            return
        self._executor.submit(
            self._balances.fetch_balances, session.address, (attempt.asset,), network
        )

    def _emit(self, event: StageEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Stage listener failed for %s", event.attempt_id)

    def _require_attempt(self) -> TransferAttempt:
        with self._lock:
            if self._attempt is None:
                raise ValidationError("No transfer attempt is active", field="attempt")
            return self._attempt

    def _require_session(self) -> SessionContext:
        with self._lock:
            if self._session is None:
                raise SignerUnavailable("No session bound to the active transfer")
            return self._session
