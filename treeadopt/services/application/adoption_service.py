"""
Application service: adoption checkout.

Checkout runs as a two-phase saga:

1. ``begin_checkout`` validates the selection and the form, creates the
   payment intent, and writes a durable *pending* adoption record keyed by
   the intent id.
2. ``complete_checkout`` confirms the payment and hands the pending record
   to the AdoptionRecorder, which confirms it, bumps the user's counters and
   marks the tree adopted.

A crash between the phases leaves a pending record that
``reconcile_pending`` resolves against the payment provider.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel

from treeadopt.config import settings
from treeadopt.domain.exceptions import (
    AdoptionRecordError,
    NotFoundError,
    PaymentDeclinedError,
    PaymentProviderError,
    TreeAdoptionError,
    TreeUnavailableError,
    ValidationError,
)
from treeadopt.domain.models import (
    AdopterContact,
    AdoptionRecord,
    AdoptionRequest,
    AdoptionStatus,
    GiftDetails,
    HealthSnapshot,
    MaintenanceTask,
    PaymentIntent,
    PlanDuration,
    TreeListing,
    TreeStatus,
    UserAggregate,
    UserIdentity,
)
from treeadopt.infrastructure.document_store import DocumentStore
from treeadopt.services.application.payment_service import PaymentService
from treeadopt.services.application.session_manager import Session
from treeadopt.services.application.tree_service import TREES, TreeService
from treeadopt.services.domain.checkout_form import collect_adoption_request
from treeadopt.services.domain.money import to_major_units, to_minor_units
from treeadopt.services.domain.plan_catalog import impact_kg, select_plan


logger = logging.getLogger(__name__)

ADOPTIONS = "adoptions"
USERS = "users"

DEFAULT_LOCATION = "Community Garden, Delhi"
SUCCESS_ROUTE = "/adoption/success"

CONFIRMED_STATUSES = (AdoptionStatus.ACTIVE.value, AdoptionStatus.GIFT.value)


class CheckoutStarted(BaseModel):
    adoption_id: str
    payment_intent_id: str
    client_secret: Optional[str]
    amount: int
    duration: PlanDuration


class AdoptionConfirmation(BaseModel):
    """Display-only summary for the confirmation view."""
    redirect_to: str = SUCCESS_ROUTE
    adoption_id: str
    tree_name: str
    amount: int
    duration: int
    payment_id: str
    location: str
    impact: str
    species: Optional[str] = None
    status: str


class ReconciliationReport(BaseModel):
    examined: int = 0
    completed: int = 0
    failed: int = 0
    conflicts: int = 0
    still_pending: int = 0
    errors: int = 0


class UserImpact(BaseModel):
    """Totals derived from confirmed adoption records, plus the stored counters."""
    user_id: str
    trees_adopted: int
    total_impact_kg: int
    total_amount_paid: int
    recorded: Optional[UserAggregate] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_maintenance_schedule(now: datetime) -> List[MaintenanceTask]:
    return [
        MaintenanceTask(type="watering", frequency="weekly", next_due_at=now + timedelta(days=7)),
        MaintenanceTask(type="health_check", frequency="monthly", next_due_at=now + timedelta(days=30)),
    ]


def build_pending_record(
    request: AdoptionRequest,
    tree: TreeListing,
    user_id: str,
    payment_id: str,
    now: Optional[datetime] = None,
) -> AdoptionRecord:
    now = now or _utcnow()
    metrics = tree.health_metrics
    return AdoptionRecord(
        user_id=user_id,
        tree_id=tree.id,
        tree_name=tree.display_name,
        species=tree.scientific_name,
        duration=request.selected_plan.duration,
        amount_paid=request.selected_plan.price,
        payment_id=payment_id,
        status=AdoptionStatus.PENDING,
        location=tree.location or DEFAULT_LOCATION,
        health=HealthSnapshot(
            overall_health=metrics.get("overall_health", "Excellent"),
            growth_progress=metrics.get("growth_progress", 85),
        ),
        maintenance_schedule=build_maintenance_schedule(now),
        adopter_contact=request.adopter_contact,
        gift_details=request.gift_details,
        created_at=now,
        updated_at=now,
    )


def build_confirmation(record: AdoptionRecord) -> AdoptionConfirmation:
    return AdoptionConfirmation(
        adoption_id=record.id,
        tree_name=record.tree_name,
        amount=record.amount_paid,
        duration=int(record.duration),
        payment_id=record.payment_id,
        location=record.location,
        impact=f"{impact_kg(record.duration)}kg CO₂ per year",
        species=record.species,
        status=record.status,
    )


class AdoptionRecorder:
    """
    Persists a confirmed adoption.

    Step 1 must succeed or the caller gets an AdoptionRecordError. It only
    moves a record out of pending, so of two overlapping confirms exactly one
    runs steps 2 and 3; the other gets the record as currently stored. Steps
    2 and 3 are best-effort, except that losing the race for the tree is
    reported as TreeUnavailableError.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def record(
        self,
        record: AdoptionRecord,
        payment: PaymentIntent,
        user: UserIdentity,
    ) -> AdoptionRecord:
        now = _utcnow()
        status = AdoptionStatus.GIFT if record.gift_details else AdoptionStatus.ACTIVE

        # Step 1: confirm the adoption record, once
        try:
            claimed = await self.store.compare_and_set(
                ADOPTIONS,
                record.id,
                field="status",
                expected=AdoptionStatus.PENDING.value,
                updates={
                    "status": status.value,
                    "payment_id": payment.id,
                    "confirmed_at": now,
                    "updated_at": now,
                },
            )
            if not claimed:
                current = await self.store.get(ADOPTIONS, record.id) or {}
        except Exception as e:
            logger.error(f"Error saving adoption data for payment {payment.id}: {e}")
            raise AdoptionRecordError(f"Failed to save adoption data: {e}", payment_id=payment.id)

        if not claimed:
            # Another confirm or the reconciliation job got here first
            logger.info(f"Adoption {record.id} already left pending; counters untouched")
            return AdoptionRecord(**{**current, "id": record.id})

        record = record.model_copy(update={
            "status": status.value,
            "payment_id": payment.id,
            "confirmed_at": now,
            "updated_at": now,
        })
        logger.info(f"Adoption {record.id} confirmed for payment {payment.id}")

        # Step 2: user counters
        counters_updated = await self._update_user_aggregate(record, user, now)

        # Step 3: tree status
        await self._mark_tree_adopted(record, now, counters_updated)
        return record

    async def _update_user_aggregate(
        self,
        record: AdoptionRecord,
        user: UserIdentity,
        now: datetime,
    ) -> bool:
        profile = {
            "email": user.email or record.adopter_contact.email,
            "display_name": user.display_name or record.adopter_contact.full_name,
            "updated_at": now,
        }
        try:
            await self.store.increment(
                USERS,
                record.user_id,
                deltas={"trees_planted": 1, "total_impact_kg": impact_kg(record.duration)},
                updates=profile,
                defaults={"created_at": now, "is_profile_complete": True},
            )
        except Exception as e:
            logger.error(f"Error updating user data for {record.user_id}: {e}")
            return False
        return True

    async def _mark_tree_adopted(
        self,
        record: AdoptionRecord,
        now: datetime,
        counters_updated: bool,
    ) -> None:
        try:
            adopted = await self.store.compare_and_set(
                TREES,
                record.tree_id,
                field="status",
                expected=TreeStatus.AVAILABLE.value,
                updates={
                    "status": TreeStatus.ADOPTED.value,
                    "adopted_by": record.user_id,
                    "adoption_id": record.id,
                    "adopted_at": now,
                    "last_updated": now,
                },
            )
            if adopted:
                logger.info(f"Tree {record.tree_id} marked adopted by {record.user_id}")
                return
            tree = await self.store.get(TREES, record.tree_id) or {}
        except Exception as e:
            logger.error(f"Error updating tree status for {record.tree_id}: {e}")
            return

        if tree.get("adoption_id") == record.id:
            return

        logger.error(
            f"Tree {record.tree_id} was already adopted by {tree.get('adopted_by')}; "
            f"adoption {record.id} flagged for review"
        )
        await self._flag_conflict(record, counters_updated)
        raise TreeUnavailableError(record.tree_id)

    async def _flag_conflict(self, record: AdoptionRecord, counters_updated: bool) -> None:
        try:
            await self.store.update(ADOPTIONS, record.id, {"needs_review": True, "updated_at": _utcnow()})
        except Exception as e:
            logger.error(f"Could not flag adoption {record.id} for review: {e}")

        if not counters_updated:
            return
        try:
            await self.store.increment(
                USERS,
                record.user_id,
                deltas={"trees_planted": -1, "total_impact_kg": -impact_kg(record.duration)},
            )
        except Exception as e:
            logger.error(f"Could not roll back counters for {record.user_id}: {e}")


class AdoptionService:
    """Orchestrates the adoption checkout sequence."""

    def __init__(
        self,
        store: DocumentStore,
        tree_service: TreeService,
        payment_service: PaymentService,
        recorder: Optional[AdoptionRecorder] = None,
    ):
        self.store = store
        self.tree_service = tree_service
        self.payment_service = payment_service
        self.recorder = recorder or AdoptionRecorder(store)

    async def begin_checkout(
        self,
        session: Session,
        contact: AdopterContact,
        plan_duration: Optional[int] = None,
        gift: Optional[GiftDetails] = None,
        idempotency_key: Optional[str] = None,
    ) -> CheckoutStarted:
        """
        Start a checkout for the session's selected tree.

        Raises:
            ValidationError: If no tree is selected or the form is incomplete
            TreeUnavailableError: If the tree is no longer available
            PaymentProviderError: If the payment intent cannot be created
        """
        selected = self.tree_service.selected_tree(session)
        tree = await self.tree_service.get_tree(selected.id)
        if tree.status != TreeStatus.AVAILABLE.value:
            raise TreeUnavailableError(tree.id)

        plan = select_plan(plan_duration)
        request = collect_adoption_request(tree, plan, contact, gift)

        intent = await self.payment_service.create_payment_intent(
            plan.price,
            idempotency_key=idempotency_key,
        )

        try:
            adoption_id = await self._save_pending(request, tree, session.user_id, intent)
        except Exception as e:
            logger.error(f"Failed to write pending adoption for payment {intent.id}: {e}")
            raise TreeAdoptionError("Failed to initialize payment")

        return CheckoutStarted(
            adoption_id=adoption_id,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=plan.price,
            duration=plan.duration,
        )

    async def _save_pending(
        self,
        request: AdoptionRequest,
        tree: TreeListing,
        user_id: str,
        intent: PaymentIntent,
    ) -> str:
        # An idempotent retry returns the same intent; reuse its record
        existing = await self.store.query(
            ADOPTIONS, filters=[("payment_id", "==", intent.id)], limit=1
        )
        if existing:
            return existing[0][0]

        record = build_pending_record(request, tree, user_id, intent.id)
        adoption_id = await self.store.add(ADOPTIONS, record.to_document())
        logger.info(f"Pending adoption {adoption_id} created for payment {intent.id}")
        return adoption_id

    async def get_adoption(self, adoption_id: str) -> AdoptionRecord:
        data = await self.store.get(ADOPTIONS, adoption_id)
        if data is None:
            raise NotFoundError(f"Adoption '{adoption_id}' not found")
        return AdoptionRecord(**{**data, "id": adoption_id})

    async def complete_checkout(
        self,
        session: Session,
        adoption_id: str,
        payment_method: Optional[str] = None,
    ) -> AdoptionConfirmation:
        """
        Confirm the payment for a pending adoption and record it.

        Raises:
            NotFoundError: If the adoption does not belong to this user
            PaymentDeclinedError: If the provider declined the payment
            PaymentProviderError: If the payment did not succeed
            AdoptionRecordError: If the payment succeeded but recording failed
            TreeUnavailableError: If another adoption won the tree
        """
        record = await self.get_adoption(adoption_id)
        if record.user_id != session.user_id:
            raise NotFoundError(f"Adoption '{adoption_id}' not found")
        if record.needs_review:
            raise TreeUnavailableError(record.tree_id)
        if record.status in CONFIRMED_STATUSES:
            return build_confirmation(record)
        if record.status != AdoptionStatus.PENDING.value:
            raise ValidationError("Adoption is no longer pending")

        outcome = await self.payment_service.confirm_payment(record.payment_id, payment_method)
        if outcome.status == "provider_error":
            raise PaymentDeclinedError(outcome.message, error_type=outcome.error_type, code=outcome.error_code)
        if not outcome.succeeded:
            raise PaymentProviderError(outcome.message, status_code=402)

        intent = outcome.payment_intent
        if intent.amount != to_minor_units(record.amount_paid):
            logger.warning(
                f"Payment {intent.id} charged {to_major_units(intent.amount)}; "
                f"adoption {record.id} expects {record.amount_paid}"
            )

        confirmed = await self.recorder.record(record, intent, session.user)
        if confirmed.needs_review:
            raise TreeUnavailableError(confirmed.tree_id)
        if confirmed.status not in CONFIRMED_STATUSES:
            raise ValidationError("Adoption is no longer pending")
        return build_confirmation(confirmed)

    async def reconcile_pending(
        self,
        older_than_minutes: Optional[int] = None,
    ) -> ReconciliationReport:
        """
        Resolve pending adoptions older than the cutoff against the provider.

        Succeeded payments are recorded; canceled or abandoned ones are
        marked failed; anything still in flight is left pending.
        """
        minutes = older_than_minutes if older_than_minutes is not None else settings.pending_adoption_timeout_minutes
        cutoff = _utcnow() - timedelta(minutes=minutes)
        docs = await self.store.query(ADOPTIONS, filters=[
            ("status", "==", AdoptionStatus.PENDING.value),
            ("created_at", "<", cutoff),
        ])

        report = ReconciliationReport(examined=len(docs))
        for doc_id, data in docs:
            record = AdoptionRecord(**{**data, "id": doc_id})
            try:
                intent = await self.payment_service.retrieve_payment_intent(record.payment_id)
            except PaymentProviderError as e:
                logger.error(f"Could not fetch payment {record.payment_id} for adoption {doc_id}: {e.message}")
                report.errors += 1
                continue

            if intent.status == "succeeded":
                user = UserIdentity(
                    user_id=record.user_id,
                    email=record.adopter_contact.email,
                    display_name=record.adopter_contact.full_name,
                )
                try:
                    recorded = await self.recorder.record(record, intent, user)
                    if recorded.needs_review:
                        report.conflicts += 1
                    else:
                        report.completed += 1
                except TreeUnavailableError:
                    report.conflicts += 1
                except AdoptionRecordError:
                    report.errors += 1
            elif intent.status in ("canceled", "requires_payment_method"):
                try:
                    await self.store.update(ADOPTIONS, doc_id, {
                        "status": AdoptionStatus.FAILED.value,
                        "updated_at": _utcnow(),
                    })
                except Exception as e:
                    logger.error(f"Could not mark adoption {doc_id} failed: {e}")
                    report.errors += 1
                    continue
                report.failed += 1
            else:
                report.still_pending += 1

        logger.info(f"Reconciliation finished: {report.model_dump()}")
        return report

    async def user_impact(self, user_id: str) -> UserImpact:
        docs = await self.store.query(ADOPTIONS, filters=[("user_id", "==", user_id)])
        confirmed = [
            AdoptionRecord(**{**data, "id": doc_id})
            for doc_id, data in docs
            if data.get("status") in CONFIRMED_STATUSES and not data.get("needs_review")
        ]

        stored = await self.store.get(USERS, user_id)
        return UserImpact(
            user_id=user_id,
            trees_adopted=len(confirmed),
            total_impact_kg=sum(impact_kg(r.duration) for r in confirmed),
            total_amount_paid=sum(r.amount_paid for r in confirmed),
            recorded=UserAggregate(**stored) if stored else None,
        )
