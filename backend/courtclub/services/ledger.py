"""
Wallet ledger.

Every balance change goes through ``debit`` or ``credit`` together with a
WalletTransaction row. Both functions work inside the caller's unit of work
(see ``database.atomic``): they flush but never commit, so the balance update
and its audit row persist together or not at all.

Deposits are two-phase: ``request_deposit`` records a pending transaction with
no balance effect; ``approve_deposit`` applies the credit and completes it;
``reject_deposit`` closes it without touching the balance.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlmodel import Session, func, select

from courtclub.database import atomic
from courtclub.errors import AlreadyProcessed, Forbidden, InsufficientFunds, InvalidRequest, NotFound
from courtclub.models.member import Member, MemberTier
from courtclub.models.notification import NotificationType
from courtclub.models.wallet_transaction import TransactionStatus, TransactionType, WalletTransaction
from courtclub.services.notification_service import notify
from courtclub.utils.money import format_amount, to_money

logger = logging.getLogger(__name__)

# Highest threshold first
TIER_THRESHOLDS: List[Tuple[Decimal, MemberTier]] = [
    (Decimal("20000000"), MemberTier.diamond),
    (Decimal("10000000"), MemberTier.gold),
    (Decimal("5000000"), MemberTier.silver),
]

TIER_ORDER = [MemberTier.standard, MemberTier.silver, MemberTier.gold, MemberTier.diamond]


def compute_tier(total_spent: Decimal) -> MemberTier:
    """Membership tier as a pure function of cumulative spend."""
    for threshold, tier in TIER_THRESHOLDS:
        if total_spent >= threshold:
            return tier
    return MemberTier.standard


def tier_at_least(tier: str, minimum: MemberTier) -> bool:
    return TIER_ORDER.index(MemberTier(tier)) >= TIER_ORDER.index(minimum)


def _positive_amount(amount) -> Decimal:
    value = to_money(amount)
    if value <= 0:
        raise InvalidRequest(f"Amount must be positive, got {value}")
    return value


def _lock_member(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id, with_for_update=True)
    if not member:
        raise NotFound(f"Member {member_id} not found")
    return member


def debit(
    session: Session,
    member_id: int,
    amount,
    transaction_type: TransactionType = TransactionType.payment,
    related_id: Optional[str] = None,
    description: Optional[str] = None,
) -> WalletTransaction:
    """
    Take ``amount`` from a member's wallet.

    Raises:
        InvalidRequest: amount is not positive
        NotFound: member does not exist
        InsufficientFunds: balance is strictly less than amount
    """
    value = _positive_amount(amount)
    member = _lock_member(session, member_id)

    if member.wallet_balance < value:
        raise InsufficientFunds(
            f"Balance {format_amount(member.wallet_balance)} is less than required {format_amount(value)}"
        )

    member.wallet_balance = to_money(member.wallet_balance - value)
    member.total_spent = to_money(member.total_spent + value)
    member.tier = compute_tier(member.total_spent)
    session.add(member)

    txn = WalletTransaction(
        member_id=member_id,
        amount=-value,
        type=transaction_type,
        status=TransactionStatus.completed,
        related_id=related_id,
        description=description,
    )
    session.add(txn)
    session.flush()
    logger.info("Debited %s from member %d (%s, txn %d)", value, member_id, transaction_type, txn.id)
    return txn


def credit(
    session: Session,
    member_id: int,
    amount,
    transaction_type: TransactionType = TransactionType.refund,
    related_id: Optional[str] = None,
    description: Optional[str] = None,
) -> WalletTransaction:
    """Add ``amount`` to a member's wallet. Does not touch total_spent."""
    value = _positive_amount(amount)
    member = _lock_member(session, member_id)

    member.wallet_balance = to_money(member.wallet_balance + value)
    session.add(member)

    txn = WalletTransaction(
        member_id=member_id,
        amount=value,
        type=transaction_type,
        status=TransactionStatus.completed,
        related_id=related_id,
        description=description,
    )
    session.add(txn)
    session.flush()
    logger.info("Credited %s to member %d (%s, txn %d)", value, member_id, transaction_type, txn.id)
    return txn


# ============================================================================
# Deposits (two-phase)
# ============================================================================


def request_deposit(
    session: Session,
    member_id: int,
    amount,
    description: Optional[str] = None,
    proof_image_url: Optional[str] = None,
) -> WalletTransaction:
    value = _positive_amount(amount)
    member = session.get(Member, member_id)
    if not member:
        raise NotFound(f"Member {member_id} not found")
    if not member.is_active:
        raise Forbidden("Member account is deactivated")

    txn = WalletTransaction(
        member_id=member_id,
        amount=value,
        type=TransactionType.deposit,
        status=TransactionStatus.pending,
        description=description or f"Deposit {format_amount(value)}",
        proof_image_url=proof_image_url,
    )
    session.add(txn)
    session.commit()
    session.refresh(txn)
    logger.info("Deposit request %d for member %d: %s", txn.id, member_id, value)
    return txn


def _pending_deposit(session: Session, transaction_id: int) -> WalletTransaction:
    txn = session.get(WalletTransaction, transaction_id, with_for_update=True)
    if not txn:
        raise NotFound(f"Transaction {transaction_id} not found")
    if txn.status != TransactionStatus.pending:
        raise AlreadyProcessed(f"Transaction {transaction_id} is already {txn.status}")
    if txn.type != TransactionType.deposit:
        raise InvalidRequest(f"Transaction {transaction_id} is not a deposit")
    return txn


def approve_deposit(session: Session, transaction_id: int, push=None) -> WalletTransaction:
    """Apply a pending deposit exactly once."""
    with atomic(session):
        txn = _pending_deposit(session, transaction_id)
        member = _lock_member(session, txn.member_id)

        member.wallet_balance = to_money(member.wallet_balance + txn.amount)
        txn.status = TransactionStatus.completed
        session.add(member)
        session.add(txn)

        message = (
            f"Deposit of {format_amount(txn.amount)} approved. "
            f"Current balance: {format_amount(member.wallet_balance)}"
        )
        notify(session, member.id, message, NotificationType.success, "/wallet")

    session.refresh(txn)
    logger.info("Approved deposit %d for member %d", txn.id, txn.member_id)
    if push is not None:
        push.notify_member(txn.member_id, message, NotificationType.success.value)
    return txn


def reject_deposit(session: Session, transaction_id: int, push=None) -> WalletTransaction:
    with atomic(session):
        txn = _pending_deposit(session, transaction_id)
        txn.status = TransactionStatus.rejected
        session.add(txn)
        message = f"Deposit request of {format_amount(txn.amount)} was rejected"
        notify(session, txn.member_id, message, NotificationType.warning, "/wallet")

    session.refresh(txn)
    logger.info("Rejected deposit %d for member %d", txn.id, txn.member_id)
    if push is not None:
        push.notify_member(txn.member_id, message, NotificationType.warning.value)
    return txn


# ============================================================================
# Reads
# ============================================================================


def get_balance(session: Session, member_id: int) -> Decimal:
    member = session.get(Member, member_id)
    if not member:
        raise NotFound(f"Member {member_id} not found")
    return member.wallet_balance


def list_transactions(
    session: Session,
    member_id: int,
    transaction_type: Optional[TransactionType] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[WalletTransaction], int]:
    """One page of a member's transactions (newest first) and the total count."""
    filters = [WalletTransaction.member_id == member_id]
    if transaction_type is not None:
        filters.append(WalletTransaction.type == transaction_type)

    total = session.exec(select(func.count(WalletTransaction.id)).where(*filters)).one()
    items = session.exec(
        select(WalletTransaction)
        .where(*filters)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return list(items), total


def list_pending_deposits(session: Session) -> List[WalletTransaction]:
    return list(
        session.exec(
            select(WalletTransaction)
            .where(
                WalletTransaction.status == TransactionStatus.pending,
                WalletTransaction.type == TransactionType.deposit,
            )
            .order_by(WalletTransaction.created_at, WalletTransaction.id)
        ).all()
    )
