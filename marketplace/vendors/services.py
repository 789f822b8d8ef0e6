"""
Vendor balance ledger.

Order funds are held as pending when an order is placed, released to
available on delivery, and removed again on cancellation. Refunds of
delivered orders come out of the available balance. Every change
writes a VendorBalanceTransaction with the affected balance before and
after.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from marketplace.core.exceptions import BadRequestError, NotFoundError
from .models import VendorBalance, VendorBalanceTransaction

logger = logging.getLogger(__name__)


def get_or_create_balance(organization_id):
    balance, created = VendorBalance.objects.get_or_create(organization_id=organization_id)
    if created:
        logger.info(f"Created vendor balance for organization {organization_id}")
    return balance


def get_balance(organization_id):
    try:
        return VendorBalance.objects.get(organization_id=organization_id)
    except VendorBalance.DoesNotExist:
        raise NotFoundError(f"Balance not found for organization {organization_id}")


def _locked_balance(organization_id):
    get_or_create_balance(organization_id)
    return VendorBalance.objects.select_for_update().get(organization_id=organization_id)


def _log_transaction(balance, transaction_type, amount, before, after, description,
                     reference_type='order', reference_id=None):
    return VendorBalanceTransaction.objects.create(
        balance=balance,
        transaction_type=transaction_type,
        amount=amount,
        description=description,
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        balance_before=before,
        balance_after=after,
    )


@transaction.atomic
def credit_pending(organization_id, amount, order_id, description=None):
    """Hold order funds as pending; they also count towards total earnings"""
    amount = Decimal(amount)
    balance = _locked_balance(organization_id)
    before = balance.pending_balance
    balance.pending_balance += amount
    balance.total_earnings += amount
    balance.save(update_fields=['pending_balance', 'total_earnings', 'updated_at'])

    _log_transaction(balance, 'hold', amount, before, balance.pending_balance,
                     description or f"Order #{order_id} - Funds on hold", reference_id=order_id)
    logger.info(f"Held {amount} for organization {organization_id} (Order #{order_id})")
    return balance


@transaction.atomic
def release_pending(organization_id, amount, order_id, description=None):
    """Move funds from pending to available"""
    amount = Decimal(amount)
    balance = _locked_balance(organization_id)
    if balance.pending_balance < amount:
        raise BadRequestError(
            f"Insufficient pending balance. Available: {balance.pending_balance}, Requested: {amount}"
        )
    before = balance.available_balance
    balance.pending_balance -= amount
    balance.available_balance += amount
    balance.save(update_fields=['pending_balance', 'available_balance', 'updated_at'])

    _log_transaction(balance, 'release', amount, before, balance.available_balance,
                     description or f"Order #{order_id} - Funds released", reference_id=order_id)
    logger.info(f"Released {amount} for organization {organization_id} (Order #{order_id})")
    return balance


@transaction.atomic
def refund(organization_id, amount, order_id, description=None):
    """Take back held funds of a cancelled order"""
    amount = Decimal(amount)
    balance = _locked_balance(organization_id)
    before = balance.pending_balance
    balance.pending_balance -= min(amount, balance.pending_balance)
    balance.total_earnings -= amount
    balance.save(update_fields=['pending_balance', 'total_earnings', 'updated_at'])

    _log_transaction(balance, 'refund', amount, before, balance.pending_balance,
                     description or f"Order #{order_id} - Refund processed", reference_id=order_id)
    logger.info(f"Refunded {amount} for organization {organization_id} (Order #{order_id})")
    return balance


@transaction.atomic
def record_payout(organization_id, amount, reference_id=None, description=None):
    """Pay out available funds"""
    amount = Decimal(amount)
    if amount <= 0:
        raise BadRequestError('Payout amount must be positive')
    balance = _locked_balance(organization_id)
    if balance.available_balance < amount:
        raise BadRequestError(
            f"Insufficient available balance for payout. Available: {balance.available_balance}, "
            f"Requested: {amount}"
        )
    before = balance.available_balance
    balance.available_balance -= amount
    balance.total_paid_out += amount
    balance.last_payout_at = timezone.now()
    balance.save(update_fields=['available_balance', 'total_paid_out', 'last_payout_at', 'updated_at'])

    _log_transaction(balance, 'payout', amount, before, balance.available_balance,
                     description or 'Payout', reference_type='payout', reference_id=reference_id)
    logger.info(f"Processed payout of {amount} for organization {organization_id}")
    return balance


@transaction.atomic
def debit_for_refund(organization_id, amount, refund_id, description=None):
    """Take a refund's vendor share out of the available balance"""
    amount = Decimal(amount)
    balance = _locked_balance(organization_id)
    if balance.available_balance < amount:
        raise BadRequestError(
            f"Insufficient available balance for refund. Available: {balance.available_balance}, "
            f"Required: {amount}"
        )
    before = balance.available_balance
    balance.available_balance -= amount
    balance.total_earnings -= amount
    balance.save(update_fields=['available_balance', 'total_earnings', 'updated_at'])

    _log_transaction(balance, 'refund', amount, before, balance.available_balance,
                     description or f"Refund #{refund_id}", reference_type='refund', reference_id=refund_id)
    logger.info(f"Debited {amount} from organization {organization_id} for refund #{refund_id}")
    return balance


@transaction.atomic
def credit_available(organization_id, amount, refund_id, description=None):
    """Give back a refund's vendor share when the refund does not go ahead"""
    amount = Decimal(amount)
    balance = _locked_balance(organization_id)
    before = balance.available_balance
    balance.available_balance += amount
    balance.total_earnings += amount
    balance.save(update_fields=['available_balance', 'total_earnings', 'updated_at'])

    _log_transaction(balance, 'credit', amount, before, balance.available_balance,
                     description or f"Refund #{refund_id} - Balance restored",
                     reference_type='refund', reference_id=refund_id)
    logger.info(f"Credited {amount} to organization {organization_id} (refund #{refund_id})")
    return balance


def list_transactions(organization_id, transaction_type=None):
    balance = get_balance(organization_id)
    transactions = balance.transactions.all()
    if transaction_type:
        transactions = transactions.filter(transaction_type=transaction_type)
    return transactions
