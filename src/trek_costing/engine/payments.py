"""
Payment classification for the payment summary badges.
"""
from typing import Iterable, Optional

from .models import PaymentDetails, PaymentStatus, Transaction, to_number

# Absolute tolerance in currency units for float noise.
PAYMENT_EPSILON = 0.01


def classify_payment_status(total_cost, total_paid, epsilon: float = PAYMENT_EPSILON) -> PaymentStatus:
    """
    Classify a booking's payment position.

    Nothing paid is always unpaid. A balance within epsilon of zero counts
    as fully paid, so a sub-cent overpayment is not flagged; anything
    beyond that is overpaid.
    """
    total_cost = to_number(total_cost)
    total_paid = to_number(total_paid)

    if total_paid == 0:
        return PaymentStatus.UNPAID

    balance = total_cost - total_paid
    if abs(balance) <= epsilon:
        return PaymentStatus.FULLY_PAID
    if balance < 0:
        return PaymentStatus.OVERPAID
    return PaymentStatus.PARTIALLY_PAID


def summarize_transactions(transactions: Iterable[Transaction]) -> tuple[float, float]:
    """
    Net paid and refunded amounts.

    Returns (total_paid, total_refund) where total_paid is payments minus
    refunds.
    """
    payments = 0.0
    refunds = 0.0
    for tx in transactions:
        amount = abs(to_number(tx.amount))
        if tx.is_refund:
            refunds += amount
        else:
            payments += amount
    return payments - refunds, refunds


def build_payment_details(
    total_cost,
    transactions: Optional[Iterable[Transaction]] = None,
    total_paid=None,
    total_refund=0.0,
    epsilon: float = PAYMENT_EPSILON,
) -> PaymentDetails:
    """Payment summary from either a transaction list or a precomputed total."""
    cost = to_number(total_cost)
    if transactions is not None:
        paid, refund = summarize_transactions(transactions)
    else:
        paid, refund = to_number(total_paid), to_number(total_refund)

    return PaymentDetails(
        total_cost=cost,
        total_paid=paid,
        total_refund=refund,
        balance=cost - paid,
        payment_status=classify_payment_status(cost, paid, epsilon),
    )
