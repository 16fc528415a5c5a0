# api/payments.py
"""
Stripe payment passthrough
"""

from functools import wraps
import logging

from flask import Blueprint, request, jsonify, current_app
import stripe

from middleware.security import require_admin

payments_bp = Blueprint('payments', __name__)
logger = logging.getLogger(__name__)


def require_stripe(f):
    """Reject payment calls when no Stripe key is configured"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        api_key = current_app.config.get('STRIPE_SECRET_KEY')
        if not api_key:
            return jsonify({'error': 'Payments are not configured'}), 503
        stripe.api_key = api_key
        return f(*args, **kwargs)
    return decorated_function


def _parse_amount(raw_value):
    """Amount in the smallest currency unit; None when invalid"""
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int):
        amount = raw_value
    elif isinstance(raw_value, str) and raw_value.strip().isdigit():
        amount = int(raw_value)
    else:
        return None
    return amount if amount > 0 else None


@payments_bp.route('/create-payment-intent', methods=['POST'])
@require_stripe
def create_payment_intent():
    data = request.get_json(silent=True) or {}
    amount = _parse_amount(data.get('amount'))
    if amount is None:
        return jsonify({'error': 'Invalid amount'}), 400

    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=current_app.config['STRIPE_CURRENCY'],
            payment_method_types=['card'],
            metadata={'site_key': current_app.config['SITE_KEY']},
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe payment intent failed: {e}")
        return jsonify({'error': 'Payment provider error'}), 502

    return jsonify({'clientSecret': intent.client_secret})


@payments_bp.route('/transactions', methods=['GET'])
@require_admin
@require_stripe
def list_transactions():
    try:
        intents = stripe.PaymentIntent.list(limit=10)
    except stripe.StripeError as e:
        logger.error(f"Stripe transaction listing failed: {e}")
        return jsonify({'error': 'Unable to fetch transactions'}), 502

    return jsonify([{
        'id': intent.id,
        'amount': intent.amount,
        'currency': intent.currency,
        'status': intent.status,
        'created': intent.created,
    } for intent in intents.data])
