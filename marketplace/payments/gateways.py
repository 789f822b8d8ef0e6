"""
Payment gateway adapters.

Each gateway answers initiate, verify and callback requests with a
GatewayResult. Network problems are reported as failed results instead of
exceptions so the caller can record them.
"""
import logging
import uuid
from dataclasses import dataclass, field

import requests
from django.conf import settings

from marketplace.core.exceptions import BadRequestError

logger = logging.getLogger(__name__)


@dataclass
class GatewayResult:
    success: bool
    transaction_id: str = ''
    status: str = 'pending'
    redirect_url: str = None
    message: str = None
    raw: dict = field(default_factory=dict)


class PaymentGateway:
    name = None
    provider = None

    def initiate(self, order, amount, **kwargs):
        raise NotImplementedError

    def verify(self, transaction_id):
        raise NotImplementedError

    def handle_callback(self, payload):
        raise NotImplementedError


class ManualGateway(PaymentGateway):
    """Offline payments (cash, bank transfer) captured on initiation"""
    name = 'manual'
    provider = 'Manual'

    def initiate(self, order, amount, **kwargs):
        transaction_id = f"MAN-{uuid.uuid4().hex}"
        return GatewayResult(
            success=True,
            transaction_id=transaction_id,
            status='captured',
            message='Manual payment recorded',
            raw={'order_id': order.pk, 'amount': str(amount)},
        )

    def verify(self, transaction_id):
        return GatewayResult(success=True, transaction_id=transaction_id, status='captured')

    def handle_callback(self, payload):
        raise BadRequestError('Manual payments do not accept gateway callbacks')


class HttpGateway(PaymentGateway):
    """
    Generic hosted-checkout provider reached over HTTP.

    POST {url}/payments            -> {transaction_id, status, redirect_url}
    GET  {url}/payments/{txn}      -> {transaction_id, status}
    Callbacks carry {transaction_id}; the status is re-read with the GET above.
    """
    name = 'http'
    provider = 'HTTP'

    def __init__(self, base_url=None, api_key=None, timeout=None):
        self.base_url = (base_url or settings.HTTP_GATEWAY_URL).rstrip('/')
        self.api_key = api_key if api_key is not None else settings.HTTP_GATEWAY_API_KEY
        self.timeout = timeout or settings.HTTP_GATEWAY_TIMEOUT

    def _headers(self):
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f"Bearer {self.api_key}"
        return headers

    def initiate(self, order, amount, **kwargs):
        payload = {
            'reference': order.external_ref or str(order.pk),
            'amount': str(amount),
            'currency': order.currency,
            'callback_url': kwargs.get('callback_url'),
            'metadata': kwargs.get('metadata') or {},
        }
        try:
            response = requests.post(f"{self.base_url}/payments", json=payload, headers=self._headers(),
                                     timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"HTTP gateway initiate failed for order {order.pk}: {str(e)}")
            return GatewayResult(success=False, status='failed', message=f"Gateway error: {str(e)}")
        except ValueError as e:
            logger.error(f"HTTP gateway returned invalid JSON for order {order.pk}: {str(e)}")
            return GatewayResult(success=False, status='failed', message='Invalid response from gateway')

        return GatewayResult(
            success=True,
            transaction_id=data.get('transaction_id', ''),
            status=data.get('status', 'pending'),
            redirect_url=data.get('redirect_url'),
            message=data.get('message'),
            raw=data,
        )

    def verify(self, transaction_id):
        try:
            response = requests.get(f"{self.base_url}/payments/{transaction_id}", headers=self._headers(),
                                    timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"HTTP gateway verify failed for {transaction_id}: {str(e)}")
            return GatewayResult(success=False, transaction_id=transaction_id, status='pending',
                                 message=f"Gateway error: {str(e)}")
        except ValueError as e:
            logger.error(f"HTTP gateway returned invalid JSON for {transaction_id}: {str(e)}")
            return GatewayResult(success=False, transaction_id=transaction_id, status='pending',
                                 message='Invalid response from gateway')

        return GatewayResult(
            success=True,
            transaction_id=data.get('transaction_id', transaction_id),
            status=data.get('status', 'pending'),
            raw=data,
        )

    def handle_callback(self, payload):
        """Callbacks only name the transaction; its status is read back from the provider"""
        transaction_id = payload.get('transaction_id', '')
        if not transaction_id:
            return GatewayResult(success=False, status='pending', message='Invalid callback: missing transaction ID')
        return self.verify(transaction_id)


GATEWAYS = {
    ManualGateway.name: ManualGateway,
    HttpGateway.name: HttpGateway,
}


def get_gateway(name):
    gateway_class = GATEWAYS.get((name or '').lower())
    if gateway_class is None:
        raise BadRequestError(
            f"Unsupported payment gateway: {name}. Supported gateways are: {', '.join(sorted(GATEWAYS))}"
        )
    return gateway_class()
