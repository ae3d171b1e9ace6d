"""
Identity provider webhook.

The provider delivers user lifecycle events signed with the Svix scheme.
Include in your project urls.py through wryte.urls, then point the
provider at:

    POST /<mount>/webhooks/identity/
"""
import json
import logging

from django.core.exceptions import ImproperlyConfigured
from django.http import HttpResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from svix.webhooks import Webhook, WebhookVerificationError

from .conf import wryte_settings
from .services import identity

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


@method_decorator(csrf_exempt, name="dispatch")
class IdentityWebhookView(View):
    """Verify and apply user.created / user.updated / user.deleted events."""

    http_method_names = ["post"]

    def post(self, request):
        headers = {name: request.headers.get(name) for name in SIGNATURE_HEADERS}
        if not all(headers.values()):
            return HttpResponse("Error occurred -- no svix headers", status=400)

        secret = wryte_settings.WEBHOOK_SECRET
        if not secret:
            raise ImproperlyConfigured(
                "Set WRYTE['WEBHOOK_SECRET'] or CLERK_WEBHOOK_SECRET to verify "
                "identity webhooks."
            )

        # verify() only checks the signature; its return value differs across
        # svix releases, so the body is parsed here.
        try:
            Webhook(secret).verify(request.body, headers)
            event = json.loads(request.body)
        except (WebhookVerificationError, ValueError):
            logger.warning("Identity webhook failed verification", exc_info=True)
            return HttpResponse("Error occurred", status=400)

        if not isinstance(event, dict):
            logger.warning("Identity webhook payload is not an object")
            return HttpResponse("Error occurred", status=400)

        event_type = event.get("type")
        try:
            identity.handle_event(event)
        except Exception:
            logger.exception("Error handling identity webhook %s", event_type)
            return HttpResponse("Error occurred while processing webhook", status=500)

        return HttpResponse("Webhook processed successfully", status=200)
