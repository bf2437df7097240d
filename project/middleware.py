import logging

from django.contrib.auth import logout

logger = logging.getLogger(__name__)


class BlockedUserMiddleware:
    """Terminate the session of a user whose account has been blocked.

    Runs after AuthenticationMiddleware. The status is read from the user row
    loaded for this request, so a block takes effect on the very next request
    the user makes; the request then proceeds anonymously.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, "user", None)
        if user is not None and getattr(user, "is_authenticated", False) and getattr(user, "is_blocked", False):
            logger.info("Logging out blocked user id=%s", user.pk)
            logout(request)
        return self.get_response(request)
