# orders_core/middleware.py

from django.utils.deprecation import MiddlewareMixin

from .signals import set_current_user


class CurrentUserMiddleware(MiddlewareMixin):
    """
    Exposes the authenticated user to the audit receivers in signals.py.

    Goes after AuthenticationMiddleware. The thread-local is cleared on
    every exit path so a worker thread never carries a user into the next
    request.
    """

    def process_request(self, request):
        user = getattr(request, "user", None)
        set_current_user(user if user is not None and user.is_authenticated else None)

    def process_exception(self, request, exception):
        set_current_user(None)

    def process_response(self, request, response):
        set_current_user(None)
        return response
