"""
Utilities for the API
"""
from rest_framework.authentication import SessionAuthentication, TokenAuthentication


def view_auth_classes(func_or_class):
    """
    Function and class decorator that abstracts the authentication classes for api views.
    """
    def _decorator(func_or_class):
        """
        Requires either token or session-based authentication.

        Token authentication comes first so that anonymous requests get a 401
        with a WWW-Authenticate header rather than a 403.
        """
        func_or_class.authentication_classes = (
            TokenAuthentication,
            SessionAuthentication,
        )
        return func_or_class
    return _decorator(func_or_class)
