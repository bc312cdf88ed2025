import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

User = get_user_model()
logger = logging.getLogger(__name__)


class EmailBackend(ModelBackend):
    """
    Session login for the Django admin, keyed on email.

    Customers sign in through the identity provider and have unusable
    passwords, so only back-office accounts can get through here.
    """

    def authenticate(self, request, username=None, password=None, email=None, **kwargs):
        # Django admin sends 'username'
        email = (email or username or '').strip().lower()
        if not email or password is None:
            return None

        user = User.objects.filter(email=email).first()
        if user is None:
            logger.warning(f"Admin login for unknown email: {email}")
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            logger.info(f"Admin login succeeded for {email}")
            return user

        logger.warning(f"Admin login rejected for {email}")
        return None
