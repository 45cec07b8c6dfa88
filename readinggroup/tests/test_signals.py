from unittest import mock

from django.test import RequestFactory, TestCase

from readinggroup.backends import get_store, reset_store
from readinggroup.exceptions import StorageUnavailable
from readinggroup.models import Member
from readinggroup.signals.handlers import ensure_member_on_login

from .utils import create_user


class LoginSignalTests(TestCase):
    def setUp(self):
        reset_store()
        self.addCleanup(reset_store)

    def test_login_creates_and_links_member(self):
        user = create_user(username="ada", email="ada@example.com", is_staff=True)
        self.client.force_login(user)

        member = Member.objects.get(email="ada@example.com")
        self.assertEqual(member.user, user)
        self.assertTrue(member.is_admin)

    def test_login_refreshes_admin_flag(self):
        user = create_user(username="ada", email="ada@example.com")
        self.client.force_login(user)
        self.assertFalse(Member.objects.get(email="ada@example.com").is_admin)

        user.is_staff = True
        user.save()
        self.client.force_login(user)
        self.assertTrue(Member.objects.get(email="ada@example.com").is_admin)

    def test_login_without_email_is_skipped(self):
        user = create_user(username="noemail", email="")
        with mock.patch("readinggroup.signals.handlers.structured_logger") as logger:
            self.client.force_login(user)
        logger.warning.assert_called_once()
        self.assertFalse(Member.objects.exists())

    def test_storage_failure_does_not_block_login(self):
        user = create_user(username="ada", email="ada@example.com")
        request = RequestFactory().get("/")
        with mock.patch.object(
            get_store(), "get_or_create_member", side_effect=StorageUnavailable()
        ):
            with mock.patch(
                "readinggroup.signals.handlers.structured_logger"
            ) as logger:
                ensure_member_on_login(sender=type(user), user=user, request=request)
        self.assertEqual(
            logger.warning.call_args.kwargs["reason_code"], "storage_unavailable"
        )
        self.assertFalse(Member.objects.exists())
