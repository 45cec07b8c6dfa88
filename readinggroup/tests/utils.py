from secrets import token_hex

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings

from readinggroup.accounts import Principal
from readinggroup.backends import get_store, reset_store

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


def make_principal(identity="reader@example.com", display_name="", is_admin=False):
    return Principal(identity=identity, display_name=display_name, is_admin=is_admin)


def make_admin(identity="admin@example.com", display_name="Admin"):
    return make_principal(identity, display_name, is_admin=True)


def create_user(*, username=None, email=None, is_staff=False, **kwargs):
    username = username or f"user-{token_hex(4)}"
    email = email if email is not None else f"{username}@example.com"
    user = User.objects.create_user(
        username=username,
        email=email,
        password=token_hex(16),
        is_staff=is_staff,
        **kwargs,
    )
    return user


def make_pdf(name="reading.pdf", content=PDF_BYTES, content_type="application/pdf"):
    return SimpleUploadedFile(name, content, content_type=content_type)


class OrmStoreMixin:
    """Run the test case against the database-backed store."""

    def setUp(self):
        reset_store()
        self.addCleanup(reset_store)
        self.store = get_store()
        super().setUp()


class MemoryStoreMixin:
    """Run the test case against the in-memory store."""

    def setUp(self):
        override = override_settings(
            READINGGROUP_STORE_BACKEND="readinggroup.backends.memory.MemoryTopicStore"
        )
        override.enable()
        self.addCleanup(override.disable)
        reset_store()
        self.addCleanup(reset_store)
        self.store = get_store()
        super().setUp()


class StoreHelpersMixin:
    def run_on_commit(self):
        # ORM stores defer their post-commit work until the test transaction
        # would commit; the memory store runs it when the block exits.
        return self.captureOnCommitCallbacks(execute=True)

    def member(self, identity):
        return self.store.get_member_by_identity(identity)

    def topic(self, topic_id):
        return self.store.get_topic(topic_id)

    def add_member(self, identity, display_name="", is_admin=False):
        member, _ = self.store.get_or_create_member(identity, display_name, is_admin)
        return member

    def add_topic(self, text="A topic", proposed_by="proposer@example.com", **fields):
        topic = self.store.create_topic(text, proposed_by)
        if fields:
            for key, value in fields.items():
                setattr(topic, key, value)
            topic = self.store.save_topic(topic)
        return topic
