from logging import getLogger

from django.conf import settings
from django.db import models
from django.db.models import JSONField, Q

from readinggroup.records import Document
from readinggroup.records import Member as MemberRecord
from readinggroup.records import Topic as TopicRecord

logger = getLogger(__name__)


class Member(models.Model):
    # The identity provider owns authentication; this row holds the voting
    # history for one identity and is linked to the Django user when known.
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reading_group_member",
    )
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    is_admin = models.BooleanField(default=False)
    upvoted_topics = JSONField(default=list, blank=True)
    won_topics = JSONField(default=list, blank=True)

    created_on = models.DateTimeField(auto_now_add=True)
    updated_on = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["email"]

    def __str__(self):
        return self.email

    def to_record(self) -> MemberRecord:
        return MemberRecord(
            id=self.pk,
            identity=self.email,
            display_name=self.name,
            is_admin=self.is_admin,
            upvoted_topics=list(self.upvoted_topics or []),
            won_topics=list(self.won_topics or []),
        )


class Topic(models.Model):
    text = models.TextField()
    votes = models.PositiveIntegerField(default=0)
    proposed_by = models.CharField(max_length=254, blank=True)
    is_selected = models.BooleanField(default=False)
    week_date = models.CharField(max_length=64, blank=True)

    pdf_filename = models.CharField(max_length=255, blank=True)
    pdf_original_name = models.CharField(max_length=255, blank=True)
    pdf_path = models.CharField(max_length=512, blank=True)

    upvoted_by = JSONField(default=list, blank=True)
    won_by = JSONField(default=list, blank=True)

    created_on = models.DateTimeField(auto_now_add=True)
    updated_on = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-votes", "pk"]
        constraints = [
            models.UniqueConstraint(
                fields=["is_selected"],
                condition=Q(is_selected=True),
                name="single_selected_topic",
            ),
        ]

    def __str__(self):
        return self.text[:80]

    @property
    def document(self):
        if not self.pdf_path:
            return None
        return Document(
            filename=self.pdf_filename,
            original_name=self.pdf_original_name,
            path=self.pdf_path,
        )

    def to_record(self) -> TopicRecord:
        return TopicRecord(
            id=self.pk,
            text=self.text,
            proposed_by=self.proposed_by,
            votes=self.votes,
            is_selected=self.is_selected,
            week_date=self.week_date,
            document=self.document,
            upvoted_by=list(self.upvoted_by or []),
            won_by=list(self.won_by or []),
            created_on=self.created_on,
        )

    def apply_record(self, record: TopicRecord) -> None:
        self.text = record.text
        self.proposed_by = record.proposed_by
        self.votes = record.votes
        self.is_selected = record.is_selected
        self.week_date = record.week_date
        if record.document is None:
            self.pdf_filename = self.pdf_original_name = self.pdf_path = ""
        else:
            self.pdf_filename = record.document.filename
            self.pdf_original_name = record.document.original_name
            self.pdf_path = record.document.path
        self.upvoted_by = list(record.upvoted_by)
        self.won_by = list(record.won_by)
