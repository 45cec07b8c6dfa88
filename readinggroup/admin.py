from django.contrib import admin, messages
from django.http import HttpRequest
from django.template.defaultfilters import truncatechars

from .accounts import principal_from_user
from .exceptions import ReadingGroupError
from .models import Member, Topic
from .reconciliation import reconcile_vote_state
from .selection import select_topic


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "name", "is_admin", "vote_count", "win_count")
    list_filter = ("is_admin",)
    search_fields = ["email", "name"]
    # Topic lists are maintained by the voting and selection operations
    readonly_fields = ("user", "upvoted_topics", "won_topics", "created_on", "updated_on")

    @admin.display(description="Votes")
    def vote_count(self, obj):
        return len(obj.upvoted_topics)

    @admin.display(description="Wins")
    def win_count(self, obj):
        return len(obj.won_topics)


@admin.register(Topic)
class TopicAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "truncated_text",
        "votes",
        "proposed_by",
        "is_selected",
        "week_date",
        "created_on",
    )
    list_display_links = ("id", "truncated_text")
    list_filter = ("is_selected",)
    search_fields = ["text", "proposed_by"]
    readonly_fields = (
        "votes",
        "is_selected",
        "week_date",
        "upvoted_by",
        "won_by",
        "pdf_filename",
        "pdf_original_name",
        "pdf_path",
        "created_on",
        "updated_on",
    )
    actions = ("select_for_week", "reconcile")

    def has_delete_permission(self, request, obj=None):
        # Topics are only deleted through the retention operations, which also
        # rewrite the member lists that reference them
        return False

    @admin.display(description="Text")
    def truncated_text(self, obj):
        return truncatechars(obj.text, 80)

    @admin.action(description="Select this topic for the current week")
    def select_for_week(self, request: HttpRequest, queryset):
        if queryset.count() != 1:
            self.message_user(
                request, "Select exactly one topic.", level=messages.ERROR
            )
            return
        try:
            topic = select_topic(
                principal_from_user(request.user), queryset.values_list("pk", flat=True)[0]
            )
        except ReadingGroupError as err:
            self.message_user(request, err.message, level=messages.ERROR)
            return
        self.message_user(request, f"Selected topic {topic.id} for {topic.week_date}")

    @admin.action(description="Reconcile votes and wins")
    def reconcile(self, request: HttpRequest, queryset):
        changed = reconcile_vote_state()
        self.message_user(request, f"Reconciled vote state; {changed} records changed")
