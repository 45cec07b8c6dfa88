from .reconciliation import reconcile_vote_state_task  # NOQA: F401
from .selection import credit_topic_voters_task  # NOQA: F401
from .votes import record_member_upvote  # NOQA: F401
