"""Rule maps of the events API and the tier hierarchy.

Provides:
- ``DEFAULTS`` — anonymous callers, and fallthrough for every role.
- ``FREE`` / ``PREMIUM`` / ``MODERATOR`` / ``ADMINISTRATOR`` — what each
  tier declares itself.
- ``TIER_HIERARCHY`` — the maps each role is composed from.
- ``build_default_policy_table()`` — the table served in production.
"""

from __future__ import annotations

from ..roles import Role
from ..rules import Reference, allow, and_, not_, or_
from ..rules import domain as rules
from .policy import PolicyTable, build_policy_table
from .rulemap import RuleMap

is_caller_arg = rules.is_caller(Reference.ARG, "user")
is_caller_parent = rules.is_caller(Reference.PARENT)

invited_or_manager = or_(
    rules.caller_is_invited_to_parent,
    rules.caller_manages_parent,
)

public_or_invited_or_attending = or_(
    not_(rules.parent_is_private),
    rules.caller_is_invited_to_parent,
    rules.caller_attends_parent,
)

attendant_unless_locked = and_(
    rules.caller_attends_parent,
    or_(not_(rules.parent_is_locked), rules.caller_manages_parent),
)

public_event = not_(rules.parent_is_private)


# ── Anonymous ───────────────────────────────────────────

DEFAULTS = RuleMap({
    "User": {
        "_id": allow,
    },
    "Category": {
        "_id": allow,
        "name": allow,
        "events": allow,
    },
    "Event": {
        "_id": public_event,
        "title": public_event,
        "time": public_event,
        "description": public_event,
        "location": public_event,
        "owner": public_event,
        "private": public_event,
        "attendants": public_event,
        "managers": public_event,
    },
    "Query": {
        "events": allow,
    },
    "Mutation": {
        "createUser": allow,
        "login": allow,
    },
})


# ── Free ────────────────────────────────────────────────

FREE = RuleMap({
    "User": {
        "_id": allow,
        "name": allow,
        "surname": allow,
        "username": allow,
        "role": allow,
        "moderates": allow,
        "attends": is_caller_parent,
        "requests": is_caller_parent,
        "authored": is_caller_parent,
        "subscribes": is_caller_parent,
        "invitations": is_caller_parent,
        "invites": is_caller_parent,
    },
    "Category": {
        "_id": allow,
        "name": allow,
        "events": allow,
        "moderators": allow,
    },
    "Invitation": {
        "_id": invited_or_manager,
        "from": invited_or_manager,
        "invited": invited_or_manager,
        "to": invited_or_manager,
    },
    "Event": {
        "_id": public_or_invited_or_attending,
        "title": public_or_invited_or_attending,
        "time": public_or_invited_or_attending,
        "description": public_or_invited_or_attending,
        "location": public_or_invited_or_attending,
        "owner": public_or_invited_or_attending,
        "private": public_or_invited_or_attending,
        "attendants": public_or_invited_or_attending,
        "managers": public_or_invited_or_attending,
        "requests": rules.caller_manages_parent,
        "invited": rules.caller_manages_parent,
        "messageBoard": rules.caller_attends_parent,
    },
    "Post": {
        "_id": attendant_unless_locked,
        "content": attendant_unless_locked,
        "author": attendant_unless_locked,
        "postedAt": attendant_unless_locked,
        "flagged": rules.caller_manages_parent,
        "locked": rules.caller_manages_parent,
    },
    "Query": {
        "users": allow,
        "usersByUsername": allow,
        "events": allow,
    },
    "Mutation": {
        # Users
        "createUser": allow,
        "login": allow,
        "editUser": is_caller_arg,
        "unsubscribe": allow,

        # Events
        "createEvent": not_(rules.arg_is_private),
        "editEvent": and_(rules.caller_manages_arg, not_(rules.arg_is_private)),
        "addCategories": rules.caller_manages_arg,
        "removeCategories": rules.caller_manages_arg,
        "deleteEvent": rules.caller_owns_arg,

        # Event management
        "kick": and_(
            not_(and_(rules.caller_owns_arg, is_caller_arg)),
            or_(is_caller_arg, rules.caller_manages_arg),
        ),
        "promote": rules.caller_owns_arg,
        "demote": and_(rules.caller_owns_arg, not_(is_caller_arg)),

        # Invitations
        "invite": rules.caller_manages_arg,
        "acceptInvitation": rules.caller_is_invited_to(Reference.ARG, "invitation"),
        "declineInvitation": or_(
            rules.caller_is_invited_to(Reference.ARG, "invitation"),
            rules.caller_manages(Reference.ARG, "invitation"),
        ),

        # Requests
        "request": not_(rules.arg_is_private),
        "acceptRequest": rules.caller_manages_arg,
        "declineRequest": or_(rules.caller_requests_arg, rules.caller_manages_arg),

        # Posts
        "createPost": rules.caller_attends(Reference.ARG, "post.postedAt"),
        "flagPost": rules.caller_attends(Reference.ARG, "post"),
        "review": and_(rules.arg_is_flagged, rules.caller_manages(Reference.ARG, "post")),
    },
})


# ── Premium ─────────────────────────────────────────────

PREMIUM = RuleMap({
    "Mutation": {
        "subscribe": allow,
        "createEvent": allow,
        "editEvent": allow,
    },
})


# ── Moderator ───────────────────────────────────────────

moderates_parent = rules.caller_moderates_parent

MODERATOR = RuleMap({
    "Category": {
        "subscribers": moderates_parent,
    },
    "Event": {
        "messageBoard": moderates_parent,
    },
    "Post": {
        "_id": moderates_parent,
        "content": moderates_parent,
        "author": moderates_parent,
        "postedAt": moderates_parent,
        "flagged": moderates_parent,
        "locked": moderates_parent,
    },
    "Mutation": {
        "removeCategories": rules.caller_moderates(Reference.ARG, "event"),
        "flagPost": rules.caller_moderates(Reference.ARG, "post"),
        "review": and_(rules.arg_is_flagged, rules.caller_moderates(Reference.ARG, "post")),
    },
})


# ── Administrator ───────────────────────────────────────

ADMINISTRATOR = RuleMap({
    "Category": {
        "subscribers": allow,
    },
    "Event": {
        "messageBoard": allow,
    },
    "Post": {
        "_id": allow,
        "content": allow,
        "author": allow,
        "postedAt": allow,
        "flagged": allow,
        "locked": allow,
    },
    "Mutation": {
        "createCategory": allow,
        "editCategory": allow,
        "deleteCategory": allow,
        "assignModerator": rules.arg_has_role(Role.MODERATOR),
        "removeModerator": allow,
        "setRole": allow,
        "deleteUser": allow,
        "removeCategories": allow,
        "deletePost": rules.arg_is_locked,
        "flagPost": allow,
        "review": rules.arg_is_flagged,
        "unlockPost": allow,
    },
})


# ── Hierarchy ───────────────────────────────────────────
# Each role names every map it inherits, base first.

TIER_HIERARCHY: dict[Role, tuple[RuleMap, ...]] = {
    Role.FREE: (FREE,),
    Role.PREMIUM: (FREE, PREMIUM),
    Role.MODERATOR: (FREE, PREMIUM, MODERATOR),
    Role.ADMINISTRATOR: (FREE, PREMIUM, MODERATOR, ADMINISTRATOR),
}


def build_default_policy_table() -> PolicyTable:
    """Policy table for the events API."""
    return build_policy_table(DEFAULTS, TIER_HIERARCHY)


__all__ = [
    "ADMINISTRATOR",
    "DEFAULTS",
    "FREE",
    "MODERATOR",
    "PREMIUM",
    "TIER_HIERARCHY",
    "build_default_policy_table",
]
