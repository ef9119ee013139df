"""Action and resource matching for permission rules."""

from gatekeep.core.rbac.types import WILDCARD, PermissionRule

# Rule actions that stand for a family of concrete actions.
IMPLIED_ACTIONS: dict[str, frozenset[str]] = {
    "write": frozenset({"create", "update", "patch", "delete", "write"}),
    "read": frozenset({"view", "read", "list"}),
}

MANAGE_ACTION = "manage"


def resource_matches(rule_resource: str, resource: str) -> bool:
    """Check whether a rule's resource covers the requested resource."""
    return rule_resource == WILDCARD or rule_resource == resource


def action_matches(rule_action: str, action: str) -> bool:
    """Check whether a rule's action covers the requested action.

    A rule matches on exact equality, on the ``*`` wildcard, when it is
    ``manage`` (implies every action), or when it names an action family
    from ``IMPLIED_ACTIONS`` that contains the requested action.
    """
    if rule_action in (WILDCARD, MANAGE_ACTION) or rule_action == action:
        return True
    implied = IMPLIED_ACTIONS.get(rule_action)
    return implied is not None and action in implied


def rule_matches(rule: PermissionRule, action: str, resource: str) -> bool:
    """Check whether a rule applies to an ``(action, resource)`` pair."""
    return resource_matches(rule.resource, resource) and action_matches(rule.action, action)
