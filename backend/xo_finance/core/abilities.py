"""Ability engine: ordered grant/deny rules evaluated per principal.

Rules are declared in order with ``AbilityBuilder.can`` / ``cannot`` and
frozen into an ``AbilitySet``. ``AbilitySet.can(action, subject, field)``
answers permission questions:

* a rule is *relevant* when its action (or ``manage``), subject type (or
  ``all``), field list and conditions match the query;
* field-qualified rules outrank subject-only rules;
* a grant survives only if every relevant deny is both less specific and
  declared earlier. Equal specificity resolves to deny and a later deny
  covering the same tuple always wins;
* anything not granted is denied.

``define_abilities_for`` is a pure function of the principal; callers rebuild
the set whenever the principal changes (once per request in the API).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from xo_finance.core.errors import PermissionDenied

logger = logging.getLogger(__name__)

MANAGE = "manage"
ALL = "all"
CONCRETE_ACTIONS = ("create", "read", "update", "delete")
ACTIONS = frozenset((MANAGE, *CONCRETE_ACTIONS))

SUBJECT_TYPES = frozenset(
    {
        "User",
        "Transaction",
        "Debt",
        "Goal",
        "Budget",
        "CreditCard",
        "SubscriptionPlan",
        "EducationTrack",
        "Log",
    }
)

PROTECTED_USER_FIELDS = ("role", "status")

ROLE_USER = "user"
ROLE_SUPERADMIN = "superadmin"

_MISSING = object()


@dataclass(frozen=True)
class SubjectRecord:
    """A record tagged with the subject type it should be checked as."""

    subject_type: str
    attrs: Mapping[str, Any]


def subject(subject_type: str, attrs: Optional[Mapping[str, Any]] = None) -> SubjectRecord:
    return SubjectRecord(subject_type=subject_type, attrs=dict(attrs or {}))


def _known(subject_type: Any) -> Optional[str]:
    name = str(subject_type) if subject_type else None
    if name in SUBJECT_TYPES or name == ALL:
        return name
    return None


def detect_subject_type(value: Any) -> Optional[str]:
    """Subject type of *value*, or None when it is not a known subject."""
    if isinstance(value, str):
        return _known(value)
    if isinstance(value, SubjectRecord):
        return _known(value.subject_type)
    if isinstance(value, Mapping):
        return _known(value.get("subject_type"))
    tagged = getattr(value, "subject_type", None) or getattr(type(value), "__subject_type__", None)
    return _known(tagged or type(value).__name__)


def _attribute(value: Any, name: str) -> Any:
    if isinstance(value, SubjectRecord):
        return value.attrs.get(name, _MISSING)
    if isinstance(value, Mapping):
        return value.get(name, _MISSING)
    return getattr(value, name, _MISSING)


def _condition_holds(actual: Any, expected: Any) -> bool:
    if isinstance(expected, Mapping):
        for op, operand in expected.items():
            if op == "$eq":
                ok = actual == operand
            elif op == "$ne":
                ok = actual != operand
            elif op == "$in":
                ok = actual in operand
            elif op == "$nin":
                ok = actual not in operand
            else:
                return False
            if not ok:
                return False
        return True
    if actual is _MISSING:
        return False
    return actual == expected


@dataclass(frozen=True, eq=False)
class Rule:
    actions: frozenset[str]
    subject: str
    inverted: bool = False
    fields: Optional[frozenset[str]] = None
    conditions: Optional[Mapping[str, Any]] = None
    index: int = 0

    @property
    def specificity(self) -> int:
        return 1 if self.fields else 0

    def matches_action(self, action: str) -> bool:
        return action in self.actions or MANAGE in self.actions

    def matches_subject_type(self, subject_type: Optional[str]) -> bool:
        if subject_type is None:
            return False
        return self.subject == ALL or self.subject == subject_type

    def matches_conditions(self, value: Any) -> bool:
        if not self.conditions:
            return True
        return all(_condition_holds(_attribute(value, key), expected) for key, expected in self.conditions.items())

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "action": sorted(self.actions),
            "subject": self.subject,
        }
        if self.fields:
            payload["fields"] = sorted(self.fields)
        if self.conditions:
            payload["conditions"] = dict(self.conditions)
        if self.inverted:
            payload["inverted"] = True
        return payload


class AbilitySet:
    """Immutable rule list with permission queries."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def relevant_rules(self, action: str, value: Any, field: Optional[str] = None) -> list[Rule]:
        subject_type = detect_subject_type(value)
        type_level = isinstance(value, str)
        relevant: list[Rule] = []
        for rule in self._rules:
            if not rule.matches_action(action) or not rule.matches_subject_type(subject_type):
                continue
            if field is None:
                # "can update the record" means "can update some field of it".
                if rule.inverted and rule.fields:
                    continue
            elif rule.fields and field not in rule.fields:
                continue
            if rule.conditions:
                if type_level:
                    if rule.inverted:
                        continue
                elif not rule.matches_conditions(value):
                    continue
            relevant.append(rule)
        return relevant

    def can(self, action: str, value: Any, field: Optional[str] = None) -> bool:
        if action not in ACTIONS:
            return False
        try:
            if action == MANAGE:
                return all(self._decide(a, value, field) for a in CONCRETE_ACTIONS)
            return self._decide(action, value, field)
        except Exception:
            logger.exception("Ability check failed for action=%s", action)
            return False

    def cannot(self, action: str, value: Any, field: Optional[str] = None) -> bool:
        return not self.can(action, value, field)

    def ensure(self, action: str, value: Any, field: Optional[str] = None) -> None:
        if not self.can(action, value, field):
            target = detect_subject_type(value)
            suffix = f".{field}" if field else ""
            raise PermissionDenied(detail=f"{action} on {target}{suffix} is not permitted")

    def permitted_fields(self, action: str, value: Any, fields: Iterable[str]) -> list[str]:
        return [name for name in fields if self.can(action, value, name)]

    def to_payload(self) -> list[dict[str, Any]]:
        return [rule.to_payload() for rule in self._rules]

    def _decide(self, action: str, value: Any, field: Optional[str]) -> bool:
        relevant = self.relevant_rules(action, value, field)
        denies = [rule for rule in relevant if rule.inverted]
        for grant in (rule for rule in relevant if not rule.inverted):
            if all(deny.specificity < grant.specificity and deny.index < grant.index for deny in denies):
                return True
        return False


class AbilityBuilder:
    def __init__(self) -> None:
        self._rules: list[Rule] = []

    def can(
        self,
        actions: str | Iterable[str],
        subject_type: str,
        *,
        fields: Optional[Iterable[str]] = None,
        conditions: Optional[Mapping[str, Any]] = None,
    ) -> Rule:
        return self._add(actions, subject_type, fields, conditions, inverted=False)

    def cannot(
        self,
        actions: str | Iterable[str],
        subject_type: str,
        *,
        fields: Optional[Iterable[str]] = None,
        conditions: Optional[Mapping[str, Any]] = None,
    ) -> Rule:
        return self._add(actions, subject_type, fields, conditions, inverted=True)

    def build(self) -> AbilitySet:
        return AbilitySet(self._rules)

    def _add(self, actions, subject_type, fields, conditions, *, inverted: bool) -> Rule:
        action_set = frozenset([actions] if isinstance(actions, str) else actions)
        rule = Rule(
            actions=action_set,
            subject=subject_type,
            inverted=inverted,
            fields=frozenset(fields) if fields else None,
            conditions=dict(conditions) if conditions else None,
            index=len(self._rules),
        )
        self._rules.append(rule)
        return rule


def _principal_value(principal: Any, name: str) -> Any:
    if isinstance(principal, Mapping):
        return principal.get(name)
    return getattr(principal, name, None)


def define_abilities_for(principal: Any) -> AbilitySet:
    """Build the rule set for *principal* (``None`` for anonymous)."""
    builder = AbilityBuilder()
    if principal is None:
        return builder.build()

    uid = _principal_value(principal, "id")
    if not uid:
        return builder.build()
    role = str(_principal_value(principal, "role") or ROLE_USER)

    builder.can("read", ALL)

    if role == ROLE_SUPERADMIN:
        builder.can(MANAGE, ALL)
        builder.cannot("delete", "User", conditions={"id": uid})
        builder.cannot("update", "User", fields=PROTECTED_USER_FIELDS, conditions={"id": uid})
    else:
        builder.can(MANAGE, "User", conditions={"id": uid})
        builder.cannot("update", "User", fields=PROTECTED_USER_FIELDS)
        builder.cannot("delete", "User")

    return builder.build()
