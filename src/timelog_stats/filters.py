"""Entry selection and per-activity output filters."""

from __future__ import annotations

import re
from datetime import tzinfo
from typing import Callable, Iterable, Optional

from .models import (
    INACTIVE,
    Activity,
    ActivityFilter,
    ActivityMatcher,
    Entry,
    EntryData,
    Exclude,
    ExcludeActivity,
    Filter,
    GeneralCondition,
    MatchActivity,
    MatchCategory,
    Only,
    OnlyActivity,
)

ConditionEvaluator = Callable[[str, tzinfo, Entry[EntryData]], bool]

_TOKEN_PATTERN = re.compile(r"[^\s:]+")

default_filter: Filter = Exclude(MatchActivity(INACTIVE))


class MatcherParseError(ValueError):
    """Raised for an activity or category literal that cannot be parsed."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Invalid activity matcher: {token!r}")
        self.token = token


class MissingConditionError(ValueError):
    """Raised when a condition filter is used without a condition evaluator."""


def parse_activity(text: str) -> Activity:
    """Parse ``name`` or ``Category:name``."""
    category, sep, name = text.rpartition(":")
    if not _TOKEN_PATTERN.fullmatch(name):
        raise MatcherParseError(text)
    if not sep:
        return Activity(name)
    if not _TOKEN_PATTERN.fullmatch(category):
        raise MatcherParseError(text)
    return Activity(name, category)


def parse_matcher(text: str) -> ActivityMatcher:
    """A trailing ``:`` selects a whole category, anything else one activity."""
    if text.endswith(":"):
        category = text[:-1]
        if not _TOKEN_PATTERN.fullmatch(category):
            raise MatcherParseError(text)
        return MatchCategory(category)
    return MatchActivity(parse_activity(text))


def format_matcher(matcher: ActivityMatcher) -> str:
    return str(matcher)


def matches(matcher: ActivityMatcher, activity: Activity) -> bool:
    if isinstance(matcher, MatchActivity):
        return matcher.activity == activity
    return activity.category == matcher.category


def is_category(category: str, activity: Activity) -> bool:
    return activity.category == category


def compute_selected(
    filters: Iterable[Filter],
    entry: Entry[EntryData],
    evaluate_condition: Optional[ConditionEvaluator] = None,
) -> bool:
    """Return whether ``entry`` passes every filter."""
    activities = entry.data.activities
    for flt in filters:
        if isinstance(flt, Exclude):
            passed = not any(matches(flt.matcher, act) for act in activities)
        elif isinstance(flt, Only):
            passed = any(matches(flt.matcher, act) for act in activities)
        elif isinstance(flt, GeneralCondition):
            if evaluate_condition is None:
                raise MissingConditionError(
                    f"No condition evaluator configured for {flt.expression!r}"
                )
            passed = evaluate_condition(flt.expression, entry.data.context.timezone, entry)
        else:
            raise TypeError(f"Unknown filter: {flt!r}")
        if not passed:
            return False
    return True


def selection_predicate(
    filters: Iterable[Filter],
    evaluate_condition: Optional[ConditionEvaluator] = None,
) -> Callable[[Entry[EntryData]], bool]:
    filters = tuple(filters)
    return lambda entry: compute_selected(filters, entry, evaluate_condition)


def apply_activity_filter(filters: Iterable[ActivityFilter], activity: Activity) -> bool:
    """Return whether a per-activity row for ``activity`` should be shown."""
    for flt in filters:
        if isinstance(flt, ExcludeActivity):
            if matches(flt.matcher, activity):
                return False
        elif isinstance(flt, OnlyActivity):
            if not matches(flt.matcher, activity):
                return False
        else:
            raise TypeError(f"Unknown activity filter: {flt!r}")
    return True
