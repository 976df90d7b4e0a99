"""Ordered uei-match evaluation: the first rule that fully matches wins, a discard-uei rule drops the message."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from ..config import MatchType, UeiMatch
from ..model import EventDraft, ParsedMessage
from .patterns import PatternCache

logger = logging.getLogger("syslogd.classification")


@dataclass(frozen=True)
class Matched:
    uei: str
    parameters: Tuple[Tuple[str, str], ...] = ()
    rule_index: int = 0


@dataclass(frozen=True)
class Discarded:
    reason: str
    rule_index: int = 0


@dataclass(frozen=True)
class NoMatch:
    pass


ClassificationResult = Union[Matched, Discarded, NoMatch]


def _contains_ignore_case(values: Sequence[str], match: str) -> bool:
    if not values:
        return True
    match = match.lower()
    return any(v.lower() == match for v in values)


def _match_find(
    pattern_cache: PatternCache,
    expression: Optional[str],
    value: Optional[str],
    context: str,
) -> bool:
    """Unanchored search of an optional gating expression. No expression matches anything."""
    if expression is None:
        return True
    if value is None:
        return False
    pattern = pattern_cache.get_pattern(expression)
    if pattern is None:
        logger.debug("Unable to get pattern for expression '%s' in %s context", expression, context)
        return False
    return pattern.search(value) is not None


def _passes_gates(rule: UeiMatch, message: ParsedMessage, pattern_cache: PatternCache) -> bool:
    return (
        _contains_ignore_case(rule.facilities, str(message.facility))
        and _contains_ignore_case(rule.severities, str(message.severity))
        and _match_find(pattern_cache, rule.process_match, message.process_name, "process-match")
        and _match_find(pattern_cache, rule.hostname_match, message.hostname, "hostname-match")
        and _match_find(pattern_cache, rule.hostaddr_match, message.host_address, "hostaddr-match")
    )


def _regex_parameters(rule: UeiMatch, m) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if m.re.groups == 0:
        return params
    if rule.match.default_parameter_mapping:
        for group_num in range(1, m.re.groups + 1):
            params.append((f"group{group_num}", m.group(group_num) or ""))
    for assignment in rule.parameter_assignments:
        if assignment.matching_group > m.re.groups:
            logger.warning(
                "Parameter '%s' references group %d but '%s' has only %d groups",
                assignment.parameter_name,
                assignment.matching_group,
                rule.match.expression,
                m.re.groups,
            )
            value = None
        else:
            value = m.group(assignment.matching_group)
        params.append((assignment.parameter_name, value or ""))
    return params


def _match_body(
    rule: UeiMatch,
    body: str,
    pattern_cache: PatternCache,
) -> Optional[List[Tuple[str, str]]]:
    """Return extracted parameters if the rule's match expression hits ``body``, else None."""
    if rule.match.type == MatchType.SUBSTR:
        if rule.match.expression in body:
            return []
        return None

    pattern = pattern_cache.get_pattern(rule.match.expression)
    if pattern is None:
        logger.debug("Unable to create pattern for expression '%s'", rule.match.expression)
        return None
    m = pattern.search(body)
    if m is None:
        return None
    return _regex_parameters(rule, m)


def classify(
    message: ParsedMessage,
    rules: Sequence[UeiMatch],
    discard_uei: str,
    pattern_cache: PatternCache,
) -> ClassificationResult:
    body = message.message or ""
    for index, rule in enumerate(rules):
        if not _passes_gates(rule, message, pattern_cache):
            continue
        params = _match_body(rule, body, pattern_cache)
        if params is None:
            logger.debug("No %s match for rule %d (%s)", rule.match.type.value, index, rule.match.expression)
            continue
        if rule.uei == discard_uei:
            logger.debug("Rule %d uei '%s' is the discard uei, discarding this message", index, rule.uei)
            return Discarded(
                reason=f"Matched uei-match {index} with discard uei '{discard_uei}'",
                rule_index=index,
            )
        logger.debug("Changed the uei of a syslogd event, based on %s match, to: %s", rule.match.type.value, rule.uei)
        return Matched(uei=rule.uei, parameters=tuple(params), rule_index=index)
    return NoMatch()


def apply_classification(draft: EventDraft, result: ClassificationResult) -> None:
    """Rewrite the draft for a Matched result. Discarded must be handled by the caller."""
    if isinstance(result, Matched):
        draft.uei = result.uei
        for name, value in result.parameters:
            draft.add_parm(name, value)
