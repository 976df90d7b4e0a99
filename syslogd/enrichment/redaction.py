from __future__ import annotations

import logging
from typing import Sequence

from ..config import HideMatch, MatchType
from ..model import EventDraft, ParsedMessage
from .patterns import PatternCache

logger = logging.getLogger("syslogd.redaction")

HIDDEN_MESSAGE = (
    "The message logged has been removed due to configuration of Syslogd; it may contain sensitive data."
)


def _hide_matches(rule: HideMatch, full_text: str, pattern_cache: PatternCache) -> bool:
    if rule.match.type == MatchType.SUBSTR:
        return rule.match.expression in full_text
    pattern = pattern_cache.get_pattern(rule.match.expression)
    if pattern is None:
        logger.debug("Skipping hide-match with uncompilable regex '%s'", rule.match.expression)
        return False
    return pattern.search(full_text) is not None


def apply_hide_rules(
    draft: EventDraft,
    message: ParsedMessage,
    hide_rules: Sequence[HideMatch],
    pattern_cache: PatternCache,
) -> bool:
    """Replace logmsg and the syslogmessage parm if any hide rule matches the rendered message."""
    if not hide_rules:
        return False
    full_text = message.as_rfc3164_message()
    for rule in hide_rules:
        if _hide_matches(rule, full_text, pattern_cache):
            logger.debug("Hiding syslog message from event - may contain sensitive data")
            draft.logmsg = HIDDEN_MESSAGE
            draft.set_parm("syslogmessage", HIDDEN_MESSAGE)
            return True
    return False
