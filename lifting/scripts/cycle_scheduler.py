#!/usr/bin/env python3
"""
Cycle scheduler: which session template comes next.

The cycle is a repeating list of template ids. The next session follows the
last non-rest session in the cycle; rest days never move the cycle position.
The optional bonus template is only ever offered right after its anchor and
never takes a place in the rotation, so declining it changes nothing.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

sys.path.insert(0, str(Path(__file__).parent))
from errors import ConfigurationError
from history import SessionRecord


@dataclass(frozen=True)
class BonusPolicy:
    """When to offer the optional bonus template."""
    enabled: bool
    anchor: str
    template_id: str

    @classmethod
    def from_settings(cls, settings) -> 'BonusPolicy':
        return cls(
            enabled=settings.offer_upper_c,
            anchor=settings.bonus_anchor,
            template_id=settings.bonus_template,
        )

    @classmethod
    def disabled(cls) -> 'BonusPolicy':
        return cls(enabled=False, anchor='', template_id='')


@dataclass(frozen=True)
class NextSession:
    template_id: str
    is_optional_offer: bool = False


def last_training_session(history: Sequence[SessionRecord]) -> Optional[SessionRecord]:
    """Most recent non-rest record, or None."""
    for record in reversed(history):
        if not record.rest_day:
            return record
    return None


def next_in_cycle(cycle: Sequence[str], last_template_id: Optional[str]) -> str:
    """Cycle successor of last_template_id; cycle[0] if it is unknown or None."""
    if not cycle:
        raise ConfigurationError("Cycle is empty")
    if last_template_id not in cycle:
        return cycle[0]
    index = list(cycle).index(last_template_id)
    return cycle[(index + 1) % len(cycle)]


def next_session(cycle: Sequence[str], history: Sequence[SessionRecord],
                 bonus_policy: Optional[BonusPolicy] = None,
                 offer_declined: bool = False) -> NextSession:
    """
    Pick the next session.

    Args:
        cycle: Ordered template ids of the rotation
        history: Date-ordered session records
        bonus_policy: Optional bonus offer rules (None disables the offer)
        offer_declined: True once the caller has declined the pending bonus offer

    Returns:
        NextSession; is_optional_offer marks a bonus suggestion that does not
        consume a cycle position.
    """
    last = last_training_session(history)
    if last is None:
        return NextSession(template_id=next_in_cycle(cycle, None))

    if (bonus_policy is not None and bonus_policy.enabled and not offer_declined
            and last.template_id == bonus_policy.anchor):
        return NextSession(template_id=bonus_policy.template_id, is_optional_offer=True)

    return NextSession(template_id=next_in_cycle(cycle, last.template_id))
